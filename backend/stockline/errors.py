# Overview: Error taxonomy shared by services, the action router, and the wire protocol.

"""
Every failure a client can observe is one of these classes.

WHY: Handlers raise, the router converts. A handler never builds a failure
envelope by hand, so the code/message pairing stays consistent and internal
exception text never reaches the socket.

Each class carries:
- code: stable machine-readable identifier sent as "error" in the envelope
- default_message: client-safe text used when no message is given
"""


class StocklineError(Exception):
    code = "INTERNAL_ERROR"
    default_message = "Internal server error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ProtocolError(StocklineError):
    """Malformed request line, unparseable JSON, or missing required field."""
    code = "PROTOCOL_ERROR"
    default_message = "Malformed request"


class UnknownCommand(StocklineError):
    code = "UNKNOWN_COMMAND"
    default_message = "Unknown action"


class AuthenticationRequired(StocklineError):
    code = "AUTHENTICATION_REQUIRED"
    default_message = "Authentication required"


class InvalidCredentials(StocklineError):
    """Login failed. Same message whether or not the username exists."""
    code = "INVALID_CREDENTIALS"
    default_message = "Invalid username or password"


class Forbidden(StocklineError):
    """Authenticated, but the role is below the action's tier."""
    code = "FORBIDDEN"
    default_message = "Forbidden"


class ValidationError(StocklineError, ValueError):
    """Well-formed but semantically invalid payload (e.g. negative quantity)."""
    code = "VALIDATION_ERROR"
    default_message = "Invalid request data"


class ConflictError(ValidationError):
    """Business rule conflict (e.g. duplicate username)."""


class NotFound(StocklineError):
    code = "NOT_FOUND"
    default_message = "Not found"


class ProductNotFound(NotFound):
    default_message = "Product not found"


class InsufficientStock(StocklineError):
    code = "INSUFFICIENT_STOCK"
    default_message = "Insufficient stock"


class RateLimited(StocklineError):
    code = "RATE_LIMITED"
    default_message = "Too many failed login attempts"


class StorageFailure(StocklineError):
    """Storage collaborator unavailable or rejected the operation."""
    code = "STORAGE_FAILURE"
    default_message = "Storage unavailable"


class InternalError(StocklineError):
    code = "INTERNAL_ERROR"
    default_message = "Internal server error"
