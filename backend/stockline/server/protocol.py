# Overview: Wire format for the line protocol; request decoding and the response envelope.

"""
One JSON object per line, UTF-8, newline terminated, in both directions.

Request:  {"action": "<name>", ...action-specific fields}
Response: {"success": bool, "message": str, "timestamp": ISO-8601,
           "data": <optional>, "error": <code, failures only>}

Serialization goes through the Flask app's JSON provider (app.json), so
the server and tests share one encoder.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from ..errors import ProtocolError, StocklineError
from ..time_utils import to_utc_z, utcnow


def _now_iso() -> str:
    return to_utc_z(utcnow())


@dataclass
class Response:
    success: bool
    message: str
    data: Any = None
    error: str | None = None
    timestamp: str = field(default_factory=_now_iso)

    @classmethod
    def ok(cls, message: str, data: Any = None) -> "Response":
        return cls(success=True, message=message, data=data)

    @classmethod
    def fail(cls, message: str, error: str | None = None) -> "Response":
        return cls(success=False, message=message, error=error)

    @classmethod
    def from_error(cls, exc: StocklineError) -> "Response":
        return cls.fail(exc.message, exc.code)

    def to_dict(self) -> dict:
        payload = {
            "success": self.success,
            "message": self.message,
            "timestamp": self.timestamp,
        }
        if self.error is not None:
            payload["error"] = self.error
        if self.data is not None:
            payload["data"] = self.data
        return payload

    @classmethod
    def from_dict(cls, payload: dict) -> "Response":
        return cls(
            success=bool(payload["success"]),
            message=payload["message"],
            data=payload.get("data"),
            error=payload.get("error"),
            timestamp=payload["timestamp"],
        )


def encode_response(response: Response, json_provider) -> bytes:
    return (json_provider.dumps(response.to_dict()) + "\n").encode("utf-8")


def decode_response(line: bytes | str, json_provider) -> Response:
    if isinstance(line, bytes):
        line = line.decode("utf-8")
    return Response.from_dict(json_provider.loads(line))


def decode_request(line: bytes | str, json_provider) -> tuple[str, dict]:
    """
    Parse one request line into (action, payload).

    Raises ProtocolError for undecodable bytes, invalid JSON, a non-object
    body, or a missing/non-string "action". payload is the whole object.
    """
    if isinstance(line, bytes):
        try:
            line = line.decode("utf-8")
        except UnicodeDecodeError:
            raise ProtocolError("Request is not valid UTF-8")

    try:
        payload = json_provider.loads(line)
    except (ValueError, RecursionError):
        # JSONDecodeError, oversized integer literals and runaway nesting
        raise ProtocolError("Invalid JSON format")

    if not isinstance(payload, dict):
        raise ProtocolError("Request must be a JSON object")

    action = payload.get("action")
    if action is None:
        raise ProtocolError("Missing required field: action")
    if not isinstance(action, str) or not action.strip():
        raise ProtocolError("action must be a non-empty string")

    return action.strip(), payload
