from __future__ import annotations

from typing import Any

from .errors import ProtocolError, ValidationError

# Maximum price: 9,999,999.99 (999,999,999 cents)
# This prevents database overflow issues and nonsensical prices
MAX_PRICE_CENTS = 999_999_999

# Upper bound on a single transaction or initial stock quantity
MAX_QUANTITY = 1_000_000

# Largest value an INTEGER primary key column can hold
MAX_ID = 2**63 - 1

_MISSING = object()


def _lookup(payload: dict, name: str):
    if not isinstance(payload, dict):
        raise ProtocolError("Request must be a JSON object")
    value = payload.get(name, _MISSING)
    if value is None:
        return _MISSING
    return value


def coerce_int(name: str, value: Any) -> int:
    """
    Strict integer coercion for client-supplied values.

    Accepts ints (not bools) and plain digit strings. Rejects floats,
    decimals and scientific notation so "1e3" or 2.5 never sneak through
    as quantities or ids.
    """
    # Already an int (but not bool which is a subclass of int)
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    # String input - must be plain digits (with optional leading minus)
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{name} must be an integer")
        # Reject scientific notation (e.g., "1e15", "1E10")
        if 'e' in stripped.lower():
            raise ValidationError(f"{name} must be a plain integer (scientific notation not allowed)")
        # Reject decimal points (e.g., "12.5")
        if '.' in stripped:
            raise ValidationError(f"{name} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{name} must be an integer")
    # Reject floats explicitly
    if isinstance(value, float):
        raise ValidationError(f"{name} must be an integer, not a decimal")
    raise ValidationError(f"{name} must be an integer")


def get_int(
    payload: dict,
    name: str,
    *,
    required: bool = True,
    default: int | None = None,
    minimum: int | None = None,
    maximum: int | None = None,
) -> int | None:
    value = _lookup(payload, name)
    if value is _MISSING:
        if required:
            raise ProtocolError(f"Missing required field: {name}")
        return default

    number = coerce_int(name, value)
    if minimum is not None and number < minimum:
        raise ValidationError(f"{name} must be at least {minimum}")
    if maximum is not None and number > maximum:
        raise ValidationError(f"{name} must be at most {maximum}")
    return number


def get_id(payload: dict, name: str, *, required: bool = True) -> int | None:
    """Row id: a positive integer that fits the storage column."""
    return get_int(payload, name, required=required, minimum=1, maximum=MAX_ID)


def get_str(
    payload: dict,
    name: str,
    *,
    required: bool = True,
    default: str | None = None,
    max_length: int | None = None,
    allow_blank: bool = False,
    strip: bool = True,
) -> str | None:
    value = _lookup(payload, name)
    if value is _MISSING:
        if required:
            raise ProtocolError(f"Missing required field: {name}")
        return default

    if not isinstance(value, str):
        raise ValidationError(f"{name} must be a string")
    if strip:
        value = value.strip()
    if not value and not allow_blank:
        raise ValidationError(f"{name} cannot be empty")
    if max_length is not None and len(value) > max_length:
        raise ValidationError(f"{name} must be at most {max_length} characters")
    return value


def get_object(payload: dict, name: str, *, required: bool = True) -> dict | None:
    value = _lookup(payload, name)
    if value is _MISSING:
        if required:
            raise ProtocolError(f"Missing required field: {name}")
        return None
    if not isinstance(value, dict):
        raise ProtocolError(f"{name} must be a JSON object")
    return value


def validate_price_cents(name: str, value: int) -> int:
    if value < 0:
        raise ValidationError(f"{name} cannot be negative")
    if value > MAX_PRICE_CENTS:
        raise ValidationError(f"{name} exceeds maximum allowed ({MAX_PRICE_CENTS} cents)")
    return value


def validate_quantity(name: str, value: int, *, allow_zero: bool = False) -> int:
    if value < 0 or (value == 0 and not allow_zero):
        raise ValidationError(f"{name} must be {'non-negative' if allow_zero else 'positive'}")
    if value > MAX_QUANTITY:
        raise ValidationError(f"{name} exceeds maximum allowed ({MAX_QUANTITY})")
    return value
