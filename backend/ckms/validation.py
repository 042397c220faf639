from __future__ import annotations

import re
from typing import Any


class ValidationError(ValueError):
    """400-level input problem."""
    status_code = 400


class NotFoundError(LookupError):
    """404-level missing resource."""
    status_code = 404


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., duplicate order code, wrong status)."""
    status_code = 409


SUPPLY_ORDER_CODE_RE = re.compile(r"^SO-\d{6}-\d{4}$")
BATCH_CODE_RE = re.compile(r"^BATCH-\d{6}-[A-Z0-9]{3}$")


def coerce_int(value: Any, field: str) -> int:
    """
    Strict integer coercion for JSON input.

    Rejects booleans, floats, scientific notation and decimal strings so that
    quantities never silently round.
    """
    if value is None:
        raise ValidationError(f"{field} is required")

    # Already an int (but not bool which is a subclass of int)
    if isinstance(value, int) and not isinstance(value, bool):
        return value

    # String input - must be plain digits (with optional leading minus)
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} must be an integer")
        # Reject scientific notation (e.g., "1e15", "1E10")
        if "e" in stripped.lower():
            raise ValidationError(f"{field} must be a plain integer (scientific notation not allowed)")
        # Reject decimal points (e.g., "12.5")
        if "." in stripped:
            raise ValidationError(f"{field} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer")

    if isinstance(value, float):
        raise ValidationError(f"{field} must be an integer, not a decimal")

    raise ValidationError(f"{field} must be an integer")


def normalize_code(value: Any, field: str, pattern: re.Pattern, example: str) -> str:
    """Upper-case a document code and check it against its format."""
    if value is None or not str(value).strip():
        raise ValidationError(f"{field} is required")

    code = str(value).strip().upper()
    if not pattern.match(code):
        raise ValidationError(f"{field} must follow format: {example}")
    return code


def require_dict(value: Any, what: str) -> dict:
    if not isinstance(value, dict):
        raise ValidationError(f"Each {what} must be an object")
    return value
