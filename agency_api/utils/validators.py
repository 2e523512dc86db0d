"""
agency_api/utils/validators.py — Pydantic error flattening and small numeric helpers
"""
from __future__ import annotations

from typing import Any, Optional, Union

from fastapi.exceptions import RequestValidationError
from loguru import logger
from pydantic import ValidationError

# Pydantic error types that mean "the field was not provided"
_MISSING_TYPES = {"missing", "string_too_short"}
_REQUEST_LOCATIONS = {"body", "query", "path", "header"}


def clamp(value: float, min_val: float, max_val: float) -> float:
    """Clamp a value between min and max."""
    return max(min_val, min(max_val, value))


def flatten_validation_error(exc: Union[ValidationError, RequestValidationError]) -> tuple[list[str], list[str]]:
    """
    Turn a pydantic ValidationError (or FastAPI RequestValidationError) into
    (fields, messages), one entry per violated field, in the order pydantic
    reported them. Nested locations are joined with dots: "media.thumbnail".
    The request location prefix ("body", "query") is dropped.
    """
    fields: list[str] = []
    messages: list[str] = []
    for err in exc.errors():
        loc = [str(p) for p in err.get("loc", ()) if not isinstance(p, int)]
        if len(loc) > 1 and loc[0] in _REQUEST_LOCATIONS:
            loc = loc[1:]
        field = ".".join(loc) or "body"
        if field in fields:
            continue
        fields.append(field)
        if err.get("type") in _MISSING_TYPES and _is_empty(err.get("input")):
            messages.append(f"{field} is required")
        else:
            msg = str(err.get("msg", "invalid value"))
            # "Value error, Please provide..." → "Please provide..."
            if msg.startswith("Value error, "):
                msg = msg[len("Value error, "):]
            messages.append(f"{field}: {msg}")
    logger.debug(f"Validation failed on fields: {fields}")
    return fields, messages


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    # pydantic passes the whole parent object as input for missing keys
    return isinstance(value, dict)


def parse_int(value: Any, default: int, minimum: Optional[int] = None) -> int:
    """Lenient int parsing for query strings: bad values fall back to `default`."""
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        return default
    if minimum is not None and parsed < minimum:
        return default
    return parsed
