"""
agency_api/core/errors.py — Typed exception hierarchy
Routes let these propagate; main.py maps them to HTTP status codes
without pattern-matching on message strings.
"""
from __future__ import annotations

from typing import Optional


class AgencyError(Exception):
    """Base exception for all agency API business errors."""


class NotFoundError(AgencyError):
    """Document (contact, portfolio item) does not exist."""


class DuplicateKeyError(AgencyError):
    """A unique field (e.g. portfolio slug) already holds this value."""

    def __init__(self, collection: str, field: str, value: object):
        self.collection = collection
        self.field = field
        self.value = value
        super().__init__(f"{collection}: duplicate value {value!r} for unique field {field!r}")


class ValidationFailedError(AgencyError):
    """Payload failed validation. Carries every violated field, not just the first."""

    def __init__(self, fields: list[str], messages: Optional[list[str]] = None):
        self.fields = fields
        self.messages = messages or [f"{f} is required" for f in fields]
        super().__init__("Validation failed: " + ", ".join(fields))


class RateLimitedError(AgencyError):
    """Admission gate rejected the request. Recoverable by waiting."""

    def __init__(self, identity: str, retry_after_seconds: int):
        self.identity = identity
        self.retry_after_seconds = retry_after_seconds
        super().__init__(f"Rate limit exceeded for {identity}; retry after {retry_after_seconds}s")
