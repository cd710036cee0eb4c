# foundation/errors.py
"""Error taxonomy for content operations.

Each error knows the HTTP status it maps to and carries an optional
``detail`` dict that the JSON error handler merges into the response body.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional


class ContentError(Exception):
    status_code = 500
    public_message = "Server error"

    def __init__(self, message: Optional[str] = None, **detail: Any) -> None:
        super().__init__(message or self.public_message)
        self.message = message or self.public_message
        self.detail: Dict[str, Any] = detail


class ValidationError(ContentError):
    """Malformed input. Never retried."""

    status_code = 400
    public_message = "Invalid request"

    def __init__(self, fields: Dict[str, List[str]], message: Optional[str] = None) -> None:
        super().__init__(message or self.public_message, fields=fields)
        self.fields = fields


class NotFoundError(ContentError):
    status_code = 404
    public_message = "Not found"


class ConflictError(ContentError):
    """A write would break slug uniqueness. Needs manual investigation."""

    status_code = 500
    public_message = "Slug conflict"


class StoreError(ContentError):
    status_code = 500
    public_message = "Server error"


__all__ = [
    "ContentError",
    "ValidationError",
    "NotFoundError",
    "ConflictError",
    "StoreError",
]
