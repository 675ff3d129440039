"""Service error taxonomy.

Every error carries the HTTP status it maps to and any extra fields that
belong in the JSON error body next to ``error``.
"""
from typing import Any, Dict, Optional


class StringServiceError(Exception):
    status_code = 500

    def __init__(self, message: str, status_code: Optional[int] = None, **extra: Any):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.extra = extra

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.message, **self.extra}


class ValidationError(StringServiceError):
    """Missing, empty or wrongly typed input."""
    status_code = 400


class ConflictError(StringServiceError):
    """A record with the same identity already exists."""
    status_code = 409


class NotFoundError(StringServiceError):
    status_code = 404


class FilterError(StringServiceError):
    """A filter value failed to parse as its declared type."""
    status_code = 400


class FilterConflictError(FilterError):
    """Filters parse individually but can never match together."""


class UpstreamError(StringServiceError):
    """The natural language interpreter failed or produced nothing usable."""
    status_code = 400


class PersistenceError(StringServiceError):
    status_code = 500

    def __init__(self, message: str = "Internal server error"):
        super().__init__(message)
