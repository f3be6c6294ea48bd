"""
Application exceptions.

Each exception carries the HTTP status it maps to so the API layer can
render it without knowing where it was raised.
"""

from typing import Optional, Any


class AppException(Exception):
    """Base exception for every application error."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        details: Optional[dict[str, Any]] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class NotFoundException(AppException):
    """A throwing lookup matched zero records."""

    def __init__(
        self,
        resource: Optional[str] = None,
        identifier: Optional[Any] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        message = f"No {resource} record found" if resource else "No record found"
        if identifier is not None:
            message += f": {identifier}"
        super().__init__(message=message, status_code=404, details=details)


class InvalidArgumentException(AppException):
    """Malformed call, e.g. an empty relation list or an unknown column."""

    def __init__(
        self,
        message: str,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message=message, status_code=400, details=details)


class ValidationException(AppException):
    """The store rejected a write (missing required field, unique constraint)."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        if field:
            details = details or {}
            details["field"] = field
        super().__init__(message=message, status_code=400, details=details)


class ConstraintViolationException(AppException):
    """A delete or detach was blocked by referential integrity."""

    def __init__(
        self,
        message: str,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message=message, status_code=409, details=details)
