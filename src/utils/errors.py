"""
Custom Exceptions
Claims ledger error taxonomy and its HTTP mapping
Source: https://fastapi.tiangolo.com/tutorial/handling-errors/
"""

from typing import Optional

from fastapi import HTTPException, status


class ClaimsError(Exception):
    """Base exception for claims ledger errors."""

    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, errors: Optional[list[str]] = None):
        super().__init__(message)
        self.message = message
        self.errors = errors or []


class ValidationError(ClaimsError):
    """Raised when input is malformed (bad text, negative or over-limit amounts)."""

    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


class NotFoundError(ClaimsError):
    """Raised when an operation references a claim that does not exist."""

    status_code = status.HTTP_404_NOT_FOUND


class InvalidStateError(ClaimsError):
    """Raised when a mutation targets a claim that is no longer editable."""

    status_code = status.HTTP_409_CONFLICT


class InvalidTransitionError(ClaimsError):
    """Raised when a status change is not in the transition table."""

    status_code = status.HTTP_409_CONFLICT


class PersistenceError(ClaimsError):
    """Raised when the claim store or local cache fails."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


def to_http_exception(error: ClaimsError) -> HTTPException:
    """Convert a claims error into the HTTP exception the API returns."""
    detail: dict | str = error.message
    if error.errors:
        detail = {"message": error.message, "errors": error.errors}
    return HTTPException(status_code=error.status_code, detail=detail)
