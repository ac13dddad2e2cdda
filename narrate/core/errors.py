"""
Custom exception hierarchy for Narrate.

Rule: every HTTP error has a machine-readable `code` string so clients
can branch on it without parsing English messages. Provider errors also
carry a `category` so retry decisions never depend on message text.
"""
from __future__ import annotations

import enum
import logging
from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette import status

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Exception classes
# ---------------------------------------------------------------------------

class NarrateException(Exception):
    """Base class for all application-level errors."""
    http_status: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "INTERNAL_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict:
        payload: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class AuthRequiredError(NarrateException):
    http_status = status.HTTP_401_UNAUTHORIZED
    code = "AUTH_REQUIRED"

    def __init__(self):
        super().__init__(message="Please log in to continue.")


class StorageError(NarrateException):
    """The entry store could not be read. Retryable by the caller."""
    http_status = status.HTTP_503_SERVICE_UNAVAILABLE
    code = "STORAGE_ERROR"
    retryable = True

    def __init__(self, message: str = "Failed to fetch entries. Please try again."):
        super().__init__(message=message, details={"retryable": True})


class EntryNotFoundError(NarrateException):
    http_status = status.HTTP_404_NOT_FOUND
    code = "ENTRY_NOT_FOUND"

    def __init__(self, entry_id: str):
        super().__init__(
            message=f"Entry {entry_id} not found.",
            details={"id": entry_id},
        )


class EligibilityError(NarrateException):
    """
    Not enough entries in the window. An expected outcome: clients render
    an encouraging message from `entry_count`, not an error banner.
    """
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "INSUFFICIENT_ENTRIES"

    def __init__(self, entry_count: int, required_entries: int = 5, window_days: int = 7):
        self.entry_count = entry_count
        self.required_entries = required_entries
        noun = "entry" if entry_count == 1 else "entries"
        super().__init__(
            message=(
                f"You have {entry_count} of {required_entries} {noun} from the last "
                f"{window_days} days. Keep writing to unlock your weekly summary."
            ),
            details={
                "entry_count": entry_count,
                "required_entries": required_entries,
            },
        )


class ProviderErrorCategory(str, enum.Enum):
    MISSING_CREDENTIAL = "MISSING_CREDENTIAL"
    RATE_LIMITED = "RATE_LIMITED"
    AUTH_FAILED = "AUTH_FAILED"
    NETWORK_ERROR = "NETWORK_ERROR"
    EMPTY_RESPONSE = "EMPTY_RESPONSE"
    UNKNOWN = "UNKNOWN"


_PROVIDER_MESSAGES: dict[ProviderErrorCategory, str] = {
    ProviderErrorCategory.MISSING_CREDENTIAL: (
        "The AI service is not configured. Please contact support."
    ),
    ProviderErrorCategory.RATE_LIMITED: (
        "Too many requests. Please try again in a few minutes."
    ),
    ProviderErrorCategory.AUTH_FAILED: (
        "Authentication with the AI service failed. Please check the API key configuration."
    ),
    ProviderErrorCategory.NETWORK_ERROR: (
        "Network error occurred. Please check your connection and try again."
    ),
    ProviderErrorCategory.EMPTY_RESPONSE: (
        "The AI service returned an empty response. Please try again."
    ),
    ProviderErrorCategory.UNKNOWN: (
        "Failed to generate weekly summary. Please try again."
    ),
}

_PROVIDER_STATUS: dict[ProviderErrorCategory, int] = {
    ProviderErrorCategory.MISSING_CREDENTIAL: status.HTTP_503_SERVICE_UNAVAILABLE,
    ProviderErrorCategory.RATE_LIMITED: status.HTTP_429_TOO_MANY_REQUESTS,
    ProviderErrorCategory.AUTH_FAILED: status.HTTP_502_BAD_GATEWAY,
    ProviderErrorCategory.NETWORK_ERROR: status.HTTP_503_SERVICE_UNAVAILABLE,
    ProviderErrorCategory.EMPTY_RESPONSE: status.HTTP_502_BAD_GATEWAY,
    ProviderErrorCategory.UNKNOWN: status.HTTP_502_BAD_GATEWAY,
}

RETRYABLE_CATEGORIES = frozenset({
    ProviderErrorCategory.RATE_LIMITED,
    ProviderErrorCategory.NETWORK_ERROR,
})


class ProviderError(NarrateException):
    """A classified failure of the generative text provider."""
    code = "PROVIDER_ERROR"

    def __init__(self, category: ProviderErrorCategory, detail: str | None = None):
        self.category = ProviderErrorCategory(category)
        self.detail = detail
        self.http_status = _PROVIDER_STATUS[self.category]
        super().__init__(
            message=_PROVIDER_MESSAGES[self.category],
            details={
                "category": self.category.value,
                "retryable": self.retryable,
            },
        )

    @property
    def retryable(self) -> bool:
        return self.category in RETRYABLE_CATEGORIES


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------

async def narrate_exception_handler(request: Request, exc: NarrateException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.http_status,
        content=exc.to_dict(),
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Return structured 422 with machine-readable field errors."""
    field_errors = []
    for error in exc.errors():
        field_errors.append({
            "field": ".".join(str(loc) for loc in error["loc"] if loc != "body"),
            "message": error["msg"],
            "type": error["type"],
        })
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "code": "VALIDATION_ERROR",
            "message": "Request validation failed.",
            "details": {"errors": field_errors},
        },
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "code": "INTERNAL_ERROR",
            "message": "An unexpected error occurred.",
        },
    )
