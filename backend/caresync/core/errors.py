"""
Domain exceptions for the sync engine and their mapping to HTTP for the admin routes.
"""
from __future__ import annotations

from typing import Any

from fastapi import HTTPException

STATUS_BAD_REQUEST = 400
STATUS_NOT_FOUND = 404
STATUS_INTERNAL_ERROR = 500
STATUS_BAD_GATEWAY = 502  # EHR unreachable or misbehaving

RESPONSE_BODY_LOG_LIMIT = 2000


class EhrError(Exception):
    """A call to the EHR failed. Carries enough context to reproduce the call."""

    def __init__(
        self,
        message: str,
        *,
        method: str | None = None,
        url: str | None = None,
        params: dict[str, Any] | None = None,
        status_code: int | None = None,
        response_body: str | None = None,
    ) -> None:
        self.message = message
        self.method = method
        self.url = url
        self.params = params or {}
        self.status_code = status_code
        self.response_body = response_body[:RESPONSE_BODY_LOG_LIMIT] if response_body else response_body
        super().__init__(str(self))

    def __str__(self) -> str:
        parts = [self.message]
        if self.method or self.url:
            parts.append(f"endpoint {self.method or ''} {self.url or ''}".rstrip())
        if self.params:
            parts.append(f"params {self.params}")
        if self.status_code is not None:
            parts.append(f"status {self.status_code}")
        if self.response_body:
            parts.append(f"response body was\n{self.response_body}")
        return " - ".join(parts)


class AppointmentFindTimeoutError(Exception):
    """Fan-out appointment find for one institution did not finish before its deadline."""


class ProviderNotFoundError(LookupError):
    pass


# List of (exception type, status_code). First match wins.
SYNC_ERROR_RULES: list[tuple[type[Exception], int]] = [
    (ProviderNotFoundError, STATUS_NOT_FOUND),
    (EhrError, STATUS_BAD_GATEWAY),
    (ValueError, STATUS_BAD_REQUEST),
]


def sync_error_to_http(exc: Exception) -> HTTPException:
    """
    Map an exception from a sync operation into an HTTPException.
    Uses SYNC_ERROR_RULES for known types; otherwise returns 500 with the exception message.
    """
    for exc_type, status_code in SYNC_ERROR_RULES:
        if isinstance(exc, exc_type):
            return HTTPException(status_code=status_code, detail=str(exc))
    return HTTPException(status_code=STATUS_INTERNAL_ERROR, detail=str(exc))

