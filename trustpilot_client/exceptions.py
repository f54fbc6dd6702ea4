"""
Custom exception types for the Trustpilot API client.

Every failure surfaced by the client is one of four kinds.  The kind
is available as the ``kind`` attribute and is also the suffix of the
rendered error text, so ``str(err)`` reads ``"<message>: <KIND>"``.
"""

from __future__ import annotations

from typing import Optional, Type

import requests


class TrustpilotError(Exception):
    """Base exception for all Trustpilot client errors."""

    kind = "INTERNAL"

    def __init__(self, message: str = "", *, status_code: Optional[int] = None) -> None:
        self.message = message
        self.status_code = status_code
        super().__init__(message)

    def __str__(self) -> str:
        if self.message:
            return f"{self.message}: {self.kind}"
        return self.kind


class InvalidArgumentError(TrustpilotError):
    """Raised when the request payload is malformed or rejected (400, 422)."""

    kind = "INVALID_ARGUMENT"


class UnauthenticatedError(TrustpilotError):
    """Raised when credentials are missing, invalid or expired (401)."""

    kind = "UNAUTHENTICATED"


class NotFoundError(TrustpilotError):
    """Raised when the target resource does not exist (404)."""

    kind = "NOT_FOUND"


class InternalError(TrustpilotError):
    """Raised for unexpected statuses and transport failures."""

    kind = "INTERNAL"


class DecodeError(InternalError):
    """Raised when a response body is not valid JSON.

    The raw response is kept on ``response`` so the status code and
    headers can still be inspected.
    """

    def __init__(self, message: str, *, response: requests.Response) -> None:
        super().__init__(message, status_code=response.status_code)
        self.response = response


_SUCCESS_STATUSES = frozenset({200, 201, 202})

_STATUS_ERRORS = {
    400: InvalidArgumentError,
    422: InvalidArgumentError,
    401: UnauthenticatedError,
    404: NotFoundError,
}


def error_for_status(status_code: int) -> Optional[Type[TrustpilotError]]:
    """Map an HTTP status code to an error class.

    Returns ``None`` for 200, 201 and 202.  Every status that is not a
    success and not listed explicitly maps to :class:`InternalError`.
    """
    if status_code in _SUCCESS_STATUSES:
        return None
    return _STATUS_ERRORS.get(status_code, InternalError)
