"""Error taxonomy for PropConnect clients.

Backend failures are classified once, at the HTTP boundary, into an
``ErrorKind``. Everything downstream (store actions, controllers) branches
on the kind instead of on the human readable message.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(str, Enum):
    """Structured failure categories."""

    VALIDATION = "validation"
    INVALID_CREDENTIALS = "invalid_credentials"
    APPROVAL_PENDING = "approval_pending"
    APPROVAL_REJECTED = "approval_rejected"
    ACCOUNT_SUSPENDED = "account_suspended"
    EMAIL_NOT_VERIFIED = "email_not_verified"
    ALREADY_EXISTS = "already_exists"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    NOT_AUTHENTICATED = "not_authenticated"
    NETWORK = "network"
    SERVER = "server"
    UNKNOWN = "unknown"


# Backend error codes, as sent in ``error.code`` or ``error_code``
_CODE_KINDS: Dict[str, ErrorKind] = {
    "INVALID_CREDENTIALS": ErrorKind.INVALID_CREDENTIALS,
    "APPROVAL_PENDING": ErrorKind.APPROVAL_PENDING,
    "AGENT_NOT_APPROVED": ErrorKind.APPROVAL_PENDING,
    "APPROVAL_REJECTED": ErrorKind.APPROVAL_REJECTED,
    "ACCOUNT_SUSPENDED": ErrorKind.ACCOUNT_SUSPENDED,
    "EMAIL_NOT_VERIFIED": ErrorKind.EMAIL_NOT_VERIFIED,
    "ALREADY_EXISTS": ErrorKind.ALREADY_EXISTS,
    "EMAIL_ALREADY_EXISTS": ErrorKind.ALREADY_EXISTS,
    "VALIDATION_ERROR": ErrorKind.VALIDATION,
    "UNAUTHORIZED": ErrorKind.UNAUTHORIZED,
    "INVALID_TOKEN": ErrorKind.UNAUTHORIZED,
    "AUTH_TOKEN_INVALID": ErrorKind.UNAUTHORIZED,
    "FORBIDDEN": ErrorKind.FORBIDDEN,
    "NOT_FOUND": ErrorKind.NOT_FOUND,
    "INTERNAL_ERROR": ErrorKind.SERVER,
    "INTERNAL_SERVER_ERROR": ErrorKind.SERVER,
}

_STATUS_KINDS: Dict[int, ErrorKind] = {
    400: ErrorKind.VALIDATION,
    401: ErrorKind.UNAUTHORIZED,
    403: ErrorKind.FORBIDDEN,
    404: ErrorKind.NOT_FOUND,
    409: ErrorKind.ALREADY_EXISTS,
    422: ErrorKind.VALIDATION,
}

# Last resort for backends that only send prose
_KEYWORD_KINDS = (
    ("suspended", ErrorKind.ACCOUNT_SUSPENDED),
    ("rejected", ErrorKind.APPROVAL_REJECTED),
    ("not approved", ErrorKind.APPROVAL_PENDING),
    ("pending", ErrorKind.APPROVAL_PENDING),
    ("under review", ErrorKind.APPROVAL_PENDING),
    ("verify", ErrorKind.EMAIL_NOT_VERIFIED),
    ("invalid email or password", ErrorKind.INVALID_CREDENTIALS),
    ("incorrect", ErrorKind.INVALID_CREDENTIALS),
)


def infer_error_kind(
    status_code: Optional[int] = None,
    code: Optional[str] = None,
    message: Optional[str] = None,
) -> ErrorKind:
    """Classify a backend failure.

    Precedence is backend error code, then message keywords for statuses
    that carry business rules (401/403), then HTTP status.
    """
    if code and code.upper() in _CODE_KINDS:
        return _CODE_KINDS[code.upper()]

    if message and status_code in (None, 401, 403):
        lowered = message.lower()
        for keyword, kind in _KEYWORD_KINDS:
            if keyword in lowered:
                return kind

    if status_code is not None:
        if status_code in _STATUS_KINDS:
            return _STATUS_KINDS[status_code]
        if status_code >= 500:
            return ErrorKind.SERVER
    return ErrorKind.UNKNOWN


def extract_error_details(body: Any) -> tuple[Optional[str], Optional[str]]:
    """Pull ``(message, code)`` out of a backend error body.

    Handles both ``{"error": {"code", "message"}}`` and the flat
    ``{"message", "error_code"}`` shapes.
    """
    if not isinstance(body, dict):
        return None, None

    message: Optional[str] = None
    code: Optional[str] = None
    error = body.get("error")
    if isinstance(error, dict):
        message = error.get("message")
        code = error.get("code")
    elif isinstance(error, str):
        message = error

    message = message or body.get("message")
    code = code or body.get("error_code")
    return message, code


class PropConnectError(Exception):
    """Base class for all PropConnect client errors."""

    kind: ErrorKind = ErrorKind.UNKNOWN

    def __init__(self, message: str, kind: Optional[ErrorKind] = None) -> None:
        super().__init__(message)
        self.message = message
        if kind is not None:
            self.kind = kind


class ApiError(PropConnectError):
    """A failed backend call (transport error or non-2xx response)."""

    def __init__(
        self,
        message: str,
        kind: ErrorKind = ErrorKind.UNKNOWN,
        status_code: Optional[int] = None,
        code: Optional[str] = None,
        body: Any = None,
    ) -> None:
        super().__init__(message, kind)
        self.status_code = status_code
        self.code = code
        self.body = body

    def with_fallback(self, fallback: str) -> str:
        """Message to show a user, falling back when the backend sent none."""
        return self.message or fallback


class AuthError(ApiError):
    """Authentication or session failure."""

    @classmethod
    def from_api_error(cls, error: ApiError, fallback: str) -> "AuthError":
        return cls(
            error.with_fallback(fallback),
            kind=error.kind,
            status_code=error.status_code,
            code=error.code,
            body=error.body,
        )


class NotAuthenticatedError(PropConnectError):
    """An action needs a principal that is not signed in."""

    kind = ErrorKind.NOT_AUTHENTICATED


class FormValidationError(PropConnectError):
    """Client-side validation failure carrying per-field messages."""

    kind = ErrorKind.VALIDATION

    def __init__(self, errors: Dict[str, str], message: str = "Please fix validation errors") -> None:
        super().__init__(message)
        self.errors = dict(errors)
