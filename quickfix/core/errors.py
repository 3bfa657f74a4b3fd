"""Error taxonomy and structured results for client-side operations."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Generic, Optional, TypeVar

T = TypeVar("T")


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    BAD_REQUEST = "bad_request"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    RATE_LIMITED = "rate_limited"
    MAINTENANCE = "maintenance"
    SERVER = "server"
    NETWORK = "network"
    CLIENT = "client"
    BUSY = "busy"
    CANCELLED = "cancelled"


def kind_for_status(status_code: Optional[int]) -> ErrorKind:
    if status_code is None:
        return ErrorKind.NETWORK
    if status_code == 400:
        return ErrorKind.BAD_REQUEST
    if status_code == 401:
        return ErrorKind.UNAUTHORIZED
    if status_code == 403:
        return ErrorKind.FORBIDDEN
    if status_code == 404:
        return ErrorKind.NOT_FOUND
    if status_code == 429:
        return ErrorKind.RATE_LIMITED
    if status_code == 503:
        return ErrorKind.MAINTENANCE
    if status_code >= 500:
        return ErrorKind.SERVER
    return ErrorKind.CLIENT


class AppError(Exception):
    code = "app_error"
    kind = ErrorKind.CLIENT

    def __init__(self, message: str, *, code: Optional[str] = None, kind: Optional[ErrorKind] = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        if kind:
            self.kind = kind


class ValidationError(AppError, ValueError):
    code = "validation_error"
    kind = ErrorKind.VALIDATION

    def __init__(self, message: str, *, field_errors: Optional[Dict[str, str]] = None):
        super().__init__(message)
        self.field_errors = field_errors or {}


class ConfigurationError(AppError, ValueError):
    """Raised when the client cannot be built from the current settings."""
    code = "configuration_error"


class ApiError(AppError):
    """Raised by the API client for any non-2xx response or transport failure.

    ``notified`` is True when the client already published a user-facing
    notice for this failure; callers must not publish another one.
    """
    code = "api_error"

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        method: str = "GET",
        path: str = "",
        payload: Optional[Dict[str, Any]] = None,
        notified: bool = False,
        request_id: Optional[str] = None,
    ):
        super().__init__(message, kind=kind_for_status(status_code))
        self.status_code = status_code
        self.method = method
        self.path = path
        self.payload = payload or {}
        self.notified = notified
        self.request_id = request_id

    @property
    def backend_message(self) -> Optional[str]:
        msg = self.payload.get("message") if isinstance(self.payload, dict) else None
        return msg or None


class BusyError(AppError):
    """Raised when a guarded action is already in flight."""
    code = "busy"
    kind = ErrorKind.BUSY


class LifetimeClosed(AppError):
    """Raised when work completes (or starts) after its owner was closed."""
    code = "lifetime_closed"
    kind = ErrorKind.CANCELLED


@dataclass
class Result(Generic[T]):
    """Outcome of a service operation; display is left to the caller."""
    ok: bool
    value: Optional[T] = None
    error: Optional[ErrorKind] = None
    message: Optional[str] = None
    field_errors: Dict[str, str] = field(default_factory=dict)
    needs_verification: bool = False

    @classmethod
    def success(cls, value: Optional[T] = None, message: Optional[str] = None) -> "Result[T]":
        return cls(ok=True, value=value, message=message)

    @classmethod
    def failure(
        cls,
        error: ErrorKind,
        message: Optional[str] = None,
        *,
        field_errors: Optional[Dict[str, str]] = None,
        needs_verification: bool = False,
    ) -> "Result[T]":
        return cls(
            ok=False,
            error=error,
            message=message,
            field_errors=field_errors or {},
            needs_verification=needs_verification,
        )

    @classmethod
    def from_error(cls, exc: AppError, default_message: Optional[str] = None) -> "Result[T]":
        message = getattr(exc, "backend_message", None) or exc.message or default_message
        return cls.failure(exc.kind, message, field_errors=getattr(exc, "field_errors", None))

    def __bool__(self) -> bool:
        return self.ok
