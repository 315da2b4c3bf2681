"""Client error taxonomy and the Result pair returned by client services."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Generic, TypeVar

T = TypeVar("T")


class ClientError(Exception):
    """Base class for failures reported to client callers."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class AuthError(ClientError):
    """Invalid credentials, duplicate account, expired or invalid token."""


class ValidationError(ClientError):
    """Missing fields or values rejected by a rule."""


class NotFoundError(ClientError):
    pass


class PermissionDeniedError(ClientError):
    """Role below the required level."""


class RemoteServiceError(ClientError):
    """Network or backend failure."""


_STATUS_ERRORS: dict[int, type[ClientError]] = {
    400: ValidationError,
    401: AuthError,
    403: PermissionDeniedError,
    404: NotFoundError,
    409: ValidationError,
    422: ValidationError,
}


def error_for_status(status_code: int, detail: Any) -> ClientError:
    """Map an HTTP status and the API's ``detail`` payload onto a ClientError."""
    message = detail if isinstance(detail, str) else str(detail or f"Request failed with status {status_code}")
    if status_code == 409 and "already registered" in message.lower():
        return AuthError(message, status_code)
    error_cls = _STATUS_ERRORS.get(status_code, RemoteServiceError)
    return error_cls(message, status_code)


@dataclass(frozen=True)
class Result(Generic[T]):
    """Either ``data`` or an ``error`` message; never raised across service boundaries."""

    data: T | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, data: T | None = None) -> Result[T]:
        return cls(data=data)

    @classmethod
    def failure(cls, error: str | Exception) -> Result[T]:
        message = error.message if isinstance(error, ClientError) else str(error)
        return cls(error=message)
