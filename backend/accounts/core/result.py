"""Typed results returned by the service layer.

Services never raise for expected failures; they return a ``Result`` whose
``failure`` names the error kind. The HTTP layer unwraps results and turns
failures into ``BaseAPIException`` subclasses.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class ErrorKind(str, Enum):
    """Failure kinds surfaced by account and session operations"""

    MISSING_CREDENTIALS = "missing_credentials"
    MISSING_FIELDS = "missing_fields"
    INVALID_FIELDS = "invalid_fields"
    USER_NOT_FOUND = "user_not_found"
    INVALID_CREDENTIALS = "invalid_credentials"
    DUPLICATE_USER = "duplicate_user"
    INVALID_TOKEN = "invalid_token"
    MALFORMED_TOKEN = "malformed_token"
    UNAUTHENTICATED = "unauthenticated"
    UPLOAD_FAILED = "upload_failed"
    SESSION_ISSUANCE_FAILED = "session_issuance_failed"
    REGISTRATION_FAILED = "registration_failed"


STATUS_CODES = {
    ErrorKind.MISSING_CREDENTIALS: 400,
    ErrorKind.MISSING_FIELDS: 400,
    ErrorKind.INVALID_FIELDS: 422,
    ErrorKind.USER_NOT_FOUND: 404,
    ErrorKind.DUPLICATE_USER: 409,
    ErrorKind.INVALID_CREDENTIALS: 401,
    ErrorKind.INVALID_TOKEN: 401,
    ErrorKind.MALFORMED_TOKEN: 401,
    ErrorKind.UNAUTHENTICATED: 401,
    ErrorKind.UPLOAD_FAILED: 502,
    ErrorKind.SESSION_ISSUANCE_FAILED: 500,
    ErrorKind.REGISTRATION_FAILED: 500,
}


@dataclass(frozen=True)
class Failure:
    kind: ErrorKind
    message: str

    @property
    def status_code(self) -> int:
        return STATUS_CODES[self.kind]


@dataclass(frozen=True)
class Result(Generic[T]):
    value: Optional[T] = None
    failure: Optional[Failure] = None

    @property
    def ok(self) -> bool:
        return self.failure is None

    @property
    def kind(self) -> Optional[ErrorKind]:
        return self.failure.kind if self.failure else None

    @classmethod
    def success(cls, value: T) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def fail(cls, kind: ErrorKind, message: str) -> "Result[T]":
        return cls(failure=Failure(kind=kind, message=message))

    def unwrap(self) -> T:
        """Return the value, or raise the API exception for the failure."""
        if self.failure is not None:
            from accounts.core.exceptions import error_for

            raise error_for(self.failure)
        return self.value
