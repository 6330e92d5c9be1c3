"""Custom exception classes for the application"""

from typing import Optional, Dict, Any

from accounts.core.result import ErrorKind, Failure, STATUS_CODES


class BaseAPIException(Exception):
    """Base exception for all API errors"""

    kind: Optional[ErrorKind] = None

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class _KindError(BaseAPIException):
    """API error whose status code follows its error kind"""

    default_message = "Request failed"

    def __init__(self, message: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message or self.default_message,
            status_code=STATUS_CODES[self.kind],
            details=details,
        )


# Client input errors
class MissingCredentialsError(_KindError):
    kind = ErrorKind.MISSING_CREDENTIALS
    default_message = "Username or email and password are required"


class MissingFieldsError(_KindError):
    kind = ErrorKind.MISSING_FIELDS
    default_message = "Required fields are missing"


class InvalidFieldsError(_KindError):
    kind = ErrorKind.INVALID_FIELDS
    default_message = "User validation failed"


class UserNotFoundError(_KindError):
    kind = ErrorKind.USER_NOT_FOUND
    default_message = "User does not exist"


class DuplicateUserError(_KindError):
    kind = ErrorKind.DUPLICATE_USER
    default_message = "User with this email or username already exists"


# Authentication Errors
class InvalidCredentialsError(_KindError):
    """Invalid username or password"""
    kind = ErrorKind.INVALID_CREDENTIALS
    default_message = "Invalid user credentials"


class InvalidTokenError(_KindError):
    """Token signature or expiry check failed"""
    kind = ErrorKind.INVALID_TOKEN
    default_message = "Invalid or expired token"


class MalformedTokenError(_KindError):
    kind = ErrorKind.MALFORMED_TOKEN
    default_message = "Malformed token"


class UnauthenticatedError(_KindError):
    kind = ErrorKind.UNAUTHENTICATED
    default_message = "Unauthorized request"


# System Errors
class UploadFailedError(_KindError):
    kind = ErrorKind.UPLOAD_FAILED
    default_message = "File upload failed"


class SessionIssuanceError(_KindError):
    kind = ErrorKind.SESSION_ISSUANCE_FAILED
    default_message = "Something went wrong while generating access and refresh tokens"


class RegistrationFailedError(_KindError):
    kind = ErrorKind.REGISTRATION_FAILED
    default_message = "Something went wrong while registering the user"


# Validation Errors
class ValidationError(BaseAPIException):
    """Validation error"""
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, status_code=422, details=details)


_ERRORS_BY_KIND = {
    cls.kind: cls
    for cls in (
        MissingCredentialsError,
        MissingFieldsError,
        InvalidFieldsError,
        UserNotFoundError,
        DuplicateUserError,
        InvalidCredentialsError,
        InvalidTokenError,
        MalformedTokenError,
        UnauthenticatedError,
        UploadFailedError,
        SessionIssuanceError,
        RegistrationFailedError,
    )
}


def error_for(failure: Failure) -> BaseAPIException:
    """Build the API exception matching a service failure"""
    return _ERRORS_BY_KIND[failure.kind](failure.message)
