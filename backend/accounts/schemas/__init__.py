"""Pydantic schemas for API validation"""

from accounts.schemas.user import (
    UserLogin,
    ChangePasswordRequest,
    AccountUpdate,
    RefreshTokenRequest,
    UserResponse,
    TokenPair,
    LoginResult,
)
from accounts.schemas.response import APIResponse, ErrorResponse, HealthResponse

__all__ = [
    "UserLogin", "ChangePasswordRequest", "AccountUpdate", "RefreshTokenRequest",
    "UserResponse", "TokenPair", "LoginResult",
    "APIResponse", "ErrorResponse", "HealthResponse",
]
