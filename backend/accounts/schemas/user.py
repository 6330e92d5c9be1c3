"""User schemas"""

from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime


class UserLogin(BaseModel):
    """Login by username or email"""
    username: Optional[str] = Field(None, max_length=50)
    email: Optional[str] = Field(None, max_length=255)
    password: Optional[str] = None


class ChangePasswordRequest(BaseModel):
    old_password: Optional[str] = None
    new_password: Optional[str] = None


class AccountUpdate(BaseModel):
    full_name: Optional[str] = Field(None, max_length=120)
    email: Optional[str] = Field(None, max_length=255)


class RefreshTokenRequest(BaseModel):
    """Refresh token body; the cookie takes precedence when both are sent"""
    refresh_token: Optional[str] = None


class UserResponse(BaseModel):
    """Public user projection (no password, no refresh token)"""
    id: int
    username: str
    email: str
    full_name: str
    avatar: str
    cover_image: str = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class TokenPair(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class LoginResult(BaseModel):
    """Tokens plus the projection of the user they were issued for"""
    user: UserResponse
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int
