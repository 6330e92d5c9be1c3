"""Authentication routes"""

from fastapi import APIRouter, Depends, Request, Response, status
from typing import Optional

from accounts.api.deps import (
    ACCESS_COOKIE,
    REFRESH_COOKIE,
    get_context,
    get_current_user,
    get_session_service,
)
from accounts.config import Settings
from accounts.core.context import AppContext
from accounts.models.user import User
from accounts.schemas.response import APIResponse
from accounts.schemas.user import ChangePasswordRequest, LoginResult, RefreshTokenRequest, UserLogin
from accounts.services.session_service import SessionService

router = APIRouter()


def _cookie_options(settings: Settings) -> dict:
    return {"httponly": True, "secure": settings.COOKIE_SECURE, "samesite": "lax"}


def set_session_cookies(response: Response, tokens: LoginResult, settings: Settings) -> None:
    options = _cookie_options(settings)
    response.set_cookie(
        ACCESS_COOKIE, tokens.access_token, max_age=settings.access_token_ttl_seconds, **options
    )
    response.set_cookie(
        REFRESH_COOKIE, tokens.refresh_token, max_age=settings.refresh_token_ttl_seconds, **options
    )


def clear_session_cookies(response: Response, settings: Settings) -> None:
    options = _cookie_options(settings)
    response.delete_cookie(ACCESS_COOKIE, **options)
    response.delete_cookie(REFRESH_COOKIE, **options)


@router.post("/login", response_model=APIResponse, status_code=status.HTTP_200_OK)
def login(
    credentials: UserLogin,
    response: Response,
    context: AppContext = Depends(get_context),
    sessions: SessionService = Depends(get_session_service),
):
    """
    Login endpoint - authenticate by username or email and issue a token pair

    Both tokens are set as http-only cookies and also returned in the body.
    """
    result = sessions.login(
        username=credentials.username,
        email=credentials.email,
        password=credentials.password,
    ).unwrap()

    set_session_cookies(response, result, context.settings)
    return APIResponse(message="User logged in successfully", data=result.model_dump(mode="json"))


@router.post("/logout", response_model=APIResponse, status_code=status.HTTP_200_OK)
def logout(
    response: Response,
    current_user: User = Depends(get_current_user),
    context: AppContext = Depends(get_context),
    sessions: SessionService = Depends(get_session_service),
):
    """Logout endpoint - revoke the stored refresh token and clear cookies"""
    sessions.logout(current_user.id).unwrap()
    clear_session_cookies(response, context.settings)
    return APIResponse(message="User logged out", data={})


@router.post("/refresh-token", response_model=APIResponse)
def refresh_token(
    request: Request,
    response: Response,
    body: Optional[RefreshTokenRequest] = None,
    context: AppContext = Depends(get_context),
    sessions: SessionService = Depends(get_session_service),
):
    """
    Rotate the refresh token and issue a new pair

    The presented token comes from the ``refreshToken`` cookie or the body.
    """
    presented = request.cookies.get(REFRESH_COOKIE) or (body.refresh_token if body else None)
    result = sessions.refresh(presented).unwrap()

    set_session_cookies(response, result, context.settings)
    return APIResponse(message="Access token refreshed", data=result.model_dump(mode="json"))


@router.post("/change-password", response_model=APIResponse)
def change_password(
    body: ChangePasswordRequest,
    current_user: User = Depends(get_current_user),
    sessions: SessionService = Depends(get_session_service),
):
    """Change the current user's password"""
    sessions.change_password(current_user.id, body.old_password, body.new_password).unwrap()
    return APIResponse(message="Password changed successfully", data={})
