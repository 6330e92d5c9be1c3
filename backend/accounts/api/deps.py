"""API dependencies - context wiring and authentication"""

from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from typing import Optional

from accounts.core.context import AppContext
from accounts.core.exceptions import UnauthenticatedError, error_for
from accounts.models.user import User
from accounts.services.account_service import AccountService
from accounts.services.session_service import SessionService

ACCESS_COOKIE = "accessToken"
REFRESH_COOKIE = "refreshToken"

# Bearer header is optional: browsers send the access token as a cookie
security = HTTPBearer(auto_error=False)


def get_context(request: Request) -> AppContext:
    return request.app.state.context


def get_session_service(context: AppContext = Depends(get_context)) -> SessionService:
    return SessionService(context)


def get_account_service(context: AppContext = Depends(get_context)) -> AccountService:
    return AccountService(context)


def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    context: AppContext = Depends(get_context),
) -> User:
    """
    Get current authenticated user from the access token

    The token is read from the ``accessToken`` cookie, falling back to an
    ``Authorization: Bearer`` header.

    Raises:
        UnauthenticatedError: If no token was sent or its user is gone
        InvalidTokenError: If the signature or expiry check fails
        MalformedTokenError: If the token cannot be decoded
    """
    token = request.cookies.get(ACCESS_COOKIE)
    if not token and credentials:
        token = credentials.credentials
    if not token:
        raise UnauthenticatedError()

    decoded = context.tokens.decode_access_token(token)
    if not decoded.ok:
        raise error_for(decoded.failure)

    user = context.store.find_by_id(decoded.value.get("sub"))
    if not user:
        raise UnauthenticatedError("Invalid access token")

    return user
