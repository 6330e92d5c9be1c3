"""Session lifecycle: login, refresh rotation, logout and password change."""

from __future__ import annotations

from typing import Optional

from jose import JWTError
from sqlalchemy.exc import SQLAlchemyError

from accounts.core.context import AppContext
from accounts.core.result import ErrorKind, Result
from accounts.core.security import verify_password
from accounts.models.user import User
from accounts.schemas.user import LoginResult, TokenPair, UserResponse
import logging

logger = logging.getLogger(__name__)


def _blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


class SessionService:
    """
    Compose the token service and the credential store into session flows.

    The stored refresh token is the single source of truth for renewal: a
    presented refresh token is honoured only while it equals the stored
    value, so overwriting or clearing it revokes every earlier token.
    """

    def __init__(self, context: AppContext) -> None:
        self.store = context.store
        self.tokens = context.tokens
        self.settings = context.settings

    def _mint(self, user: User) -> TokenPair:
        return TokenPair(
            access_token=self.tokens.mint_access_token(user),
            refresh_token=self.tokens.mint_refresh_token(user),
        )

    def issue_pair(self, user_id: int) -> Result[TokenPair]:
        """Mint a fresh pair and make its refresh token the only valid one."""
        try:
            user = self.store.find_by_id(user_id)
            if user is None:
                raise LookupError(f"user {user_id} not found")
            pair = self._mint(user)
            if self.store.update_fields(user.id, {"refresh_token": pair.refresh_token}, skip_validation=True) is None:
                raise LookupError(f"user {user_id} disappeared while issuing tokens")
        except (LookupError, SQLAlchemyError, JWTError) as e:
            logger.error(f"Token issuance failed for user {user_id}: {e}")
            return Result.fail(
                ErrorKind.SESSION_ISSUANCE_FAILED,
                "Something went wrong while generating access and refresh tokens",
            )
        return Result.success(pair)

    def login(
        self,
        username: Optional[str] = None,
        email: Optional[str] = None,
        password: Optional[str] = None,
    ) -> Result[LoginResult]:
        if (_blank(username) and _blank(email)) or not password:
            return Result.fail(ErrorKind.MISSING_CREDENTIALS, "Username or email and password are required")

        user = self.store.find_by_username_or_email(username=username, email=email)
        if user is None:
            return Result.fail(ErrorKind.USER_NOT_FOUND, "User does not exist")

        if not verify_password(password, user.password_hash):
            return Result.fail(ErrorKind.INVALID_CREDENTIALS, "Invalid user credentials")

        issued = self.issue_pair(user.id)
        if not issued.ok:
            return Result(failure=issued.failure)

        logger.info(f"User logged in: {user.username}")
        pair = issued.value
        return Result.success(LoginResult(
            user=UserResponse.model_validate(user),
            access_token=pair.access_token,
            refresh_token=pair.refresh_token,
            expires_in=self.settings.access_token_ttl_seconds,
        ))

    def refresh(self, presented_token: Optional[str]) -> Result[LoginResult]:
        """
        Rotate a refresh token.

        The stored token is swapped for the new one only if it still equals
        the presented token, so of two concurrent refreshes with the same
        token at most one succeeds.
        """
        if _blank(presented_token):
            return Result.fail(ErrorKind.UNAUTHENTICATED, "Unauthorized request")

        decoded = self.tokens.decode_refresh_token(presented_token)
        if not decoded.ok:
            return Result.fail(ErrorKind.UNAUTHENTICATED, decoded.failure.message)

        user = self.store.find_by_id(decoded.value.get("sub"))
        if user is None:
            return Result.fail(ErrorKind.UNAUTHENTICATED, "Invalid refresh token")

        if user.refresh_token != presented_token:
            return Result.fail(ErrorKind.UNAUTHENTICATED, "Refresh token is expired or used")

        try:
            pair = self._mint(user)
            swapped = self.store.swap_refresh_token(user.id, presented_token, pair.refresh_token)
        except (SQLAlchemyError, JWTError) as e:
            logger.error(f"Token rotation failed for user {user.id}: {e}")
            return Result.fail(
                ErrorKind.SESSION_ISSUANCE_FAILED,
                "Something went wrong while generating access and refresh tokens",
            )
        if not swapped:
            return Result.fail(ErrorKind.UNAUTHENTICATED, "Refresh token is expired or used")

        logger.info(f"Refresh token rotated for user {user.id}")
        return Result.success(LoginResult(
            user=UserResponse.model_validate(user),
            access_token=pair.access_token,
            refresh_token=pair.refresh_token,
            expires_in=self.settings.access_token_ttl_seconds,
        ))

    def logout(self, user_id: int) -> Result[None]:
        self.store.unset_field(user_id, "refresh_token")
        logger.info(f"User logged out: {user_id}")
        return Result.success(None)

    def change_password(
        self,
        user_id: int,
        old_password: Optional[str],
        new_password: Optional[str],
    ) -> Result[None]:
        if not old_password or not new_password:
            return Result.fail(ErrorKind.MISSING_FIELDS, "Old and new password are required")

        user = self.store.find_by_id(user_id)
        if user is None:
            return Result.fail(ErrorKind.USER_NOT_FOUND, "User does not exist")

        if not verify_password(old_password, user.password_hash):
            return Result.fail(ErrorKind.INVALID_CREDENTIALS, "Invalid old password")

        fields = {"password": new_password}
        if self.settings.REVOKE_SESSIONS_ON_PASSWORD_CHANGE:
            fields["refresh_token"] = None
        if self.store.update_fields(user.id, fields, skip_validation=True) is None:
            return Result.fail(ErrorKind.USER_NOT_FOUND, "User does not exist")

        logger.info(f"Password changed for user {user.id}")
        return Result.success(None)
