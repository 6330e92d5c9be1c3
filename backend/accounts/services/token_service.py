"""Access/refresh token minting and verification."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional
import secrets

from jose import ExpiredSignatureError, JWTError, jwt

from accounts.config import Settings
from accounts.core.result import ErrorKind, Result

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"


class TokenService:
    """Sign and verify the two token kinds, each with its own secret and lifetime."""

    def __init__(self, settings: Settings) -> None:
        self.access_secret = settings.ACCESS_TOKEN_SECRET
        self.refresh_secret = settings.REFRESH_TOKEN_SECRET
        self.access_ttl = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
        self.refresh_ttl = timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)
        self.algorithm = settings.ALGORITHM

    def _encode(
        self,
        claims: Dict[str, Any],
        *,
        secret: str,
        token_type: str,
        expires_delta: timedelta,
    ) -> str:
        now = datetime.now(timezone.utc)
        to_encode = dict(claims)
        to_encode.update({
            "typ": token_type,
            "iat": now,
            "exp": now + expires_delta,
            "jti": secrets.token_urlsafe(16),
        })
        return jwt.encode(to_encode, secret, algorithm=self.algorithm)

    def mint_access_token(self, user, expires_delta: Optional[timedelta] = None) -> str:
        claims = {
            "sub": str(user.id),
            "username": user.username,
            "email": user.email,
            "full_name": user.full_name,
        }
        return self._encode(
            claims,
            secret=self.access_secret,
            token_type=ACCESS_TOKEN_TYPE,
            expires_delta=expires_delta or self.access_ttl,
        )

    def mint_refresh_token(self, user, expires_delta: Optional[timedelta] = None) -> str:
        return self._encode(
            {"sub": str(user.id)},
            secret=self.refresh_secret,
            token_type=REFRESH_TOKEN_TYPE,
            expires_delta=expires_delta or self.refresh_ttl,
        )

    def verify_and_decode(
        self,
        token: str,
        secret: str,
        expected_type: Optional[str] = None,
    ) -> Result[Dict[str, Any]]:
        """
        Verify signature and expiry, then return the claim set.

        Returns:
            MALFORMED_TOKEN when the header or payload cannot be decoded or
            carries no subject; INVALID_TOKEN when the signature, expiry or
            token type check fails.
        """
        try:
            jwt.get_unverified_header(token)
            unverified = jwt.get_unverified_claims(token)
        except (JWTError, AttributeError, TypeError):
            return Result.fail(ErrorKind.MALFORMED_TOKEN, "Token could not be decoded")

        if not unverified.get("sub"):
            return Result.fail(ErrorKind.MALFORMED_TOKEN, "Token payload has no subject")

        try:
            payload = jwt.decode(token, secret, algorithms=[self.algorithm])
        except ExpiredSignatureError:
            return Result.fail(ErrorKind.INVALID_TOKEN, "Token has expired")
        except JWTError:
            return Result.fail(ErrorKind.INVALID_TOKEN, "Token signature is invalid")

        if expected_type and payload.get("typ") != expected_type:
            return Result.fail(ErrorKind.INVALID_TOKEN, f"Expected a {expected_type} token")

        return Result.success(payload)

    def decode_access_token(self, token: str) -> Result[Dict[str, Any]]:
        return self.verify_and_decode(token, self.access_secret, ACCESS_TOKEN_TYPE)

    def decode_refresh_token(self, token: str) -> Result[Dict[str, Any]]:
        return self.verify_and_decode(token, self.refresh_secret, REFRESH_TOKEN_TYPE)
