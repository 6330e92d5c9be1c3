"""Credential store - persistence of user records"""

from __future__ import annotations

import re
from typing import Any, Dict, Iterable, Optional

from sqlalchemy import or_, update
from sqlalchemy.orm import Session, sessionmaker

from accounts.core.exceptions import ValidationError
from accounts.core.security import get_password_hash
from accounts.models.user import User
import logging

logger = logging.getLogger(__name__)

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_USERNAME_RE = re.compile(r"^[a-z0-9_.-]{3,50}$")

_REQUIRED_TEXT_FIELDS = ("username", "email", "full_name", "avatar")
_UNSETTABLE_FIELDS = {"refresh_token", "cover_image"}


def _normalize(fields: Dict[str, Any]) -> Dict[str, Any]:
    """Lowercase identity fields and hash any plain password"""
    values = dict(fields)
    for key in ("username", "email"):
        if isinstance(values.get(key), str):
            values[key] = values[key].strip().lower()
    if "password" in values:
        values["password_hash"] = get_password_hash(values.pop("password"))
    return values


def validation_errors(values: Dict[str, Any], required: Iterable[str]) -> Dict[str, str]:
    """Field name -> problem for every required or malformed field in ``values``"""
    errors = {}
    for key in required:
        value = values.get(key)
        if not isinstance(value, str) or not value.strip():
            errors[key] = "required"
    if "email" in values and "email" not in errors and not _EMAIL_RE.match(values["email"]):
        errors["email"] = "invalid email address"
    if "username" in values and "username" not in errors and not _USERNAME_RE.match(values["username"]):
        errors["username"] = "3-50 characters: letters, digits, '_', '.', '-'"
    return errors


def _validate(values: Dict[str, Any], required: Iterable[str]) -> None:
    errors = validation_errors(values, required)
    if errors:
        raise ValidationError("User validation failed", details=errors)


class CredentialStore:
    """
    Short-transaction access to ``users``.

    Every method opens its own session and commits before returning, so each
    call is a single store operation. Plain ``password`` values handed to the
    write path are hashed; usernames and emails are stored lowercase.
    """

    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory

    def _session(self) -> Session:
        return self._session_factory()

    def find_by_id(self, user_id: Any) -> Optional[User]:
        try:
            user_id = int(user_id)
        except (TypeError, ValueError):
            return None
        with self._session() as db:
            return db.get(User, user_id)

    def find_by_username_or_email(
        self,
        username: Optional[str] = None,
        email: Optional[str] = None,
    ) -> Optional[User]:
        conditions = []
        if username and username.strip():
            conditions.append(User.username == username.strip().lower())
        if email and email.strip():
            conditions.append(User.email == email.strip().lower())
        if not conditions:
            return None
        with self._session() as db:
            return db.query(User).filter(or_(*conditions)).first()

    def exists(
        self,
        username: Optional[str] = None,
        email: Optional[str] = None,
        exclude_id: Optional[int] = None,
    ) -> bool:
        conditions = []
        if username:
            conditions.append(User.username == username.strip().lower())
        if email:
            conditions.append(User.email == email.strip().lower())
        if not conditions:
            return False
        with self._session() as db:
            query = db.query(User.id).filter(or_(*conditions))
            if exclude_id is not None:
                query = query.filter(User.id != exclude_id)
            return query.first() is not None

    def create(self, fields: Dict[str, Any]) -> User:
        """Validate, hash and insert a new user"""
        if not fields.get("password"):
            raise ValidationError("User validation failed", details={"password": "required"})
        values = _normalize(fields)
        values.setdefault("cover_image", "")
        _validate(values, _REQUIRED_TEXT_FIELDS)

        with self._session() as db:
            user = User(**values)
            db.add(user)
            db.commit()
            db.refresh(user)

        logger.info(f"Created user: {user.username} (id: {user.id})")
        return user

    def update_fields(
        self,
        user_id: int,
        fields: Dict[str, Any],
        skip_validation: bool = False,
    ) -> Optional[User]:
        """
        Apply ``fields`` to a user and return the updated record.

        With ``skip_validation`` only the changed fields are written, without
        re-checking the rest of the record. Returns None if the user is gone.
        """
        if "password" in fields and not fields["password"]:
            raise ValidationError("User validation failed", details={"password": "required"})
        values = _normalize(fields)

        with self._session() as db:
            user = db.get(User, user_id)
            if user is None:
                return None
            for key, value in values.items():
                setattr(user, key, value)
            if not skip_validation:
                _validate(user.to_dict(), _REQUIRED_TEXT_FIELDS)
            db.commit()
            db.refresh(user)
            return user

    def unset_field(self, user_id: int, field_name: str) -> bool:
        """Clear an optional field; returns False if the user does not exist"""
        if field_name not in _UNSETTABLE_FIELDS:
            raise ValueError(f"Field '{field_name}' cannot be unset")
        empty = None if field_name == "refresh_token" else ""
        with self._session() as db:
            result = db.execute(
                update(User).where(User.id == user_id).values({field_name: empty})
            )
            db.commit()
            return result.rowcount > 0

    def swap_refresh_token(self, user_id: int, expected: str, new: str) -> bool:
        """
        Replace the stored refresh token only if it still equals ``expected``.

        Returns False when another write got there first.
        """
        with self._session() as db:
            result = db.execute(
                update(User)
                .where(User.id == user_id, User.refresh_token == expected)
                .values(refresh_token=new)
            )
            db.commit()
            return result.rowcount == 1
