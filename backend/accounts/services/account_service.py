"""Account service - registration and profile updates"""

from __future__ import annotations

from typing import Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from accounts.core.context import AppContext
from accounts.core.exceptions import ValidationError
from accounts.core.result import ErrorKind, Result
from accounts.schemas.user import UserResponse
from accounts.services.credential_store import validation_errors
from accounts.services.media_store import uploaded_url
import logging

logger = logging.getLogger(__name__)


class AccountService:
    """Registration, profile fields and profile images"""

    def __init__(self, context: AppContext) -> None:
        self.store = context.store
        self.media = context.media

    def register(
        self,
        full_name: Optional[str],
        username: Optional[str],
        email: Optional[str],
        password: Optional[str],
        avatar_path: Optional[str],
        cover_image_path: Optional[str] = None,
    ) -> Result[UserResponse]:
        """
        Create a user with an uploaded avatar and optional cover image.

        Args:
            full_name: Display name
            username: Unique handle, stored lowercase
            email: Unique email, stored lowercase
            password: Plain password, hashed by the store
            avatar_path: Local path of the uploaded avatar (required)
            cover_image_path: Local path of the cover image, if any

        Returns:
            Public projection of the created user
        """
        if any(not value or not value.strip() for value in (full_name, username, email, password)):
            return Result.fail(ErrorKind.MISSING_FIELDS, "All fields are required")

        # Shape checks run before anything is uploaded
        errors = validation_errors(
            {
                "full_name": full_name,
                "username": username.strip().lower(),
                "email": email.strip().lower(),
            },
            ("full_name", "username", "email"),
        )
        if errors:
            return Result.fail(
                ErrorKind.INVALID_FIELDS,
                "; ".join(f"{field}: {problem}" for field, problem in sorted(errors.items())),
            )

        if self.store.exists(username=username, email=email):
            return Result.fail(ErrorKind.DUPLICATE_USER, "User with email or username already exists")

        if not avatar_path:
            return Result.fail(ErrorKind.MISSING_FIELDS, "Avatar file is required")

        avatar_url = uploaded_url(self.media.upload(avatar_path))
        cover_url = uploaded_url(self.media.upload(cover_image_path))
        if not avatar_url:
            self._discard_uploads(cover_url)
            return Result.fail(ErrorKind.UPLOAD_FAILED, "Avatar upload failed")

        try:
            user = self.store.create({
                "full_name": full_name.strip(),
                "username": username,
                "email": email,
                "password": password,
                "avatar": avatar_url,
                "cover_image": cover_url,
            })
        except IntegrityError:
            self._discard_uploads(avatar_url, cover_url)
            return Result.fail(ErrorKind.DUPLICATE_USER, "User with email or username already exists")
        except ValidationError as e:
            self._discard_uploads(avatar_url, cover_url)
            return Result.fail(ErrorKind.INVALID_FIELDS, e.message)
        except SQLAlchemyError as e:
            logger.error(f"Registration failed for {username}: {e}")
            self._discard_uploads(avatar_url, cover_url)
            return Result.fail(ErrorKind.REGISTRATION_FAILED, "Something went wrong while registering the user")

        created = self.store.find_by_id(user.id)
        if created is None:
            return Result.fail(ErrorKind.REGISTRATION_FAILED, "Something went wrong while registering the user")

        return Result.success(UserResponse.model_validate(created))

    def _discard_uploads(self, *urls: str) -> None:
        """Best-effort removal of images uploaded for a write that did not persist"""
        for url in urls:
            if url and not self.media.delete(url):
                logger.warning(f"Could not delete orphaned upload {url}")

    def get_current_user(self, user_id: int) -> Result[UserResponse]:
        user = self.store.find_by_id(user_id)
        if user is None:
            return Result.fail(ErrorKind.USER_NOT_FOUND, "User does not exist")
        return Result.success(UserResponse.model_validate(user))

    def update_account_details(
        self,
        user_id: int,
        full_name: Optional[str],
        email: Optional[str],
    ) -> Result[UserResponse]:
        if not full_name or not full_name.strip() or not email or not email.strip():
            return Result.fail(ErrorKind.MISSING_FIELDS, "Full name and email are required")

        if self.store.exists(email=email, exclude_id=user_id):
            return Result.fail(ErrorKind.DUPLICATE_USER, "Email is already in use")

        try:
            user = self.store.update_fields(user_id, {"full_name": full_name.strip(), "email": email})
        except IntegrityError:
            return Result.fail(ErrorKind.DUPLICATE_USER, "Email is already in use")
        except ValidationError as e:
            return Result.fail(ErrorKind.INVALID_FIELDS, e.message)
        if user is None:
            return Result.fail(ErrorKind.USER_NOT_FOUND, "User does not exist")

        logger.info(f"Account details updated for user {user_id}")
        return Result.success(UserResponse.model_validate(user))

    def update_avatar(self, user_id: int, local_path: Optional[str]) -> Result[UserResponse]:
        return self._replace_image(user_id, "avatar", local_path)

    def update_cover_image(self, user_id: int, local_path: Optional[str]) -> Result[UserResponse]:
        return self._replace_image(user_id, "cover_image", local_path)

    def _replace_image(self, user_id: int, field: str, local_path: Optional[str]) -> Result[UserResponse]:
        """Upload the new image, store its URL, then drop the old remote copy"""
        label = field.replace("_", " ")
        if not local_path:
            return Result.fail(ErrorKind.MISSING_FIELDS, f"{label.capitalize()} file is missing")

        current = self.store.find_by_id(user_id)
        if current is None:
            return Result.fail(ErrorKind.USER_NOT_FOUND, "User does not exist")
        previous_url = getattr(current, field)

        url = uploaded_url(self.media.upload(local_path))
        if not url:
            return Result.fail(ErrorKind.UPLOAD_FAILED, f"Error while uploading {label}")

        user = self.store.update_fields(user_id, {field: url}, skip_validation=True)
        if user is None:
            self._discard_uploads(url)
            return Result.fail(ErrorKind.USER_NOT_FOUND, "User does not exist")

        if previous_url and not self.media.delete(previous_url):
            logger.warning(f"Could not delete previous {label} for user {user_id}: {previous_url}")

        logger.info(f"{label.capitalize()} updated for user {user_id}")
        return Result.success(UserResponse.model_validate(user))
