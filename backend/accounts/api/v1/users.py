"""User account routes"""

from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from typing import Optional

from accounts.api.deps import get_account_service, get_context, get_current_user
from accounts.api.uploads import discard, save_upload
from accounts.core.context import AppContext
from accounts.models.user import User
from accounts.schemas.response import APIResponse
from accounts.schemas.user import AccountUpdate
from accounts.services.account_service import AccountService

router = APIRouter()


@router.post("/register", response_model=APIResponse, status_code=status.HTTP_201_CREATED)
def register(
    full_name: Optional[str] = Form(None),
    username: Optional[str] = Form(None),
    email: Optional[str] = Form(None),
    password: Optional[str] = Form(None),
    avatar: Optional[UploadFile] = File(None),
    cover_image: Optional[UploadFile] = File(None),
    context: AppContext = Depends(get_context),
    accounts: AccountService = Depends(get_account_service),
):
    """
    Register a new user

    Multipart form with the profile fields, a required ``avatar`` image and
    an optional ``cover_image``.
    """
    avatar_path = save_upload(avatar, context.settings)
    try:
        cover_path = save_upload(cover_image, context.settings)
    except Exception:
        discard([avatar_path])
        raise

    try:
        user = accounts.register(
            full_name, username, email, password, avatar_path, cover_path
        ).unwrap()
    finally:
        discard([avatar_path, cover_path])

    return APIResponse(message="User registered successfully", data=user.model_dump(mode="json"))


@router.get("/me", response_model=APIResponse)
def get_my_profile(
    current_user: User = Depends(get_current_user),
    accounts: AccountService = Depends(get_account_service),
):
    """Get current user profile"""
    user = accounts.get_current_user(current_user.id).unwrap()
    return APIResponse(message="Current user fetched successfully", data=user.model_dump(mode="json"))


@router.patch("/update-account", response_model=APIResponse)
def update_account_details(
    body: AccountUpdate,
    current_user: User = Depends(get_current_user),
    accounts: AccountService = Depends(get_account_service),
):
    """Update full name and email"""
    user = accounts.update_account_details(current_user.id, body.full_name, body.email).unwrap()
    return APIResponse(message="Account details updated successfully", data=user.model_dump(mode="json"))


@router.patch("/avatar", response_model=APIResponse)
def update_avatar(
    avatar: Optional[UploadFile] = File(None),
    current_user: User = Depends(get_current_user),
    context: AppContext = Depends(get_context),
    accounts: AccountService = Depends(get_account_service),
):
    """Replace the avatar image"""
    local_path = save_upload(avatar, context.settings)
    try:
        user = accounts.update_avatar(current_user.id, local_path).unwrap()
    finally:
        discard([local_path])
    return APIResponse(message="Avatar updated successfully", data=user.model_dump(mode="json"))


@router.patch("/cover-image", response_model=APIResponse)
def update_cover_image(
    cover_image: Optional[UploadFile] = File(None),
    current_user: User = Depends(get_current_user),
    context: AppContext = Depends(get_context),
    accounts: AccountService = Depends(get_account_service),
):
    """Replace the cover image"""
    local_path = save_upload(cover_image, context.settings)
    try:
        user = accounts.update_cover_image(current_user.id, local_path).unwrap()
    finally:
        discard([local_path])
    return APIResponse(message="Cover image updated successfully", data=user.model_dump(mode="json"))
