"""Spooling of multipart uploads to local temporary files"""

import os
import shutil
import uuid
from pathlib import Path
from typing import Iterable, Optional

from fastapi import UploadFile

from accounts.config import Settings
from accounts.core.exceptions import ValidationError

_ALLOWED_SUFFIXES = {".png", ".jpg", ".jpeg", ".gif", ".webp", ".avif"}


def save_upload(upload: Optional[UploadFile], settings: Settings) -> Optional[str]:
    """
    Copy an uploaded image into the temp directory.

    Returns:
        Local path, or None when nothing was uploaded

    Raises:
        ValidationError: If the file type is not an image or it is too large
    """
    if upload is None or not upload.filename:
        return None

    suffix = Path(upload.filename).suffix.lower()
    if suffix not in _ALLOWED_SUFFIXES:
        raise ValidationError("Unsupported image type", details={"file": upload.filename})

    temp_dir = Path(settings.get_temp_dir())
    temp_dir.mkdir(parents=True, exist_ok=True)
    local_path = temp_dir / f"{uuid.uuid4().hex}{suffix}"

    with open(local_path, "wb") as out:
        shutil.copyfileobj(upload.file, out)

    if local_path.stat().st_size > settings.MAX_UPLOAD_SIZE_MB * 1024 * 1024:
        local_path.unlink()
        raise ValidationError(
            f"File exceeds {settings.MAX_UPLOAD_SIZE_MB} MB",
            details={"file": upload.filename},
        )
    return str(local_path)


def discard(paths: Iterable[Optional[str]]) -> None:
    """Remove temp files that were never handed to the media store"""
    for path in paths:
        if path and os.path.exists(path):
            os.remove(path)
