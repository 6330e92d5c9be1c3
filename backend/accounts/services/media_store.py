"""Media store - durable image hosting on Cloudinary"""

from __future__ import annotations

import os
from typing import Any, Dict, Optional, Protocol
from urllib.parse import urlparse

import cloudinary.uploader

from accounts.config import Settings
import logging

logger = logging.getLogger(__name__)


class MediaStore(Protocol):
    """Upload a local file to durable storage, or delete a stored object by URL."""

    def upload(self, local_path: Optional[str]) -> Optional[Dict[str, Any]]:
        ...

    def delete(self, url: Optional[str]) -> bool:
        ...


def public_id_from_url(url: str) -> str:
    """
    Derive the Cloudinary public id from a delivery URL.

    ``https://res.cloudinary.com/demo/image/upload/v1712/avatars/me.png``
    maps to ``avatars/me``. The segment right after ``upload`` (the version or
    a transformation) is skipped; any folders after it are kept.
    """
    parts = [p for p in urlparse(url).path.split("/") if p]
    file_name = parts.pop().rsplit(".", 1)[0] if parts else ""
    if "upload" in parts:
        folders = parts[parts.index("upload") + 2:]
    else:
        folders = []
    if not folders:
        return file_name
    return "/".join(folders + [file_name])


def _remove_local_file(local_path: str) -> None:
    try:
        os.remove(local_path)
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning(f"Could not remove temporary upload {local_path}: {e}")


class CloudinaryMediaStore:
    """
    Cloudinary-backed media store.

    ``upload`` never raises: a failed upload is logged and reported as None.
    The local temporary file is removed whatever the outcome.
    """

    def __init__(self, settings: Settings) -> None:
        # Credentials travel with each call; the SDK global config is left alone
        self._credentials = {
            "cloud_name": settings.CLOUDINARY_CLOUD_NAME,
            "api_key": settings.CLOUDINARY_API_KEY,
            "api_secret": settings.CLOUDINARY_API_SECRET,
        }

    def upload(self, local_path: Optional[str]) -> Optional[Dict[str, Any]]:
        if not local_path:
            return None
        try:
            response = cloudinary.uploader.upload(local_path, resource_type="auto", **self._credentials)
        except Exception as e:
            logger.error(f"Media upload failed for {local_path}: {e}")
            return None
        finally:
            _remove_local_file(local_path)

        if not response or not (response.get("secure_url") or response.get("url")):
            logger.error(f"Media upload returned no URL for {local_path}")
            return None
        return response

    def delete(self, url: Optional[str]) -> bool:
        if not url:
            return False
        public_id = public_id_from_url(url)
        try:
            response = cloudinary.uploader.destroy(public_id, resource_type="image", **self._credentials)
        except Exception as e:
            logger.warning(f"Media delete failed for {public_id}: {e}")
            return False
        return bool(response) and response.get("result") == "ok"


def uploaded_url(response: Optional[Dict[str, Any]]) -> str:
    """Preferred delivery URL from an upload response, or '' if there is none."""
    if not response:
        return ""
    return response.get("secure_url") or response.get("url") or ""
