import os

import pytest

from accounts.config import Settings
from accounts.core.context import build_context
from accounts.core.database import Base


class FakeMediaStore:
    """In-memory stand-in for the Cloudinary store"""

    def __init__(self):
        self.uploaded = []
        self.deleted = []
        self.fail_uploads = False
        self._counter = 0

    def upload(self, local_path):
        if not local_path:
            return None
        if os.path.exists(local_path):
            os.remove(local_path)
        if self.fail_uploads:
            return None
        self._counter += 1
        url = f"https://res.cloudinary.com/demo/image/upload/v1700000000/profiles/img{self._counter}.png"
        self.uploaded.append(url)
        return {"url": url, "secure_url": url}

    def delete(self, url):
        self.deleted.append(url)
        return True


@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        DATABASE_URL="sqlite://",
        DB_INIT_MODE="create_all",
        COOKIE_SECURE=False,
        TEMP_DIR=str(tmp_path / "uploads"),
        LOG_FILE=str(tmp_path / "app.log"),
        ACCESS_TOKEN_SECRET="access-secret-for-tests-0123456789abcdef",
        REFRESH_TOKEN_SECRET="refresh-secret-for-tests-0123456789abcdef",
    )


@pytest.fixture
def media():
    return FakeMediaStore()


@pytest.fixture
def context(settings, media):
    ctx = build_context(settings, media=media)
    Base.metadata.create_all(bind=ctx.engine)
    yield ctx
    ctx.engine.dispose()


@pytest.fixture
def user(context):
    return context.store.create({
        "username": "Alice",
        "email": "Alice@Example.com",
        "full_name": "Alice Liddell",
        "password": "correct-horse",
        "avatar": "https://res.cloudinary.com/demo/image/upload/v1/profiles/alice.png",
    })


@pytest.fixture
def image_file(tmp_path):
    def _make(name="avatar.png"):
        path = tmp_path / name
        path.write_bytes(b"\x89PNG\r\n\x1a\nfake-image")
        return str(path)
    return _make
