"""Application context - the explicitly constructed service graph"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from accounts.config import Settings
from accounts.core.database import create_db_engine, create_session_factory
from accounts.services.credential_store import CredentialStore
from accounts.services.media_store import CloudinaryMediaStore, MediaStore
from accounts.services.token_service import TokenService


@dataclass
class AppContext:
    """Everything a request handler needs, built once at process start."""

    settings: Settings
    engine: Engine
    session_factory: sessionmaker
    store: CredentialStore
    media: MediaStore
    tokens: TokenService


def build_context(settings: Settings, media: Optional[MediaStore] = None) -> AppContext:
    engine = create_db_engine(settings)
    session_factory = create_session_factory(engine)
    return AppContext(
        settings=settings,
        engine=engine,
        session_factory=session_factory,
        store=CredentialStore(session_factory),
        media=media if media is not None else CloudinaryMediaStore(settings),
        tokens=TokenService(settings),
    )
