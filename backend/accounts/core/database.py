"""Database configuration and session management"""

from sqlalchemy import create_engine, text, inspect
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool
from accounts.config import Settings
import logging

logger = logging.getLogger(__name__)

# Create base class for models
Base = declarative_base()

# Import models after Base is defined so metadata is populated.
from accounts import models  # noqa: E402,F401


def create_db_engine(settings: Settings) -> Engine:
    """
    Build the SQLAlchemy engine for the configured database.

    SQLite URLs (used by tests and local runs) get a thread-agnostic
    connection; an in-memory SQLite database is pinned to a single
    connection so every session sees the same data.
    """
    url = settings.get_database_url()

    if url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}, "echo": settings.DEBUG}
        if ":memory:" in url or url in ("sqlite://", "sqlite+pysqlite://"):
            kwargs["poolclass"] = StaticPool
        return create_engine(url, **kwargs)

    return create_engine(
        url,
        pool_size=settings.DATABASE_POOL_SIZE,
        max_overflow=settings.DATABASE_MAX_OVERFLOW,
        pool_timeout=30,
        pool_recycle=3600,
        pool_pre_ping=True,
        echo=settings.DEBUG
    )


def create_session_factory(engine: Engine) -> sessionmaker:
    # Users are handed back to callers after commit, so keep attributes loaded.
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


def init_db(engine: Engine, settings: Settings) -> None:
    """
    Initialize database according to configured strategy.

    DB_INIT_MODE:
      - migrate: require alembic_version table (migration-first discipline)
      - create_all: create tables directly, for local/dev bootstrap and tests
      - off: skip initialization check
    """
    mode = settings.DB_INIT_MODE.lower().strip()
    if mode == "off":
        logger.info("DB initialization check skipped (DB_INIT_MODE=off)")
        return

    if mode == "create_all":
        Base.metadata.create_all(bind=engine)
        logger.warning("Using create_all database initialization (recommended only for local development).")
        return

    if mode == "migrate":
        with engine.connect() as conn:
            if engine.dialect.name == "postgresql":
                version_table_exists = conn.execute(
                    text("SELECT to_regclass('public.alembic_version')")
                ).scalar()
                exists = bool(version_table_exists)
            else:
                exists = "alembic_version" in inspect(conn).get_table_names()
            if settings.DB_REQUIRE_HEAD and not exists:
                raise RuntimeError(
                    "Migration table missing. Run Alembic migrations before starting the API."
                )
        logger.info("Migration metadata detected.")
        return

    raise RuntimeError(f"Unknown DB_INIT_MODE: {settings.DB_INIT_MODE}")


def ping(engine: Engine) -> None:
    """Run a trivial query; raises if the database is unreachable."""
    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))
