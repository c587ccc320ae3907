# control_plane/database/session.py
"""
Engine and session factory for the node registry

SQLite is the default store for a single control plane instance.
PostgreSQL is used when DATABASE_URL points at it (install the postgres extra).
"""

import logging
from typing import Generator

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ..config import settings
from .models import Base

logger = logging.getLogger(__name__)


def _is_memory_sqlite(url) -> bool:
    return url.database in (None, "", ":memory:")


def _enable_sqlite_foreign_keys(engine: Engine) -> None:
    # SQLite enforces foreign keys only when enabled on each connection
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def build_engine(database_url: str, debug: bool = False) -> Engine:
    """
    Create the engine for `database_url`

    An in-memory SQLite database only exists on its connection, so it is
    pinned to a single one. File databases keep the default pool.
    """
    url = make_url(database_url)

    if url.get_backend_name() != "sqlite":
        return create_engine(
            url,
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
            pool_pre_ping=True,
            echo=debug,
        )

    options = {"connect_args": {"check_same_thread": False}, "echo": debug}
    if _is_memory_sqlite(url):
        options["poolclass"] = StaticPool

    engine = create_engine(url, **options)
    _enable_sqlite_foreign_keys(engine)
    return engine


engine = build_engine(settings.DATABASE_URL, debug=settings.DEBUG)

SessionLocal = sessionmaker(bind=engine, autoflush=False)


def init_db() -> None:
    """Create the region and node tables if missing"""
    Base.metadata.create_all(bind=engine)
    logger.info(f"Database ready ({engine.url.get_backend_name()})")


def get_db() -> Generator[Session, None, None]:
    """FastAPI dependency yielding one session per request"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def check_connection() -> bool:
    """Used by GET /health"""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except Exception as e:
        logger.error(f"Database unreachable: {e}")
        return False
    return True
