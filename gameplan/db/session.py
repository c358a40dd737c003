from __future__ import annotations

from collections.abc import Generator
from contextlib import contextmanager, suppress

from loguru import logger
from sqlalchemy import create_engine, text
from sqlalchemy.orm import Session, sessionmaker

from gameplan.config.settings import settings
from gameplan.db.models import Base

# Lazy initialization to avoid import-time database connections
_engine = None
_SessionLocal = None


def _get_engine():
    """Get or create the database engine (lazy initialization)."""
    global _engine
    if _engine is None:
        logger.info(f"[DB] Initializing database engine: {settings.database_url}")

        connect_args = {}
        if "sqlite" in settings.database_url.lower():
            logger.warning("[DB] Using SQLite database (local development only)")
            connect_args = {"check_same_thread": False}
        else:
            connect_args = {
                "connect_timeout": 10,
                "application_name": "gameplan",
            }

        _engine = create_engine(
            settings.database_url,
            connect_args=connect_args,
            echo=False,
            pool_pre_ping=True,
            pool_recycle=3600,
        )
        logger.info("[DB] Database engine initialized")
    return _engine


def _get_session_local():
    """Get or create the session factory (lazy initialization)."""
    global _SessionLocal
    if _SessionLocal is None:
        _SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=_get_engine())
        logger.info("[DB] Database session factory initialized")
    return _SessionLocal


def _handle_session_commit(session: Session) -> None:
    """Commit only when the unit of work has pending changes."""
    if session.dirty or session.new or session.deleted:
        with suppress(Exception):
            logger.debug(
                f"Committing session: dirty={len(session.dirty)}, new={len(session.new)}, deleted={len(session.deleted)}"
            )
        session.commit()
    else:
        with suppress(Exception):
            logger.debug("No changes to commit, skipping commit")


@contextmanager
def get_session() -> Generator[Session, None, None]:
    """Get database session context manager.

    Commits on success when there are pending changes. Any exception is
    logged, rolled back and re-raised.
    """
    session = _get_session_local()()
    try:
        yield session
        _handle_session_commit(session)
    except Exception as e:
        logger.error(
            f"Database session error, rolling back: {e}. "
            f"Error type: {type(e).__name__}, session state: "
            f"dirty={len(session.dirty)}, new={len(session.new)}, deleted={len(session.deleted)}"
        )
        session.rollback()
        raise
    finally:
        session.close()


def init_db() -> None:
    """Create missing plan tables and verify the connection.

    Raises:
        Exception: If the database is unreachable
    """
    engine = _get_engine()
    Base.metadata.create_all(bind=engine)
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except Exception as e:
        logger.error(f"[DB] Database connection test failed: {e}")
        raise
    logger.info(f"[DB] Database ready ({len(Base.metadata.tables)} tables)")
