"""Database session management."""

from collections.abc import Generator
from contextlib import contextmanager
from typing import Any

from sqlalchemy import create_engine, text
from sqlalchemy.engine import make_url
from sqlalchemy.orm import Session, sessionmaker

from deaftube.config import settings


def _engine_options(database_url: str) -> dict[str, Any]:
    """Pool options suited to the configured backend."""
    if make_url(database_url).get_backend_name() == "sqlite":
        # Sessions cross threads between FastAPI's threadpool and the event loop
        return {"connect_args": {"check_same_thread": False}}
    return {"pool_pre_ping": True, "pool_size": 5, "max_overflow": 10}


# Create engine
engine = create_engine(settings.database_url, **_engine_options(settings.database_url))

# Create session factory
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)


def get_session() -> Generator[Session, None, None]:
    """Get a database session (for FastAPI dependency injection)."""
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@contextmanager
def get_session_context() -> Generator[Session, None, None]:
    """Get a database session as a context manager (for use outside of FastAPI)."""
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def init_db() -> None:
    """Verify connectivity and create missing tables when enabled."""
    from deaftube.db.models import Base

    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))

    if settings.db_create_all:
        Base.metadata.create_all(bind=engine)


@contextmanager
def atomic(session: Session) -> Generator[Session, None, None]:
    """Run a block as one transaction on an existing session.

    Commits when the block completes, rolls back and re-raises otherwise.
    """
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
