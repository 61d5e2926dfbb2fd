"""
Database session management with SQLAlchemy 2.0.

Provides engine configuration, session creation and context managers for safe
database access with automatic transaction rollback.
"""

from contextlib import contextmanager
from typing import Generator, Dict, Any

from sqlalchemy import create_engine, text
from sqlalchemy.engine import make_url
from sqlalchemy.orm import Session, sessionmaker, scoped_session
from sqlalchemy.pool import StaticPool
from loguru import logger

from fusionrisk.config import settings


def _engine_options(database_url: str) -> Dict[str, Any]:
    """Pool and connect options for the configured backend."""
    url = make_url(database_url)
    if url.get_backend_name() == "sqlite":
        options: Dict[str, Any] = {
            "echo": settings.debug,
            "connect_args": {"check_same_thread": False},
        }
        if url.database in (None, "", ":memory:"):
            # A single shared connection keeps in-memory data visible to every session
            options["poolclass"] = StaticPool
        return options

    return {
        "pool_pre_ping": True,
        "pool_size": 5,
        "max_overflow": 10,
        "pool_timeout": 30,
        "pool_recycle": 1800,
        "echo": settings.debug,
        "connect_args": {
            "connect_timeout": 10,
            "options": "-c statement_timeout=30000",
        },
    }


engine = create_engine(settings.database_url, **_engine_options(settings.database_url))

SessionLocal = scoped_session(
    sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=engine,
        expire_on_commit=False,
    )
)


def init_db() -> None:
    """Create the pipeline tables if they do not exist."""
    from fusionrisk.db.models import Base

    Base.metadata.create_all(bind=engine, checkfirst=True)
    logger.info("Database schema initialized successfully")


def get_db() -> Session:
    """
    Get a database session.

    Caller is responsible for closing the session with close_db_session()
    or using get_db_context().
    """
    return SessionLocal()


def close_db_session(db: Session) -> None:
    """Close a session obtained from get_db() and drop it from the registry."""
    db.close()
    SessionLocal.remove()


@contextmanager
def get_db_context() -> Generator[Session, None, None]:
    """
    Get a database session as a context manager.

    Usage:
        with get_db_context() as db:
            records = MetricRecordRepository(db).get_recent(window)

    The session is committed on success and rolled back on error.
    """
    db = get_db()
    try:
        yield db
        db.commit()
    except Exception as e:
        db.rollback()
        logger.error(f"Database transaction failed: {e}")
        raise
    finally:
        close_db_session(db)


def check_db_health() -> bool:
    """Run a trivial query against the engine."""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.warning(f"Database health check failed: {e}")
        return False


__all__ = [
    "engine",
    "SessionLocal",
    "init_db",
    "get_db",
    "close_db_session",
    "get_db_context",
    "check_db_health",
]
