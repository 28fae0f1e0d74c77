"""
Database configuration and session management.

Provides:
- Lazy engine creation with per-backend configuration
- SessionLocal factory for token storage sessions
- Database initialization utilities
"""

import logging
from functools import lru_cache
from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from messageai.config import get_settings

logger = logging.getLogger(__name__)


def _is_memory_sqlite(database_url: str) -> bool:
    path = database_url.split(":///", 1)[-1] if ":///" in database_url else ""
    return path in ("", ":memory:") or "mode=memory" in database_url


def create_db_engine(database_url: str, echo: bool = False) -> Engine:
    """
    Build an engine for ``database_url``.

    In-memory SQLite shares one connection (StaticPool) so every session
    sees the same database. File SQLite uses the default pool: each thread
    of the FastAPI threadpool checks out its own connection.
    """
    if database_url.lower().startswith("sqlite"):
        if _is_memory_sqlite(database_url):
            return create_engine(
                database_url,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
                echo=echo,
            )
        db_path = database_url.split(":///", 1)[-1]
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False, "timeout": 30},
            echo=echo,
        )

    return create_engine(
        database_url,
        pool_size=5,
        pool_recycle=3600,
        pool_pre_ping=True,
        echo=echo,
    )


@lru_cache()
def get_engine() -> Engine:
    """Engine for the configured database (created once)."""
    settings = get_settings()
    return create_db_engine(settings.database_url, echo=settings.log_level == "DEBUG")


@lru_cache()
def get_session_factory() -> sessionmaker:
    """Session factory bound to the configured engine."""
    return sessionmaker(autocommit=False, autoflush=False, bind=get_engine())


def SessionLocal() -> Session:
    """Open a new session on the configured database."""
    return get_session_factory()()


def init_db() -> None:
    """Create all tables that do not exist yet."""
    from messageai.models.base import Base

    logger.info("Creating database tables...")
    Base.metadata.create_all(bind=get_engine())
    logger.info("Database tables created successfully")
