"""Database engine and session factory.

The engine is created lazily from Settings.DATABASE_URL so that importing
the engine's packages never opens a connection.
"""

from contextlib import contextmanager
from functools import lru_cache
from typing import Generator, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from config import get_settings
from models.base import Base


def build_engine(database_url: str) -> Engine:
    """Create an engine with pool settings suited to the database."""
    engine_kwargs = {
        "pool_pre_ping": True,  # Verify connections before using
        "echo": False,
    }

    # Pool settings only apply to server databases, not SQLite
    if database_url.startswith("sqlite"):
        engine_kwargs["connect_args"] = {"check_same_thread": False}
    else:
        engine_kwargs["pool_size"] = 5
        engine_kwargs["max_overflow"] = 10

    return create_engine(database_url, **engine_kwargs)


@lru_cache()
def get_engine() -> Engine:
    """Process-wide engine for the configured DATABASE_URL."""
    return build_engine(get_settings().DATABASE_URL)


def get_session_factory(engine: Optional[Engine] = None) -> sessionmaker:
    """Session factory bound to the given (or configured) engine."""
    return sessionmaker(
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
        bind=engine or get_engine(),
    )


def create_schema(engine: Optional[Engine] = None) -> None:
    """Create all tables that don't exist yet (development and tests)."""
    Base.metadata.create_all(engine or get_engine())


@contextmanager
def get_db_session(session_factory: Optional[sessionmaker] = None) -> Generator[Session, None, None]:
    """Context manager for database sessions.

    Usage:
        with get_db_session() as session:
            session.query(Product).all()

    Automatically commits on success, rolls back on exception.
    """
    session = (session_factory or get_session_factory())()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
