"""Database engine, session management and table creation (SQLAlchemy + SQLite)."""

import logging
import os
from contextlib import contextmanager
from pathlib import Path
from typing import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

logger = logging.getLogger(__name__)

DEFAULT_DATABASE_URL = "sqlite:///data/brand_audit.db"


class Base(DeclarativeBase):
    """Declarative base shared by every ORM model."""
    pass


_engine: Engine | None = None
_SessionFactory: sessionmaker | None = None


def _set_sqlite_pragmas(dbapi_conn, connection_record):
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA journal_mode=WAL;")
    cursor.execute("PRAGMA synchronous=NORMAL;")
    cursor.execute("PRAGMA busy_timeout=5000;")
    cursor.close()


def get_engine(database_url: str | None = None, echo: bool = False) -> Engine:
    """Return the process-wide engine, creating it on first use.

    Args:
        database_url: Connection string.  Defaults to ``DATABASE_URL`` from
                      the environment, then to a SQLite file under ``data/``.
        echo: Log every SQL statement.
    """
    global _engine
    if _engine is not None:
        return _engine

    if database_url is None:
        database_url = os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL)

    is_sqlite = database_url.startswith("sqlite")
    if database_url.startswith("sqlite:///") and ":memory:" not in database_url:
        Path(database_url.replace("sqlite:///", "")).parent.mkdir(parents=True, exist_ok=True)

    _engine = create_engine(
        database_url,
        echo=echo,
        connect_args={"check_same_thread": False} if is_sqlite else {},
        pool_pre_ping=True,
    )
    if is_sqlite:
        event.listen(_engine, "connect", _set_sqlite_pragmas)
    logger.info("Database engine created: %s", database_url)
    return _engine


def get_session_factory(engine: Engine | None = None) -> sessionmaker:
    """Return (and cache) the session factory bound to the global engine."""
    global _SessionFactory
    if _SessionFactory is not None:
        return _SessionFactory
    _SessionFactory = sessionmaker(bind=engine or get_engine(), expire_on_commit=False)
    return _SessionFactory


@contextmanager
def get_session() -> Generator[Session, None, None]:
    """Transactional session scope: commit on success, roll back on error.

    Usage::

        with get_session() as session:
            session.add(report)
    """
    session = get_session_factory()()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def init_db(database_url: str | None = None, echo: bool = False) -> None:
    """Create every table that does not exist yet."""
    engine = get_engine(database_url=database_url, echo=echo)
    import brand_audit.models  # noqa: F401
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables created / verified.")


def reset_db(database_url: str | None = None) -> None:
    """Drop and recreate every table.  Destructive; meant for tests."""
    engine = get_engine(database_url=database_url)
    import brand_audit.models  # noqa: F401
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    logger.warning("Database reset: all tables dropped and recreated.")


def reset_engine() -> None:
    """Dispose of the cached engine and session factory."""
    global _engine, _SessionFactory
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _SessionFactory = None
