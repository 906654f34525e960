"""
Database Configuration

Supports both SQLite (development) and PostgreSQL (production).
Engines are built on demand so each storage instance (and each test)
can own an isolated database.
"""
import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool

from .config import settings
from .exceptions import StorageError

LOGGER = logging.getLogger(__name__)

IN_MEMORY_SQLITE_URLS = ("sqlite://", "sqlite:///:memory:")
# Seconds a SQLite connection waits for another writer before failing
SQLITE_BUSY_TIMEOUT = 15

# Base class for models
Base = declarative_base()


def utcnow() -> datetime:
    """Naive UTC timestamp, the format every DateTime column stores"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def create_db_engine(database_url: Optional[str] = None, echo: Optional[bool] = None) -> Engine:
    """
    Create an engine for the given URL (defaults to settings.DATABASE_URL)

    Args:
        database_url: SQLAlchemy URL; "sqlite://" gives a private in-memory database
        echo: Log SQL statements (defaults to settings.DEBUG)

    Returns:
        Configured SQLAlchemy engine
    """
    url = database_url or settings.DATABASE_URL
    echo = settings.DEBUG if echo is None else echo

    if url.startswith("sqlite"):
        if url in IN_MEMORY_SQLITE_URLS:
            # One private database that lives as long as its only connection
            engine = create_engine(
                url,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
                echo=echo
            )
        else:
            # File-backed SQLite: a connection per session, isolated by SQLite's own locking
            db_path = Path(url.replace("sqlite:///", "", 1))
            db_path.parent.mkdir(parents=True, exist_ok=True)
            engine = create_engine(
                url,
                connect_args={"check_same_thread": False, "timeout": SQLITE_BUSY_TIMEOUT},
                echo=echo
            )
        event.listen(engine, "connect", _configure_sqlite_connection)
    else:
        # PostgreSQL configuration (for production)
        engine = create_engine(
            url,
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
            pool_pre_ping=True,
            echo=echo
        )

    return engine


def shares_one_connection(engine: Engine) -> bool:
    """True when every session of the engine runs on the same DBAPI connection"""
    return isinstance(engine.pool, StaticPool)


def _unicode_lower(value):
    return value.lower() if isinstance(value, str) else value


def _configure_sqlite_connection(dbapi_connection, connection_record):
    # SQLite's built-in lower() folds ASCII only
    dbapi_connection.create_function("lower", 1, _unicode_lower, deterministic=True)
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys = ON")
    cursor.close()


def create_session_factory(engine: Engine) -> sessionmaker:
    """Session factory bound to an engine"""
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


@contextmanager
def session_scope(factory: sessionmaker) -> Iterator[Session]:
    """
    Transactional scope around a series of operations.

    Commits on success, rolls back everything on any exception and
    re-raises it unchanged.

    Usage:
        with session_scope(factory) as session:
            session.add(obj)
    """
    session = factory()
    try:
        yield session
        session.commit()
    except StorageError as exc:
        # Rejected by a storage rule; nothing was written
        LOGGER.debug("Transaction rolled back: %s", exc.message)
        session.rollback()
        raise
    except Exception:
        LOGGER.exception("Transaction rolled back")
        session.rollback()
        raise
    finally:
        session.close()


def init_db(engine: Engine):
    """Initialize the database (create all tables)"""
    # Import all models to register them with Base
    from estate_store.models import (  # noqa: F401
        User, Property, Inquiry, Favorite, SearchHistory,
        Wave, CustomerWavePermission, CustomerActivity, CustomerPoints
    )

    Base.metadata.create_all(bind=engine)
    LOGGER.info("Database initialized: %s", engine.url.render_as_string(hide_password=True))
