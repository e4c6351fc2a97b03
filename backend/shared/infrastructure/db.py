"""
Database configuration and session management.
Uses SQLAlchemy 2.0 patterns.

The connection pool is the only shared mutable resource. Sessions are
acquired per operation and released on every exit path.
"""

from collections.abc import Generator
from contextlib import contextmanager
from functools import lru_cache

from sqlalchemy import Engine, create_engine, event
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from shared.config.logging import get_logger
from shared.config.settings import settings

logger = get_logger(__name__)

# Seconds a SQLite writer waits for the database lock before failing
SQLITE_BUSY_TIMEOUT = 30


def _on_sqlite_connect(dbapi_connection, connection_record) -> None:
    # Let SQLAlchemy, not pysqlite, emit BEGIN so savepoints work
    dbapi_connection.isolation_level = None
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _on_sqlite_begin(conn) -> None:
    # Take the write lock up front: concurrent writers queue on the busy
    # timeout instead of failing with a lock upgrade deadlock
    conn.exec_driver_sql("BEGIN IMMEDIATE")


def build_engine(database_url: str, **overrides) -> Engine:
    """
    Create an engine for `database_url`.

    PostgreSQL gets a bounded pool with timeouts; SQLite gets a busy
    timeout so concurrent writers serialize, enforced foreign keys and
    working savepoints.
    """
    if database_url.startswith("sqlite"):
        kwargs = {
            "connect_args": {"check_same_thread": False, "timeout": SQLITE_BUSY_TIMEOUT},
        }
        if ":memory:" in database_url or database_url in ("sqlite://", "sqlite:///"):
            kwargs["poolclass"] = StaticPool
        kwargs.update(overrides)
        engine = create_engine(database_url, **kwargs)
        event.listen(engine, "connect", _on_sqlite_connect)
        event.listen(engine, "begin", _on_sqlite_begin)
        return engine

    kwargs = {
        "pool_pre_ping": True,  # Verify connections before using
        "pool_size": settings.db_pool_size,
        "max_overflow": settings.db_max_overflow,
        "pool_timeout": settings.db_pool_timeout,
        "pool_recycle": settings.db_pool_recycle,
        "connect_args": {"connect_timeout": 10},
        "echo": False,  # Set to True for SQL logging in development
    }
    kwargs.update(overrides)
    return create_engine(database_url, **kwargs)


@lru_cache
def get_engine() -> Engine:
    """Application engine, created on first use."""
    return build_engine(settings.database_url)


@lru_cache
def get_session_factory() -> sessionmaker[Session]:
    return sessionmaker(bind=get_engine(), autoflush=False, autocommit=False)


@contextmanager
def session_scope(factory: sessionmaker | None = None) -> Generator[Session, None, None]:
    """
    Transactional scope around a series of operations.

    Commits on success, rolls back on any exception (including
    cancellation) and always closes the session.

    Usage:
        with session_scope() as db:
            UserService(db).create(data, acting_user_id)
    """
    db = (factory or get_session_factory())()
    try:
        yield db
        db.commit()
    except BaseException:
        db.rollback()
        raise
    finally:
        db.close()


def init_schema(engine: Engine | None = None) -> None:
    """Create all tables and indexes (including partial unique indexes)."""
    # Import here so every model is registered on the metadata
    from booking_core.models import Base

    engine = engine or get_engine()
    Base.metadata.create_all(bind=engine)
    logger.info("Schema initialized", tables=len(Base.metadata.tables))
