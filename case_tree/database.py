"""
Database configuration and initialization for the test case tree service.

Uses SQLAlchemy ORM over any transactional relational store; SQLite is the
default backend.
"""

from datetime import datetime, timezone

from sqlalchemy import Engine, create_engine, event
from sqlalchemy.orm import sessionmaker, DeclarativeBase

from .config import get_settings


def create_db_engine(
    database_url: str,
    echo: bool = False,
    isolation_level: str | None = None,
    busy_timeout: float = 30.0,
) -> Engine:
    """
    Create an engine configured for tree mutations.

    SQLite connections get foreign keys, case-sensitive LIKE (path prefix
    scans must not match "/suite" against "/Suite"), and BEGIN IMMEDIATE
    transactions so that concurrent cascades serialize on the write lock
    instead of failing when a reader tries to upgrade. Other backends get
    the configured isolation level, if any.
    """
    if database_url.startswith("sqlite"):
        engine = create_engine(
            database_url,
            connect_args={
                "check_same_thread": False,  # Required for SQLite with FastAPI
                "timeout": busy_timeout,
            },
            echo=echo,
        )

        @event.listens_for(engine, "connect")
        def set_sqlite_pragma(dbapi_connection, connection_record):
            """Enable foreign keys and take over transaction control."""
            dbapi_connection.isolation_level = None
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.execute("PRAGMA case_sensitive_like=ON")
            cursor.close()

        @event.listens_for(engine, "begin")
        def begin_immediate(conn):
            conn.exec_driver_sql("BEGIN IMMEDIATE")

        return engine

    engine_kwargs = {"echo": echo, "pool_pre_ping": True}
    if isolation_level:
        engine_kwargs["isolation_level"] = isolation_level
    return create_engine(database_url, **engine_kwargs)


def create_session_factory(engine: Engine) -> sessionmaker:
    """Session factory; objects stay readable after the transaction closes."""
    return sessionmaker(autoflush=False, expire_on_commit=False, bind=engine)


_settings = get_settings()

engine = create_db_engine(
    _settings.database_url,
    echo=_settings.echo_sql,
    isolation_level=_settings.isolation_level,
    busy_timeout=_settings.sqlite_busy_timeout,
)

# Session factory
SessionLocal = create_session_factory(engine)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


def init_db():
    """
    Initialize the database by creating all tables.

    This function should be called at application startup to ensure
    the database schema exists. It will create tables if they don't exist.
    """
    from . import models  # noqa: F401  (registers tables on Base.metadata)

    Base.metadata.create_all(bind=engine)


def get_session_factory() -> sessionmaker:
    """
    Dependency function for FastAPI to get the session factory.

    Each tree store opens exactly one session per transaction from this
    factory, so handlers never share a session.

    Usage:
        @app.get("/items")
        def get_items(factory: sessionmaker = Depends(get_session_factory)):
            ...
    """
    return SessionLocal


def utcnow() -> datetime:
    """Naive UTC timestamp, as stored by every audit column."""
    return datetime.now(timezone.utc).replace(tzinfo=None)
