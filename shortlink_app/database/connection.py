"""
Database engine and session setup.

The engine and session factory are created by the application factory
(see main.create_app) and handed down explicitly; nothing here is created
at import time.
"""

from datetime import datetime, timezone

from sqlalchemy import DateTime, create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.ext.compiler import compiles
from sqlalchemy.orm import DeclarativeBase, sessionmaker
from sqlalchemy.sql.expression import FunctionElement


class Base(DeclarativeBase):
    pass


def utc_now() -> datetime:
    """Naive UTC timestamp, the format every DateTime column stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class utcnow(FunctionElement):
    """
    The store's own UTC clock as a SQL expression.

    Compiled per dialect so the value compares correctly against naive UTC
    DateTime columns written by SQLAlchemy.
    """
    type = DateTime()
    inherit_cache = True


@compiles(utcnow)
def _default_utcnow(element, compiler, **kw):
    return "CURRENT_TIMESTAMP"


@compiles(utcnow, "sqlite")
def _sqlite_utcnow(element, compiler, **kw):
    # Same layout SQLAlchemy uses for SQLite DATETIME storage
    return "STRFTIME('%Y-%m-%d %H:%M:%f000', 'now')"


@compiles(utcnow, "postgresql")
def _pg_utcnow(element, compiler, **kw):
    return "TIMEZONE('utc', CURRENT_TIMESTAMP)"


# Backends whose quota insert is serialized per owner (see MappingStore)
SUPPORTED_BACKENDS = frozenset({"sqlite", "postgresql"})


def create_db_engine(database_url: str) -> Engine:
    """
    Create the SQLAlchemy engine for the given URL.

    SQLite connections get foreign keys switched on so click events
    cascade with their mapping.

    Raises:
        ValueError: The URL names a backend other than SQLite or PostgreSQL
    """
    backend = make_url(database_url).get_backend_name()
    if backend not in SUPPORTED_BACKENDS:
        raise ValueError(
            f"Unsupported database backend {backend!r}; use one of {sorted(SUPPORTED_BACKENDS)}"
        )

    connect_args = {}
    if backend == "sqlite":
        connect_args = {"check_same_thread": False, "timeout": 15}

    engine = create_engine(database_url, connect_args=connect_args)

    if engine.dialect.name == "sqlite":
        @event.listens_for(engine, "connect")
        def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return engine


def create_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)
