# src/tradecraft/infrastructure/db/base.py
"""
Database engine setup and session management.
Engines are built on demand from a URL so tests and alembic can point the
same models at their own databases.
"""

import json
import logging
from contextlib import contextmanager
from decimal import Decimal
from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import StaticPool

log = logging.getLogger(__name__)


def _custom_json_serializer(obj):
    """Converts Decimal values (Stripe amounts can arrive as such) to strings."""
    if isinstance(obj, Decimal):
        return str(obj)
    raise TypeError(f"Object of type {obj.__class__.__name__} is not JSON serializable")


class Base(DeclarativeBase):
    """The base class for all SQLAlchemy ORM models in this application."""
    pass


def build_engine(database_url: str) -> Engine:
    if database_url.startswith("postgres://"):
        database_url = database_url.replace("postgres://", "postgresql+psycopg://", 1)
    kwargs = {"json_serializer": lambda obj: json.dumps(obj, default=_custom_json_serializer)}
    if database_url.startswith("sqlite"):
        # Web workers touch the connection from several threads.
        kwargs["connect_args"] = {"check_same_thread": False}
        if ":memory:" in database_url or database_url.rstrip("/") == "sqlite:":
            kwargs["poolclass"] = StaticPool
    else:
        kwargs["pool_pre_ping"] = True
        kwargs["pool_recycle"] = 3600
    log.info(f"Initializing database engine for URL: ...{database_url[-20:]}")
    return create_engine(database_url, **kwargs)


def build_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def create_tables(engine: Engine) -> None:
    """Creates all tables defined in models.py."""
    from . import models  # noqa: F401  registers the mappers on Base.metadata
    log.info("Creating database tables if they do not exist...")
    Base.metadata.create_all(engine)


@contextmanager
def session_scope(session_factory: sessionmaker) -> Generator[Session, None, None]:
    """
    Provide a transactional scope around a series of operations.
    This handles session creation, commit, rollback, and closing.
    """
    session = session_factory()
    try:
        yield session
        session.commit()
    except Exception as e:
        log.error(f"Session {id(session)} rollback due to exception: {e}")
        session.rollback()
        raise
    finally:
        session.close()
