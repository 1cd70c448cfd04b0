"""
Database connection and session management.
Uses SQLAlchemy; SQLite for local development and tests, any SQLAlchemy URL
(Postgres, MySQL) in deployment.

The engine and session factory are built by create_app() and kept on
app.state, so request handlers get their session through get_db().
"""

from typing import Iterator

from fastapi import Request
from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from logging_config import get_logger

logger = get_logger("database")

# Base class for all our database models
Base = declarative_base()


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_db_engine(database_url: str) -> Engine:
    """Create an engine for the given URL."""
    if not database_url.startswith("sqlite"):
        return create_engine(database_url, pool_pre_ping=True)

    kwargs = {"connect_args": {"check_same_thread": False, "timeout": 30}}
    if database_url in ("sqlite://", "sqlite:///:memory:"):
        # A single shared connection, otherwise every session sees an empty database
        kwargs["poolclass"] = StaticPool
    engine = create_engine(database_url, **kwargs)
    event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    return engine


def create_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(engine: Engine) -> None:
    """Create all tables that don't exist yet."""
    import models  # noqa: F401  registers the mapped classes on Base

    Base.metadata.create_all(bind=engine)
    logger.info("Database schema ready (%s tables)", len(Base.metadata.tables))


def check_connection(engine: Engine) -> bool:
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.warning("Database connection check failed: %s", e)
        return False


def get_db(request: Request) -> Iterator[Session]:
    """
    Dependency function that provides a database session.
    The session is closed (and any open transaction rolled back) afterwards.
    """
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()
