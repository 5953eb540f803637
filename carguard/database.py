"""
Database initialization and session management
Provides connection pooling and session lifecycle management
"""
from sqlmodel import SQLModel, create_engine, Session
from sqlalchemy.engine import Engine
from contextlib import contextmanager
from typing import Generator, Optional
import logging

from carguard.config import get_config
from carguard import db_models  # noqa: F401  registers tables on SQLModel.metadata

logger = logging.getLogger(__name__)

# Global engine instance
_engine: Optional[Engine] = None


def create_db_engine(database_url: str, echo: bool = False) -> Engine:
    """Create an engine for the given URL"""
    connect_args = {}
    if database_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False  # Needed for SQLite

    return create_engine(database_url, echo=echo, connect_args=connect_args)


def get_engine() -> Engine:
    """Get or create the global database engine"""
    global _engine
    if _engine is None:
        config = get_config()
        _engine = create_db_engine(config.database_url, echo=config.sql_echo)
        logger.info(f"Database engine created: {_engine.url.render_as_string()}")

    return _engine


def init_database(engine: Optional[Engine] = None) -> None:
    """
    Initialize database tables
    Creates all tables if they don't exist
    """
    engine = engine or get_engine()

    SQLModel.metadata.create_all(engine)

    logger.info("Database tables initialized")


@contextmanager
def get_session(engine: Optional[Engine] = None) -> Generator[Session, None, None]:
    """
    Get a database session with automatic commit/rollback

    Usage:
        with get_session() as session:
            user = session.get(User, user_id)
            ...

    Yields:
        Session: SQLModel session
    """
    session = Session(engine or get_engine())

    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def close_database() -> None:
    """Close database connections"""
    global _engine
    if _engine:
        _engine.dispose()
        _engine = None
        logger.info("Database connections closed")
