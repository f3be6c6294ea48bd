"""Database module: engine, request-scoped sessions and table creation."""
from typing import Generator
import logging

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.exc import SQLAlchemyError

# import ORM classes and Base from models.py
from .models import (
    Base,
    UserORM,
    RoleORM,
    PostORM,
    TagORM,
)

from config import settings

logger = logging.getLogger(__name__)


def _connect_args(database_url: str) -> dict:
    if database_url.startswith("sqlite"):
        #sqlite connections are shared with the request threads
        return {"check_same_thread": False}
    return {"connect_timeout": 30}


engine = create_engine(
    settings.database_url,
    echo=settings.debug_mode,
    future=True,
    pool_pre_ping=True,  #check connections before use
    connect_args=_connect_args(settings.database_url),
)
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)


def get_db() -> Generator[Session, None, None]:
    """FastAPI dependency providing one session per request.

    Yields:
        Session: SQLAlchemy session

    Note:
        - Rolls back on SQLAlchemy errors and re-raises them
        - Always closes the session
        - Application exceptions pass through untouched
    """
    db = SessionLocal()
    try:
        yield db
    except SQLAlchemyError as e:
        logger.error(f"Database error in session: {e}")
        db.rollback()
        raise
    finally:
        db.close()


def create_tables() -> None:
    """Create the ORM tables.

    Raises:
        SQLAlchemyError: If table creation fails
    """
    try:
        Base.metadata.create_all(bind=engine)
        logger.info("Database tables created/verified")
    except SQLAlchemyError as e:
        logger.error(f"Error creating tables: {e}", exc_info=True)
        raise


def get_database_url() -> str:
    """Database URL with credentials hidden."""
    return engine.url.render_as_string(hide_password=True)


__all__ = [
    "Base",
    "engine",
    "SessionLocal",
    "get_db",
    "create_tables",
    "get_database_url",
    "UserORM",
    "RoleORM",
    "PostORM",
    "TagORM",
]
