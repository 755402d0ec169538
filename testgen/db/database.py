"""Database connection and session management."""

from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from testgen.config import settings

# Resolve to absolute path to ensure consistency across working directories
_db_path = settings.database_path.resolve()
DATABASE_URL = f"sqlite:///{_db_path}"

engine = create_engine(
    DATABASE_URL,
    connect_args={"check_same_thread": False},  # sessions cross the request threadpool
    echo=False,
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db() -> Generator[Session, None, None]:
    """
    Dependency function to get database session.

    Yields:
        Database session

    Note: Services are responsible for calling commit() explicitly.
    This function only ensures proper session cleanup and rollback on exceptions.
    """
    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def init_db() -> None:
    """
    Initialize database by creating all tables.
    Should be called on application startup.
    """
    _db_path.parent.mkdir(parents=True, exist_ok=True)

    # Import models so they register on Base.metadata
    from testgen.db import models  # noqa: F401

    Base.metadata.create_all(bind=engine)


def drop_db() -> None:
    """
    Drop all database tables.
    Use with caution - only for development/testing.
    """
    Base.metadata.drop_all(bind=engine)


__all__ = ["get_db", "init_db", "drop_db", "Base", "SessionLocal", "engine", "_db_path"]
