"""Database schema initialization."""

from pathlib import Path
from typing import Union

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from schemamap.database.models import Base

MEMORY_DB = ":memory:"


def init_database(db_path: Union[str, Path], echo: bool = False):
    """
    Initialize database and create tables.

    Args:
        db_path: Path to SQLite database file, or ":memory:" for a private
            in-memory database shared by every session of the returned engine
        echo: Whether to echo SQL queries (for debugging)

    Returns:
        SQLAlchemy engine
    """
    if str(db_path) == MEMORY_DB:
        engine = create_engine(
            "sqlite://",
            echo=echo,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        db_path = Path(db_path)
        # Ensure parent directory exists
        db_path.parent.mkdir(parents=True, exist_ok=True)
        engine = create_engine(
            f"sqlite:///{db_path}",
            echo=echo,
            connect_args={"check_same_thread": False},
        )

    # Create all tables
    Base.metadata.create_all(engine)

    return engine


def get_session_factory(engine):
    """
    Get session factory for database operations.

    Args:
        engine: SQLAlchemy engine

    Returns:
        Session factory
    """
    return sessionmaker(bind=engine, expire_on_commit=False)
