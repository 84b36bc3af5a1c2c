"""
Database connection and session management using SQLAlchemy
Base configuration for database engine and session factory
"""
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

from config import DATABASE_URL


def make_engine(url: str = DATABASE_URL) -> Engine:
    """
    Create an engine for any SQLAlchemy URL

    SQLite connections are shared across FastAPI worker threads, and SQLite
    has no server-side pool to size.
    """
    if url.startswith("sqlite"):
        return create_engine(url, echo=False, connect_args={"check_same_thread": False})
    return create_engine(
        url,
        echo=False,  # Set to True to see all SQL queries (for debugging)
        pool_pre_ping=True,  # Connection pool automatically detects and reconnects failed connections
        pool_size=5,
        max_overflow=10,
    )


engine = make_engine()

# Create session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Base class for all database models
Base = declarative_base()
