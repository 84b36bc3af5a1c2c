"""
Database package
Exports main database interfaces for use throughout the application
"""
from .base import Base, engine, SessionLocal, make_engine
from .models import RunCheckpoint, RunRecord
from .init_db import init_db

__all__ = [
    # Database core
    "Base",
    "engine",
    "SessionLocal",
    "make_engine",
    "init_db",
    # Models
    "RunCheckpoint",
    "RunRecord",
]
