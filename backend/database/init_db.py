"""
Database initialization
Creates the table structures if they do not exist yet

Usage:
    python -m database.init_db
"""
import logging
from typing import Optional

from sqlalchemy.engine import Engine

from database.base import engine as default_engine, Base
from database import models  # noqa: F401  (registers the tables on Base.metadata)

logger = logging.getLogger(__name__)


def init_db(bind: Optional[Engine] = None):
    """Create all tables on the given engine (defaults to the configured one)"""
    target = bind or default_engine
    Base.metadata.create_all(bind=target)
    logger.info(f"[Database] Tables ready: {', '.join(sorted(Base.metadata.tables))}")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    init_db()
