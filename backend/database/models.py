"""
Database models (SQLAlchemy ORM models)

- RunCheckpoint: Latest state of an unfinished run (one row per run, overwritten each step)
- RunRecord: Terminal outcome of a run
"""
from sqlalchemy import Column, Integer, String, DateTime, Text, JSON
from sqlalchemy.sql import func

from .base import Base


class RunCheckpoint(Base):
    """
    RunCheckpoint model - resumable run state

    Written after every pipeline step, deleted once the run has an outcome.
    """
    __tablename__ = "run_checkpoints"

    run_id = Column(String(64), primary_key=True)
    step = Column(Integer, nullable=False, default=0)
    state = Column(Text, nullable=False)  # RunState serialized as JSON
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<RunCheckpoint(run_id={self.run_id}, step={self.step})>"


class RunRecord(Base):
    """
    RunRecord model - finished run

    Keeps the artifact, the final task list and the execution log so callers
    can fetch a run after it finished.
    """
    __tablename__ = "run_records"

    run_id = Column(String(64), primary_key=True)
    requirement = Column(Text, nullable=False)

    # Status: completed, error
    status = Column(String(20), nullable=False)
    steps = Column(Integer, nullable=False, default=0)
    error = Column(Text, nullable=True)

    outcome = Column(JSON, nullable=False)  # RunOutcome as JSON
    state = Column(Text, nullable=True)  # Final RunState, needed to retry tasks later

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<RunRecord(run_id={self.run_id}, status='{self.status}')>"
