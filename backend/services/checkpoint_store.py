"""
Checkpoint Store - Durable run state

Handles:
- Saving the RunState after every pipeline step (one row per run, upserted)
- Loading a checkpoint to resume an interrupted run
- Discarding the checkpoint once the run has an outcome
- Keeping finished run outcomes (RunRecordStore)
"""
import logging
from typing import Callable, Optional

from sqlalchemy.orm import Session as DBSession

from database import SessionLocal, RunCheckpoint, RunRecord
from page_agent.schemas import RunOutcome, RunState

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], DBSession]


class CheckpointStore:
    """RunState checkpoints keyed by run id"""

    def __init__(self, session_factory: SessionFactory = SessionLocal):
        self.session_factory = session_factory

    def save(self, state: RunState):
        db = self.session_factory()
        try:
            row = db.get(RunCheckpoint, state.run_id)
            if row is None:
                row = RunCheckpoint(run_id=state.run_id)
                db.add(row)
            row.step = state.step_count
            row.state = state.model_dump_json()
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def load(self, run_id: str) -> Optional[RunState]:
        db = self.session_factory()
        try:
            row = db.get(RunCheckpoint, run_id)
            if row is None:
                return None
            return RunState.model_validate_json(row.state)
        finally:
            db.close()

    def discard(self, run_id: str):
        db = self.session_factory()
        try:
            deleted = db.query(RunCheckpoint).filter(RunCheckpoint.run_id == run_id).delete()
            db.commit()
            if deleted:
                logger.info(f"[CheckpointStore] Discarded checkpoint for run {run_id}")
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()


class RunRecordStore:
    """Finished run outcomes"""

    def __init__(self, session_factory: SessionFactory = SessionLocal):
        self.session_factory = session_factory

    def save_outcome(self, state: RunState, outcome: RunOutcome):
        db = self.session_factory()
        try:
            row = db.get(RunRecord, outcome.run_id)
            if row is None:
                row = RunRecord(run_id=outcome.run_id, requirement=state.requirement)
                db.add(row)
            row.status = outcome.status
            row.steps = outcome.steps
            row.error = outcome.error
            row.outcome = outcome.model_dump(mode="json")
            row.state = state.model_dump_json()
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def get(self, run_id: str) -> Optional[RunOutcome]:
        db = self.session_factory()
        try:
            row = db.get(RunRecord, run_id)
            return RunOutcome.model_validate(row.outcome) if row is not None else None
        finally:
            db.close()

    def get_state(self, run_id: str) -> Optional[RunState]:
        """Final RunState of a finished run"""
        db = self.session_factory()
        try:
            row = db.get(RunRecord, run_id)
            if row is None or not row.state:
                return None
            return RunState.model_validate_json(row.state)
        finally:
            db.close()


__all__ = ["CheckpointStore", "RunRecordStore", "SessionFactory"]
