"""
Run Service - Executes page generation runs

Handles:
- Submitting a requirement (optionally splitting inline data out of it)
- Resuming an interrupted run from its last checkpoint
- Regenerating selected tasks of a finished run and recomposing
- Fetching finished runs

Run lifecycle:
    submit() → RunState created → engine steps (checkpoint after each)
             → outcome recorded → checkpoint discarded
"""
import logging
from typing import Any, Callable, Dict, List, Optional

from pydantic import ValidationError

from page_agent.core import InputProcessor, PageGenerationEngine
from page_agent.core.engine import Checkpointer
from page_agent.schemas import RunOutcome, RunState, StructuredData
from services.checkpoint_store import CheckpointStore, RunRecordStore

logger = logging.getLogger(__name__)

EngineFactory = Callable[[Checkpointer], PageGenerationEngine]


class RunNotFoundError(Exception):
    """Raised when a run id has no checkpoint or record"""
    pass


class InvalidRetryError(ValueError):
    """Raised when retry task indices do not fit the run"""
    pass


class InvalidStructuredDataError(ValueError):
    """Raised when a wrapped structured data payload is malformed"""
    pass


class RunService:
    """
    Entry point for callers (HTTP routes, scripts, tests)

    Each call builds its engine through `engine_factory`, handing it the
    checkpoint callback, so runs never share engine state.
    """

    def __init__(
        self,
        engine_factory: EngineFactory,
        checkpoints: CheckpointStore,
        records: RunRecordStore,
        input_processor: Optional[InputProcessor] = None
    ):
        self.engine_factory = engine_factory
        self.checkpoints = checkpoints
        self.records = records
        self.input_processor = input_processor

    def submit(
        self,
        requirement: str,
        structured_data: Optional[Dict[str, Any]] = None,
        split_input: bool = False
    ) -> RunOutcome:
        """Run a new requirement to completion"""
        data = self._structured_data(structured_data)
        if data is None and split_input and self.input_processor is not None:
            requirement, data = self.input_processor.process(requirement)

        state = RunState(requirement=requirement, structured_data=data)
        logger.info(f"[RunService] Submitted run {state.run_id}")
        self.checkpoints.save(state)
        return self._execute(state)

    def resume(self, run_id: str) -> RunOutcome:
        """Continue an interrupted run from its last checkpoint"""
        state = self.checkpoints.load(run_id)
        if state is None:
            raise RunNotFoundError(f"No checkpoint for run {run_id}")
        logger.info(f"[RunService] Resuming run {run_id} at step {state.step_count}")
        return self._execute(state)

    def retry_tasks(self, run_id: str, task_indices: List[int]) -> RunOutcome:
        """Regenerate the given tasks of a finished run, then recompose"""
        state = self.records.get_state(run_id)
        if state is None:
            raise RunNotFoundError(f"Run {run_id} not found")
        if not task_indices:
            raise InvalidRetryError("No task indices given")
        invalid = [i for i in task_indices if not 0 <= i < len(state.tasks)]
        if invalid:
            raise InvalidRetryError(f"Task indices out of range: {invalid}")

        state.tasks_to_retry = list(dict.fromkeys(task_indices))
        state.retry_index = None
        state.artifact = None
        state.error = None
        state.step_count = 0
        state.record("task_start", f"Retrying {len(state.tasks_to_retry)} task(s)", data=state.tasks_to_retry)
        logger.info(f"[RunService] Retrying tasks {state.tasks_to_retry} of run {run_id}")
        self.checkpoints.save(state)
        return self._execute(state)

    def get(self, run_id: str) -> RunOutcome:
        outcome = self.records.get(run_id)
        if outcome is None:
            raise RunNotFoundError(f"Run {run_id} not found")
        return outcome

    @staticmethod
    def _structured_data(value: Any) -> Optional[StructuredData]:
        """Accept {content, description?, schema?} or a bare data payload"""
        if value is None:
            return None
        if isinstance(value, StructuredData):
            return value
        if isinstance(value, dict) and "content" in value:
            try:
                return StructuredData.model_validate(value)
            except ValidationError as e:
                raise InvalidStructuredDataError(f"Invalid structuredData: {e}") from e
        return StructuredData(content=value)

    def _execute(self, state: RunState) -> RunOutcome:
        engine = self.engine_factory(self.checkpoints.save)
        outcome = engine.run(state)
        self.records.save_outcome(state, outcome)
        self.checkpoints.discard(state.run_id)
        logger.info(f"[RunService] Run {state.run_id} finished: {outcome.status}")
        return outcome


__all__ = ["RunService", "RunNotFoundError", "InvalidRetryError", "InvalidStructuredDataError", "EngineFactory"]
