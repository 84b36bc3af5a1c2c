"""
Page Generation Engine - Drives a run from requirement to artifact

Responsibilities:
- Ask the Router for the next step and dispatch it to the right components
- Checkpoint the run state after every component call
- Mark repair-exhausted tasks as failed before re-planning or composing
- Enforce the step ceiling and surface it as an error outcome

Usage:
    engine = PageGenerationEngine(planner, associator, preparer, executor,
                                  validator, fixer, composer)
    outcome = engine.run(RunState(requirement="A login form"))
"""
import logging
from typing import Callable, List, Optional

from config import MAX_RUN_STEPS
from page_agent.schemas import RunOutcome, RunState, Task, TaskStatus
from page_agent.core.planner import Planner
from page_agent.core.docs_associator import DocsAssociator
from page_agent.core.context_preparer import ContextPreparer
from page_agent.core.executor import Executor
from page_agent.core.validator import Validator
from page_agent.core.error_fixer import ErrorFixer
from page_agent.core.composer import Composer
from page_agent.core.router import Route, RouteDecision, RoutingPolicy, repairs_exhausted, route

logger = logging.getLogger(__name__)

Checkpointer = Callable[[RunState], None]


class StepCeilingExceeded(Exception):
    """Raised when a run needs more router evaluations than allowed"""

    def __init__(self, steps: int):
        super().__init__(f"Run exceeded the step ceiling of {steps} steps")
        self.steps = steps


class PageGenerationEngine:
    """
    Sequential state machine over the pipeline components

    One run executes strictly step by step. Independent runs can use separate
    engines concurrently; they only share the generation rate limiter.
    """

    def __init__(
        self,
        planner: Planner,
        docs_associator: DocsAssociator,
        context_preparer: ContextPreparer,
        executor: Executor,
        validator: Validator,
        fixer: ErrorFixer,
        composer: Composer,
        policy: Optional[RoutingPolicy] = None,
        max_steps: int = MAX_RUN_STEPS,
        checkpointer: Optional[Checkpointer] = None
    ):
        self.planner = planner
        self.docs_associator = docs_associator
        self.context_preparer = context_preparer
        self.executor = executor
        self.validator = validator
        self.fixer = fixer
        self.composer = composer
        self.policy = policy or RoutingPolicy()
        self.max_steps = max_steps
        self.checkpointer = checkpointer

    def run(self, state: RunState) -> RunOutcome:
        """
        Run (or resume) until an artifact exists or the step ceiling is hit

        Returns:
            RunOutcome with status "completed", or "error" on the step ceiling
        """
        logger.info(f"[Engine] Run {state.run_id} starting at step {state.step_count}")
        try:
            while True:
                decision = route(state, self.policy)
                if decision.route == Route.DONE:
                    break

                if state.step_count >= self.max_steps:
                    raise StepCeilingExceeded(self.max_steps)
                state.step_count += 1

                logger.info(f"[Engine] Step {state.step_count}: {decision.route.value} ({decision.reason})")
                self.step(state, decision)
        except StepCeilingExceeded as e:
            logger.error(f"[Engine] Run {state.run_id}: {e}")
            state.add_error(str(e))
            state.record("error", str(e), data={"steps": state.step_count})
            self._checkpoint(state)
            return self._outcome(state, "error")

        logger.info(f"[Engine] Run {state.run_id} complete after {state.step_count} steps")
        return self._outcome(state, "completed")

    def step(self, state: RunState, decision: RouteDecision) -> RunState:
        """Dispatch one routing decision"""
        if decision.route == Route.PLANNER:
            failed = self._collect_failures(state)
            self._call(self.planner.plan, state, failed or None)

        elif decision.route == Route.DOCS_ASSOCIATOR:
            self._call(self.docs_associator.associate, state)

        elif decision.route == Route.CONTEXT:
            self._call(self.context_preparer.prepare, state)
            self._generate_and_validate(state)

        elif decision.route == Route.EXECUTOR:
            index = state.tasks_to_retry.pop(0)
            if 0 <= index < len(state.tasks):
                task = state.tasks[index]
                task.retry_count = 0
                state.retry_index = index
                state.record("task_start", f"Retrying task {task.id}", task_id=task.id)
                self._call(self.context_preparer.prepare, state)
                self._generate_and_validate(state)
            else:
                logger.warning(f"[Engine] Ignoring retry of unknown task index {index}")
                self._checkpoint(state)

        elif decision.route == Route.FIXER:
            self._call(self.fixer.fix, state)
            self._call(self.validator.validate, state)

        elif decision.route == Route.COMPOSER:
            self._collect_failures(state)
            state.retry_index = None
            self._call(self.composer.compose, state)

        return state

    def _generate_and_validate(self, state: RunState):
        self._call(self.executor.execute, state)
        task = state.active_task
        if task is not None and task.status != TaskStatus.FAILED:
            self._call(self.validator.validate, state)

    def _collect_failures(self, state: RunState) -> List[Task]:
        """Failed tasks, after converting repair-exhausted ones to failed"""
        failed = []
        for task in state.tasks:
            if repairs_exhausted(task, self.policy):
                task.fail(f"Repair attempts exhausted ({task.retry_count}): {task.error_message}")
                state.record("error", task.error_message, task_id=task.id)
            if task.status == TaskStatus.FAILED:
                failed.append(task)
        return failed

    def _call(self, component: Callable, state: RunState, *args):
        component(state, *args)
        self._checkpoint(state)

    def _checkpoint(self, state: RunState):
        if self.checkpointer is not None:
            self.checkpointer(state)

    @staticmethod
    def _outcome(state: RunState, status: str) -> RunOutcome:
        return RunOutcome(
            run_id=state.run_id,
            status=status,
            artifact=state.artifact,
            error=state.error,
            tasks=state.tasks,
            execution_log=state.execution_log,
            steps=state.step_count,
        )


__all__ = ["PageGenerationEngine", "StepCeilingExceeded", "Checkpointer"]
