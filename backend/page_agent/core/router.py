"""
Router - Picks the next pipeline step

A pure function of RunState and RoutingPolicy. It never mutates state and
never calls anything; the engine acts on its decision.

Decision table, first match wins:
0. No plan yet                            → PLANNER
1. Replan requested                       → PLANNER
2. Active task failed                     → PLANNER (COMPOSER once replans are used up)
3. Tasks queued for explicit retry        → EXECUTOR
4. Cursor past the last task              → COMPOSER
5. Active task json_error                 → FIXER (treated as failed once repairs are used up)
6. Documents not yet associated           → DOCS_ASSOCIATOR
7. Otherwise                              → CONTEXT (context, executor, validator)
"""
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from config import MAX_REPAIR_ATTEMPTS, MAX_REPLANS
from page_agent.schemas import RunState, Task, TaskStatus


class Route(str, Enum):
    PLANNER = "planner"
    DOCS_ASSOCIATOR = "docs_associator"
    CONTEXT = "context"
    EXECUTOR = "executor"
    FIXER = "fixer"
    COMPOSER = "composer"
    DONE = "done"


@dataclass(frozen=True)
class RoutingPolicy:
    max_repair_attempts: int = MAX_REPAIR_ATTEMPTS
    max_replans: int = MAX_REPLANS


@dataclass(frozen=True)
class RouteDecision:
    route: Route
    reason: str


def repairs_exhausted(task: Task, policy: RoutingPolicy) -> bool:
    return task.status == TaskStatus.JSON_ERROR and task.retry_count >= policy.max_repair_attempts


def _after_failure(state: RunState, policy: RoutingPolicy, reason: str) -> RouteDecision:
    if state.replan_count < policy.max_replans:
        return RouteDecision(Route.PLANNER, f"{reason}, replanning")
    return RouteDecision(Route.COMPOSER, f"{reason}, replans exhausted")


def route(state: RunState, policy: Optional[RoutingPolicy] = None) -> RouteDecision:
    """Select the next step for a run"""
    policy = policy or RoutingPolicy()

    if state.is_finished:
        return RouteDecision(Route.DONE, "artifact produced")

    if not state.tasks:
        return RouteDecision(Route.PLANNER, "no plan yet")

    if state.needs_replan:
        return RouteDecision(Route.PLANNER, "replan requested")

    task = state.active_task
    if task is not None and task.status == TaskStatus.FAILED:
        return _after_failure(state, policy, f"task {task.id} failed")

    if state.tasks_to_retry and state.retry_index is None:
        return RouteDecision(Route.EXECUTOR, f"retrying task {state.tasks_to_retry[0]}")

    if task is None:
        return RouteDecision(Route.COMPOSER, "all tasks complete")

    if task.status == TaskStatus.JSON_ERROR:
        if repairs_exhausted(task, policy):
            return _after_failure(state, policy, f"task {task.id} repair attempts exhausted")
        return RouteDecision(Route.FIXER, f"repairing task {task.id}")

    if not state.docs_associated:
        return RouteDecision(Route.DOCS_ASSOCIATOR, "documents not associated")

    return RouteDecision(Route.CONTEXT, f"executing task {task.id}")


__all__ = ["Route", "RoutingPolicy", "RouteDecision", "route", "repairs_exhausted"]
