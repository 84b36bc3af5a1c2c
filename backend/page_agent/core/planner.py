"""
Planner - Requirement → Ordered Task List

Responsibilities:
- Ask the generation service to decompose the requirement into tasks
- Re-plan after a task fails, telling the generator what went wrong
- Guarantee the plan ends with an assembly task
- Never fail the run: parse failures fall back to one generic task,
  transport failures become a failed placeholder the Router can act on
"""
import logging
from typing import Any, Dict, List, Optional

from page_agent.generation import GenerationService, GenerationTransportError
from page_agent.schemas import RunState, Task, generation_text, summarize_tasks
from page_agent.core.prompts import PLANNER_PROMPT, data_binding_section
from utils.json_extract import ExtractionError, extract

logger = logging.getLogger(__name__)


ASSEMBLY_TASK_TYPE = "page-assembly"


class Planner:
    """
    Planner - Produces a fresh task list for a run

    The plan replaces any previous one; results of earlier tasks are dropped.
    """

    def __init__(self, generation_service: GenerationService):
        self.generation_service = generation_service

    def plan(self, state: RunState, failed_tasks: Optional[List[Task]] = None) -> RunState:
        """
        Plan (or re-plan) the run

        Args:
            state: Current run state, mutated in place
            failed_tasks: Tasks that failed in the previous plan, with their errors

        Returns:
            The same state with a fresh task list and a reset cursor
        """
        replanning = bool(state.tasks)
        logger.info(
            f"[Planner] {'Re-planning' if replanning else 'Planning'} requirement: {state.requirement[:80]}"
        )

        messages = PLANNER_PROMPT.format_messages(
            requirement=state.requirement,
            data_section=data_binding_section(state.structured_data),
            replan_section=self._replan_section(failed_tasks or []),
        )

        try:
            generation = self.generation_service.invoke(messages)
        except GenerationTransportError as e:
            logger.error(f"[Planner] Generation failed: {e}")
            placeholder = Task(
                id="task-1",
                description=f"Generate the page for: {state.requirement}",
                type=ASSEMBLY_TASK_TYPE,
                priority=1,
            )
            placeholder.fail(f"Planning failed: {e}")
            tasks = [placeholder]
        else:
            tasks = self._parse_tasks(generation_text(generation), state.requirement)

        self._reset(state, tasks, replanning)
        state.record(
            "task_start",
            f"Planning complete: {len(tasks)} task(s)",
            data={"tasks": summarize_tasks(tasks), "replan": replanning},
        )
        for i, task in enumerate(tasks, 1):
            logger.info(f"[Planner]   {i}. {task.description} ({task.type})")
        return state

    @staticmethod
    def _replan_section(failed_tasks: List[Task]) -> str:
        if not failed_tasks:
            return ""
        lines = ["", "The previous plan failed on these tasks. Plan around the problems:"]
        for task in failed_tasks:
            lines.append(f"- {task.id} ({task.type}): {task.description}. Error: {task.error_message or 'unknown'}")
        return "\n".join(lines) + "\n"

    def _parse_tasks(self, raw: str, requirement: str) -> List[Task]:
        try:
            payload = extract(raw)
        except ExtractionError as e:
            logger.warning(f"[Planner] Could not parse task list ({e}), falling back to a single task")
            return [self._fallback_task(requirement)]

        if isinstance(payload, dict):
            payload = payload.get("tasks")
        if not isinstance(payload, list):
            logger.warning("[Planner] Task list is not an array, falling back to a single task")
            return [self._fallback_task(requirement)]

        tasks: List[Task] = []
        seen_ids = set()
        for i, item in enumerate(payload, 1):
            task = self._to_task(item, i, seen_ids)
            if task is not None:
                seen_ids.add(task.id)
                tasks.append(task)

        if not tasks:
            logger.warning("[Planner] Task list is empty, falling back to a single task")
            return [self._fallback_task(requirement)]

        if not tasks[-1].is_assembly:
            tasks.append(Task(
                id=self._unique_id(len(tasks) + 1, seen_ids),
                description="Assemble all generated components into the final page",
                type=ASSEMBLY_TASK_TYPE,
                priority=3,
            ))
        return tasks

    def _to_task(self, item: Any, position: int, seen_ids: set) -> Optional[Task]:
        """Normalize one generated task entry; entries without a description are dropped"""
        if not isinstance(item, dict):
            return None
        description = str(item.get("description") or "").strip()
        if not description:
            return None

        task_id = str(item.get("id") or "").strip()
        if not task_id or task_id in seen_ids:
            task_id = self._unique_id(position, seen_ids)

        fields: Dict[str, Any] = {
            "id": task_id,
            "description": description,
            "type": str(item.get("type") or "general").strip() or "general",
            "priority": item.get("priority", 2),
            "dataDependencies": item.get("dataDependencies") or item.get("data_dependencies") or [],
        }
        # Status, results and retries always start fresh
        return Task.model_validate(fields)

    @staticmethod
    def _unique_id(position: int, seen_ids: set) -> str:
        candidate = f"task-{position}"
        while candidate in seen_ids:
            position += 1
            candidate = f"task-{position}"
        return candidate

    @staticmethod
    def _fallback_task(requirement: str) -> Task:
        return Task(
            id="task-1",
            description=f"Analyze the requirement and generate the complete page configuration: {requirement}",
            type=ASSEMBLY_TASK_TYPE,
            priority=1,
        )

    @staticmethod
    def _reset(state: RunState, tasks: List[Task], replanning: bool):
        state.tasks = tasks
        state.cursor = 0
        state.context_documents = []
        state.needs_replan = False
        state.docs_associated = False
        state.tasks_to_retry = []
        state.retry_index = None
        if replanning:
            state.replan_count += 1


__all__ = ["Planner", "ASSEMBLY_TASK_TYPE"]
