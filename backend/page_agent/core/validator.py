"""
Validator - Raw candidate → accepted result

Responsibilities:
- Extract the structured payload from the task's raw result
- Check shape: an object with a `type`, or an array (a body fragment)
- Check that every declared data dependency is referenced
- Accept the task and advance the cursor, or mark it json_error for the Fixer

Checks are shallow. Full amis schema validation is out of scope.
"""
import json
import logging
from typing import Any, List, Optional

from page_agent.schemas import RunState, TaskStatus
from utils.json_extract import ExtractionError, extract

logger = logging.getLogger(__name__)


def missing_dependencies(payload: Any, dependencies: List[str]) -> List[str]:
    """Dependencies that do not occur anywhere in the serialized payload"""
    serialized = json.dumps(payload, ensure_ascii=False)
    return [dep for dep in dependencies if dep not in serialized]


def check_payload(payload: Any, dependencies: List[str]) -> Optional[str]:
    """
    Validate an extracted payload

    Returns:
        Error message, or None if the payload is acceptable
    """
    if isinstance(payload, dict):
        if "type" not in payload:
            return "Configuration object is missing the required `type` field"
    elif not isinstance(payload, list):
        return f"Expected a JSON object or array, got {type(payload).__name__}"

    missing = missing_dependencies(payload, dependencies)
    if missing:
        hints = ", ".join("${" + dep + "}" for dep in missing)
        return (
            f"Missing data dependencies: {', '.join(missing)}. "
            f"Reference them with binding expressions such as {hints}"
        )
    return None


class Validator:
    """Validator - Accepts or rejects the active task's raw result"""

    def validate(self, state: RunState) -> RunState:
        index = state.active_index
        if index is None:
            return state

        task = state.tasks[index]
        if task.status == TaskStatus.FAILED:
            # Nothing was generated
            return state

        try:
            payload = extract(task.raw_result or "")
        except ExtractionError as e:
            error = f"JSON extraction failed: {e}"
        else:
            error = check_payload(payload, task.data_dependencies)

        if error:
            logger.warning(f"[Validator] {task.id} rejected: {error}")
            task.mark_json_error(error)
            state.record("error", error, task_id=task.id)
            return state

        task.complete(payload)
        state.context_documents = []
        state.record("task_complete", f"Task {task.id} complete", task_id=task.id, data=payload)
        logger.info(f"[Validator] {task.id} accepted")

        if state.retry_index is not None and state.retry_index == index:
            state.retry_index = None
        elif index == state.cursor:
            state.cursor += 1
        return state


__all__ = ["Validator", "check_payload", "missing_dependencies"]
