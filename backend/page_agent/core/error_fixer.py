"""
Error Fixer - Repairs a rejected candidate

Responsibilities:
- Send the validator's error and the offending raw text back to the generator
- Replace the task's raw result with the corrected candidate
- Count the attempt

The task stays json_error; the Router sends it back through the Validator.
The repair cap is the Router's business, not the Fixer's.
"""
import logging

from page_agent.generation import GenerationService, GenerationTransportError
from page_agent.schemas import RunState, TaskStatus, generation_text
from page_agent.core.prompts import FIXER_PROMPT, data_binding_section

logger = logging.getLogger(__name__)


class ErrorFixer:
    """Error Fixer - One repair call per attempt"""

    def __init__(self, generation_service: GenerationService):
        self.generation_service = generation_service

    def fix(self, state: RunState) -> RunState:
        task = state.active_task
        if task is None or task.status != TaskStatus.JSON_ERROR:
            return state

        logger.info(f"[Fixer] Repairing {task.id} (attempt {task.retry_count + 1}): {task.error_message}")
        messages = FIXER_PROMPT.format_messages(
            description=task.description,
            error_message=task.error_message or "Invalid JSON",
            raw_result=task.raw_result or "",
            data_section=data_binding_section(state.structured_data, task.data_dependencies),
        )

        task.retry_count += 1
        try:
            generation = self.generation_service.invoke(messages)
        except GenerationTransportError as e:
            logger.error(f"[Fixer] Repair call failed for {task.id}: {e}")
            state.record("error", f"Repair attempt {task.retry_count} failed: {e}", task_id=task.id)
            return state

        task.raw_result = generation_text(generation)
        state.record(
            "generating",
            f"Repairing JSON (attempt {task.retry_count})",
            task_id=task.id,
        )
        return state


__all__ = ["ErrorFixer"]
