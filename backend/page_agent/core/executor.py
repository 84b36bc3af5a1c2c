"""
Executor - Generates the raw candidate for the active task

Responsibilities:
- Build the generation prompt from the task, the requirement, a trimmed
  view of completed results, the context digest and data-binding rules
- Invoke the generation service exactly once
- Store the raw text on the task without parsing it
- Convert transport failures into a failed task

Parsing belongs to the Validator, so re-running the Executor is harmless.
"""
import json
import logging
from typing import Any, List, Optional

from page_agent.generation import GenerationService, GenerationTransportError
from page_agent.schemas import ContextDocument, RunState, TaskStatus, generation_text
from page_agent.core.prompts import EXECUTOR_PROMPT, data_binding_section

logger = logging.getLogger(__name__)


IDENTIFYING_FIELDS = ("type", "name", "id", "title", "label", "action")
MAX_PROJECTION_DEPTH = 6
MAX_CONTEXT_DOCUMENTS = 3


def project_result(value: Any, depth: int = 0) -> Optional[Any]:
    """
    Size-reduced view of a generated fragment

    Keeps identifying scalar fields and recurses into nested containers, so
    later prompts know what exists without carrying every property.
    """
    if depth > MAX_PROJECTION_DEPTH:
        return None

    if isinstance(value, list):
        items = [project_result(item, depth + 1) for item in value]
        return [item for item in items if item not in (None, {}, [])]

    if not isinstance(value, dict):
        return None

    projected = {}
    for key, field_value in value.items():
        if key in IDENTIFYING_FIELDS and not isinstance(field_value, (dict, list)):
            projected[key] = field_value
        elif isinstance(field_value, (dict, list)):
            nested = project_result(field_value, depth + 1)
            if nested not in (None, {}, []):
                projected[key] = nested
    return projected


def render_context(documents: List[ContextDocument]) -> str:
    """Top documents with one example each"""
    if not documents:
        return ""
    blocks = []
    for i, doc in enumerate(documents[:MAX_CONTEXT_DOCUMENTS], 1):
        example = doc.code_examples[0] if doc.code_examples else ""
        blocks.append(f"[Document {i}] {doc.path}\nSummary: {doc.summary}\nExample:\n{example}")
    return (
        "\nReference documentation for this task:\n"
        + "\n\n".join(blocks)
        + "\nFollow the documented conventions.\n"
    )


class Executor:
    """
    Executor - One generation call per task attempt

    Works on RunState.active_task: the cursor task, or the task being
    regenerated through the retry path.
    """

    def __init__(self, generation_service: GenerationService):
        self.generation_service = generation_service

    def execute(self, state: RunState) -> RunState:
        index = state.active_index
        if index is None:
            logger.info("[Executor] No active task")
            return state

        task = state.tasks[index]
        logger.info(f"[Executor] Task {index + 1}/{len(state.tasks)}: {task.description}")
        task.start()

        existing = [
            project_result(t.result) for i, t in enumerate(state.tasks)
            if i != index and t.status == TaskStatus.COMPLETED and t.result is not None
        ]
        existing_section = ""
        if existing:
            existing_section = (
                "\nComponents generated so far:\n"
                + json.dumps(existing, ensure_ascii=False, indent=2)
                + "\nMake sure the new component fits together with them.\n"
            )

        messages = EXECUTOR_PROMPT.format_messages(
            description=task.description,
            task_type=task.type,
            requirement=state.requirement,
            existing_section=existing_section,
            context_section=render_context(state.context_documents),
            data_section=data_binding_section(state.structured_data, task.data_dependencies),
        )

        try:
            generation = self.generation_service.invoke(messages)
        except GenerationTransportError as e:
            logger.error(f"[Executor] Generation failed for {task.id}: {e}")
            task.fail(f"Generation failed: {e}")
            state.record("error", task.error_message, task_id=task.id)
            return state

        if generation.kind == "tool_call":
            logger.info(f"[Executor] {task.id} answered with tool call {generation.name}")
        task.raw_result = generation_text(generation)
        state.record("generating", f"Generated candidate for {task.id}", task_id=task.id)
        return state


__all__ = ["Executor", "project_result", "render_context", "IDENTIFYING_FIELDS"]
