"""
Composer - Completed fragments → final page artifact

Responsibilities:
- Ask the generator to merge every completed result into one page
- Seed the artifact's data context with the run's structured data
- Fall back to a container of the results whenever composition fails

The Composer always leaves an artifact on the state.
"""
import json
import logging
from typing import Any, Dict, List

from page_agent.generation import GenerationService, GenerationTransportError
from page_agent.schemas import RunState, generation_text
from page_agent.core.prompts import COMPOSER_PROMPT, data_binding_section
from utils.json_extract import ExtractionError, extract

logger = logging.getLogger(__name__)


def fallback_artifact(results: List[Any]) -> Dict[str, Any]:
    return {"type": "container", "body": list(results)}


class Composer:
    """Composer - One composition call per run"""

    def __init__(self, generation_service: GenerationService):
        self.generation_service = generation_service

    def compose(self, state: RunState) -> RunState:
        results = state.completed_results()
        logger.info(f"[Composer] Composing {len(results)} component(s)")

        if not results:
            logger.warning("[Composer] Nothing to compose")
            state.add_error("No task produced a result")
            artifact = fallback_artifact([])
            state.record("error", "No completed results, returning an empty container", data=artifact)
            return self._finish(state, artifact)

        messages = COMPOSER_PROMPT.format_messages(
            requirement=state.requirement,
            components=json.dumps(results, ensure_ascii=False, indent=2),
            data_section=data_binding_section(state.structured_data),
        )

        try:
            payload = extract(generation_text(self.generation_service.invoke(messages)))
            if not isinstance(payload, dict):
                raise ExtractionError(f"Composed artifact is a {type(payload).__name__}, not an object", str(payload))
        except (GenerationTransportError, ExtractionError) as e:
            logger.error(f"[Composer] Composition failed: {e}")
            state.add_error(f"Composition failed: {e}")
            artifact = fallback_artifact(results)
            state.record("error", f"Composition failed, returning the components in a container: {e}", data=artifact)
            return self._finish(state, artifact)

        state.record("task_complete", "Composition complete", data=payload)
        logger.info("[Composer] Composition complete")
        return self._finish(state, payload)

    @staticmethod
    def _finish(state: RunState, artifact: Dict[str, Any]) -> RunState:
        if state.structured_data is not None:
            artifact.setdefault("data", state.structured_data.as_data_context())
        state.artifact = artifact
        return state


__all__ = ["Composer", "fallback_artifact"]
