"""
Input Processor - Separates the instruction from inline data

Optional first step: a message such as "chart these sales: Jan 100, Feb 200"
becomes a requirement plus StructuredData. Any failure keeps the raw input
as the requirement.
"""
import logging
from typing import Optional, Tuple

from page_agent.generation import GenerationService, GenerationTransportError
from page_agent.schemas import StructuredData, generation_text
from page_agent.core.prompts import INPUT_PROCESSOR_PROMPT
from utils.json_extract import ExtractionError, extract

logger = logging.getLogger(__name__)


class InputProcessor:
    """Splits raw user input with one generation call"""

    def __init__(self, generation_service: GenerationService):
        self.generation_service = generation_service

    def process(self, raw_input: str) -> Tuple[str, Optional[StructuredData]]:
        """
        Returns:
            (requirement, structured data or None)
        """
        if not raw_input or not raw_input.strip():
            return raw_input, None

        messages = INPUT_PROCESSOR_PROMPT.format_messages(raw_input=raw_input)
        try:
            payload = extract(generation_text(self.generation_service.invoke(messages)))
        except (GenerationTransportError, ExtractionError) as e:
            logger.warning(f"[InputProcessor] Could not split input, using it as the requirement: {e}")
            return raw_input, None

        if not isinstance(payload, dict):
            logger.warning("[InputProcessor] Unexpected response shape, using input as the requirement")
            return raw_input, None

        requirement = str(payload.get("requirement") or "").strip() or raw_input
        content = payload.get("dataContent")
        if not payload.get("isDataPresent") or content in (None, "", [], {}):
            logger.info("[InputProcessor] No inline data found")
            return requirement, None

        meta = payload.get("dataMeta") if isinstance(payload.get("dataMeta"), dict) else {}
        schema = meta.get("schema") if isinstance(meta.get("schema"), dict) else {}
        data = StructuredData(content=content, description=meta.get("description") or None, data_schema=schema)
        logger.info(f"[InputProcessor] Extracted data with fields: {', '.join(data.field_names()) or 'none'}")
        return requirement, data


__all__ = ["InputProcessor"]
