"""
Generation Service - Rate-limited access to the chat model

Responsibilities:
- Gate every call through the shared RateLimiter
- Bound each call with a caller-side timeout
- Convert chat model replies into tagged Generation values
- Convert every client failure into GenerationTransportError

Pipeline components depend only on the GenerationService protocol, so tests
can swap in a scripted fake.
"""
import logging
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeoutError
from typing import Any, List, Optional, Protocol, Sequence, Union

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage
from langchain_google_genai import ChatGoogleGenerativeAI

from config import (
    GEMINI_API_KEY,
    AI_MODEL,
    AI_TEMPERATURE,
    AI_MAX_RETRIES,
    AI_REQUEST_TIMEOUT,
    GENERATION_TIMEOUT_SECONDS,
)
from utils.rate_limit import RateLimiter, create_rate_limiter
from page_agent.schemas import Generation, TextGeneration, ToolCallGeneration

logger = logging.getLogger(__name__)

Prompt = Union[str, Sequence[BaseMessage]]


class GenerationTransportError(Exception):
    """Raised when the generation service call fails or times out"""
    pass


class GenerationService(Protocol):
    """Anything that can turn a prompt into a Generation"""

    def invoke(self, prompt: Prompt, prior_messages: Optional[Sequence[BaseMessage]] = None) -> Generation:
        ...


def _as_messages(prompt: Prompt, prior_messages: Optional[Sequence[BaseMessage]]) -> List[BaseMessage]:
    messages: List[BaseMessage] = list(prior_messages or [])
    if isinstance(prompt, str):
        messages.append(HumanMessage(content=prompt))
    else:
        messages.extend(prompt)
    return messages


def _content_text(content: Any) -> str:
    """Flatten string or content-block replies into plain text"""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for block in content:
            if isinstance(block, str):
                parts.append(block)
            elif isinstance(block, dict) and isinstance(block.get("text"), str):
                parts.append(block["text"])
        return "".join(parts)
    return "" if content is None else str(content)


def to_generation(message: BaseMessage) -> Generation:
    """Tag a chat model reply. The first tool call wins over text content."""
    tool_calls = getattr(message, "tool_calls", None) or []
    if isinstance(message, AIMessage) and tool_calls:
        call = tool_calls[0]
        return ToolCallGeneration(name=call.get("name") or "", args=call.get("args") or {})
    return TextGeneration(value=_content_text(message.content))


class LangChainGenerationService:
    """
    GenerationService backed by any LangChain chat model

    Example:
        service = LangChainGenerationService(model, RateLimiter(4, 60, 3), timeout_seconds=120)
        generation = service.invoke("Describe a login form as JSON")
    """

    def __init__(
        self,
        model: BaseChatModel,
        rate_limiter: RateLimiter,
        timeout_seconds: Optional[float] = GENERATION_TIMEOUT_SECONDS
    ):
        self.model = model
        self.rate_limiter = rate_limiter
        self.timeout_seconds = timeout_seconds

    def invoke(self, prompt: Prompt, prior_messages: Optional[Sequence[BaseMessage]] = None) -> Generation:
        """
        Invoke the chat model once

        Raises:
            GenerationTransportError: On any client error or timeout
        """
        messages = _as_messages(prompt, prior_messages)
        try:
            self.rate_limiter.acquire()
        except Exception as e:
            logger.error(f"[Generation] Rate limiter failed: {e}", exc_info=True)
            raise GenerationTransportError(f"Rate limiter failed: {e}") from e

        # A timed-out call keeps its worker; it must not block the next call
        pool = ThreadPoolExecutor(max_workers=1, thread_name_prefix="generation")
        try:
            future = pool.submit(self.model.invoke, messages)
            response = future.result(timeout=self.timeout_seconds)
        except FutureTimeoutError as e:
            logger.error(f"[Generation] Call timed out after {self.timeout_seconds}s")
            raise GenerationTransportError(f"Generation timed out after {self.timeout_seconds}s") from e
        except Exception as e:
            logger.error(f"[Generation] Call failed: {e}", exc_info=True)
            raise GenerationTransportError(f"Generation failed: {e}") from e
        finally:
            pool.shutdown(wait=False)

        return to_generation(response)


def create_generation_service(rate_limiter: Optional[RateLimiter] = None) -> LangChainGenerationService:
    """
    Build the production generation service from configuration

    Raises:
        ValueError: If GEMINI_API_KEY is not configured
    """
    if not GEMINI_API_KEY:
        raise ValueError("GEMINI_API_KEY not found in environment variables")

    model = ChatGoogleGenerativeAI(
        google_api_key=GEMINI_API_KEY,
        model=AI_MODEL,
        temperature=AI_TEMPERATURE,
        max_retries=AI_MAX_RETRIES,
        request_timeout=AI_REQUEST_TIMEOUT,
        transport="rest",  # Use REST API instead of gRPC to avoid proxy issues
    )
    return LangChainGenerationService(model, rate_limiter or create_rate_limiter())


__all__ = [
    "Prompt",
    "GenerationTransportError",
    "GenerationService",
    "LangChainGenerationService",
    "to_generation",
    "create_generation_service",
]
