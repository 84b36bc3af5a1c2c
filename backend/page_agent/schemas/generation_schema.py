"""
Generation Schema - Tagged responses from the generation service

A chat model can answer with text or with a tool call. Callers match on
`kind` instead of inspecting content types.
"""
import json
from typing import Annotated, Any, Dict, Literal, Union
from pydantic import BaseModel, Field


class TextGeneration(BaseModel):
    kind: Literal["text"] = "text"
    value: str = ""


class ToolCallGeneration(BaseModel):
    kind: Literal["tool_call"] = "tool_call"
    name: str
    args: Dict[str, Any] = Field(default_factory=dict)


Generation = Annotated[Union[TextGeneration, ToolCallGeneration], Field(discriminator="kind")]


def generation_text(generation: Generation) -> str:
    """Raw text view of a generation, as stored on a task"""
    if generation.kind == "tool_call":
        payload = generation.args
        # A tool call carrying a single schema argument is the schema itself
        if len(payload) == 1:
            only = next(iter(payload.values()))
            if isinstance(only, (dict, list)):
                payload = only
        return json.dumps(payload, ensure_ascii=False)
    return generation.value


__all__ = [
    "TextGeneration",
    "ToolCallGeneration",
    "Generation",
    "generation_text",
]
