"""
Schemas for the Page Generation Pipeline

These schemas define the contracts between pipeline stages:
- Task: One unit of decomposed work
- RunState: Persisted orchestration context
- Generation: Tagged generation-service responses
"""
from .task_schema import Task, TaskStatus, DocHint, summarize_tasks
from .state_schema import (
    EventType,
    ExecutionEvent,
    StructuredData,
    ContextDocument,
    RunState,
    RunOutcome,
)
from .generation_schema import TextGeneration, ToolCallGeneration, Generation, generation_text

__all__ = [
    # Task
    "Task",
    "TaskStatus",
    "DocHint",
    "summarize_tasks",
    # Run State
    "EventType",
    "ExecutionEvent",
    "StructuredData",
    "ContextDocument",
    "RunState",
    "RunOutcome",
    # Generation
    "TextGeneration",
    "ToolCallGeneration",
    "Generation",
    "generation_text",
]
