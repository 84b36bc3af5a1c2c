"""
Run State Schema - Persisted Orchestration Context

One RunState exists per submitted requirement. It is checkpointed after
every step and is everything the Router needs to pick the next step.
"""
from typing import List, Dict, Any, Optional, Literal
from datetime import datetime, timezone
from uuid import uuid4
from pydantic import BaseModel, ConfigDict, Field

from .task_schema import Task, TaskStatus


EventType = Literal["task_start", "docs_found", "generating", "task_complete", "error"]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ExecutionEvent(BaseModel):
    """Observer-facing log entry. Never read by the Router."""
    type: EventType
    timestamp: datetime = Field(default_factory=_utcnow)
    task_id: Optional[str] = None
    message: str
    data: Optional[Any] = None


class StructuredData(BaseModel):
    """Pre-extracted data the generated page must bind to"""
    model_config = ConfigDict(populate_by_name=True)

    content: Any = Field(..., description="Data payload (object or array)")
    description: Optional[str] = Field(None, description="Short human description of the data")
    data_schema: Dict[str, Any] = Field(
        default_factory=dict,
        alias="schema",
        description="Field name → type sketch"
    )

    def field_names(self) -> List[str]:
        """Field names declared in the schema, falling back to the keys of the first record"""
        if self.data_schema:
            return list(self.data_schema.keys())
        sample = self.content[0] if isinstance(self.content, list) and self.content else self.content
        if isinstance(sample, dict):
            return list(sample.keys())
        return []

    def as_data_context(self) -> Dict[str, Any]:
        """Page data scope: objects as-is, anything else under `items`"""
        if isinstance(self.content, dict):
            return dict(self.content)
        return {"items": self.content}


class ContextDocument(BaseModel):
    """One entry of the per-task context digest"""
    path: str
    summary: str = ""
    code_examples: List[str] = Field(default_factory=list)
    score: Optional[float] = None


class RunState(BaseModel):
    """Durable orchestration state for a single run"""
    run_id: str = Field(default_factory=lambda: uuid4().hex)
    requirement: str
    structured_data: Optional[StructuredData] = None

    tasks: List[Task] = Field(default_factory=list)
    cursor: int = Field(0, ge=0, description="Index of the current task")
    context_documents: List[ContextDocument] = Field(default_factory=list)

    # Routing flags
    needs_replan: bool = False
    docs_associated: bool = False
    tasks_to_retry: List[int] = Field(default_factory=list)
    retry_index: Optional[int] = Field(None, description="Task regenerated outside the cursor")
    replan_count: int = 0
    step_count: int = 0

    execution_log: List[ExecutionEvent] = Field(default_factory=list)

    # Terminal output
    artifact: Optional[Dict[str, Any]] = None
    error: Optional[str] = None

    @property
    def active_index(self) -> Optional[int]:
        """Index of the task the next step works on, if any"""
        if self.retry_index is not None:
            return self.retry_index
        if self.cursor < len(self.tasks):
            return self.cursor
        return None

    @property
    def active_task(self) -> Optional[Task]:
        index = self.active_index
        return self.tasks[index] if index is not None else None

    @property
    def is_finished(self) -> bool:
        return self.artifact is not None

    def completed_results(self) -> List[Any]:
        """Results of completed tasks, in task order"""
        return [
            t.result for t in self.tasks
            if t.status == TaskStatus.COMPLETED and t.result is not None
        ]

    def record(
        self,
        event_type: EventType,
        message: str,
        task_id: Optional[str] = None,
        data: Optional[Any] = None
    ) -> ExecutionEvent:
        """Append an event to the execution log"""
        event = ExecutionEvent(type=event_type, message=message, task_id=task_id, data=data)
        self.execution_log.append(event)
        return event

    def add_error(self, message: str):
        """Accumulate a run-level error without overwriting earlier ones"""
        self.error = message if not self.error else f"{self.error}; {message}"


class RunOutcome(BaseModel):
    """Terminal result handed back to callers"""
    run_id: str
    status: Literal["completed", "error"]
    artifact: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    tasks: List[Task] = Field(default_factory=list)
    execution_log: List[ExecutionEvent] = Field(default_factory=list)
    steps: int = 0


__all__ = [
    "EventType",
    "ExecutionEvent",
    "StructuredData",
    "ContextDocument",
    "RunState",
    "RunOutcome",
]
