"""
Run-related Pydantic schemas
"""
from datetime import datetime
from typing import Optional, List, Dict, Any, Literal
from pydantic import BaseModel, Field

from page_agent.schemas import ExecutionEvent, RunOutcome


class RunCreate(BaseModel):
    """Request schema for submitting a requirement"""
    requirement: str = Field(..., min_length=1, description="Natural-language page requirement")
    structuredData: Optional[Any] = Field(
        default=None,
        description="Data the page binds to: {content, description?, schema?} or a bare payload",
    )
    splitInput: bool = Field(
        default=False,
        description="Extract inline data from the requirement when no structuredData is given",
    )


class RetryRequest(BaseModel):
    """Request schema for regenerating tasks of a finished run"""
    taskIndices: List[int] = Field(..., min_length=1, description="Zero-based indices into the task list")


class RunEventResponse(BaseModel):
    """Response schema for an execution log entry"""
    type: str  # task_start, docs_found, generating, task_complete, error
    timestamp: datetime
    taskId: Optional[str] = None
    message: str
    data: Optional[Any] = None

    @classmethod
    def from_event(cls, event: ExecutionEvent) -> "RunEventResponse":
        return cls(
            type=event.type,
            timestamp=event.timestamp,
            taskId=event.task_id,
            message=event.message,
            data=event.data,
        )


class RunResponse(BaseModel):
    """Response schema for a finished run"""
    runId: str
    status: Literal["completed", "error"]
    artifact: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    tasks: List[Dict[str, Any]] = Field(default_factory=list)
    executionLog: List[RunEventResponse] = Field(default_factory=list)
    steps: int = 0

    @classmethod
    def from_outcome(cls, outcome: RunOutcome) -> "RunResponse":
        return cls(
            runId=outcome.run_id,
            status=outcome.status,
            artifact=outcome.artifact,
            error=outcome.error,
            tasks=[task.model_dump(mode="json", by_alias=True) for task in outcome.tasks],
            executionLog=[RunEventResponse.from_event(event) for event in outcome.execution_log],
            steps=outcome.steps,
        )
