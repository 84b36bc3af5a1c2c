"""
Task Schema - Unit of Work

This defines the ordered task list that the Planner produces
and the Executor/Validator/Fixer work through one task at a time.

Order is list order. Priority is informational only.
"""
from typing import List, Dict, Any, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator
from enum import Enum


class TaskStatus(str, Enum):
    """Task lifecycle status"""
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"
    JSON_ERROR = "json_error"


class DocHint(BaseModel):
    """A reference document attached to a task by the Doc Associator"""
    model_config = ConfigDict(populate_by_name=True)

    path: str = Field(..., description="Document path, resolvable by the document loader")
    summary: Optional[str] = Field(None, description="Cached summary, if the associator had one")
    score: Optional[float] = Field(None, description="Association score, higher is more relevant")
    code_examples: List[str] = Field(
        default_factory=list,
        alias="codeExamples",
        description="Cached code examples, if the associator had them"
    )


class Task(BaseModel):
    """A single step of the decomposed requirement"""
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., description="Identifier, unique within a run")
    description: str = Field(..., description="What this task should produce")
    type: str = Field("general", description="Coarse category, e.g. form-item-input-text, form-assembly")
    priority: int = Field(2, description="1=high, 2=medium, 3=low (informational)")

    # Declared data contract
    data_dependencies: List[str] = Field(
        default_factory=list,
        alias="dataDependencies",
        description="Field names the generated result must reference"
    )
    doc_hints: List[DocHint] = Field(default_factory=list, alias="docHints")

    # Status tracking
    status: TaskStatus = Field(TaskStatus.PENDING)
    raw_result: Optional[str] = Field(None, alias="rawResult", description="Last raw generation text")
    result: Optional[Any] = Field(None, description="Parsed payload, set once completed")
    retry_count: int = Field(0, alias="retryCount", description="Repair attempts made so far")
    error_message: Optional[str] = Field(None, alias="errorMessage")

    @field_validator("priority", mode="before")
    @classmethod
    def _coerce_priority(cls, value: Any) -> int:
        try:
            return int(value)
        except (TypeError, ValueError):
            return 2

    @field_validator("data_dependencies", mode="before")
    @classmethod
    def _coerce_dependencies(cls, value: Any) -> List[str]:
        if value is None:
            return []
        if isinstance(value, str):
            value = [value]
        seen: List[str] = []
        for dep in value:
            dep = str(dep).strip()
            if dep and dep not in seen:
                seen.append(dep)
        return seen

    @property
    def is_assembly(self) -> bool:
        return "assembly" in self.type.lower()

    def start(self):
        """pending → in_progress (also re-entered on retry)"""
        self.status = TaskStatus.IN_PROGRESS
        self.result = None
        self.error_message = None

    def complete(self, result: Any):
        self.status = TaskStatus.COMPLETED
        self.result = result
        self.error_message = None

    def mark_json_error(self, message: str):
        self.status = TaskStatus.JSON_ERROR
        self.error_message = message

    def fail(self, message: str):
        self.status = TaskStatus.FAILED
        self.error_message = message


def summarize_tasks(tasks: List[Task]) -> List[Dict[str, Any]]:
    """Compact task view for events and API responses"""
    return [
        {
            "id": t.id,
            "type": t.type,
            "description": t.description,
            "status": t.status.value,
            "retryCount": t.retry_count,
            "errorMessage": t.error_message,
        }
        for t in tasks
    ]


# Export
__all__ = [
    "Task",
    "TaskStatus",
    "DocHint",
    "summarize_tasks",
]
