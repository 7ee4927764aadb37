"""Task models."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from synaptik.utils.config import CoreConfig
from synaptik.utils.errors import InvalidTaskStatus


class TaskStatus(str, Enum):
    """Task lifecycle states."""
    PENDING = "PENDING"
    WAITING = "WAITING"
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    DELETED = "DELETED"

    @classmethod
    def parse(cls, value: Any) -> "TaskStatus":
        """Case-insensitive conversion for request parameters."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            raise InvalidTaskStatus(value, [status.value for status in cls]) from None


class TaskPriority(str, Enum):
    """Task priority levels."""
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"
    NONE = "NONE"

    @classmethod
    def from_code(cls, code: str) -> "TaskPriority":
        """Map a quick-capture code (H, M, L) to a priority."""
        return _PRIORITY_CODES.get(code.upper(), cls.NONE)

    @property
    def code(self) -> Optional[str]:
        return None if self is TaskPriority.NONE else self.value[0]


_PRIORITY_CODES = {
    "H": TaskPriority.HIGH,
    "M": TaskPriority.MEDIUM,
    "L": TaskPriority.LOW,
}


class TaskAnnotation(BaseModel):
    """Timestamped note appended by lifecycle operations."""
    timestamp: datetime
    description: str


class Task(BaseModel):
    """Task model."""
    task_id: Optional[str] = Field(None, description="Storage-assigned identifier")
    title: str = Field(
        ...,
        min_length=1,
        max_length=CoreConfig.TITLE_MAX_LENGTH,
        description="Task title"
    )
    description: Optional[str] = Field(
        None,
        max_length=CoreConfig.DESCRIPTION_MAX_LENGTH,
        description="Task description"
    )
    status: TaskStatus = Field(default=TaskStatus.PENDING, description="Task status")
    priority: TaskPriority = Field(default=TaskPriority.NONE, description="Task priority")
    urgency: float = Field(default=0.0, ge=0.0, le=100.0, description="Derived urgency score")
    project: Optional[str] = Field(None, description="Project name (quick-capture)")
    project_id: Optional[UUID] = Field(None, description="Project identifier")
    assignee: Optional[str] = Field(None, description="Assignee name")
    due_date: Optional[datetime] = Field(None, description="Due date (timezone-aware)")
    wait_until: Optional[datetime] = Field(None, description="Hidden until (timezone-aware)")
    tags: list[str] = Field(default_factory=list, description="Ordered tags, duplicates allowed")
    depends: list[str] = Field(default_factory=list, description="IDs of tasks this task depends on")
    annotations: list[TaskAnnotation] = Field(default_factory=list, description="Append-only notes")
    original_input: Optional[str] = Field(None, description="Quick-capture line the task came from")
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("title", mode="before")
    @classmethod
    def normalize_title(cls, value: Any) -> Any:
        if isinstance(value, str):
            return " ".join(value.split())
        return value

    @field_validator("tags", "depends", "annotations", mode="before")
    @classmethod
    def null_list_as_empty(cls, value: Any) -> Any:
        # NULL array columns from storage
        return [] if value is None else value

    @field_validator("due_date", "wait_until", "created_at", "updated_at")
    @classmethod
    def require_timezone(cls, value: Optional[datetime]) -> Optional[datetime]:
        # Naive timestamps from storage are UTC
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value
