"""
Task data models.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class TaskStatus(str, Enum):
    """Task status enumeration."""

    TODO = "TODO"
    IN_PROGRESS = "IN_PROGRESS"
    IN_REVIEW = "IN_REVIEW"
    DONE = "DONE"
    BLOCKED = "BLOCKED"


class TaskPriority(str, Enum):
    """Task priority enumeration."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    URGENT = "URGENT"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TaskCreateRequest(BaseModel):
    """Request model for creating a task."""
    title: str = Field(..., min_length=1, max_length=255, description="Task title")
    description: Optional[str] = Field(None, description="Task description")
    status: TaskStatus = Field(default=TaskStatus.TODO, description="Initial status")
    priority: TaskPriority = Field(default=TaskPriority.MEDIUM, description="Priority level")
    team_id: Optional[str] = Field(None, description="Owning team")
    project_id: Optional[str] = Field(None, description="Owning project")
    deadline: Optional[datetime] = Field(None, description="Due date")


class TaskUpdateRequest(BaseModel):
    """Request model for partial task updates."""
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    owner_id: Optional[str] = Field(None, description="Reassign the task to another user")
    team_id: Optional[str] = None
    project_id: Optional[str] = None
    deadline: Optional[datetime] = None


class Task(BaseModel):
    """Task model as stored and cached."""
    task_id: str = Field(..., description="Unique task ID")
    title: str = Field(..., description="Task title")
    description: Optional[str] = Field(None, description="Task description")
    status: TaskStatus = Field(default=TaskStatus.TODO, description="Current status")
    priority: TaskPriority = Field(default=TaskPriority.MEDIUM, description="Priority level")
    owner_id: str = Field(..., description="Owning user ID")
    creator_id: str = Field(..., description="Creating user ID")
    team_id: Optional[str] = Field(None, description="Owning team ID")
    project_id: Optional[str] = Field(None, description="Owning project ID")
    deadline: Optional[datetime] = Field(None, description="Due date")
    created_at: datetime = Field(default_factory=_utcnow, description="Creation timestamp")
    updated_at: datetime = Field(default_factory=_utcnow, description="Last update timestamp")

    def to_cache(self) -> dict:
        """JSON-safe representation stored in the cache."""
        return self.model_dump(mode="json")
