"""Pydantic schemas for tasks: stored records, creation and partial update."""

import enum
from datetime import datetime
from typing import Any, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

from dotask.core.dates import as_utc


class TaskStatus(str, enum.Enum):
    TODO = "TODO"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"


class TaskPriority(str, enum.Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class TaskRecord(BaseModel):
    id: str
    user_id: str
    category_id: Optional[str]
    title: str
    description: str
    status: TaskStatus
    priority: TaskPriority
    due_date: datetime
    tags: List[str]
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @field_validator("due_date", "created_at", "updated_at")
    @classmethod
    def normalize_utc(cls, value):
        return as_utc(value)


class TaskCreate(BaseModel):
    title: str
    description: str = ""
    status: TaskStatus = TaskStatus.TODO
    priority: TaskPriority = TaskPriority.MEDIUM
    due_date: datetime
    category_id: Optional[str] = None
    tags: List[str] = Field(default_factory=list)


class TaskUpdate(BaseModel):
    """Mise à jour partielle: seuls les champs fournis sont modifiés"""

    title: Optional[str] = None
    description: Optional[str] = None
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    due_date: Optional[datetime] = None
    category_id: Optional[str] = None
    tags: Optional[List[str]] = None


def changed_fields(update: BaseModel) -> List[Tuple[str, Any]]:
    """(field, value) pairs for every field explicitly set to a non-null value."""
    values = update.model_dump(exclude_unset=True, exclude_none=True)
    return [(field, values[field]) for field in type(update).model_fields if field in values]
