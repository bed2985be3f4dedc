from typing import List, Optional

import strawberry
from starlette.concurrency import run_in_threadpool
from strawberry.types import Info

from dotask.core.dates import format_datetime
from dotask.schemas.category import CategoryRecord
from dotask.schemas.task import TaskPriority, TaskRecord, TaskStatus
from dotask.schemas.user import UserRecord
from dotask.services import category_service, task_service

strawberry.enum(TaskStatus)
strawberry.enum(TaskPriority)


@strawberry.type
class Category:
    id: strawberry.ID
    name: str
    created_at: str
    updated_at: str

    @strawberry.field
    async def tasks(self, info: Info) -> List["Task"]:
        ctx = info.context
        records = await run_in_threadpool(task_service.tasks_in_category, ctx.store, ctx.identity, self.id)
        return [Task.from_record(r) for r in records]

    @classmethod
    def from_record(cls, record: CategoryRecord) -> "Category":
        return cls(
            id=strawberry.ID(record.id),
            name=record.name,
            created_at=format_datetime(record.created_at),
            updated_at=format_datetime(record.updated_at),
        )


@strawberry.type
class Task:
    id: strawberry.ID
    title: str
    description: str
    status: TaskStatus
    priority: TaskPriority
    due_date: str
    created_at: str
    updated_at: str
    tags: List[str]
    category_id: strawberry.Private[Optional[str]]

    @strawberry.field
    async def category(self, info: Info) -> Optional[Category]:
        if not self.category_id:
            return None
        ctx = info.context
        record = await run_in_threadpool(category_service.get_category, ctx.store, ctx.identity, self.category_id)
        return Category.from_record(record)

    @classmethod
    def from_record(cls, record: TaskRecord) -> "Task":
        return cls(
            id=strawberry.ID(record.id),
            title=record.title,
            description=record.description,
            status=record.status,
            priority=record.priority,
            due_date=format_datetime(record.due_date),
            created_at=format_datetime(record.created_at),
            updated_at=format_datetime(record.updated_at),
            tags=list(record.tags),
            category_id=record.category_id,
        )


@strawberry.type
class User:
    # password hash jamais exposé
    id: strawberry.ID
    name: str
    email: str
    created_at: str
    updated_at: str

    @classmethod
    def from_record(cls, record: UserRecord) -> "User":
        return cls(
            id=strawberry.ID(record.id),
            name=record.name,
            email=record.email,
            created_at=format_datetime(record.created_at),
            updated_at=format_datetime(record.updated_at),
        )


@strawberry.type
class AuthResponse:
    user: User
    token: str


@strawberry.input
class CreateTaskInput:
    title: str
    due_date: str
    description: Optional[str] = ""
    status: Optional[TaskStatus] = TaskStatus.TODO
    priority: Optional[TaskPriority] = TaskPriority.MEDIUM
    category_id: Optional[strawberry.ID] = None
    tags: Optional[List[str]] = None


@strawberry.input
class UpdateTaskInput:
    title: Optional[str] = strawberry.UNSET
    description: Optional[str] = strawberry.UNSET
    status: Optional[TaskStatus] = strawberry.UNSET
    priority: Optional[TaskPriority] = strawberry.UNSET
    due_date: Optional[str] = strawberry.UNSET
    category_id: Optional[strawberry.ID] = strawberry.UNSET
    tags: Optional[List[str]] = strawberry.UNSET


@strawberry.input
class RegisterInput:
    name: str
    email: str
    password: str


@strawberry.input
class LoginInput:
    email: str
    password: str


@strawberry.input
class UpdateProfileInput:
    name: Optional[str] = strawberry.UNSET
    email: Optional[str] = strawberry.UNSET


@strawberry.input
class ChangePasswordInput:
    current_password: str
    new_password: str


def provided_fields(value) -> dict:
    """Fields the client actually sent (UNSET dropped)."""
    return {
        name: getattr(value, name)
        for name in value.__dataclass_fields__
        if getattr(value, name) is not strawberry.UNSET
    }
