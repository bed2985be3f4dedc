"""Task service: authentication gate, category defaulting and input conversion"""

from typing import List, Optional

from pydantic import ValidationError

from dotask.core.dates import parse_datetime
from dotask.core.errors import InvalidInput
from dotask.core.session import RequestIdentity
from dotask.schemas.task import TaskCreate, TaskRecord, TaskStatus, TaskUpdate
from dotask.services.auth_service import require_auth
from dotask.store.base import Store


def _first_category_id(store: Store, user_id: str) -> Optional[str]:
    categories = store.list_categories(user_id)
    return categories[0].id if categories else None


def list_tasks(store: Store, identity: RequestIdentity) -> List[TaskRecord]:
    return store.list_tasks(require_auth(identity))


def get_task(store: Store, identity: RequestIdentity, task_id: str) -> TaskRecord:
    return store.get_task(task_id, require_auth(identity))


def tasks_in_category(store: Store, identity: RequestIdentity, category_id: str) -> List[TaskRecord]:
    return store.list_tasks_in_category(category_id, require_auth(identity))


def create_task(store: Store, identity: RequestIdentity, fields: dict) -> TaskRecord:
    """Create a task for the caller.

    ``fields`` holds the raw input: ``due_date`` is an ISO-8601 string.
    Without a category the caller's first category (by name) is used;
    a caller with no category at all cannot create tasks.
    """
    user_id = require_auth(identity)

    title = (fields.get("title") or "").strip()
    if not title:
        raise InvalidInput("title is required")

    values = {k: v for k, v in fields.items() if v is not None}
    values["title"] = title
    values["due_date"] = parse_datetime(fields.get("due_date"), "dueDate")

    if not values.get("category_id"):
        category_id = _first_category_id(store, user_id)
        if category_id is None:
            raise InvalidInput("cannot create task without a category. Please create a category first")
        values["category_id"] = category_id

    try:
        data = TaskCreate(**values)
    except ValidationError as e:
        raise InvalidInput(str(e.errors()[0]["msg"]))
    return store.create_task(data, user_id)


def update_task(store: Store, identity: RequestIdentity, task_id: str, fields: dict) -> TaskRecord:
    """Partial update: only keys present in ``fields`` (and not None) are applied.

    An explicitly empty ``category_id`` is replaced by the caller's first
    category, or dropped from the update when the caller has none.
    """
    user_id = require_auth(identity)
    values = {k: v for k, v in fields.items() if v is not None}

    if "title" in values:
        values["title"] = values["title"].strip()
        if not values["title"]:
            raise InvalidInput("title cannot be empty")

    if "due_date" in values:
        values["due_date"] = parse_datetime(values["due_date"], "dueDate")

    if "category_id" in values and values["category_id"] == "":
        category_id = _first_category_id(store, user_id)
        if category_id is None:
            del values["category_id"]
        else:
            values["category_id"] = category_id

    try:
        update = TaskUpdate(**values)
    except ValidationError as e:
        raise InvalidInput(str(e.errors()[0]["msg"]))
    return store.update_task(task_id, update, user_id)


def update_task_status(store: Store, identity: RequestIdentity, task_id: str, status: TaskStatus) -> TaskRecord:
    return store.update_task_status(task_id, TaskStatus(status), require_auth(identity))


def delete_task(store: Store, identity: RequestIdentity, task_id: str) -> bool:
    store.delete_task(task_id, require_auth(identity))
    return True
