"""
In-memory store.

Test/dev fixture, not a production concurrency model: one ReadWriteLock
covers every map, so any write excludes all other reads and writes while
reads run concurrently with each other.
"""

import threading
import uuid
from contextlib import contextmanager
from typing import Dict, List

from dotask.core.dates import utcnow
from dotask.core.errors import AlreadyExists, HasDependents, InvalidInput, NotFound
from dotask.schemas.category import CategoryRecord
from dotask.schemas.task import TaskCreate, TaskRecord, TaskStatus, TaskUpdate, changed_fields
from dotask.schemas.user import UserRecord, UserUpdate
from dotask.store.base import Store, category_sort_key, normalize_email


class ReadWriteLock:
    """Many readers or one writer. Waiting writers block new readers."""

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextmanager
    def read(self):
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write(self):
        with self._cond:
            self._writers_waiting += 1
            while self._writer or self._readers:
                self._cond.wait()
            self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


class MemoryStore(Store):

    def __init__(self):
        self._lock = ReadWriteLock()
        self._users: Dict[str, UserRecord] = {}
        self._categories: Dict[str, CategoryRecord] = {}
        self._tasks: Dict[str, TaskRecord] = {}

    # ---------- helpers (lock already held) ----------

    def _owned_category(self, category_id: str, user_id: str) -> CategoryRecord:
        category = self._categories.get(category_id)
        if category is None or category.user_id != user_id:
            raise NotFound("category not found")
        return category

    def _owned_task(self, task_id: str, user_id: str) -> TaskRecord:
        task = self._tasks.get(task_id)
        if task is None or task.user_id != user_id:
            raise NotFound("task not found")
        return task

    def _email_taken(self, email: str, exclude_id: str = None) -> bool:
        return any(u.email == email and u.id != exclude_id for u in self._users.values())

    def _name_taken(self, name: str, user_id: str, exclude_id: str = None) -> bool:
        return any(
            c.user_id == user_id and c.name == name and c.id != exclude_id
            for c in self._categories.values()
        )

    @staticmethod
    def _newest_first(tasks) -> List[TaskRecord]:
        # tri stable: à created_at égal, la dernière insérée passe devant
        return sorted(reversed(list(tasks)), key=lambda t: t.created_at, reverse=True)

    # ---------- users ----------

    def create_user(self, name: str, email: str, password_hash: str) -> UserRecord:
        email = normalize_email(email)
        with self._lock.write():
            if self._email_taken(email):
                raise AlreadyExists("user with this email already exists")
            now = utcnow()
            user = UserRecord(
                id=str(uuid.uuid4()),
                name=name,
                email=email,
                password_hash=password_hash,
                created_at=now,
                updated_at=now,
            )
            self._users[user.id] = user
            return user

    def get_user(self, user_id: str) -> UserRecord:
        with self._lock.read():
            user = self._users.get(user_id)
            if user is None:
                raise NotFound("user not found")
            return user

    def get_user_by_email(self, email: str) -> UserRecord:
        email = normalize_email(email)
        with self._lock.read():
            for user in self._users.values():
                if user.email == email:
                    return user
            raise NotFound("user not found")

    def update_user(self, user_id: str, update: UserUpdate) -> UserRecord:
        changes = dict(changed_fields(update))
        if "email" in changes:
            changes["email"] = normalize_email(changes["email"])
        with self._lock.write():
            user = self._users.get(user_id)
            if user is None:
                raise NotFound("user not found")
            if "email" in changes and self._email_taken(changes["email"], exclude_id=user_id):
                raise AlreadyExists("user with this email already exists")
            changes["updated_at"] = utcnow()
            user = user.model_copy(update=changes)
            self._users[user_id] = user
            return user

    def set_user_password(self, user_id: str, password_hash: str) -> None:
        with self._lock.write():
            user = self._users.get(user_id)
            if user is None:
                raise NotFound("user not found")
            self._users[user_id] = user.model_copy(
                update={"password_hash": password_hash, "updated_at": utcnow()}
            )

    # ---------- categories ----------

    def create_category(self, name: str, user_id: str) -> CategoryRecord:
        with self._lock.write():
            if self._name_taken(name, user_id):
                raise AlreadyExists("category with this name already exists")
            now = utcnow()
            category = CategoryRecord(
                id=str(uuid.uuid4()),
                user_id=user_id,
                name=name,
                created_at=now,
                updated_at=now,
            )
            self._categories[category.id] = category
            return category

    def get_category(self, category_id: str, user_id: str) -> CategoryRecord:
        with self._lock.read():
            return self._owned_category(category_id, user_id)

    def list_categories(self, user_id: str) -> List[CategoryRecord]:
        with self._lock.read():
            owned = [c for c in self._categories.values() if c.user_id == user_id]
        return sorted(owned, key=category_sort_key)

    def update_category(self, category_id: str, name: str, user_id: str) -> CategoryRecord:
        with self._lock.write():
            category = self._owned_category(category_id, user_id)
            if self._name_taken(name, user_id, exclude_id=category_id):
                raise AlreadyExists("category with this name already exists")
            category = category.model_copy(update={"name": name, "updated_at": utcnow()})
            self._categories[category_id] = category
            return category

    def count_tasks_in_category(self, category_id: str, user_id: str) -> int:
        with self._lock.read():
            return sum(
                1 for t in self._tasks.values()
                if t.category_id == category_id and t.user_id == user_id
            )

    def delete_category(self, category_id: str, user_id: str) -> None:
        with self._lock.write():
            self._owned_category(category_id, user_id)
            if any(t.category_id == category_id for t in self._tasks.values()):
                raise HasDependents()
            del self._categories[category_id]

    # ---------- tasks ----------

    def create_task(self, data: TaskCreate, user_id: str) -> TaskRecord:
        if not data.category_id:
            raise InvalidInput("categoryId is required")

        with self._lock.write():
            self._owned_category(data.category_id, user_id)
            now = utcnow()
            task = TaskRecord(
                id=str(uuid.uuid4()),
                user_id=user_id,
                category_id=data.category_id,
                title=data.title,
                description=data.description,
                status=data.status,
                priority=data.priority,
                due_date=data.due_date,
                tags=list(data.tags),
                created_at=now,
                updated_at=now,
            )
            self._tasks[task.id] = task
            return task

    def get_task(self, task_id: str, user_id: str) -> TaskRecord:
        with self._lock.read():
            return self._owned_task(task_id, user_id)

    def list_tasks(self, user_id: str) -> List[TaskRecord]:
        with self._lock.read():
            owned = [t for t in self._tasks.values() if t.user_id == user_id]
        return self._newest_first(owned)

    def list_tasks_in_category(self, category_id: str, user_id: str) -> List[TaskRecord]:
        with self._lock.read():
            self._owned_category(category_id, user_id)
            owned = [
                t for t in self._tasks.values()
                if t.category_id == category_id and t.user_id == user_id
            ]
        return self._newest_first(owned)

    def update_task(self, task_id: str, update: TaskUpdate, user_id: str) -> TaskRecord:
        changes = dict(changed_fields(update))
        with self._lock.write():
            task = self._owned_task(task_id, user_id)
            if "category_id" in changes:
                self._owned_category(changes["category_id"], user_id)
            if "tags" in changes:
                changes["tags"] = list(changes["tags"])
            changes["updated_at"] = utcnow()
            task = task.model_copy(update=changes)
            self._tasks[task_id] = task
            return task

    def update_task_status(self, task_id: str, status: TaskStatus, user_id: str) -> TaskRecord:
        with self._lock.write():
            task = self._owned_task(task_id, user_id)
            task = task.model_copy(update={"status": status, "updated_at": utcnow()})
            self._tasks[task_id] = task
            return task

    def delete_task(self, task_id: str, user_id: str) -> None:
        with self._lock.write():
            self._owned_task(task_id, user_id)
            del self._tasks[task_id]
