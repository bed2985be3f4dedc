"""
Store - data access interface for users, categories and tasks.

Two implementations satisfy the same contract:
- SqlStore: SQLAlchemy over PostgreSQL (or SQLite in tests)
- MemoryStore: dicts behind a single read/write lock, for tests and local dev

Ownership contract: every task/category accessor takes the acting user's
id and a row owned by someone else is reported exactly like a missing row
(NotFound), never as a permission error.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from dotask.schemas.category import CategoryRecord
from dotask.schemas.task import TaskCreate, TaskRecord, TaskStatus, TaskUpdate
from dotask.schemas.user import UserRecord, UserUpdate


class Store(ABC):

    # Users

    @abstractmethod
    def create_user(self, name: str, email: str, password_hash: str) -> UserRecord:
        """Insert a user. Raises AlreadyExists when the email is taken."""

    @abstractmethod
    def get_user(self, user_id: str) -> UserRecord:
        pass

    @abstractmethod
    def get_user_by_email(self, email: str) -> UserRecord:
        pass

    @abstractmethod
    def update_user(self, user_id: str, update: UserUpdate) -> UserRecord:
        pass

    @abstractmethod
    def set_user_password(self, user_id: str, password_hash: str) -> None:
        pass

    # Categories

    @abstractmethod
    def create_category(self, name: str, user_id: str) -> CategoryRecord:
        """Insert a category. Raises AlreadyExists when the owner already has that name."""

    @abstractmethod
    def get_category(self, category_id: str, user_id: str) -> CategoryRecord:
        pass

    @abstractmethod
    def list_categories(self, user_id: str) -> List[CategoryRecord]:
        """Owner's categories ordered by name (code point order, see category_sort_key)."""

    @abstractmethod
    def update_category(self, category_id: str, name: str, user_id: str) -> CategoryRecord:
        pass

    @abstractmethod
    def delete_category(self, category_id: str, user_id: str) -> None:
        """Delete a category. Raises HasDependents while any task references it."""

    @abstractmethod
    def count_tasks_in_category(self, category_id: str, user_id: str) -> int:
        pass

    # Tasks

    @abstractmethod
    def create_task(self, data: TaskCreate, user_id: str) -> TaskRecord:
        pass

    @abstractmethod
    def get_task(self, task_id: str, user_id: str) -> TaskRecord:
        pass

    @abstractmethod
    def list_tasks(self, user_id: str) -> List[TaskRecord]:
        """Owner's tasks, newest first."""

    @abstractmethod
    def list_tasks_in_category(self, category_id: str, user_id: str) -> List[TaskRecord]:
        pass

    @abstractmethod
    def update_task(self, task_id: str, update: TaskUpdate, user_id: str) -> TaskRecord:
        """Apply only the fields set on ``update``; ``updated_at`` always moves."""

    @abstractmethod
    def update_task_status(self, task_id: str, status: TaskStatus, user_id: str) -> TaskRecord:
        pass

    @abstractmethod
    def delete_task(self, task_id: str, user_id: str) -> None:
        pass

    def close(self) -> None:
        pass


def normalize_email(email: Optional[str]) -> Optional[str]:
    return email.strip().lower() if email else email


def category_sort_key(category: CategoryRecord) -> str:
    # ordre par code point dans les deux backends: la collation de la base
    # ne doit pas changer la "première" catégorie
    return category.name
