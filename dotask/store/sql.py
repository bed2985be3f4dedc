import enum
import logging
from typing import List

from sqlalchemy import func, update as sql_update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from dotask.core.database import create_session_factory
from dotask.core.dates import utcnow
from dotask.core.errors import AlreadyExists, HasDependents, InvalidInput, NotFound
from dotask.models.category import Category
from dotask.models.task import Task
from dotask.models.user import User
from dotask.schemas.category import CategoryRecord
from dotask.schemas.task import TaskCreate, TaskRecord, TaskStatus, TaskUpdate, changed_fields
from dotask.schemas.user import UserRecord, UserUpdate
from dotask.store.base import Store, category_sort_key, normalize_email

logger = logging.getLogger(__name__)


def _column_value(value):
    if isinstance(value, enum.Enum):
        return value.value
    return value


class SqlStore(Store):
    """Store relationnel (SQLAlchemy). Une session par opération."""

    def __init__(self, engine: Engine):
        self.engine = engine
        self.SessionLocal = create_session_factory(engine)

    def close(self) -> None:
        self.engine.dispose()

    # ---------- helpers ----------

    def _commit(self, db: Session, conflict_message: str) -> None:
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise AlreadyExists(conflict_message)

    @staticmethod
    def _owned_category(db: Session, category_id: str, user_id: str) -> Category:
        category = db.query(Category).filter(
            Category.id == category_id,
            Category.user_id == user_id
        ).first()
        if not category:
            raise NotFound("category not found")
        return category

    @staticmethod
    def _owned_task(db: Session, task_id: str, user_id: str) -> Task:
        task = db.query(Task).filter(
            Task.id == task_id,
            Task.user_id == user_id
        ).first()
        if not task:
            raise NotFound("task not found")
        return task

    def _apply_update(self, db: Session, model, row_id: str, user_id: str, pairs) -> int:
        """Render (field, value) pairs as one parameterized UPDATE scoped by id and owner."""
        values = {field: _column_value(value) for field, value in pairs}
        values["updated_at"] = utcnow()
        owner_column = model.id if model is User else model.user_id
        stmt = sql_update(model).where(model.id == row_id, owner_column == user_id).values(**values)
        return db.execute(stmt).rowcount

    # ---------- users ----------

    def create_user(self, name: str, email: str, password_hash: str) -> UserRecord:
        email = normalize_email(email)
        with self.SessionLocal() as db:
            if db.query(User).filter(User.email == email).first():
                raise AlreadyExists("user with this email already exists")

            user = User(name=name, email=email, password_hash=password_hash)
            db.add(user)
            self._commit(db, "user with this email already exists")
            db.refresh(user)
            return UserRecord.model_validate(user)

    def get_user(self, user_id: str) -> UserRecord:
        with self.SessionLocal() as db:
            user = db.query(User).filter(User.id == user_id).first()
            if not user:
                raise NotFound("user not found")
            return UserRecord.model_validate(user)

    def get_user_by_email(self, email: str) -> UserRecord:
        with self.SessionLocal() as db:
            user = db.query(User).filter(User.email == normalize_email(email)).first()
            if not user:
                raise NotFound("user not found")
            return UserRecord.model_validate(user)

    def update_user(self, user_id: str, update: UserUpdate) -> UserRecord:
        pairs = [
            (field, normalize_email(value) if field == "email" else value)
            for field, value in changed_fields(update)
        ]
        with self.SessionLocal() as db:
            emails = [value for field, value in pairs if field == "email"]
            if emails:
                clash = db.query(User).filter(User.email == emails[0], User.id != user_id).first()
                if clash:
                    raise AlreadyExists("user with this email already exists")

            if self._apply_update(db, User, user_id, user_id, pairs) == 0:
                db.rollback()
                raise NotFound("user not found")
            self._commit(db, "user with this email already exists")
            return UserRecord.model_validate(db.get(User, user_id, populate_existing=True))

    def set_user_password(self, user_id: str, password_hash: str) -> None:
        with self.SessionLocal() as db:
            if self._apply_update(db, User, user_id, user_id, [("password_hash", password_hash)]) == 0:
                db.rollback()
                raise NotFound("user not found")
            db.commit()

    # ---------- categories ----------

    def create_category(self, name: str, user_id: str) -> CategoryRecord:
        with self.SessionLocal() as db:
            existing = db.query(Category).filter(
                Category.user_id == user_id,
                Category.name == name
            ).first()
            if existing:
                raise AlreadyExists("category with this name already exists")

            category = Category(name=name, user_id=user_id)
            db.add(category)
            self._commit(db, "category with this name already exists")
            db.refresh(category)
            return CategoryRecord.model_validate(category)

    def get_category(self, category_id: str, user_id: str) -> CategoryRecord:
        with self.SessionLocal() as db:
            return CategoryRecord.model_validate(self._owned_category(db, category_id, user_id))

    def list_categories(self, user_id: str) -> List[CategoryRecord]:
        with self.SessionLocal() as db:
            rows = db.query(Category).filter(Category.user_id == user_id).all()
            return sorted((CategoryRecord.model_validate(row) for row in rows), key=category_sort_key)

    def update_category(self, category_id: str, name: str, user_id: str) -> CategoryRecord:
        with self.SessionLocal() as db:
            self._owned_category(db, category_id, user_id)
            clash = db.query(Category).filter(
                Category.user_id == user_id,
                Category.name == name,
                Category.id != category_id
            ).first()
            if clash:
                raise AlreadyExists("category with this name already exists")

            self._apply_update(db, Category, category_id, user_id, [("name", name)])
            self._commit(db, "category with this name already exists")
            category = db.get(Category, category_id, populate_existing=True)
            return CategoryRecord.model_validate(category)

    def count_tasks_in_category(self, category_id: str, user_id: str) -> int:
        with self.SessionLocal() as db:
            return db.query(func.count(Task.id)).filter(
                Task.category_id == category_id,
                Task.user_id == user_id
            ).scalar()

    def delete_category(self, category_id: str, user_id: str) -> None:
        # count puis delete sans verrou: une tâche créée entre les deux
        # peut référencer la catégorie (rattrapé par la FK sur PostgreSQL)
        with self.SessionLocal() as db:
            self._owned_category(db, category_id, user_id)
            count = db.query(func.count(Task.id)).filter(Task.category_id == category_id).scalar()
            if count > 0:
                raise HasDependents()

            try:
                deleted = db.query(Category).filter(
                    Category.id == category_id,
                    Category.user_id == user_id
                ).delete(synchronize_session=False)
                db.commit()
            except IntegrityError:
                # FK: une tâche a été créée entre le count et le delete
                db.rollback()
                raise HasDependents()
            if deleted == 0:
                raise NotFound("category not found")

    # ---------- tasks ----------

    def create_task(self, data: TaskCreate, user_id: str) -> TaskRecord:
        if not data.category_id:
            raise InvalidInput("categoryId is required")

        with self.SessionLocal() as db:
            self._owned_category(db, data.category_id, user_id)
            now = utcnow()
            task = Task(
                user_id=user_id,
                category_id=data.category_id,
                title=data.title,
                description=data.description,
                status=data.status.value,
                priority=data.priority.value,
                due_date=data.due_date,
                tags=list(data.tags),
                created_at=now,
                updated_at=now,
            )
            db.add(task)
            db.commit()
            db.refresh(task)
            return TaskRecord.model_validate(task)

    def get_task(self, task_id: str, user_id: str) -> TaskRecord:
        with self.SessionLocal() as db:
            return TaskRecord.model_validate(self._owned_task(db, task_id, user_id))

    def list_tasks(self, user_id: str) -> List[TaskRecord]:
        with self.SessionLocal() as db:
            rows = db.query(Task).filter(Task.user_id == user_id).order_by(Task.created_at.desc()).all()
            return [TaskRecord.model_validate(row) for row in rows]

    def list_tasks_in_category(self, category_id: str, user_id: str) -> List[TaskRecord]:
        with self.SessionLocal() as db:
            self._owned_category(db, category_id, user_id)
            rows = db.query(Task).filter(
                Task.category_id == category_id,
                Task.user_id == user_id
            ).order_by(Task.created_at.desc()).all()
            return [TaskRecord.model_validate(row) for row in rows]

    def update_task(self, task_id: str, update: TaskUpdate, user_id: str) -> TaskRecord:
        pairs = changed_fields(update)
        with self.SessionLocal() as db:
            self._owned_task(db, task_id, user_id)
            for field, value in pairs:
                if field == "category_id":
                    self._owned_category(db, value, user_id)

            self._apply_update(db, Task, task_id, user_id, pairs)
            db.commit()
            return TaskRecord.model_validate(db.get(Task, task_id, populate_existing=True))

    def update_task_status(self, task_id: str, status: TaskStatus, user_id: str) -> TaskRecord:
        with self.SessionLocal() as db:
            if self._apply_update(db, Task, task_id, user_id, [("status", status)]) == 0:
                db.rollback()
                raise NotFound("task not found")
            db.commit()
            return TaskRecord.model_validate(db.get(Task, task_id, populate_existing=True))

    def delete_task(self, task_id: str, user_id: str) -> None:
        with self.SessionLocal() as db:
            deleted = db.query(Task).filter(
                Task.id == task_id,
                Task.user_id == user_id
            ).delete(synchronize_session=False)
            if deleted == 0:
                raise NotFound("task not found")
            db.commit()
