"""Task model"""

import uuid

from sqlalchemy import Column, String, DateTime, ForeignKey, JSON

from dotask.core.database import Base
from dotask.core.dates import utcnow


class Task(Base):
    __tablename__ = "tasks"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    category_id = Column(String(36), ForeignKey("categories.id"), nullable=True, index=True)

    title = Column(String, nullable=False)
    description = Column(String, nullable=False, default="")
    status = Column(String, nullable=False, default="TODO")
    priority = Column(String, nullable=False, default="MEDIUM")
    due_date = Column(DateTime(timezone=True), nullable=False, index=True)
    tags = Column(JSON, nullable=False, default=list)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
