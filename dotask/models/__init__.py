from dotask.models.user import User
from dotask.models.category import Category
from dotask.models.task import Task

__all__ = ["User", "Category", "Task"]
