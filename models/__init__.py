"""ORM models exposed by the Taskboard application."""
from .task import Task, TaskCollaborator
from .user import User

__all__ = ["Task", "TaskCollaborator", "User"]
