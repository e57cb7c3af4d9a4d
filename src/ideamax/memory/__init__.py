"""Persisted records and the SQLite plan store."""

from .schema import Idea, ItemStatus, Subtask, Task, User
from .store import PlanStore

__all__ = ["Idea", "ItemStatus", "PlanStore", "Subtask", "Task", "User"]
