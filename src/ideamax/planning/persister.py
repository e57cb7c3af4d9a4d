"""Best-effort persistence of a validated breakdown as tasks and subtasks."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from ..memory.schema import ItemStatus, Subtask, Task
from ..memory.store import PlanStore
from .schemas import BreakdownTask

__all__ = ["HierarchyPersister", "PersistReport", "SubtaskOutcome", "TaskOutcome"]

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class SubtaskOutcome:
    """Result of writing one generated subtask."""

    order: int
    title: str
    subtask_id: Optional[str] = None
    error: Optional[str] = None

    @property
    def persisted(self) -> bool:
        return self.subtask_id is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "order": self.order,
            "title": self.title,
            "subtask_id": self.subtask_id,
            "error": self.error,
        }


@dataclass(slots=True)
class TaskOutcome:
    """Result of writing one generated task and its subtask batch."""

    order: int
    title: str
    task_id: Optional[str] = None
    error: Optional[str] = None
    subtasks: List[SubtaskOutcome] = field(default_factory=list)

    @property
    def persisted(self) -> bool:
        return self.task_id is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "order": self.order,
            "title": self.title,
            "task_id": self.task_id,
            "error": self.error,
            "subtasks": [outcome.to_dict() for outcome in self.subtasks],
        }


@dataclass(slots=True)
class PersistReport:
    """Per-task and per-subtask outcomes of one persistence run."""

    idea_id: str
    tasks: List[TaskOutcome] = field(default_factory=list)

    @property
    def persisted_task_count(self) -> int:
        return sum(1 for outcome in self.tasks if outcome.persisted)

    @property
    def failed_task_count(self) -> int:
        return sum(1 for outcome in self.tasks if not outcome.persisted)

    @property
    def persisted_subtask_count(self) -> int:
        return sum(1 for task in self.tasks for outcome in task.subtasks if outcome.persisted)

    @property
    def failed_subtask_count(self) -> int:
        return sum(1 for task in self.tasks for outcome in task.subtasks if not outcome.persisted)

    @property
    def complete(self) -> bool:
        return self.failed_task_count == 0 and self.failed_subtask_count == 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "idea_id": self.idea_id,
            "complete": self.complete,
            "persisted_tasks": self.persisted_task_count,
            "failed_tasks": self.failed_task_count,
            "persisted_subtasks": self.persisted_subtask_count,
            "failed_subtasks": self.failed_subtask_count,
            "tasks": [outcome.to_dict() for outcome in self.tasks],
        }


class HierarchyPersister:
    """Write generated tasks under an idea, continuing past individual failures.

    Tasks are written in the order given and that position is stored as the
    task's ``order``. A task whose insert fails has its subtasks skipped; a
    failed subtask batch leaves its task in place. Neither stops the
    remaining tasks.
    """

    def __init__(self, store: PlanStore) -> None:
        self._store = store

    def persist(self, idea_id: str, tasks: Sequence[BreakdownTask]) -> PersistReport:
        report = PersistReport(idea_id=idea_id)
        report.tasks = [
            self._persist_task(idea_id, position, generated)
            for position, generated in enumerate(tasks)
        ]
        LOGGER.info(
            "Persisted %d/%d task(s) and %d subtask(s) for idea %s",
            report.persisted_task_count,
            len(report.tasks),
            report.persisted_subtask_count,
            idea_id,
        )
        return report

    def _persist_task(self, idea_id: str, position: int, generated: BreakdownTask) -> TaskOutcome:
        title = generated.title.strip()
        outcome = TaskOutcome(order=position, title=title)
        task = Task(
            idea_id=idea_id,
            title=title,
            description=generated.description,
            phase=title,
            status=ItemStatus.TODO,
            order=position,
        )
        try:
            self._store.create_task(task)
        except Exception as error:
            LOGGER.warning("Failed to insert task %r for idea %s: %s", title, idea_id, error)
            outcome.error = str(error) or type(error).__name__
            return outcome

        outcome.task_id = task.id
        subtasks = [
            Subtask(
                task_id=task.id,
                title=item.title.strip(),
                description=item.description,
                status=ItemStatus.TODO,
                order=index,
            )
            for index, item in enumerate(generated.subtasks)
        ]
        outcome.subtasks = self._persist_subtasks(task, subtasks)
        return outcome

    def _persist_subtasks(self, task: Task, subtasks: List[Subtask]) -> List[SubtaskOutcome]:
        if not subtasks:
            return []
        try:
            self._store.create_subtasks(subtasks)
        except Exception as error:
            LOGGER.warning(
                "Failed to insert %d subtask(s) for task %s: %s", len(subtasks), task.id, error
            )
            message = str(error) or type(error).__name__
            return [
                SubtaskOutcome(order=subtask.order, title=subtask.title, error=message)
                for subtask in subtasks
            ]
        return [
            SubtaskOutcome(order=subtask.order, title=subtask.title, subtask_id=subtask.id)
            for subtask in subtasks
        ]
