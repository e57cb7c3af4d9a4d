from __future__ import annotations

import json
from pathlib import Path
from typing import Sequence

from ideamax.errors import StoreUnavailable
from ideamax.memory.schema import Idea, ItemStatus, Subtask, Task, User
from ideamax.memory.store import PlanStore
from ideamax.planning.parser import parse_breakdown
from ideamax.planning.persister import HierarchyPersister


class FaultyStore(PlanStore):
    """Plan store that fails writes for selected task titles."""

    def __init__(
        self,
        db_path: Path,
        *,
        failing_tasks: Sequence[str] = (),
        failing_subtask_batches: Sequence[str] = (),
    ) -> None:
        super().__init__(db_path)
        self.failing_tasks = set(failing_tasks)
        self.failing_subtask_batches = set(failing_subtask_batches)
        self._titles_by_task: dict[str, str] = {}

    def create_task(self, task: Task) -> Task:
        if task.title in self.failing_tasks:
            raise StoreUnavailable(f"simulated fault inserting {task.title}")
        self._titles_by_task[task.id] = task.title
        return super().create_task(task)

    def create_subtasks(self, subtasks: Sequence[Subtask]) -> list[Subtask]:
        records = list(subtasks)
        if records and self._titles_by_task.get(records[0].task_id) in self.failing_subtask_batches:
            raise RuntimeError("simulated subtask batch fault")
        return super().create_subtasks(records)


def _seed_idea(store: PlanStore) -> Idea:
    user = store.create_user(User(name="Lin", email="lin@example.com"))
    return store.create_idea(Idea(user_id=user.id, title="Plant Tracker", description="Watering", plan="# Idea"))


def test_tasks_are_written_in_generated_order(store: PlanStore, owner: User, breakdown_json) -> None:
    idea = store.create_idea(Idea(user_id=owner.id, title="T", description="D", plan="P"))
    breakdown = parse_breakdown(breakdown_json(("A", "B", "C"), 2))

    report = HierarchyPersister(store).persist(idea.id, breakdown.tasks)

    tasks = store.list_tasks(idea.id)
    assert [task.title for task in tasks] == ["A", "B", "C"]
    assert [task.order for task in tasks] == [0, 1, 2]
    assert [task.phase for task in tasks] == ["A", "B", "C"]
    assert all(task.status is ItemStatus.TODO for task in tasks)
    assert [outcome.task_id for outcome in report.tasks] == [task.id for task in tasks]
    assert report.complete
    assert report.persisted_subtask_count == 6

    subtasks = store.list_subtasks(tasks[1].id)
    assert [subtask.title for subtask in subtasks] == ["B step 1", "B step 2"]
    assert [subtask.order for subtask in subtasks] == [0, 1]


def test_failed_task_skips_only_its_subtasks(tmp_path: Path, breakdown_json) -> None:
    with FaultyStore(tmp_path / "faulty.sqlite", failing_tasks=["B"]) as store:
        idea = _seed_idea(store)
        breakdown = parse_breakdown(breakdown_json(("A", "B", "C"), 3))

        report = HierarchyPersister(store).persist(idea.id, breakdown.tasks)

        tasks = store.list_tasks(idea.id)
        assert [task.title for task in tasks] == ["A", "C"]
        assert [task.order for task in tasks] == [0, 2]
        assert all(len(store.list_subtasks(task.id)) == 3 for task in tasks)

        failed = report.tasks[1]
        assert failed.title == "B"
        assert failed.task_id is None
        assert "simulated fault" in (failed.error or "")
        assert failed.subtasks == []
        assert report.failed_task_count == 1
        assert report.persisted_task_count == 2
        assert report.persisted_subtask_count == 6
        assert not report.complete


def test_failed_subtask_batch_keeps_task_and_continues(tmp_path: Path, breakdown_json) -> None:
    with FaultyStore(tmp_path / "faulty.sqlite", failing_subtask_batches=["A"]) as store:
        idea = _seed_idea(store)
        breakdown = parse_breakdown(breakdown_json(("A", "B"), 2))

        report = HierarchyPersister(store).persist(idea.id, breakdown.tasks)

        tasks = store.list_tasks(idea.id)
        assert [task.title for task in tasks] == ["A", "B"]
        assert store.list_subtasks(tasks[0].id) == []
        assert len(store.list_subtasks(tasks[1].id)) == 2

        first = report.tasks[0]
        assert first.persisted
        assert [outcome.error for outcome in first.subtasks] == ["simulated subtask batch fault"] * 2
        assert report.failed_subtask_count == 2
        assert report.persisted_subtask_count == 2


def test_advisory_fields_are_not_persisted(store: PlanStore, owner: User, breakdown_json) -> None:
    idea = store.create_idea(Idea(user_id=owner.id, title="T", description="D", plan="P"))
    breakdown = parse_breakdown(breakdown_json(("Design",), 1, with_prompt=True))

    HierarchyPersister(store).persist(idea.id, breakdown.tasks)

    task = store.list_tasks(idea.id)[0]
    subtask = store.list_subtasks(task.id)[0]
    assert "prompt" not in subtask.model_dump()
    columns = {row[1] for row in store._conn.execute("PRAGMA table_info(subtasks)").fetchall()}
    assert "prompt" not in columns


def test_report_serialises_outcomes(store: PlanStore, owner: User, breakdown_json) -> None:
    idea = store.create_idea(Idea(user_id=owner.id, title="T", description="D", plan="P"))
    breakdown = parse_breakdown(breakdown_json(("Design", "Market"), 1))

    payload = HierarchyPersister(store).persist(idea.id, breakdown.tasks).to_dict()

    assert payload["idea_id"] == idea.id
    assert payload["complete"] is True
    assert payload["persisted_tasks"] == 2
    assert [task["title"] for task in payload["tasks"]] == ["Design", "Market"]
    assert payload["tasks"][0]["subtasks"][0]["subtask_id"]


def test_padded_titles_are_stored_stripped(store: PlanStore, owner: User) -> None:
    idea = store.create_idea(Idea(user_id=owner.id, title="T", description="D", plan="P"))
    document = {
        "tasks": [
            {
                "title": "  Design \n",
                "description": "d",
                "subtasks": [{"title": " Sketch ", "description": "s"}],
            }
        ]
    }
    breakdown = parse_breakdown(json.dumps(document))

    report = HierarchyPersister(store).persist(idea.id, breakdown.tasks)

    task = store.list_tasks(idea.id)[0]
    assert task.title == "Design"
    assert task.phase == task.title
    assert report.tasks[0].title == "Design"
    assert store.list_subtasks(task.id)[0].title == "Sketch"
