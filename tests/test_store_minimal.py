from __future__ import annotations

import pytest

from ideamax.errors import StoreUnavailable
from ideamax.memory.schema import Idea, ItemStatus, Subtask, Task, User
from ideamax.memory.store import PlanStore


def test_idea_task_subtask_roundtrip(tmp_path) -> None:
    db_path = tmp_path / "ideamax.sqlite"
    with PlanStore(db_path) as store:
        user = store.create_user(User(name="Grace", email="grace@example.com"))
        loaded_user = store.get_user(user.id)
        assert loaded_user is not None
        assert loaded_user.email == "grace@example.com"

        idea = store.create_idea(
            Idea(user_id=user.id, title="Plant Tracker", description="Watering", plan="# Idea")
        )
        loaded_idea = store.get_idea(idea.id)
        assert loaded_idea is not None
        assert loaded_idea.plan == "# Idea"
        assert loaded_idea.completion_level == 0.0
        assert loaded_idea.created_at == idea.created_at

        second = store.create_task(Task(idea_id=idea.id, title="Develop", phase="Develop", order=1))
        first = store.create_task(Task(idea_id=idea.id, title="Design", phase="Design", order=0))
        assert [task.id for task in store.list_tasks(idea.id)] == [first.id, second.id]

        store.create_subtasks(
            [
                Subtask(task_id=first.id, title="Wireframe", order=1),
                Subtask(task_id=first.id, title="Sketch", order=0),
            ]
        )
        subtasks = store.list_subtasks(first.id)
        assert [subtask.title for subtask in subtasks] == ["Sketch", "Wireframe"]
        assert all(subtask.status == ItemStatus.TODO for subtask in subtasks)

        loaded_task = store.get_task(first.id)
        assert loaded_task is not None
        assert loaded_task.status is ItemStatus.TODO

    with PlanStore(db_path) as reopened:
        assert reopened.get_idea(idea.id) is not None
        assert len(reopened.list_tasks(idea.id)) == 2


def test_soft_deleted_ideas_are_hidden(store: PlanStore, owner: User) -> None:
    idea = store.create_idea(Idea(user_id=owner.id, title="T", description="D", plan="P"))

    assert store.soft_delete_idea(idea.id) is True
    assert store.soft_delete_idea(idea.id) is False
    assert store.get_idea(idea.id) is None
    assert store.list_ideas(user_id=owner.id) == []

    hidden = store.get_idea(idea.id, include_deleted=True)
    assert hidden is not None
    assert hidden.deleted_at is not None


def test_task_requires_existing_idea(store: PlanStore) -> None:
    with pytest.raises(StoreUnavailable):
        store.create_task(Task(idea_id="missing-idea", title="Orphan"))


def test_subtask_batch_is_atomic(store: PlanStore, owner: User) -> None:
    idea = store.create_idea(Idea(user_id=owner.id, title="T", description="D", plan="P"))
    task = store.create_task(Task(idea_id=idea.id, title="Design"))
    duplicate = Subtask(task_id=task.id, title="Same id")

    with pytest.raises(StoreUnavailable):
        store.create_subtasks([duplicate, duplicate])

    assert store.list_subtasks(task.id) == []


def test_from_config_uses_db_path(tmp_path) -> None:
    db_path = tmp_path / "nested" / "plans.sqlite"
    with PlanStore.from_config({"paths": {"db_path": db_path.as_posix()}}) as store:
        assert store.db_path == db_path.resolve()
    assert db_path.exists()


def test_unusable_db_path_raises_instead_of_relocating(tmp_path) -> None:
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("occupied", encoding="utf-8")

    with pytest.raises(StoreUnavailable, match="Cannot create database directory"):
        PlanStore(blocker / "ideamax.sqlite")

    assert blocker.read_text(encoding="utf-8") == "occupied"
