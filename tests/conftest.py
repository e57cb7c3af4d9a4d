from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence, Union

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"

if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from ideamax.memory.schema import User  # noqa: E402
from ideamax.memory.store import PlanStore  # noqa: E402
from ideamax.models.llm_client import LLMClient  # noqa: E402

Reply = Union[str, None, Exception]


class StubClient(LLMClient):
    """Generation client that replays canned completions in order."""

    def __init__(self, replies: Sequence[Reply]) -> None:
        super().__init__("stub-model")
        self._replies: List[Reply] = list(replies)
        self.payloads: List[Dict[str, Any]] = []

    @property
    def call_count(self) -> int:
        return len(self.payloads)

    def _raw_invoke(self, payload: Dict[str, Any]) -> Optional[str]:
        self.payloads.append(payload)
        if not self._replies:
            raise AssertionError("StubClient ran out of replies")
        reply = self._replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


def build_breakdown_document(
    task_titles: Sequence[str] = ("Design", "Develop", "Market"),
    subtasks_per_task: int = 5,
    *,
    with_prompt: bool = True,
) -> Dict[str, Any]:
    tasks = []
    for title in task_titles:
        subtasks = []
        for index in range(subtasks_per_task):
            subtask: Dict[str, Any] = {
                "title": f"{title} step {index + 1}",
                "description": f"Do part {index + 1} of {title.lower()}.",
            }
            if with_prompt:
                subtask["prompt"] = f"Help me with {title.lower()} step {index + 1}."
            subtasks.append(subtask)
        tasks.append(
            {
                "title": title,
                "description": f"{title} the MVP.",
                "subtasks": subtasks,
            }
        )
    return {"tasks": tasks}


@pytest.fixture()
def store(tmp_path: Path) -> Iterator[PlanStore]:
    with PlanStore(tmp_path / "ideamax.sqlite") as plan_store:
        yield plan_store


@pytest.fixture()
def owner(store: PlanStore) -> User:
    return store.create_user(User(name="Ada", email="ada@example.com"))


@pytest.fixture()
def stub_client() -> Callable[..., StubClient]:
    def factory(*replies: Reply) -> StubClient:
        return StubClient(replies)

    return factory


@pytest.fixture()
def breakdown_json() -> Callable[..., str]:
    def factory(*args: Any, **kwargs: Any) -> str:
        return json.dumps(build_breakdown_document(*args, **kwargs))

    return factory
