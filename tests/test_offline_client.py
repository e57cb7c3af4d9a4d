from __future__ import annotations

import pytest

from ideamax.models import OfflineLLMClient, OutputContract, is_offline_model
from ideamax.planning.parser import parse_breakdown, parse_plan
from ideamax.prompts import build_breakdown_instruction, build_plan_instruction


@pytest.mark.parametrize(
    "name, expected",
    [("offline", True), ("gpt-4-offline", True), ("GPT-4-OFFLINE", True), ("gpt-4", False), ("", False)],
)
def test_offline_model_detection(name: str, expected: bool) -> None:
    assert is_offline_model(name) is expected


def test_offline_client_produces_parseable_outputs() -> None:
    client = OfflineLLMClient()

    plan = parse_plan(client.generate(build_plan_instruction("Plant Tracker", "Watering")))
    assert plan.startswith("# Idea")
    assert "Plant Tracker" in plan

    raw = client.generate(
        build_breakdown_instruction("Plant Tracker", "Watering", plan),
        OutputContract.STRICT_JSON,
    )
    breakdown = parse_breakdown(raw)
    assert [task.title for task in breakdown.tasks] == ["Design", "Develop", "Market"]
    assert all(len(task.subtasks) == 3 for task in breakdown.tasks)
