"""Local stub that synthesizes deterministic completions for demos and tests."""

from __future__ import annotations

import json
from typing import Any, Dict, Optional

from ..prompts import BREAKDOWN_PHASES
from .llm_client import LLMClient

__all__ = ["OfflineLLMClient", "is_offline_model"]


def is_offline_model(model_name: str) -> bool:
    """Return True when ``model_name`` selects the offline stub."""
    key = (model_name or "").strip().lower()
    return key == "offline" or key.endswith("-offline")


_SUBTASK_TEMPLATES: Dict[str, list[tuple[str, str]]] = {
    "Design": [
        ("Sketch the main screens", "Draw the home, detail and settings screens on paper."),
        ("Pick a visual style", "Choose colors and fonts that fit {app}."),
        ("Build a clickable mockup", "Link the screens together in a free design tool."),
    ],
    "Develop": [
        ("Choose a no-code builder", "Pick a builder that supports the core features of {app}."),
        ("Build the core feature", "Implement the single feature users need most."),
        ("Test with a friend", "Watch someone use {app} and note confusing steps."),
    ],
    "Market": [
        ("Describe the ideal user", "Write one paragraph about who needs {app} most."),
        ("Create a landing page", "Explain the value of {app} and collect emails."),
        ("Share in two communities", "Post about {app} where the ideal users gather."),
    ],
}


class OfflineLLMClient(LLMClient):
    """Deterministic client used when the configured model is offline-only."""

    def __init__(self) -> None:
        super().__init__("offline")

    def _raw_invoke(self, payload: Dict[str, Any]) -> Optional[str]:
        app_name = self._app_name(payload)
        if (payload.get("response_format") or {}).get("type") == "json_object":
            return json.dumps(self._build_breakdown(app_name))
        return self._build_plan(app_name)

    @staticmethod
    def _app_name(payload: Dict[str, Any]) -> str:
        for message in payload.get("messages") or []:
            if message.get("role") != "user":
                continue
            for line in str(message.get("content") or "").splitlines():
                if line.startswith("App Name:"):
                    name = line.split(":", 1)[1].strip()
                    if name:
                        return name
        return "your app"

    @staticmethod
    def _build_plan(app_name: str) -> str:
        return "\n".join(
            [
                "# Idea",
                f"- {app_name} solves one everyday problem",
                "- Simple mobile-first experience",
                "- Free to start using",
                "",
                "# Design",
                "- Sign up, then land on dashboard",
                "- One primary action per screen",
                "- Clean, friendly, minimal style",
                "",
                "# Target Audience",
                "- Busy people wanting simple tools",
                "- Beginners with little technical knowledge",
                "",
                "# MVP Features",
                "1. Account creation and login",
                f"2. Core {app_name} workflow",
                "3. Reminders and notifications",
            ]
        )

    @staticmethod
    def _build_breakdown(app_name: str) -> Dict[str, Any]:
        tasks = []
        for phase in BREAKDOWN_PHASES:
            subtasks = [
                {
                    "title": title,
                    "description": description.format(app=app_name),
                    "prompt": f"Help me {title.lower()} for {app_name}.",
                }
                for title, description in _SUBTASK_TEMPLATES[phase]
            ]
            tasks.append(
                {
                    "title": phase,
                    "description": f"{phase} the first version of {app_name}.",
                    "subtasks": subtasks,
                }
            )
        return {"tasks": tasks}
