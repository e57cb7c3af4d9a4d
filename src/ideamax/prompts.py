"""Prompt templates for the plan and task-breakdown generation calls."""

from __future__ import annotations

from dataclasses import dataclass

PLAN_SYSTEM_PROMPT = """\
You are an expert product manager powering ideamax, an app that turns product ideas into simple, \
achievable product requirement documents written with extreme brevity.

Assume the user has very little technical knowledge unless their app summary suggests otherwise, \
and keep the output simple and actionable.

Turn the user's idea into a very concise, digestible and actionable plan using exactly this format:
# Idea
[3-4 bullet points describing the idea, at most 7 words each]

# Design
[3-4 bullet points describing the user flow, the problem solved and the UI style, at most 7 words each]

# Target Audience
[3-4 bullet points describing the target audience, at most 7 words each]

# MVP Features
[2-4 numbered items describing the core MVP features, at most 7 words each]"""

_SUBTASK_SHAPE = """\
          {
            "title": "[Subtask title (max 7 words)]",
            "description": "[Brief subtask description (max 15 words)]",
            "prompt": "[Prompt that helps the user complete the subtask]"
          }"""

BREAKDOWN_PHASES = ("Design", "Develop", "Market")


def _breakdown_json_shape() -> str:
    tasks = []
    for phase in BREAKDOWN_PHASES:
        tasks.append(
            "      {\n"
            f'        "title": "{phase}",\n'
            '        "description": "[Brief task description (max 15 words)]",\n'
            '        "subtasks": [\n'
            f"{_SUBTASK_SHAPE}\n"
            "        ]\n"
            "      }"
        )
    return "{\n" '  "tasks": [\n' + ",\n".join(tasks) + "\n  ]\n}"


BREAKDOWN_SYSTEM_PROMPT = (
    "You are a technical project manager breaking product development down into clear tasks and subtasks.\n"
    "Given an app idea summary, generate 3 main tasks that guide the user to an MVP of their idea "
    "in a reasonable amount of time.\n\n"
    "For each task, create 3-7 actionable and simple subtasks. "
    "Assume the user has very little technical knowledge unless their app summary suggests otherwise.\n\n"
    "For the Design task, base the subtasks on the pages or components the app will have.\n"
    "For the Develop task, base the subtasks on the features the app will have.\n"
    "For the Market task, base the subtasks on the target audience and how to reach them.\n\n"
    "Respond with a single JSON object with exactly this structure and no surrounding text:\n"
    + _breakdown_json_shape()
)


@dataclass(frozen=True, slots=True)
class Instruction:
    """System directive plus user content sent to the generation service."""

    system: str
    user: str

    def is_empty(self) -> bool:
        return not self.system.strip() and not self.user.strip()


def build_plan_instruction(title: str, description: str) -> Instruction:
    """Return the instruction that asks for the narrative plan of an idea."""
    return Instruction(
        system=PLAN_SYSTEM_PROMPT,
        user=f"App Name: {title}\nDescription: {description}",
    )


def build_breakdown_instruction(title: str, description: str, plan: str) -> Instruction:
    """Return the instruction that asks for the task/subtask breakdown of a plan."""
    return Instruction(
        system=BREAKDOWN_SYSTEM_PROMPT,
        user=f"App Name: {title}\nDescription: {description}\nGenerated Plan:\n{plan}",
    )


__all__ = [
    "BREAKDOWN_PHASES",
    "BREAKDOWN_SYSTEM_PROMPT",
    "Instruction",
    "PLAN_SYSTEM_PROMPT",
    "build_breakdown_instruction",
    "build_plan_instruction",
]
