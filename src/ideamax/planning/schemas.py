"""Schema of the task breakdown document returned by the generation service."""

from __future__ import annotations

from typing import List

from pydantic import BaseModel, ConfigDict, Field, StrictStr, field_validator


class BreakdownSubtask(BaseModel):
    """Actionable step under a generated task.

    Advisory fields such as ``prompt`` are accepted and dropped.
    """

    model_config = ConfigDict(extra="ignore", frozen=True)

    title: StrictStr
    description: StrictStr

    @field_validator("title")
    @classmethod
    def _title_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("title must not be blank")
        return value


class BreakdownTask(BaseModel):
    """Top-level phase of work, in execution order."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    title: StrictStr
    description: StrictStr
    subtasks: List[BreakdownSubtask]

    @field_validator("title")
    @classmethod
    def _title_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("title must not be blank")
        return value


class Breakdown(BaseModel):
    """Whole breakdown document: a single ``tasks`` key holding an ordered list."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    tasks: List[BreakdownTask] = Field(min_length=1)


__all__ = ["Breakdown", "BreakdownSubtask", "BreakdownTask"]
