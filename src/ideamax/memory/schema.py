"""Typed records persisted by the ideamax plan store."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import IntEnum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


def utc_now() -> datetime:
    """Return a timezone-aware UTC timestamp."""
    return datetime.now(timezone.utc)


def new_id() -> str:
    """Return a fresh random row identity."""
    return str(uuid.uuid4())


class RecordModel(BaseModel):
    """Base Pydantic model with strict field handling."""

    model_config = ConfigDict(extra="forbid", frozen=False)


class ItemStatus(IntEnum):
    """Progress code shared by tasks and subtasks."""

    TODO = 0
    IN_PROGRESS = 1
    DONE = 2


class User(RecordModel):
    """Account that owns ideas."""

    id: str = Field(default_factory=new_id)
    name: str = ""
    email: str = ""
    password_hash: Optional[str] = None
    created_at: datetime = Field(default_factory=utc_now)
    deleted_at: Optional[datetime] = None


class Idea(RecordModel):
    """Submitted product concept plus its generated narrative plan."""

    id: str = Field(default_factory=new_id)
    user_id: str
    title: str
    description: str
    plan: Optional[str] = None
    completion_level: float = Field(default=0.0, ge=0.0, le=1.0)
    created_at: datetime = Field(default_factory=utc_now)
    deleted_at: Optional[datetime] = None


class Task(RecordModel):
    """Top-level phase of work derived from an idea's plan."""

    id: str = Field(default_factory=new_id)
    idea_id: str
    title: str
    description: str = ""
    phase: Optional[str] = None
    status: ItemStatus = ItemStatus.TODO
    order: int = 0
    created_at: datetime = Field(default_factory=utc_now)
    deleted_at: Optional[datetime] = None


class Subtask(RecordModel):
    """Actionable unit of work under a task."""

    id: str = Field(default_factory=new_id)
    task_id: str
    title: str
    description: str = ""
    status: ItemStatus = ItemStatus.TODO
    order: int = 0
    created_at: datetime = Field(default_factory=utc_now)
    deleted_at: Optional[datetime] = None
