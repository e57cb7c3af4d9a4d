"""Breakdown validation and hierarchy persistence."""

from .parser import parse_breakdown, parse_plan
from .persister import HierarchyPersister, PersistReport, SubtaskOutcome, TaskOutcome
from .schemas import Breakdown, BreakdownSubtask, BreakdownTask

__all__ = [
    "Breakdown",
    "BreakdownSubtask",
    "BreakdownTask",
    "HierarchyPersister",
    "PersistReport",
    "SubtaskOutcome",
    "TaskOutcome",
    "parse_breakdown",
    "parse_plan",
]
