"""Error taxonomy shared by the generation pipeline and its collaborators."""

from __future__ import annotations

__all__ = [
    "ContentInvalid",
    "EmptyPlan",
    "IdeaMaxError",
    "IdeaNotFound",
    "InputInvalid",
    "MalformedBreakdown",
    "OwnershipMismatch",
    "StoreUnavailable",
    "UpstreamUnavailable",
]


class IdeaMaxError(RuntimeError):
    """Base error for every failure surfaced by the pipeline."""

    kind = "internal"
    category = "internal"
    status_code = 500


class InputInvalid(IdeaMaxError):
    """Raised when a required input is missing or does not resolve."""

    kind = "input_invalid"
    category = "input_invalid"
    status_code = 400


class IdeaNotFound(InputInvalid):
    """Raised when an idea id does not resolve to a live idea."""

    kind = "idea_not_found"
    status_code = 404


class OwnershipMismatch(InputInvalid):
    """Raised when the caller does not own the idea it references."""

    kind = "ownership_mismatch"
    status_code = 403


class UpstreamUnavailable(IdeaMaxError):
    """Raised when the generation or persistence service fails."""

    kind = "upstream_unavailable"
    category = "upstream_unavailable"
    status_code = 500


class StoreUnavailable(UpstreamUnavailable):
    """Raised when the persistence service rejects a read or write."""

    kind = "store_unavailable"


class ContentInvalid(IdeaMaxError):
    """Raised when generation succeeded but its output failed validation."""

    kind = "content_invalid"
    category = "content_invalid"
    status_code = 502


class EmptyPlan(ContentInvalid):
    """Raised when the generated plan is blank."""

    kind = "empty_plan"


class MalformedBreakdown(ContentInvalid):
    """Raised when the generated breakdown is not a valid task document."""

    kind = "malformed_breakdown"
