"""Structured on-disk logs of each generation call, for later debugging."""

from __future__ import annotations

import hashlib
import json
import logging
import re
import uuid
from dataclasses import asdict, is_dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from .prompts import Instruction

__all__ = ["write_generation_log"]

LOGGER = logging.getLogger(__name__)


def write_generation_log(
    logs_root: Optional[Path],
    stage: str,
    request: Any,
    instruction: Instruction,
    *,
    model: Optional[str] = None,
    attempt: int = 1,
    raw: Optional[str] = None,
    error: Optional[Exception] = None,
    subject_id: Optional[str] = None,
) -> Optional[Path]:
    """Persist one generation attempt as JSON under ``<logs_root>/generations``.

    Returns the written path, or ``None`` when logging is disabled or the
    file cannot be written.
    """
    if logs_root is None:
        return None
    target_dir = Path(logs_root) / "generations"
    try:
        target_dir.mkdir(parents=True, exist_ok=True)
    except OSError as os_error:
        LOGGER.debug("Cannot create generation log directory %s: %s", target_dir, os_error)
        return None

    timestamp = datetime.now(timezone.utc)
    entry: dict[str, Any] = {
        "timestamp": timestamp.isoformat(),
        "stage": stage,
        "attempt": attempt,
        "model": model,
        "request": _json_safe(request),
        "instruction": {"system": instruction.system, "user": instruction.user},
        "raw": raw,
    }
    if error is not None:
        entry["error"] = {"kind": getattr(error, "kind", type(error).__name__), "message": str(error)}

    parts = ["generation", _slug(stage, fallback="stage")]
    if subject_id:
        parts.append(_slug(subject_id))
    parts.append(f"attempt-{attempt}")
    parts.append(timestamp.strftime("%Y%m%dT%H%M%S%fZ"))
    parts.append(uuid.uuid4().hex[:8])
    log_path = target_dir / ("__".join(parts) + ".json")
    try:
        with log_path.open("w", encoding="utf-8") as handle:
            json.dump(entry, handle, indent=2, sort_keys=True, ensure_ascii=False)
    except OSError as os_error:
        LOGGER.debug("Cannot write generation log %s: %s", log_path, os_error)
        return None
    return log_path


def _json_safe(value: Any) -> Any:
    """Coerce complex objects into JSON-serialisable representations."""
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, Path):
        return value.as_posix()
    if is_dataclass(value) and not isinstance(value, type):
        return _json_safe(asdict(value))
    if hasattr(value, "model_dump"):
        return _json_safe(value.model_dump(mode="json"))
    if isinstance(value, dict):
        return {str(key): _json_safe(val) for key, val in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [_json_safe(item) for item in value]
    return str(value)


def _slug(value: str, *, fallback: str = "item", max_length: int = 80) -> str:
    """Normalise identifiers for use in log filenames."""
    cleaned = re.sub(r"[^A-Za-z0-9]+", "-", value).strip("-")
    slug = cleaned or fallback
    if len(slug) <= max_length:
        return slug
    digest = hashlib.sha256(slug.encode("utf-8")).hexdigest()[:8]
    prefix_length = max(max_length - len(digest) - 1, 1)
    prefix = slug[:prefix_length].rstrip("-") or slug[:prefix_length]
    return f"{prefix}-{digest}"
