"""Pipeline orchestration: idea plan generation and task breakdown generation."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Optional

from .errors import IdeaMaxError, IdeaNotFound, InputInvalid, OwnershipMismatch
from .generation_log import write_generation_log
from .memory.schema import Idea
from .memory.store import PlanStore
from .models.llm_client import EmptyCompletion, LLMClient, LLMClientError, OutputContract, ServiceUnavailable
from .planning.parser import parse_breakdown, parse_plan
from .planning.persister import HierarchyPersister, PersistReport
from .prompts import Instruction, build_breakdown_instruction, build_plan_instruction

__all__ = [
    "CreateIdeaRequest",
    "CreateIdeaTasksRequest",
    "IdeaPipeline",
    "PipelineConfig",
    "PipelineResponse",
]

LOGGER = logging.getLogger(__name__)

_RETRYABLE_ERRORS = (ServiceUnavailable, EmptyCompletion)


@dataclass(slots=True)
class CreateIdeaRequest:
    """Validated input for plan generation."""

    title: str
    description: str
    user_id: str


@dataclass(slots=True)
class CreateIdeaTasksRequest:
    """Validated input for task breakdown generation."""

    idea_id: str
    user_id: str


@dataclass(slots=True)
class PipelineConfig:
    """Tunables for a pipeline run, usually read from ``config.yaml``."""

    plan_model: Optional[str] = None
    breakdown_model: Optional[str] = None
    max_attempts: int = 1
    retry_delay: float = 0.5
    temperature: Optional[float] = None
    logs_root: Optional[Path] = None

    @classmethod
    def from_config(cls, config: Mapping[str, Any], *, base_dir: Optional[Path] = None) -> "PipelineConfig":
        models_cfg = config.get("models") or {}
        generation_cfg = config.get("generation") or {}
        paths_cfg = config.get("paths") or {}

        settings = cls()
        plan_model = models_cfg.get("plan")
        if isinstance(plan_model, str) and plan_model.strip():
            settings.plan_model = plan_model.strip()
        breakdown_model = models_cfg.get("breakdown")
        if isinstance(breakdown_model, str) and breakdown_model.strip():
            settings.breakdown_model = breakdown_model.strip()

        max_attempts = generation_cfg.get("max_attempts")
        if isinstance(max_attempts, int) and max_attempts > 0:
            settings.max_attempts = max_attempts
        retry_delay = generation_cfg.get("retry_delay")
        if isinstance(retry_delay, (int, float)) and retry_delay >= 0:
            settings.retry_delay = float(retry_delay)
        temperature = generation_cfg.get("temperature")
        if isinstance(temperature, (int, float)) and not isinstance(temperature, bool) and 0 <= temperature <= 2:
            settings.temperature = float(temperature)

        logs_value = paths_cfg.get("logs")
        if isinstance(logs_value, str) and logs_value.strip():
            logs_root = Path(logs_value.strip())
            if base_dir is not None and not logs_root.is_absolute():
                logs_root = base_dir / logs_root
            settings.logs_root = logs_root
        return settings


@dataclass(slots=True)
class PipelineResponse:
    """Uniform outcome of one pipeline invocation."""

    success: bool
    stage: str
    idea: Optional[Idea] = None
    report: Optional[PersistReport] = None
    error: Optional[str] = None
    category: Optional[str] = None
    message: Optional[str] = None
    status_code: int = 200

    @classmethod
    def failure(cls, stage: str, error: IdeaMaxError) -> "PipelineResponse":
        return cls(
            success=False,
            stage=stage,
            error=error.kind,
            category=error.category,
            message=str(error),
            status_code=error.status_code,
        )

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"success": self.success}
        if self.idea is not None:
            payload["idea"] = self.idea.model_dump(mode="json")
        if self.report is not None:
            payload["report"] = self.report.to_dict()
        if not self.success:
            payload["stage"] = self.stage
            payload["error"] = self.error
            payload["message"] = self.message
        return payload


class IdeaPipeline:
    """Run the two generation pipelines against explicit store and client dependencies.

    Each entry point walks ``validate -> build prompt -> generate -> parse ->
    persist`` and stops at the first failing stage, returning a failed
    :class:`PipelineResponse` that names the stage and the error kind. Once a
    breakdown has been generated and validated, individual write failures no
    longer fail the run: they are recorded in the :class:`PersistReport`.

    ``client`` serves both generation calls unless ``breakdown_client`` is
    given, in which case the breakdown call goes to that client instead.
    """

    def __init__(
        self,
        store: PlanStore,
        client: LLMClient,
        config: Optional[PipelineConfig] = None,
        *,
        breakdown_client: Optional[LLMClient] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._store = store
        self._client = client
        self._breakdown_client = breakdown_client or client
        self._config = config or PipelineConfig()
        self._sleep = sleep
        self._persister = HierarchyPersister(store)

    @property
    def config(self) -> PipelineConfig:
        return self._config

    def create_idea(self, title: Any, description: Any, user_id: Any) -> PipelineResponse:
        """Generate the narrative plan for a new idea and store it with the idea row."""
        stage = "validate"
        try:
            request = self._validate_idea_request(title, description, user_id)
            stage = "build_prompt"
            instruction = build_plan_instruction(request.title, request.description)
            stage = "generate"
            raw = self._generate(
                self._client,
                "plan",
                request,
                instruction,
                OutputContract.FREE_TEXT,
                model=self._config.plan_model,
            )
            stage = "parse"
            plan = parse_plan(raw)
            stage = "persist"
            idea = self._store.create_idea(
                Idea(
                    user_id=request.user_id,
                    title=request.title,
                    description=request.description,
                    plan=plan,
                )
            )
        except IdeaMaxError as error:
            LOGGER.warning("create_idea failed at %s: %s (%s)", stage, error, error.kind)
            return PipelineResponse.failure(stage, error)

        LOGGER.info("Created idea %s for user %s", idea.id, idea.user_id)
        return PipelineResponse(success=True, stage="respond", idea=idea)

    def create_idea_tasks(self, idea_id: Any, user_id: Any) -> PipelineResponse:
        """Generate the task breakdown of an existing idea and persist it."""
        stage = "validate"
        try:
            request = CreateIdeaTasksRequest(
                idea_id=_require_text(idea_id, "idea_id"),
                user_id=_require_text(user_id, "user_id"),
            )
            idea = self._load_owned_idea(request)
            stage = "build_prompt"
            instruction = build_breakdown_instruction(idea.title, idea.description, idea.plan or "")
            stage = "generate"
            raw = self._generate(
                self._breakdown_client,
                "breakdown",
                request,
                instruction,
                OutputContract.STRICT_JSON,
                model=self._config.breakdown_model,
                subject_id=idea.id,
            )
            stage = "parse"
            breakdown = parse_breakdown(raw)
        except IdeaMaxError as error:
            LOGGER.warning("create_idea_tasks failed at %s: %s (%s)", stage, error, error.kind)
            return PipelineResponse.failure(stage, error)

        report = self._persister.persist(idea.id, breakdown.tasks)
        if not report.complete:
            LOGGER.warning(
                "Idea %s breakdown partially persisted: %d task(s) and %d subtask(s) failed",
                idea.id,
                report.failed_task_count,
                report.failed_subtask_count,
            )
        return PipelineResponse(success=True, stage="respond", idea=idea, report=report)

    def _validate_idea_request(self, title: Any, description: Any, user_id: Any) -> CreateIdeaRequest:
        request = CreateIdeaRequest(
            title=_require_text(title, "title"),
            description=_require_text(description, "description"),
            user_id=_require_text(user_id, "user_id"),
        )
        if self._store.get_user(request.user_id) is None:
            raise InputInvalid(f"Owner {request.user_id} does not exist.")
        return request

    def _load_owned_idea(self, request: CreateIdeaTasksRequest) -> Idea:
        idea = self._store.get_idea(request.idea_id)
        if idea is None:
            raise IdeaNotFound(f"Idea {request.idea_id} not found.")
        if idea.user_id != request.user_id:
            raise OwnershipMismatch(f"Idea {request.idea_id} is not owned by user {request.user_id}.")
        if not (idea.plan or "").strip():
            raise InputInvalid(f"Idea {request.idea_id} has no generated plan.")
        return idea

    def _generate(
        self,
        client: LLMClient,
        stage: str,
        request: Any,
        instruction: Instruction,
        contract: OutputContract,
        *,
        model: Optional[str] = None,
        subject_id: Optional[str] = None,
    ) -> str:
        """Call ``client``, retrying transient failures up to ``max_attempts``."""
        attempts = max(1, self._config.max_attempts)
        logged_model = model or client.model
        for attempt in range(1, attempts + 1):
            try:
                raw = client.generate(
                    instruction,
                    contract,
                    model=model,
                    metadata={"stage": stage},
                    temperature=self._config.temperature,
                )
            except LLMClientError as error:
                self._log_generation(stage, request, instruction, logged_model, attempt, None, error, subject_id)
                if not isinstance(error, _RETRYABLE_ERRORS) or attempt >= attempts:
                    raise
                LOGGER.info(
                    "Generation for %s failed on attempt %d/%d (%s); retrying",
                    stage,
                    attempt,
                    attempts,
                    error.kind,
                )
                self._sleep(self._config.retry_delay)
                continue
            self._log_generation(stage, request, instruction, logged_model, attempt, raw, None, subject_id)
            return raw
        raise AssertionError("unreachable")  # pragma: no cover

    def _log_generation(
        self,
        stage: str,
        request: Any,
        instruction: Instruction,
        model: str,
        attempt: int,
        raw: Optional[str],
        error: Optional[Exception],
        subject_id: Optional[str],
    ) -> None:
        write_generation_log(
            self._config.logs_root,
            stage,
            request,
            instruction,
            model=model,
            attempt=attempt,
            raw=raw,
            error=error,
            subject_id=subject_id,
        )


def _require_text(value: Any, field_name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise InputInvalid(f"Missing required field: {field_name}")
    return value.strip()
