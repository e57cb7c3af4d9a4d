"""Typed client base class shared by all text-generation integrations."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

from ..errors import UpstreamUnavailable
from ..prompts import Instruction

__all__ = [
    "CredentialMissing",
    "EmptyCompletion",
    "LLMClient",
    "LLMClientError",
    "LLMRequest",
    "OutputContract",
    "ServiceUnavailable",
]


class OutputContract(str, Enum):
    """Shape the caller requires from the completion."""

    FREE_TEXT = "free_text"
    STRICT_JSON = "strict_json"


class LLMClientError(UpstreamUnavailable):
    """Base error raised for generation client failures."""


class ServiceUnavailable(LLMClientError):
    """Raised when the transport fails or the service answers with a non-2xx status."""

    kind = "service_unavailable"


class CredentialMissing(LLMClientError):
    """Raised before any network call when no credential is configured."""

    kind = "credential_missing"


class EmptyCompletion(LLMClientError):
    """Raised when the service returns no usable content."""

    kind = "empty_completion"


@dataclass(slots=True)
class LLMRequest:
    """Typed request payload sent to a chat completion endpoint."""

    instruction: Instruction
    contract: OutputContract = OutputContract.FREE_TEXT
    model: Optional[str] = None
    metadata: Dict[str, str] = field(default_factory=dict)
    temperature: Optional[float] = None

    def to_payload(self, default_model: str) -> Dict[str, Any]:
        """Render a transport-ready payload for the Chat Completions API."""
        messages: list[Dict[str, Any]] = []
        if self.instruction.system:
            messages.append({"role": "system", "content": self.instruction.system})
        messages.append({"role": "user", "content": self.instruction.user})

        payload: Dict[str, Any] = {
            "model": self.model or default_model,
            "messages": messages,
        }
        if self.contract is OutputContract.STRICT_JSON:
            payload["response_format"] = {"type": "json_object"}
        if self.temperature is not None:
            payload["temperature"] = self.temperature
        if self.metadata:
            payload["metadata"] = dict(self.metadata)
        return payload


class LLMClient:
    """High-level helper that turns an instruction into raw completion text.

    Subclasses implement :meth:`_raw_invoke`; they may override
    :meth:`_check_credential` to fail fast when no credential is configured.
    The client never retries: a failed call surfaces its typed error to the
    caller, which decides whether generating again is worthwhile.
    """

    def __init__(self, model: str) -> None:
        self._model = model

    @property
    def model(self) -> str:
        """Return the default model name configured for this client."""
        return self._model

    def generate(
        self,
        instruction: Instruction,
        contract: OutputContract = OutputContract.FREE_TEXT,
        *,
        model: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
        temperature: Optional[float] = None,
    ) -> str:
        """Send ``instruction`` to the service and return the raw completion text."""
        if instruction is None or instruction.is_empty():
            raise ValueError("Cannot generate from an empty instruction.")
        self._check_credential()
        request = LLMRequest(
            instruction=instruction,
            contract=contract,
            model=model,
            metadata={str(key): str(value) for key, value in (metadata or {}).items()},
            temperature=temperature,
        )
        text = self._raw_invoke(request.to_payload(self._model))
        if not text:
            raise EmptyCompletion("Generation service returned no content.")
        return text

    def _check_credential(self) -> None:
        """Raise :class:`CredentialMissing` when the client cannot authenticate."""

    def _raw_invoke(self, payload: Dict[str, Any]) -> Optional[str]:
        """Perform the transport call. Subclasses must implement."""
        raise NotImplementedError("Subclasses must implement _raw_invoke().")
