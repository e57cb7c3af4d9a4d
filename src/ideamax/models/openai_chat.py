"""Production client that speaks the OpenAI Chat Completions API."""

from __future__ import annotations

import json
import logging
import os
from typing import Any, Callable, Dict, Optional

from .llm_client import CredentialMissing, EmptyCompletion, LLMClient, ServiceUnavailable

__all__ = ["DEFAULT_BASE_URL", "OpenAIChatClient"]

LOGGER = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.openai.com/v1/chat/completions"

Transport = Callable[[Dict[str, Any]], str]


class OpenAIChatClient(LLMClient):
    """Thin adapter around the Chat Completions endpoint."""

    def __init__(
        self,
        *,
        api_key: Optional[str] = None,
        base_url: str = DEFAULT_BASE_URL,
        model: str = "gpt-4",
        transport: Optional[Transport] = None,
        timeout: float = 60.0,
    ) -> None:
        super().__init__(model=model)
        self._api_key = api_key or os.getenv("IDEAMAX_API_KEY") or os.getenv("OPENAI_API_KEY")
        self._base_url = base_url
        timeout_override = os.getenv("IDEAMAX_TIMEOUT")
        if timeout_override:
            try:
                parsed = float(timeout_override)
                if parsed > 0:
                    timeout = parsed
            except ValueError:
                LOGGER.warning("Ignoring invalid IDEAMAX_TIMEOUT value %r", timeout_override)
        self._timeout = timeout
        self._transport = transport or self._http_transport

    @property
    def timeout(self) -> float:
        return self._timeout

    def _check_credential(self) -> None:
        if not self._api_key:
            raise CredentialMissing(
                "No API key configured. Set IDEAMAX_API_KEY or OPENAI_API_KEY, or models.api_key in the config."
            )

    def _raw_invoke(self, payload: Dict[str, Any]) -> Optional[str]:
        """Send the request over the configured transport and extract the message text."""
        try:
            raw_response = self._transport(payload)
        except ServiceUnavailable:
            raise
        except Exception as error:
            raise ServiceUnavailable(f"Transport rejected the request: {error}") from error
        return self._extract_message_content(raw_response)

    def _http_transport(self, payload: Dict[str, Any]) -> str:
        """Default HTTP transport that targets the Chat Completions endpoint."""
        import urllib.error
        import urllib.request

        LOGGER.debug("POST %s model=%s", self._base_url, payload.get("model"))
        data = json.dumps(payload).encode("utf-8")
        request = urllib.request.Request(
            self._base_url,
            data=data,
            headers={
                "Content-Type": "application/json",
                "Authorization": f"Bearer {self._api_key}",
            },
            method="POST",
        )

        try:
            with urllib.request.urlopen(request, timeout=self._timeout) as response:
                raw = response.read()
                status = getattr(response, "status", 200)
        except TimeoutError as error:  # pragma: no cover - network-dependent
            raise ServiceUnavailable("Generation service timed out.") from error
        except urllib.error.HTTPError as error:  # pragma: no cover - network-dependent
            message = error.read().decode("utf-8", errors="ignore")
            raise ServiceUnavailable(f"HTTP {error.code}: {message}") from error
        except urllib.error.URLError as error:  # pragma: no cover - network-dependent
            raise ServiceUnavailable(f"Failed to reach generation endpoint: {error.reason}") from error

        if status < 200 or status >= 300:
            raise ServiceUnavailable(f"Unexpected HTTP status {status}")

        return raw.decode("utf-8")

    @staticmethod
    def _extract_message_content(raw_response: str) -> Optional[str]:
        """Return ``choices[0].message.content`` from a Chat Completions response."""
        if not raw_response:
            raise EmptyCompletion("Generation service returned an empty body.")
        try:
            data = json.loads(raw_response)
        except json.JSONDecodeError as error:
            raise ServiceUnavailable("Generation service returned a non-JSON body.") from error

        if not isinstance(data, dict):
            raise ServiceUnavailable("Generation service returned an unexpected body.")

        error_payload = data.get("error")
        if error_payload:
            message = error_payload.get("message") if isinstance(error_payload, dict) else error_payload
            raise ServiceUnavailable(f"Generation service reported an error: {message}")

        choices = data.get("choices")
        if not isinstance(choices, list) or not choices:
            raise EmptyCompletion("Generation service returned no choices.")

        first = choices[0]
        message = first.get("message") if isinstance(first, dict) else None
        if not isinstance(message, dict):
            raise EmptyCompletion("Generation service returned a choice without a message.")
        content = message.get("content")
        if content is None:
            return None
        if not isinstance(content, str):
            raise EmptyCompletion("Generation service returned non-text message content.")
        return content
