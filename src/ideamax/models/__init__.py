"""Convenience exports for ideamax generation client implementations."""

from .llm_client import (
    CredentialMissing,
    EmptyCompletion,
    LLMClient,
    LLMClientError,
    LLMRequest,
    OutputContract,
    ServiceUnavailable,
)
from .offline import OfflineLLMClient, is_offline_model
from .openai_chat import OpenAIChatClient

__all__ = [
    "CredentialMissing",
    "EmptyCompletion",
    "LLMClient",
    "LLMClientError",
    "LLMRequest",
    "OfflineLLMClient",
    "OpenAIChatClient",
    "OutputContract",
    "ServiceUnavailable",
    "is_offline_model",
]
