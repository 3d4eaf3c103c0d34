"""Model provider adapters."""

from .base import GenerationSettings, ProviderRequest, ProviderStrategy
from .client import ProviderReply, call_provider
from .registry import STRATEGIES, ProviderSelection, resolve_provider
from .schema import AGENT_RESPONSE_SCHEMA, GEMINI_RESPONSE_SCHEMA

__all__ = [
    "AGENT_RESPONSE_SCHEMA",
    "GEMINI_RESPONSE_SCHEMA",
    "GenerationSettings",
    "ProviderReply",
    "ProviderRequest",
    "ProviderSelection",
    "ProviderStrategy",
    "STRATEGIES",
    "call_provider",
    "resolve_provider",
]
