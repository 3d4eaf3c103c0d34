"""Model id -> provider strategy mapping."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Tuple

from ..errors import ConfigurationError
from .anthropic import AnthropicStrategy
from .base import ProviderStrategy
from .gemini import GeminiStrategy
from .ollama import OllamaStrategy
from .xai import XAIStrategy

STRATEGIES: Dict[str, ProviderStrategy] = {
    "gemini": GeminiStrategy(),
    "anthropic": AnthropicStrategy(),
    "xai": XAIStrategy(),
    "ollama": OllamaStrategy(),
}

# Explicit namespaces; the prefix is stripped before the model name is sent
_NAMESPACES: Tuple[Tuple[str, str], ...] = (
    ("gemini/", "gemini"),
    ("google/", "gemini"),
    ("anthropic/", "anthropic"),
    ("xai/", "xai"),
    ("ollama/", "ollama"),
)

# Bare model names; the name is sent unchanged
_BARE_PREFIXES: Tuple[Tuple[str, str], ...] = (
    ("gemini-", "gemini"),
    ("claude-", "anthropic"),
    ("grok-", "xai"),
)


@dataclass(frozen=True)
class ProviderSelection:
    strategy: ProviderStrategy
    model: str

    @property
    def provider(self) -> str:
        return self.strategy.name


def resolve_provider(model_id: str) -> ProviderSelection:
    """Pick the strategy for ``model_id`` without touching the network.

    ``gemini/gemini-2.5-pro`` and ``gemini-2.5-pro`` both select Gemini with
    model ``gemini-2.5-pro``; ``ollama/llama3.1`` selects the local server.
    """

    model_id = (model_id or "").strip()
    lowered = model_id.lower()

    for prefix, provider in _NAMESPACES:
        if lowered.startswith(prefix):
            model = model_id[len(prefix):]
            if not model:
                break
            return ProviderSelection(STRATEGIES[provider], model)

    for prefix, provider in _BARE_PREFIXES:
        if lowered.startswith(prefix):
            return ProviderSelection(STRATEGIES[provider], model_id)

    raise ConfigurationError(
        f"Unknown model '{model_id}'. Use a bare gemini-*, claude-* or grok-* name, "
        "or prefix the model with gemini/, google/, anthropic/, xai/ or ollama/."
    )
