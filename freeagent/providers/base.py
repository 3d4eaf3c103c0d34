"""Provider strategy interface.

A strategy knows one vendor's wire format: how to build the HTTP request for
a (system, user, model) triple and where the generated text sits in the reply.
It performs no I/O; the client issues the single call.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Protocol

from ..config import Config


@dataclass
class GenerationSettings:
    max_output_tokens: int = field(default_factory=lambda: Config.MAX_OUTPUT_TOKENS)
    temperature: float = field(default_factory=lambda: Config.TEMPERATURE)


@dataclass
class ProviderRequest:
    """A fully built HTTP request (always POST with a JSON body)."""

    url: str
    headers: Dict[str, str]
    json: Dict[str, Any]


class ProviderStrategy(Protocol):
    name: str
    # Name of the Config credential, or None when the provider needs no key
    credential: str | None

    def build_request(
        self,
        system_prompt: str,
        user_prompt: str,
        model: str,
        *,
        api_key: str | None,
        settings: GenerationSettings,
    ) -> ProviderRequest:
        ...

    def extract_text(self, payload: Dict[str, Any]) -> str:
        """Return the generated text, or "" when the reply carries none."""
        ...
