"""Strategy for locally hosted models served by Ollama."""

from __future__ import annotations

from typing import Any, Dict

from ..config import Config
from .base import GenerationSettings, ProviderRequest
from .schema import AGENT_RESPONSE_SCHEMA

DEFAULT_OLLAMA_BASE_URL = "http://127.0.0.1:11434"
_CHAT_ENDPOINT = "/api/chat"


class OllamaStrategy:
    name = "ollama"
    credential = None

    def __init__(self, base_url: str | None = None) -> None:
        self.base_url = base_url

    def build_request(
        self,
        system_prompt: str,
        user_prompt: str,
        model: str,
        *,
        api_key: str | None,
        settings: GenerationSettings,
    ) -> ProviderRequest:
        resolved_base = (self.base_url or Config.OLLAMA_BASE_URL or DEFAULT_OLLAMA_BASE_URL).rstrip("/")

        system_prompt = system_prompt.strip()
        user_prompt = user_prompt.strip()

        messages: list[dict[str, str]] = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": user_prompt})

        return ProviderRequest(
            url=f"{resolved_base}{_CHAT_ENDPOINT}",
            headers={"Content-Type": "application/json"},
            json={
                "model": model,
                "messages": messages,
                "stream": False,
                "format": AGENT_RESPONSE_SCHEMA,
                "options": {
                    "temperature": settings.temperature,
                    "num_predict": settings.max_output_tokens,
                },
            },
        )

    def extract_text(self, payload: Dict[str, Any]) -> str:
        message = payload.get("message") or {}
        return message.get("content") or ""
