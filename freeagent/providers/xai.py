"""xAI (Grok) strategy using the OpenAI-compatible chat completions API."""

from __future__ import annotations

from typing import Any, Dict

from .base import GenerationSettings, ProviderRequest
from .schema import AGENT_RESPONSE_SCHEMA

XAI_URL = "https://api.x.ai/v1/chat/completions"


class XAIStrategy:
    name = "xai"
    credential = "XAI_API_KEY"

    def build_request(
        self,
        system_prompt: str,
        user_prompt: str,
        model: str,
        *,
        api_key: str | None,
        settings: GenerationSettings,
    ) -> ProviderRequest:
        return ProviderRequest(
            url=XAI_URL,
            headers={
                "Content-Type": "application/json",
                "Authorization": f"Bearer {api_key or ''}",
            },
            json={
                "model": model,
                "messages": [
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                "max_tokens": settings.max_output_tokens,
                "temperature": settings.temperature,
                "response_format": {
                    "type": "json_schema",
                    "json_schema": {
                        "name": "agent_response",
                        "schema": AGENT_RESPONSE_SCHEMA,
                        "strict": False,
                    },
                },
            },
        )

    def extract_text(self, payload: Dict[str, Any]) -> str:
        choices = payload.get("choices") or []
        if not choices:
            return ""
        message = choices[0].get("message") or {}
        return message.get("content") or ""
