"""Google Gemini strategy (generateContent with schema-constrained JSON)."""

from __future__ import annotations

from typing import Any, Dict

from .base import GenerationSettings, ProviderRequest
from .schema import GEMINI_RESPONSE_SCHEMA

GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/models"


class GeminiStrategy:
    name = "gemini"
    credential = "GEMINI_API_KEY"

    def build_request(
        self,
        system_prompt: str,
        user_prompt: str,
        model: str,
        *,
        api_key: str | None,
        settings: GenerationSettings,
    ) -> ProviderRequest:
        # System and task travel as one user turn
        text = f"{system_prompt}\n\nUser Task: {user_prompt}"
        return ProviderRequest(
            url=f"{GEMINI_BASE_URL}/{model}:generateContent",
            headers={
                "Content-Type": "application/json",
                "x-goog-api-key": api_key or "",
            },
            json={
                "contents": [{"role": "user", "parts": [{"text": text}]}],
                "generationConfig": {
                    "maxOutputTokens": settings.max_output_tokens,
                    "temperature": settings.temperature,
                    "responseMimeType": "application/json",
                    "responseSchema": GEMINI_RESPONSE_SCHEMA,
                },
            },
        )

    def extract_text(self, payload: Dict[str, Any]) -> str:
        candidates = payload.get("candidates") or []
        if not candidates:
            return ""
        parts = (candidates[0].get("content") or {}).get("parts") or []
        return "".join(part.get("text", "") for part in parts if isinstance(part, dict))
