"""Anthropic strategy.

Claude is forced to call a single tool whose input schema is the agent
response, so the structured output arrives as the tool's input object. The
object is re-serialized to JSON text for the shared parser.
"""

from __future__ import annotations

import json
from typing import Any, Dict

from .base import GenerationSettings, ProviderRequest
from .schema import AGENT_RESPONSE_SCHEMA

ANTHROPIC_URL = "https://api.anthropic.com/v1/messages"
ANTHROPIC_VERSION = "2023-06-01"
RESPONSE_TOOL_NAME = "agent_response"


class AnthropicStrategy:
    name = "anthropic"
    credential = "ANTHROPIC_API_KEY"

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
            url=ANTHROPIC_URL,
            headers={
                "Content-Type": "application/json",
                "x-api-key": api_key or "",
                "anthropic-version": ANTHROPIC_VERSION,
            },
            json={
                "model": model,
                "max_tokens": settings.max_output_tokens,
                "temperature": settings.temperature,
                "system": system_prompt,
                "messages": [{"role": "user", "content": user_prompt}],
                "tools": [
                    {
                        "name": RESPONSE_TOOL_NAME,
                        "description": "Return your decision for this iteration.",
                        "input_schema": AGENT_RESPONSE_SCHEMA,
                    }
                ],
                "tool_choice": {"type": "tool", "name": RESPONSE_TOOL_NAME},
            },
        )

    def extract_text(self, payload: Dict[str, Any]) -> str:
        blocks = payload.get("content") or []
        for block in blocks:
            if block.get("type") == "tool_use" and block.get("name") == RESPONSE_TOOL_NAME:
                return json.dumps(block.get("input") or {})
        # Plain text reply when the tool was not used
        return "".join(block.get("text", "") for block in blocks if block.get("type") == "text")
