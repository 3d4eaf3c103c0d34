"""The single outbound model call of an iteration."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict

import httpx

from ..config import Config
from ..errors import ConfigurationError, ProviderError
from ..logging_utils import debug_llm_enabled, dump_block, log_error, log_llm
from .base import GenerationSettings
from .registry import resolve_provider


@dataclass
class ProviderReply:
    text: str
    provider: str
    model: str
    status: int


async def call_provider(
    system_prompt: str,
    user_prompt: str,
    model_id: str,
    *,
    client: httpx.AsyncClient | None = None,
    settings: GenerationSettings | None = None,
) -> ProviderReply:
    """Call the model selected by ``model_id`` and return its raw text.

    Raises
    ------
    ConfigurationError
        Unknown model id, or the provider's credential is not configured.
        Raised before any network activity.
    ProviderError
        Transport failure, non-2xx status (status and body kept verbatim),
        a non-JSON reply, or a reply without text.
    """

    selection = resolve_provider(model_id)
    strategy = selection.strategy

    api_key = None
    if strategy.credential:
        api_key = Config.api_key_for(selection.provider)
        if not api_key:
            raise ConfigurationError(
                f"{strategy.credential} not configured. Add it to your environment or .env "
                f"to use {selection.provider} models."
            )

    request = strategy.build_request(
        system_prompt,
        user_prompt,
        selection.model,
        api_key=api_key,
        settings=settings or GenerationSettings(),
    )

    log_llm(f"Calling {selection.provider} model {selection.model}")
    if debug_llm_enabled():
        dump_block(f"LLM REQUEST {selection.provider}/{selection.model}", f"{system_prompt}\n\nUser Task: {user_prompt}")

    try:
        if client is None:
            async with httpx.AsyncClient(timeout=Config.LLM_TIMEOUT_SECONDS) as owned:
                response = await owned.post(request.url, headers=request.headers, json=request.json)
        else:
            response = await client.post(request.url, headers=request.headers, json=request.json)
    except httpx.RequestError as exc:
        log_error(f"{selection.provider} request failed: {exc!r}")
        raise ProviderError(
            f"Could not reach {selection.provider} at {request.url}: {exc}",
            provider=selection.provider,
        ) from exc

    if not response.is_success:
        log_error(f"{selection.provider} returned HTTP {response.status_code}")
        raise ProviderError.from_status(selection.provider, response.status_code, response.text)

    try:
        payload: Dict[str, Any] = response.json()
    except ValueError as exc:
        raise ProviderError(
            f"{selection.provider} returned non-JSON response.",
            provider=selection.provider,
            status=response.status_code,
            body=response.text,
        ) from exc

    text = strategy.extract_text(payload)
    if not text or not text.strip():
        raise ProviderError(
            "No response from LLM",
            provider=selection.provider,
            status=response.status_code,
            body=response.text,
        )

    log_llm(f"Response received from {selection.provider} ({len(text)} chars)")
    if debug_llm_enabled():
        dump_block("LLM RAW RESPONSE", text)

    return ProviderReply(
        text=text,
        provider=selection.provider,
        model=selection.model,
        status=response.status_code,
    )
