"""Tests for provider selection, request building and the model call."""

import json

import httpx
import pytest

from freeagent.config import Config
from freeagent.errors import ConfigurationError, ProviderError
from freeagent.providers import (
    GEMINI_RESPONSE_SCHEMA,
    GenerationSettings,
    call_provider,
    resolve_provider,
)
from freeagent.providers.anthropic import AnthropicStrategy
from freeagent.providers.gemini import GeminiStrategy
from freeagent.providers.ollama import OllamaStrategy
from freeagent.providers.registry import STRATEGIES
from freeagent.providers.xai import XAIStrategy

SETTINGS = GenerationSettings(max_output_tokens=1024, temperature=0.2)


@pytest.mark.parametrize(
    "model_id, provider, model",
    [
        ("gemini-2.5-flash", "gemini", "gemini-2.5-flash"),
        ("gemini/gemini-2.5-pro", "gemini", "gemini-2.5-pro"),
        ("google/gemini-2.0-flash", "gemini", "gemini-2.0-flash"),
        ("claude-sonnet-4-5", "anthropic", "claude-sonnet-4-5"),
        ("anthropic/claude-haiku-4-5", "anthropic", "claude-haiku-4-5"),
        ("grok-4", "xai", "grok-4"),
        ("xai/grok-3-mini", "xai", "grok-3-mini"),
        ("ollama/llama3.1", "ollama", "llama3.1"),
    ],
)
def test_resolve_provider(model_id, provider, model):
    selection = resolve_provider(model_id)
    assert selection.provider == provider
    assert selection.model == model


@pytest.mark.parametrize("model_id", ["gpt-4o", "", "ollama/"])
def test_resolve_provider_rejects_unknown(model_id):
    with pytest.raises(ConfigurationError):
        resolve_provider(model_id)


def test_gemini_request_uses_response_schema():
    request = GeminiStrategy().build_request("SYS", "TASK", "gemini-2.5-flash", api_key="k", settings=SETTINGS)

    assert request.url.endswith("/models/gemini-2.5-flash:generateContent")
    assert request.headers["x-goog-api-key"] == "k"
    assert request.json["contents"][0]["parts"][0]["text"] == "SYS\n\nUser Task: TASK"
    config = request.json["generationConfig"]
    assert config["responseMimeType"] == "application/json"
    assert config["maxOutputTokens"] == 1024
    assert config["responseSchema"] is GEMINI_RESPONSE_SCHEMA


def test_gemini_schema_encodes_params_as_strings():
    call_item = GEMINI_RESPONSE_SCHEMA["properties"]["tool_calls"]["items"]
    assert GEMINI_RESPONSE_SCHEMA["type"] == "OBJECT"
    assert call_item["properties"]["tool"] == {"type": "STRING"}
    assert call_item["properties"]["params"]["type"] == "STRING"
    assert "additionalProperties" not in json.dumps(GEMINI_RESPONSE_SCHEMA)


def test_gemini_extract_text():
    payload = {"candidates": [{"content": {"parts": [{"text": '{"a":'}, {"text": " 1}"}]}}]}
    assert GeminiStrategy().extract_text(payload) == '{"a": 1}'
    assert GeminiStrategy().extract_text({"candidates": []}) == ""


def test_anthropic_forces_tool_use_and_reserializes_input():
    strategy = AnthropicStrategy()
    request = strategy.build_request("SYS", "TASK", "claude-sonnet-4-5", api_key="k", settings=SETTINGS)

    assert request.headers["x-api-key"] == "k"
    assert request.headers["anthropic-version"] == "2023-06-01"
    assert request.json["system"] == "SYS"
    assert request.json["tool_choice"] == {"type": "tool", "name": "agent_response"}
    assert request.json["tools"][0]["input_schema"]["required"] == [
        "reasoning",
        "tool_calls",
        "blackboard_entry",
        "status",
    ]

    payload = {
        "content": [
            {"type": "tool_use", "name": "agent_response", "input": {"reasoning": "r", "status": "in_progress"}}
        ]
    }
    assert json.loads(strategy.extract_text(payload)) == {"reasoning": "r", "status": "in_progress"}


def test_xai_uses_json_schema_response_format():
    strategy = XAIStrategy()
    request = strategy.build_request("SYS", "TASK", "grok-4", api_key="k", settings=SETTINGS)

    assert request.url == "https://api.x.ai/v1/chat/completions"
    assert request.headers["Authorization"] == "Bearer k"
    assert request.json["response_format"]["type"] == "json_schema"
    assert request.json["messages"][0] == {"role": "system", "content": "SYS"}
    assert strategy.extract_text({"choices": [{"message": {"content": "{}"}}]}) == "{}"


def test_ollama_builds_chat_payload():
    strategy = OllamaStrategy(base_url="http://localhost:11434/")
    request = strategy.build_request(" System context ", "User payload", "llama3.1", api_key=None, settings=SETTINGS)

    assert request.url == "http://localhost:11434/api/chat"
    assert request.json["model"] == "llama3.1"
    assert request.json["stream"] is False
    assert request.json["messages"][0] == {"role": "system", "content": "System context"}
    assert request.json["messages"][1] == {"role": "user", "content": "User payload"}
    assert request.json["format"]["type"] == "object"
    assert strategy.extract_text({"message": {"content": "ok"}}) == "ok"


@pytest.mark.asyncio
async def test_call_provider_success(monkeypatch):
    monkeypatch.setattr(Config, "GEMINI_API_KEY", "test-key")
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["key"] = request.headers["x-goog-api-key"]
        return httpx.Response(200, json={"candidates": [{"content": {"parts": [{"text": '{"reasoning": "hi"}'}]}}]})

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        reply = await call_provider("SYS", "TASK", "gemini-2.5-flash", client=client)

    assert reply.text == '{"reasoning": "hi"}'
    assert reply.provider == "gemini"
    assert seen["key"] == "test-key"
    assert "gemini-2.5-flash:generateContent" in seen["url"]


@pytest.mark.asyncio
async def test_missing_key_raises_before_network(monkeypatch):
    monkeypatch.setattr(Config, "ANTHROPIC_API_KEY", None)

    def handler(request: httpx.Request) -> httpx.Response:  # pragma: no cover - must not be called
        raise AssertionError("network call made without credentials")

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        with pytest.raises(ConfigurationError, match="ANTHROPIC_API_KEY"):
            await call_provider("SYS", "TASK", "claude-sonnet-4-5", client=client)


@pytest.mark.asyncio
async def test_non_2xx_surfaces_status_and_body(monkeypatch):
    monkeypatch.setattr(Config, "XAI_API_KEY", "k")

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, text="upstream exploded")

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        with pytest.raises(ProviderError) as excinfo:
            await call_provider("SYS", "TASK", "grok-4", client=client)

    assert excinfo.value.status == 500
    assert excinfo.value.body == "upstream exploded"
    assert str(excinfo.value) == "LLM Error 500: upstream exploded"


@pytest.mark.asyncio
async def test_transport_failure_has_no_status():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        with pytest.raises(ProviderError) as excinfo:
            await call_provider("SYS", "TASK", "ollama/llama3.1", client=client)

    assert excinfo.value.status is None
    assert excinfo.value.provider == "ollama"


@pytest.mark.asyncio
async def test_empty_text_is_provider_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"message": {"content": "   "}})

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        with pytest.raises(ProviderError, match="No response from LLM"):
            await call_provider("SYS", "TASK", "ollama/llama3.1", client=client)


def test_credentials_resolve_through_config(monkeypatch):
    for strategy in STRATEGIES.values():
        if strategy.credential is None:
            assert Config.api_key_for(strategy.name) is None
            continue
        monkeypatch.setattr(Config, strategy.credential, f"{strategy.name}-key")
        assert Config.api_key_for(strategy.name) == f"{strategy.name}-key"


@pytest.mark.asyncio
async def test_xai_key_sent_as_bearer(monkeypatch):
    monkeypatch.setattr(Config, "XAI_API_KEY", "xai-secret")
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["auth"] = request.headers["authorization"]
        return httpx.Response(200, json={"choices": [{"message": {"content": "{}"}}]})

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        await call_provider("SYS", "TASK", "grok-4", client=client)

    assert seen["auth"] == "Bearer xai-secret"
