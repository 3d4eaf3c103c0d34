"""End-to-end tests for a single iteration with a mocked provider."""

import json

import httpx
import pytest

from freeagent.config import Config
from freeagent.controller import IterationController
from freeagent.schemas import (
    BlackboardCategory,
    BlackboardEntry,
    IterationRequest,
    IterationStatus,
    PromptSection,
)
from freeagent.tools import FunctionToolExecutor, ToolDispatcher

SECTIONS = [
    PromptSection(id="identity", type="static", order=0, content="You are FreeAgent."),
    PromptSection(id="tools", type="dynamic", order=1, content="{{TOOLS_LIST}}"),
    PromptSection(id="blackboard", type="dynamic", order=2, content="## Blackboard\n{{BLACKBOARD_CONTENT}}"),
]


def gemini_reply(body) -> httpx.Response:
    text = body if isinstance(body, str) else json.dumps(body)
    return httpx.Response(200, json={"candidates": [{"content": {"parts": [{"text": text}]}}]})


def make_controller(handler, executors=None) -> IterationController:
    async def get_time(params):
        return {"time": "2025-01-01T12:00:00Z", "timezone": params.get("timezone", "UTC")}

    dispatcher = ToolDispatcher(executors if executors is not None else {"get_time": FunctionToolExecutor(get_time)})
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return IterationController(dispatcher=dispatcher, http_client=client)


def make_request(**overrides) -> IterationRequest:
    fields = dict(prompt="What time is it?", model="gemini-2.5-flash", prompt_sections=SECTIONS, iteration=1)
    fields.update(overrides)
    return IterationRequest(**fields)


@pytest.fixture(autouse=True)
def gemini_key(monkeypatch):
    monkeypatch.setattr(Config, "GEMINI_API_KEY", "test-key")


@pytest.mark.asyncio
async def test_tool_call_iteration():
    reply = {
        "reasoning": "Look up the time first",
        "tool_calls": [{"tool": "get_time", "params": {"timezone": "UTC"}}],
        "blackboard_entry": {"category": "plan", "content": "Fetching the current time"},
        "status": "in_progress",
    }
    controller = make_controller(lambda request: gemini_reply(reply))

    response = await controller.run_iteration(make_request(iteration=3))

    assert response.success
    assert response.status == IterationStatus.IN_PROGRESS
    assert len(response.tool_results) == 1
    assert response.tool_results[0].success
    assert response.tool_results[0].result["timezone"] == "UTC"
    assert response.blackboard_entry.category == BlackboardCategory.PLAN
    assert response.blackboard_entry.iteration == 3
    assert response.frontend_handlers == []
    assert response.scratchpad is None
    assert response.debug.provider == "gemini"
    assert response.debug.parse_tier == "strict"
    assert response.debug.system_prompt.startswith("You are FreeAgent.")
    assert response.debug.full_prompt_sent.endswith("User Task: What time is it?")


@pytest.mark.asyncio
async def test_frontend_tools_are_returned_as_handlers():
    reply = {
        "reasoning": "Note it down",
        "tool_calls": [
            {"tool": "write_scratchpad", "params": {"content": "noon"}},
            {"tool": "get_time", "params": {}},
        ],
        "blackboard_entry": {"category": "decision", "content": "Saving"},
        "status": "in_progress",
    }
    controller = make_controller(lambda request: gemini_reply(reply))

    response = await controller.run_iteration(make_request())

    assert [handler.tool for handler in response.frontend_handlers] == ["write_scratchpad"]
    assert [result.tool for result in response.tool_results] == ["get_time"]


@pytest.mark.asyncio
async def test_missing_blackboard_entry_is_a_warning():
    reply = {"reasoning": "thinking", "tool_calls": [], "status": "in_progress"}
    controller = make_controller(lambda request: gemini_reply(reply))

    response = await controller.run_iteration(make_request())

    assert response.success
    assert response.blackboard_entry is None
    assert any("blackboard_entry" in warning for warning in response.warnings)


@pytest.mark.asyncio
async def test_completed_iteration_carries_final_report():
    reply = {
        "reasoning": "done",
        "tool_calls": [],
        "blackboard_entry": {"category": "observation", "content": "It is noon"},
        "status": "completed",
        "message_to_user": "It is noon.",
        "final_report": {"summary": "Reported the time", "tools_used": ["get_time"]},
        "artifacts": [{"type": "text", "title": "Time", "content": "12:00"}],
    }
    controller = make_controller(lambda request: gemini_reply(reply))

    response = await controller.run_iteration(make_request(iteration=2))

    assert response.status == IterationStatus.COMPLETED
    assert response.final_report.summary == "Reported the time"
    assert response.message_to_user == "It is noon."
    assert response.artifacts[0].iteration == 2
    assert response.warnings == []


@pytest.mark.asyncio
async def test_provider_error_returns_error_response():
    controller = make_controller(lambda request: httpx.Response(500, text="quota exceeded"))

    response = await controller.run_iteration(make_request())

    assert response.success is False
    assert response.status == IterationStatus.ERROR
    assert "500" in response.error
    assert "quota exceeded" in response.error
    assert response.debug.raw_llm_response == ""
    assert response.debug.provider == "gemini"
    assert response.debug.system_prompt


@pytest.mark.asyncio
async def test_missing_credential_returns_error_without_network(monkeypatch):
    monkeypatch.setattr(Config, "GEMINI_API_KEY", None)
    calls = []

    def handler(request):
        calls.append(request)
        return gemini_reply({})

    response = await make_controller(handler).run_iteration(make_request())

    assert response.success is False
    assert "GEMINI_API_KEY" in response.error
    assert calls == []


@pytest.mark.asyncio
async def test_missing_prompt_sections_is_an_error():
    controller = make_controller(lambda request: gemini_reply({}))

    response = await controller.run_iteration(make_request(prompt_sections=[]))

    assert response.success is False
    assert response.status == IterationStatus.ERROR
    assert response.debug.system_prompt == ""


@pytest.mark.asyncio
async def test_unparseable_output_records_parse_error():
    controller = make_controller(lambda request: gemini_reply("I'd rather chat about the weather."))

    response = await controller.run_iteration(make_request())

    assert response.success is False
    assert response.error == "Failed to parse agent response"
    assert response.debug.raw_llm_response == "I'd rather chat about the weather."
    assert response.debug.parse_error["responseLength"] == len("I'd rather chat about the weather.")


@pytest.mark.asyncio
async def test_truncated_output_keeps_salvaged_reasoning():
    controller = make_controller(lambda request: gemini_reply('{"reasoning": "Almost there", "tool_calls": [{"to'))

    response = await controller.run_iteration(make_request())

    assert response.success is False
    assert response.response.reasoning == "Almost there"
    assert response.debug.parse_tier == "salvaged"


@pytest.mark.asyncio
async def test_save_as_stores_attribute_and_summarizes_result():
    reply = {
        "reasoning": "Save the time",
        "tool_calls": [{"tool": "get_time", "params": {"timezone": "UTC", "saveAs": "now"}}],
        "blackboard_entry": {"category": "plan", "content": "Saving time"},
        "status": "in_progress",
    }
    controller = make_controller(lambda request: gemini_reply(reply))

    response = await controller.run_iteration(make_request(scratchpad="earlier notes", iteration=4))

    attribute = response.new_attributes["now"]
    assert attribute.value["time"] == "2025-01-01T12:00:00Z"
    assert attribute.params == {"timezone": "UTC"}
    assert attribute.iteration == 4
    assert response.tool_results[0].result["_savedAsAttribute"] == "now"
    assert response.scratchpad == "earlier notes\n\n## now (from get_time)\n{{attribute:now}}"


@pytest.mark.asyncio
async def test_loop_warning_is_reported_in_debug():
    history = [
        BlackboardEntry(category=BlackboardCategory.OBSERVATION, content="Searching for news", iteration=i)
        for i in (1, 2)
    ]
    reply = {
        "reasoning": "again",
        "tool_calls": [],
        "blackboard_entry": {"category": "observation", "content": "searching for  NEWS"},
        "status": "in_progress",
    }
    controller = make_controller(lambda request: gemini_reply(reply))

    response = await controller.run_iteration(make_request(blackboard=history, iteration=3))

    assert response.success
    assert response.debug.loop_warning.startswith("WARNING: LOOP DETECTED")
