"""Tests for the caller-side session loop."""

import pytest

from freeagent.persistence import InMemoryPersistence
from freeagent.schemas import (
    AgentSession,
    BlackboardCategory,
    BlackboardEntry,
    DebugTrace,
    FinalReport,
    FrontendHandler,
    IterationRequest,
    IterationResponse,
    IterationStatus,
    SessionStatus,
    ToolResult,
)
from freeagent.session import SessionRunner


class ScriptedEngine:
    """Returns queued responses and records every request it receives."""

    def __init__(self, responses):
        self.responses = list(responses)
        self.requests: list[IterationRequest] = []

    async def __call__(self, request: IterationRequest) -> IterationResponse:
        self.requests.append(request)
        build = self.responses.pop(0)
        return build(request)


def ok(status=IterationStatus.IN_PROGRESS, **fields):
    def build(request: IterationRequest) -> IterationResponse:
        return IterationResponse(
            success=True,
            iteration=request.iteration,
            status=status,
            blackboard_entry=BlackboardEntry(
                category=BlackboardCategory.OBSERVATION,
                content=f"step {request.iteration}",
                iteration=request.iteration,
            ),
            **fields,
        )

    return build


def failed(error="LLM Error 503: overloaded"):
    def build(request: IterationRequest) -> IterationResponse:
        return IterationResponse(
            success=False,
            iteration=request.iteration,
            status=IterationStatus.ERROR,
            error=error,
            debug=DebugTrace(model="gemini-2.5-flash"),
        )

    return build


def make_session(**fields) -> AgentSession:
    return AgentSession(prompt="Find the news", **fields)


@pytest.mark.asyncio
async def test_runs_until_completed():
    engine = ScriptedEngine(
        [
            ok(),
            ok(tool_results=[ToolResult(tool="get_time", success=True, result="noon")]),
            ok(IterationStatus.COMPLETED, final_report=FinalReport(summary="All done")),
        ]
    )
    session = make_session()

    await SessionRunner(engine).run(session)

    assert session.status == SessionStatus.COMPLETED
    assert session.stop_reason == "completed"
    assert session.iteration == 3
    assert [entry.content for entry in session.blackboard] == ["step 1", "step 2", "step 3"]
    assert session.final_report.summary == "All done"
    assert [request.iteration for request in engine.requests] == [1, 2, 3]
    # Results of iteration 2 are fed into iteration 3
    assert engine.requests[2].previous_tool_results[0].result == "noon"
    assert len(session.debug_log) == 3


@pytest.mark.asyncio
async def test_failed_iteration_is_retried():
    engine = ScriptedEngine([failed(), failed(), ok(IterationStatus.COMPLETED)])
    session = make_session()

    await SessionRunner(engine, max_attempts=3, retry_wait=0).run(session)

    assert session.status == SessionStatus.COMPLETED
    assert session.retry_count == 2
    assert [request.iteration for request in engine.requests] == [1, 1, 1]


@pytest.mark.asyncio
async def test_exhausted_retries_stop_with_error():
    engine = ScriptedEngine([failed(), failed("LLM Error 500: boom")])
    session = make_session()

    await SessionRunner(engine, max_attempts=2, retry_wait=0).run(session)

    assert session.status == SessionStatus.ERROR
    assert session.stop_reason == "error"
    assert session.error == "LLM Error 500: boom"
    assert session.iteration == 0
    assert session.blackboard == []


@pytest.mark.asyncio
async def test_max_iterations_stops_the_loop():
    engine = ScriptedEngine([ok(), ok(), ok()])
    session = make_session()

    await SessionRunner(engine, max_iterations=2).run(session)

    assert session.status == SessionStatus.STOPPED
    assert session.stop_reason == "max_iterations"
    assert session.iteration == 2
    assert len(engine.requests) == 2


@pytest.mark.asyncio
async def test_frontend_handlers_update_session_and_feed_results():
    engine = ScriptedEngine(
        [
            ok(frontend_handlers=[FrontendHandler(tool="write_scratchpad", params={"content": "headline: rates cut"})]),
            ok(IterationStatus.COMPLETED),
        ]
    )
    session = make_session()

    await SessionRunner(engine).run(session)

    assert session.scratchpad == "headline: rates cut"
    second = engine.requests[1]
    assert second.scratchpad == "headline: rates cut"
    assert second.previous_tool_results[0].tool == "write_scratchpad"
    assert second.previous_tool_results[0].success


@pytest.mark.asyncio
async def test_request_assistance_pauses_until_answered():
    engine = ScriptedEngine(
        [
            ok(
                frontend_handlers=[
                    FrontendHandler(
                        tool="request_assistance",
                        params={"question": "Which region?", "choices": ["EU", "US"]},
                    )
                ]
            ),
            ok(IterationStatus.COMPLETED),
        ]
    )
    session = make_session()
    runner = SessionRunner(engine)

    await runner.run(session)

    assert session.status == SessionStatus.NEEDS_ASSISTANCE
    assert session.assistance_request.question == "Which region?"
    assert session.assistance_request.choices == ["EU", "US"]

    SessionRunner.answer_assistance(session, selected_choice="EU")
    assert session.assistance_request is None
    await runner.run(session)

    assert session.status == SessionStatus.COMPLETED
    assert engine.requests[1].assistance_response.selected_choice == "EU"
    assert session.assistance_response is None


@pytest.mark.asyncio
async def test_needs_assistance_status_creates_request():
    engine = ScriptedEngine([ok(IterationStatus.NEEDS_ASSISTANCE, message_to_user="Which file should I use?")])
    session = make_session()

    await SessionRunner(engine).run(session)

    assert session.status == SessionStatus.NEEDS_ASSISTANCE
    assert session.assistance_request.question == "Which file should I use?"


@pytest.mark.asyncio
async def test_interjection_reaches_next_request():
    engine = ScriptedEngine([ok(IterationStatus.COMPLETED)])
    session = make_session()

    entry = SessionRunner.interject(session, "Focus on European sources")
    await SessionRunner(engine).run(session)

    assert entry.category == BlackboardCategory.USER_INTERJECTION
    assert engine.requests[0].blackboard[0].content == "Focus on European sources"


@pytest.mark.asyncio
async def test_stop_before_next_iteration():
    session = make_session()
    runner = SessionRunner(ScriptedEngine([]))

    def build(request):
        runner.stop()
        return ok()(request)

    runner.engine = ScriptedEngine([build])
    await runner.run(session)

    assert session.status == SessionStatus.STOPPED
    assert session.stop_reason == "stopped"
    assert session.iteration == 1


@pytest.mark.asyncio
async def test_persistence_records_every_iteration():
    persistence = InMemoryPersistence()
    engine = ScriptedEngine([ok(), ok(IterationStatus.COMPLETED)])
    session = make_session()

    await SessionRunner(engine, persistence=persistence).run(session)

    records = await persistence.get_iterations(session.id)
    assert [record.iteration for record in records] == [1, 2]
    assert records[1].request.blackboard[0].content == "step 1"
    stored = await persistence.get_session(session.id)
    assert stored.status == SessionStatus.COMPLETED


@pytest.mark.asyncio
async def test_malformed_frontend_params_do_not_end_the_run():
    engine = ScriptedEngine(
        [
            ok(frontend_handlers=[FrontendHandler(tool="read_attribute", params={"names": 5})]),
            ok(IterationStatus.COMPLETED),
        ]
    )
    session = make_session()

    await SessionRunner(engine, max_iterations=2).run(session)

    assert session.status == SessionStatus.COMPLETED
    result = engine.requests[1].previous_tool_results[0]
    assert result.tool == "read_attribute"
    assert not result.success
    assert "names" in result.error
