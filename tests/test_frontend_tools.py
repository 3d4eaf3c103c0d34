"""Tests for the caller-side toolbox."""

from freeagent.frontend_tools import FrontendToolbox
from freeagent.schemas import (
    AgentSession,
    BlackboardCategory,
    FrontendHandler,
    NamedAttribute,
    SessionFile,
)


def make_session() -> AgentSession:
    return AgentSession(
        prompt="Summarize the report",
        iteration=2,
        scratchpad="notes",
        attributes={"report": NamedAttribute(name="report", tool="web_scrape", value="full text", size=9)},
        session_files=[SessionFile(id="f1", filename="report.txt", mime_type="text/plain", size=5, content="hello")],
    )


def run(session, tool, **params):
    return FrontendToolbox(session).execute(FrontendHandler(tool=tool, params=params))


def test_write_and_read_blackboard():
    session = make_session()

    written = run(session, "write_blackboard", category="insight", content="Key point")
    run(session, "write_blackboard", category="nonsense", content="Other")
    read = run(session, "read_blackboard", filter="insight")

    assert written.success and written.result == {"success": True, "entries": 1}
    assert session.blackboard[0].iteration == 2
    assert session.blackboard[1].category == BlackboardCategory.OBSERVATION
    assert [entry["content"] for entry in read.result] == ["Key point"]


def test_write_blackboard_requires_content():
    result = run(make_session(), "write_blackboard", category="plan")
    assert not result.success
    assert "content" in result.error


def test_scratchpad_append_and_replace():
    session = make_session()

    run(session, "write_scratchpad", content="more")
    assert session.scratchpad == "notes\n\nmore"

    result = run(session, "write_scratchpad", content="fresh", mode="replace")
    assert session.scratchpad == "fresh"
    assert result.result == {"success": True, "length": 5}

    bad = run(session, "write_scratchpad", content="x", mode="prepend")
    assert not bad.success


def test_read_scratchpad_lists_attributes():
    result = run(make_session(), "read_scratchpad").result

    assert result["content"] == "notes"
    assert result["available_attributes"][0]["name"] == "report"


def test_read_attribute():
    session = make_session()

    assert run(session, "read_attribute", names=["report", "missing"]).result == {
        "report": "full text",
        "missing": "Attribute 'missing' not found",
    }
    assert run(session, "read_attribute", names="report").result == {"report": "full text"}
    assert run(session, "read_attribute").result["count"] == 1


def test_files_and_prompt():
    session = make_session()

    assert run(session, "read_file", fileId="f1").result["content"] == "hello"
    missing = run(session, "read_file", fileId="nope")
    assert not missing.success and missing.error == "File not found: nope"
    assert run(session, "read_prompt").result == "Summarize the report"
    assert run(session, "read_prompt_files").result[0]["filename"] == "report.txt"


def test_request_assistance_sets_session_request():
    session = make_session()

    result = run(session, "request_assistance", question="Proceed?", choices=["yes", "no"], inputType="choice")

    assert result.result["awaiting_response"] is True
    assert session.assistance_request.id == result.result["request_id"]
    assert session.assistance_request.input_type == "choice"


def test_unknown_tool_and_custom_handler():
    session = make_session()
    toolbox = FrontendToolbox(session)
    toolbox.register("notify", lambda params: {"sent": params["text"]})

    unknown = toolbox.execute(FrontendHandler(tool="teleport"))
    custom = toolbox.execute(FrontendHandler(tool="notify:slack", params={"text": "hi"}))

    assert unknown.error == "Unknown frontend tool: teleport"
    assert custom.tool == "notify:slack"
    assert custom.result == {"sent": "hi"}


def test_read_attribute_rejects_malformed_names():
    session = make_session()

    number = run(session, "read_attribute", names=5)
    mixed = run(session, "read_attribute", names=["report", 3])

    assert not number.success
    assert number.error == "read_attribute 'names' must be a string or a list of strings"
    assert not mixed.success


def test_crashing_handler_becomes_failed_result():
    toolbox = FrontendToolbox(make_session())
    toolbox.register("lookup", lambda params: params["key"])
    toolbox.register("explode", lambda params: 1 / 0)

    missing_key = toolbox.execute(FrontendHandler(tool="lookup"))
    divided = toolbox.execute(FrontendHandler(tool="explode"))

    assert not missing_key.success and missing_key.error == "'key'"
    assert not divided.success and divided.error == "division by zero"
