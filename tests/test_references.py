"""Tests for reference resolution in tool params and prompt text."""

import json

from freeagent.memory import MemorySnapshot
from freeagent.references import (
    contains_references,
    resolve_references,
    resolve_string,
    summarize_resolutions,
)
from freeagent.schemas import Artifact, BlackboardCategory, BlackboardEntry, NamedAttribute


def make_memory() -> MemorySnapshot:
    return MemorySnapshot(
        scratchpad="saved notes",
        blackboard=(BlackboardEntry(category=BlackboardCategory.PLAN, content="Search", iteration=1),),
        attributes={
            "news": NamedAttribute(name="news", tool="brave_search", value={"hits": 2}),
            "page": NamedAttribute(name="page", tool="web_scrape", value="<html>"),
        },
        artifacts=(Artifact(id="art-1", title="Draft", content="draft body"),),
    )


def test_unknown_attribute_resolves_to_marker():
    assert resolve_string("{{attribute:missing}}", make_memory()) == "[Attribute 'missing' not found]"


def test_unknown_artifact_resolves_to_marker():
    assert resolve_string("{{artifact:nope}}", make_memory()) == "[Artifact 'nope' not found]"


def test_named_references_are_case_insensitive():
    memory = make_memory()
    assert resolve_string("{{ATTRIBUTE:page}}", memory) == "<html>"
    assert resolve_string("{{Scratchpad}}", memory) == "saved notes"
    assert resolve_string("{{artifact:Draft}}", memory) == "draft body"


def test_structured_attribute_values_are_json():
    resolved = resolve_string("data={{attribute:news}}", make_memory())
    assert json.loads(resolved[len("data="):]) == {"hits": 2}


def test_blackboard_and_collections():
    memory = make_memory()
    assert resolve_string("{{blackboard}}", memory) == "[PLAN] (Iteration 1): Search"
    assert set(json.loads(resolve_string("{{attributes}}", memory))) == {"news", "page"}
    assert json.loads(resolve_string("{{artifacts}}", memory))[0]["id"] == "art-1"


def test_resolution_recurses_and_leaves_other_values():
    params = {
        "body": "Summary: {{attribute:page}}",
        "to": ["a@example.com", "{{scratchpad}}"],
        "nested": {"count": 3, "flag": True, "text": "{{attribute:page}}"},
    }

    resolved = resolve_references(params, make_memory())

    assert resolved == {
        "body": "Summary: <html>",
        "to": ["a@example.com", "saved notes"],
        "nested": {"count": 3, "flag": True, "text": "<html>"},
    }
    # Input untouched
    assert params["body"] == "Summary: {{attribute:page}}"


def test_substituted_content_is_not_rescanned():
    memory = MemorySnapshot(scratchpad="{{attribute:news}}")
    assert resolve_string("{{scratchpad}}", memory) == "{{attribute:news}}"


def test_contains_and_summarize():
    original = {"body": "{{attribute:page}}", "n": 1}
    resolved = resolve_references(original, make_memory())

    assert contains_references("x {{attribute:page}}")
    assert not contains_references("plain")
    assert not contains_references(42)
    assert summarize_resolutions(original, resolved) == ["body: resolved {{attribute:page}}"]
