"""JSON schema of the canonical agent response.

Every provider is asked for the same structure. Gemini's schema dialect has
no free-form objects, so its variant encodes open-ended maps (tool params,
blackboard data) as JSON strings, which the parser re-reads.
"""

from __future__ import annotations

import copy
from typing import Any, Dict

from ..schemas import ArtifactType, BlackboardCategory, IterationStatus

_FREE_OBJECT: Dict[str, Any] = {"type": "object", "additionalProperties": True}

AGENT_RESPONSE_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "reasoning": {"type": "string", "description": "Your thought process"},
        "tool_calls": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "tool": {"type": "string"},
                    "params": {
                        **_FREE_OBJECT,
                        "description": "Tool parameters; add saveAs to store the result as an attribute",
                    },
                },
                "required": ["tool", "params"],
            },
        },
        "blackboard_entry": {
            "type": "object",
            "properties": {
                "category": {
                    "type": "string",
                    "enum": [category.value for category in BlackboardCategory],
                },
                "content": {"type": "string"},
                "data": _FREE_OBJECT,
            },
            "required": ["category", "content"],
        },
        "status": {
            "type": "string",
            "enum": [status.value for status in IterationStatus],
        },
        "message_to_user": {"type": "string"},
        "artifacts": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "type": {"type": "string", "enum": [kind.value for kind in ArtifactType]},
                    "title": {"type": "string"},
                    "content": {"type": "string"},
                    "description": {"type": "string"},
                },
                "required": ["type", "title", "content"],
            },
        },
        "final_report": {
            "type": "object",
            "properties": {
                "summary": {"type": "string"},
                "tools_used": {"type": "array", "items": {"type": "string"}},
                "artifacts_created": {"type": "array", "items": {"type": "string"}},
                "key_findings": {"type": "array", "items": {"type": "string"}},
                "recommendations": {"type": "array", "items": {"type": "string"}},
            },
            "required": ["summary"],
        },
    },
    "required": ["reasoning", "tool_calls", "blackboard_entry", "status"],
}


def to_gemini_schema(schema: Dict[str, Any]) -> Dict[str, Any]:
    """Convert a JSON schema into Gemini's ``responseSchema`` dialect.

    Types become upper-case, ``additionalProperties`` is dropped, and objects
    without declared properties become JSON-encoded strings.
    """

    node = copy.deepcopy(schema)
    kind = node.get("type")

    if kind == "object" and not node.get("properties"):
        description = node.get("description", "")
        return {
            "type": "STRING",
            "description": (description + " " if description else "") + "(JSON-encoded object)",
        }

    converted: Dict[str, Any] = {}
    for key, value in node.items():
        if key == "additionalProperties":
            continue
        if key == "type":
            converted["type"] = str(value).upper()
        elif key == "properties":
            converted["properties"] = {name: to_gemini_schema(child) for name, child in value.items()}
        elif key == "items":
            converted["items"] = to_gemini_schema(value)
        else:
            converted[key] = value
    return converted


GEMINI_RESPONSE_SCHEMA: Dict[str, Any] = to_gemini_schema(AGENT_RESPONSE_SCHEMA)
