"""Reference resolution for tool parameters and prompt text.

The model refers to stored data by placeholder instead of repeating it:

- ``{{scratchpad}}``        full scratchpad text
- ``{{blackboard}}``        blackboard as ``[CATEGORY] (Iteration N): content`` blocks
- ``{{attributes}}``        every named attribute as one JSON object
- ``{{attribute:name}}``    a single attribute's value
- ``{{artifacts}}``         every artifact as a JSON list
- ``{{artifact:id}}``       a single artifact's content (id or title)

Tokens are case-insensitive. Named references that do not resolve become an
explicit marker (``[Attribute 'x' not found]``) so the model can see that its
reference failed.
"""

from __future__ import annotations

import json
import re
from typing import Any, List

from .memory import MemorySnapshot, format_blackboard

SCRATCHPAD_PATTERN = re.compile(r"\{\{\s*scratchpad\s*\}\}", re.IGNORECASE)
BLACKBOARD_PATTERN = re.compile(r"\{\{\s*blackboard\s*\}\}", re.IGNORECASE)
ATTRIBUTES_PATTERN = re.compile(r"\{\{\s*attributes\s*\}\}", re.IGNORECASE)
ATTRIBUTE_PATTERN = re.compile(r"\{\{\s*attribute:([^}]+)\}\}", re.IGNORECASE)
ARTIFACTS_PATTERN = re.compile(r"\{\{\s*artifacts\s*\}\}", re.IGNORECASE)
ARTIFACT_PATTERN = re.compile(r"\{\{\s*artifact:([^}]+)\}\}", re.IGNORECASE)

_ANY_TOKEN = re.compile(
    r"\{\{\s*(scratchpad|blackboard|attributes|artifacts|attribute:([^}]+)|artifact:([^}]+))\s*\}\}",
    re.IGNORECASE,
)

_ALL_PATTERNS = (
    SCRATCHPAD_PATTERN,
    BLACKBOARD_PATTERN,
    ATTRIBUTES_PATTERN,
    ATTRIBUTE_PATTERN,
    ARTIFACTS_PATTERN,
    ARTIFACT_PATTERN,
)


def missing_marker(kind: str, name: str) -> str:
    """Marker substituted for a named reference that does not resolve."""
    return f"[{kind} '{name}' not found]"


def contains_references(value: Any) -> bool:
    if not isinstance(value, str):
        return False
    return any(pattern.search(value) for pattern in _ALL_PATTERNS)


def resolve_references(value: Any, memory: MemorySnapshot) -> Any:
    """Resolve placeholders in ``value``, recursing through dicts and lists.

    Non-string leaves are returned unchanged. The input is never mutated.
    """

    if isinstance(value, str):
        return resolve_string(value, memory)
    if isinstance(value, list):
        return [resolve_references(item, memory) for item in value]
    if isinstance(value, tuple):
        return tuple(resolve_references(item, memory) for item in value)
    if isinstance(value, dict):
        return {key: resolve_references(item, memory) for key, item in value.items()}
    return value


def resolve_string(text: str, memory: MemorySnapshot) -> str:
    if "{{" not in text:
        return text

    # One pass over the text: substituted content is never re-scanned
    return _ANY_TOKEN.sub(lambda match: _resolve_token(match, memory), text)


def _resolve_token(match: re.Match[str], memory: MemorySnapshot) -> str:
    token = match.group(1).lower()
    if token == "scratchpad":
        return memory.scratchpad
    if token == "blackboard":
        return format_blackboard(memory.blackboard)
    if token == "attributes":
        return _format_all_attributes(memory)
    if token == "artifacts":
        return _format_all_artifacts(memory)
    if match.group(2) is not None:
        return _resolve_attribute(match.group(2).strip(), memory)
    return _resolve_artifact(match.group(3).strip(), memory)


def _resolve_attribute(name: str, memory: MemorySnapshot) -> str:
    attribute = memory.attributes.get(name)
    if attribute is None:
        return missing_marker("Attribute", name)
    return attribute.value_text()


def _resolve_artifact(key: str, memory: MemorySnapshot) -> str:
    artifact = memory.find_artifact(key)
    if artifact is None:
        return missing_marker("Artifact", key)
    return artifact.content


def _format_all_attributes(memory: MemorySnapshot) -> str:
    if not memory.attributes:
        return "{}"
    formatted = {
        name: {
            "tool": attribute.tool,
            "size": attribute.size,
            "createdAt": attribute.created_at.isoformat() if attribute.created_at else None,
            "iteration": attribute.iteration,
            "result": attribute.value,
        }
        for name, attribute in memory.attributes.items()
    }
    return json.dumps(formatted, indent=2, default=str)


def _format_all_artifacts(memory: MemorySnapshot) -> str:
    if not memory.artifacts:
        return "[]"
    return json.dumps(
        [
            {
                "id": artifact.id,
                "type": artifact.type.value,
                "title": artifact.title,
                "content": artifact.content,
                "description": artifact.description,
            }
            for artifact in memory.artifacts
        ],
        indent=2,
    )


def summarize_resolutions(original: Any, resolved: Any, path: str = "") -> List[str]:
    """List which references were expanded where, for logging.

    Example: ``["body: resolved {{attribute:news}}"]``.
    """

    summary: List[str] = []
    if isinstance(original, str) and isinstance(resolved, str):
        if original != resolved:
            label = path or "value"
            for pattern in _ALL_PATTERNS:
                for match in pattern.finditer(original):
                    summary.append(f"{label}: resolved {match.group(0)}")
    elif isinstance(original, list) and isinstance(resolved, list):
        for index, (item, resolved_item) in enumerate(zip(original, resolved)):
            summary.extend(summarize_resolutions(item, resolved_item, f"{path}[{index}]"))
    elif isinstance(original, dict) and isinstance(resolved, dict):
        for key, item in original.items():
            child = f"{path}.{key}" if path else str(key)
            summary.extend(summarize_resolutions(item, resolved.get(key), child))
    return summary


__all__: List[str] = [
    "contains_references",
    "missing_marker",
    "resolve_references",
    "resolve_string",
    "summarize_resolutions",
]
