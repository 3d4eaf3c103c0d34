"""
Memory model helpers.

The engine's memory is owned by the caller and arrives fresh with every
request: an append-only blackboard, a single scratchpad blob, a table of
named attributes, and a list of artifacts. This module bundles them into a
read-only snapshot for the resolver and prompt assembler, and implements the
few write operations whose results travel back to the caller as a delta.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Literal, Tuple

from .schemas import (
    Artifact,
    BlackboardEntry,
    IterationRequest,
    NamedAttribute,
    ToolResult,
)

ScratchpadMode = Literal["append", "replace"]


@dataclass(frozen=True)
class MemorySnapshot:
    """Read-only view of the caller's memory for one iteration."""

    scratchpad: str = ""
    blackboard: Tuple[BlackboardEntry, ...] = ()
    attributes: Dict[str, NamedAttribute] = field(default_factory=dict)
    artifacts: Tuple[Artifact, ...] = ()

    @classmethod
    def from_request(cls, request: IterationRequest) -> "MemorySnapshot":
        return cls(
            scratchpad=request.scratchpad or "",
            blackboard=tuple(request.blackboard),
            attributes=dict(request.tool_result_attributes),
            artifacts=tuple(request.artifacts),
        )

    def find_artifact(self, key: str) -> Artifact | None:
        """Look up an artifact by id first, then by title."""
        for artifact in self.artifacts:
            if artifact.id == key:
                return artifact
        for artifact in self.artifacts:
            if artifact.title == key:
                return artifact
        return None


def write_scratchpad(current: str, content: str, mode: ScratchpadMode = "append") -> str:
    """Apply a scratchpad write and return the new scratchpad text.

    ``append`` separates the new content from existing notes with a blank
    line; ``replace`` discards the previous text.
    """

    if mode == "replace":
        return content
    if mode != "append":
        raise ValueError(f"Unknown scratchpad mode: {mode!r} (expected 'append' or 'replace')")
    if not current:
        return content
    return f"{current}\n\n{content}"


def index_attributes(attributes: Iterable[Any]) -> Dict[str, Any]:
    """Key attributes by name; when names repeat, the last one wins.

    Items may be NamedAttribute instances or their raw dict form.
    """

    indexed: Dict[str, Any] = {}
    for attribute in attributes:
        name = attribute.get("name") if isinstance(attribute, dict) else attribute.name
        indexed[name] = attribute
    return indexed


def format_blackboard(entries: Iterable[BlackboardEntry]) -> str:
    """Render entries as ``[CATEGORY] (Iteration N): content`` blocks."""

    lines = [
        f"[{entry.category.value.upper()}] (Iteration {entry.iteration}): {entry.content}"
        for entry in entries
    ]
    if not lines:
        return "[No blackboard entries]"
    return "\n\n".join(lines)


def attribute_reference(name: str) -> str:
    return "{{attribute:" + name + "}}"


@dataclass
class SavedAttribute:
    """Outcome of storing a tool result under a save-as name."""

    attribute: NamedAttribute
    summary: ToolResult
    scratchpad_line: str


def save_tool_result_as_attribute(
    name: str,
    result: ToolResult,
    *,
    params: Dict[str, Any],
    iteration: int,
) -> SavedAttribute:
    """Store a successful tool result as a named attribute.

    The model gets a short summary in place of the full payload, and a
    reference line is appended to the scratchpad so the stored data stays
    discoverable after the result itself drops out of the next prompt.
    """

    attribute = NamedAttribute(
        name=name,
        tool=result.tool,
        params=params,
        value=result.result,
        iteration=iteration,
        created_at=datetime.now(timezone.utc),
    )
    summary = ToolResult(
        tool=result.tool,
        success=result.success,
        result={
            "_savedAsAttribute": name,
            "_message": (
                f"Result saved to attribute '{name}' ({attribute.size} chars). "
                f"A reference was added to your scratchpad; pass {attribute_reference(name)} "
                "in tool params to use the full data."
            ),
        },
        error=result.error,
    )
    scratchpad_line = f"## {name} (from {result.tool})\n{attribute_reference(name)}"
    return SavedAttribute(attribute=attribute, summary=summary, scratchpad_line=scratchpad_line)


def summarize_attributes(attributes: Dict[str, NamedAttribute]) -> List[Dict[str, Any]]:
    """Metadata listing (no values) used by prompts and read_attribute."""

    return [
        {
            "name": name,
            "tool": attribute.tool,
            "size": attribute.size,
            "iteration": attribute.iteration,
        }
        for name, attribute in attributes.items()
    ]
