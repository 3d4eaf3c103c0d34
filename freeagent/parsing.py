"""Parsing and repair of model output.

Models return almost-JSON more often than one would like: wrapped in a
markdown fence, with raw newlines inside string values, surrounded by prose,
or with nested objects serialized as strings. The parser tries an ordered
list of repair tiers and stops at the first one that yields an object:

1. ``strict``     parse as-is (after removing a surrounding code fence)
2. ``sanitized``  escape control characters inside string values, then parse
3. ``extracted``  take the outermost ``{...}`` and repeat tiers 1-2 on it
4. ``salvaged``   regex-recover ``reasoning`` and build a degraded response

Every tier is total; failures fall through to the next one.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from pydantic import ValidationError

from .logging_utils import log_deterministic, log_error
from .schemas import (
    AgentResponse,
    Artifact,
    ArtifactType,
    BlackboardCategory,
    BlackboardEntry,
    FinalReport,
    IterationStatus,
    ToolCall,
)

TIER_STRICT = "strict"
TIER_SANITIZED = "sanitized"
TIER_EXTRACTED = "extracted"
TIER_SALVAGED = "salvaged"

_FENCE = re.compile(r"^```[a-zA-Z0-9_-]*\s*\n?(.*?)\n?```$", re.DOTALL)
_REASONING = re.compile(r'"reasoning"\s*:\s*"((?:[^"\\]|\\.)*)', re.DOTALL)

_CONTROL_ESCAPES = {"\n": "\\n", "\r": "\\r", "\t": "\\t", "\b": "\\b", "\f": "\\f"}


@dataclass
class ParseOutcome:
    """A normalized response plus how it was obtained."""

    response: AgentResponse
    tier: str
    degraded: bool = False
    warnings: List[str] = field(default_factory=list)


# ============================================================================
# Repair tiers
# ============================================================================


def strip_code_fence(text: str) -> str:
    stripped = text.strip()
    match = _FENCE.match(stripped)
    return match.group(1).strip() if match else stripped


def sanitize_control_characters(text: str) -> str:
    """Escape raw control characters that appear inside JSON string values."""

    out: List[str] = []
    in_string = False
    escaped = False
    for char in text:
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            elif ord(char) < 0x20:
                out.append(_CONTROL_ESCAPES.get(char, f"\\u{ord(char):04x}"))
                continue
        elif char == '"':
            in_string = True
        out.append(char)
    return "".join(out)


def _load_object(text: str) -> Optional[Dict[str, Any]]:
    try:
        value = json.loads(text)
    except (json.JSONDecodeError, TypeError, ValueError):
        return None
    return value if isinstance(value, dict) else None


def _tier_strict(text: str) -> Optional[Dict[str, Any]]:
    return _load_object(strip_code_fence(text))


def _tier_sanitized(text: str) -> Optional[Dict[str, Any]]:
    return _load_object(sanitize_control_characters(strip_code_fence(text)))


def _tier_extracted(text: str) -> Optional[Dict[str, Any]]:
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end <= start:
        return None
    candidate = text[start : end + 1]
    return _tier_strict(candidate) or _tier_sanitized(candidate)


def salvage_reasoning(text: str) -> Optional[str]:
    """Pull the (possibly unterminated) reasoning string out of broken JSON."""

    match = _REASONING.search(text)
    if not match:
        return None
    raw = match.group(1)
    try:
        return json.loads(f'"{raw}"')
    except json.JSONDecodeError:
        return raw.replace('\\"', '"').replace("\\n", "\n")


_TIERS: List[tuple[str, Callable[[str], Optional[Dict[str, Any]]]]] = [
    (TIER_STRICT, _tier_strict),
    (TIER_SANITIZED, _tier_sanitized),
    (TIER_EXTRACTED, _tier_extracted),
]


def parse_agent_response(text: str) -> Optional[ParseOutcome]:
    """Recover an AgentResponse from raw model text.

    Returns None when no tier could salvage anything.
    """

    if not text or not text.strip():
        return None

    for tier, attempt in _TIERS:
        data = attempt(text)
        if data is None:
            continue
        warnings: List[str] = []
        response = normalize_response(data, warnings)
        log_deterministic(f"Parsed model output (tier: {tier})")
        return ParseOutcome(response=response, tier=tier, warnings=warnings)

    reasoning = salvage_reasoning(text)
    if reasoning is None:
        log_error(f"Could not parse model output ({len(text)} chars); nothing salvageable")
        return None

    log_error("Model output was not valid JSON; salvaged reasoning only (tier: salvaged)")
    response = AgentResponse(
        reasoning=reasoning,
        status=IterationStatus.ERROR,
        message_to_user=(
            "The model's response could not be parsed as JSON. Only its reasoning was "
            "recovered; no tools were run. Retry the iteration."
        ),
    )
    return ParseOutcome(
        response=response,
        tier=TIER_SALVAGED,
        degraded=True,
        warnings=["Response was not valid JSON; reasoning salvaged, other fields dropped"],
    )


# ============================================================================
# Normalization
# ============================================================================


def _maybe_json(value: Any) -> Any:
    """Re-parse a string that holds a JSON document; other values pass through."""

    if not isinstance(value, str):
        return value
    stripped = value.strip()
    if stripped[:1] not in ("{", "["):
        return None
    for candidate in (stripped, sanitize_control_characters(stripped)):
        try:
            return json.loads(candidate)
        except json.JSONDecodeError:
            continue
    return None


def normalize_response(data: Dict[str, Any], warnings: List[str]) -> AgentResponse:
    """Coerce a parsed object into the canonical AgentResponse.

    Nested fields that arrive as strings are re-parsed one level; anything
    unusable becomes a safe default. Coercions are reported via ``warnings``.
    """

    reasoning = data.get("reasoning")
    message = data.get("message_to_user")
    return AgentResponse(
        reasoning="" if reasoning is None else str(reasoning),
        tool_calls=_normalize_tool_calls(data.get("tool_calls"), warnings),
        blackboard_entry=_normalize_blackboard_entry(data.get("blackboard_entry"), warnings),
        status=_normalize_status(data.get("status"), warnings),
        message_to_user=None if message in (None, "") else str(message),
        artifacts=_normalize_artifacts(data.get("artifacts"), warnings),
        final_report=_normalize_final_report(data.get("final_report"), warnings),
    )


def _normalize_tool_calls(value: Any, warnings: List[str]) -> List[ToolCall]:
    value = _maybe_json(value)
    if value is None:
        return []
    if isinstance(value, dict):
        value = [value]
    if not isinstance(value, list):
        warnings.append("tool_calls was not a list; ignored")
        return []

    calls: List[ToolCall] = []
    for item in value:
        item = _maybe_json(item)
        if not isinstance(item, dict):
            warnings.append("Dropped a tool call that was not an object")
            continue
        name = item.get("tool") or item.get("name")
        if not isinstance(name, str) or not name.strip():
            warnings.append("Dropped a tool call without a tool name")
            continue
        params = item.get("params", item.get("parameters"))
        if isinstance(params, str):
            params = _maybe_json(params)
        if not isinstance(params, dict):
            params = {}
        calls.append(ToolCall(tool=name.strip(), params=params))
    return calls


def _normalize_blackboard_entry(value: Any, warnings: List[str]) -> Optional[BlackboardEntry]:
    value = _maybe_json(value)
    if not isinstance(value, dict):
        return None

    raw_category = str(value.get("category") or "").strip().lower()
    try:
        category = BlackboardCategory(raw_category)
    except ValueError:
        warnings.append(
            f"Unknown blackboard category '{raw_category}', stored as observation"
        )
        category = BlackboardCategory.OBSERVATION

    content = value.get("content")
    if content is None:
        content = ""
    elif not isinstance(content, str):
        content = json.dumps(content, default=str)

    data = value.get("data")
    if isinstance(data, str):
        data = _maybe_json(data)
    if not isinstance(data, dict):
        data = None

    return BlackboardEntry(category=category, content=content, data=data)


def _normalize_status(value: Any, warnings: List[str]) -> IterationStatus:
    if value is None or value == "":
        return IterationStatus.IN_PROGRESS
    try:
        return IterationStatus(str(value).strip().lower())
    except ValueError:
        warnings.append(f"Unknown status '{value}', treated as in_progress")
        return IterationStatus.IN_PROGRESS


def _normalize_artifacts(value: Any, warnings: List[str]) -> List[Artifact]:
    value = _maybe_json(value)
    if value is None:
        return []
    if isinstance(value, dict):
        value = [value]
    if not isinstance(value, list):
        return []

    artifacts: List[Artifact] = []
    for item in value:
        item = _maybe_json(item)
        if not isinstance(item, dict):
            continue
        try:
            kind = ArtifactType(str(item.get("type") or "text").lower())
        except ValueError:
            kind = ArtifactType.TEXT
        content = item.get("content", "")
        if not isinstance(content, str):
            content = json.dumps(content, indent=2, default=str)
        fields: Dict[str, Any] = {
            "type": kind,
            "title": str(item.get("title") or ""),
            "content": content,
            "description": item.get("description"),
            "mime_type": item.get("mime_type") or item.get("mimeType"),
        }
        if item.get("id"):
            fields["id"] = str(item["id"])
        try:
            artifacts.append(Artifact(**fields))
        except ValidationError as exc:
            warnings.append(f"Dropped malformed artifact: {exc.errors()[0].get('msg')}")
    return artifacts


def _normalize_final_report(value: Any, warnings: List[str]) -> Optional[FinalReport]:
    value = _maybe_json(value)
    if not isinstance(value, dict):
        return None
    try:
        return FinalReport.model_validate(value)
    except ValidationError as exc:
        warnings.append(f"final_report did not validate and was dropped: {exc.errors()[0].get('msg')}")
        return None
