"""Default tool catalog.

Every tool the agent may call is described here once: its parameters for the
prompt's tool list, and for server-side tools the collaborator endpoint it is
POSTed to. Tools without an endpoint are executed by the caller and come back
from the dispatcher as frontend handlers.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, Mapping, Optional, Tuple

from ..schemas import ToolOverride


@dataclass(frozen=True)
class ToolParam:
    name: str
    required: bool = True

    def label(self) -> str:
        return self.name if self.required else f"{self.name}?"


@dataclass(frozen=True)
class ToolSpec:
    """Static description of one tool."""

    name: str
    description: str
    params: Tuple[ToolParam, ...] = ()
    endpoint: Optional[str] = None

    @property
    def server_side(self) -> bool:
        return self.endpoint is not None

    def catalog_line(self, description: str | None = None) -> str:
        text = description or self.description
        if not self.params:
            return f"- {self.name}: {text}"
        params = ", ".join(param.label() for param in self.params)
        return f"- {self.name}: {text} (params: {params})"


def _params(*names: str) -> Tuple[ToolParam, ...]:
    # Trailing "?" marks an optional parameter
    return tuple(
        ToolParam(name.rstrip("?"), required=not name.endswith("?")) for name in names
    )


DEFAULT_TOOLS: Dict[str, ToolSpec] = {
    spec.name: spec
    for spec in (
        # Server-side tools (collaborator endpoints)
        ToolSpec("get_time", "Get current date/time", _params("timezone?"), "time"),
        ToolSpec("brave_search", "Search the web", _params("query", "numResults?"), "brave-search"),
        ToolSpec("google_search", "Search via Google", _params("query", "numResults?"), "google-search"),
        ToolSpec("web_scrape", "Scrape webpage content", _params("url", "maxCharacters?"), "web-scrape"),
        ToolSpec("read_github_repo", "Get repo file tree", _params("repoUrl", "branch?"), "github-fetch"),
        ToolSpec(
            "read_github_file",
            "Read files from repo",
            _params("repoUrl", "selectedPaths", "branch?"),
            "github-fetch",
        ),
        ToolSpec("send_email", "Send email", _params("to", "subject", "body", "useHtml?"), "send-email"),
        ToolSpec("image_generation", "Generate image from prompt", _params("prompt", "model?"), "run-nano"),
        ToolSpec("get_call_api", "Make GET request", _params("url", "headers?"), "api-call"),
        ToolSpec("post_call_api", "Make POST request", _params("url", "headers?", "body?"), "api-call"),
        ToolSpec(
            "execute_sql",
            "Execute SQL on external database",
            _params("connectionString", "query", "isWrite?"),
            "external-db",
        ),
        ToolSpec("elevenlabs_tts", "Text to speech", _params("text", "voiceId?", "modelId?"), "elevenlabs-tts"),
        # Caller-side tools
        ToolSpec(
            "write_blackboard",
            "Write to your planning journal",
            _params("category", "content", "data?"),
        ),
        ToolSpec("read_blackboard", "Read blackboard entries", _params("category?")),
        ToolSpec(
            "write_scratchpad",
            "SAVE DATA HERE - your permanent data storage",
            _params("content", "mode?"),
        ),
        ToolSpec("read_scratchpad", "Read the scratchpad and list stored attributes"),
        ToolSpec("read_file", "Read session file content", _params("fileId")),
        ToolSpec("read_prompt", "Read the original user prompt"),
        ToolSpec("read_prompt_files", "Get list of available files with metadata"),
        ToolSpec("read_attribute", "Read stored tool results by name", _params("names?")),
        ToolSpec(
            "request_assistance",
            "Ask user for input",
            _params("question", "context?", "inputType?", "choices?"),
        ),
    )
}


def render_tool_catalog(
    tools: Mapping[str, ToolSpec] = DEFAULT_TOOLS,
    *,
    disabled: Iterable[str] = (),
    overrides: Mapping[str, ToolOverride] | None = None,
) -> str:
    """Render the ``Available Tools`` list shown to the model."""

    disabled_set = set(disabled)
    overrides = overrides or {}
    lines = []
    for name, spec in tools.items():
        if name in disabled_set:
            continue
        override = overrides.get(name)
        lines.append(spec.catalog_line(override.description if override else None))
    if not lines:
        return ""
    return "Available Tools:\n" + "\n".join(lines)
