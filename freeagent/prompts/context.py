"""Context assembly for the system prompt.

Turns an IterationRequest into the text values of the runtime template
variables. Every value is either meaningful text or the empty string; the
renderer relies on empty strings to drop dynamic sections with nothing to say.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional

from ..loop_detection import LoopReport, detect_loop
from ..memory import MemorySnapshot, attribute_reference
from ..references import resolve_string
from ..schemas import IterationRequest, SessionFile
from ..tools.catalog import DEFAULT_TOOLS, ToolSpec, render_tool_catalog

MAX_INLINE_FILE_BYTES = 50_000
MAX_SCRATCHPAD_CHARS = 50_000
MAX_RESULT_CHARS = 8_000

_TEXT_MIME_MARKERS = ("json", "xml", "javascript", "typescript")


@dataclass
class PromptContext:
    """Request state prepared for template rendering."""

    request: IterationRequest
    memory: MemorySnapshot
    tools: Mapping[str, ToolSpec] = field(default_factory=lambda: DEFAULT_TOOLS)
    loop_report: Optional[LoopReport] = None

    def tools_list(self) -> str:
        return render_tool_catalog(
            self.tools,
            disabled=self.request.disabled_tools,
            overrides=self.request.tool_overrides,
        )

    def session_files_text(self) -> str:
        files = self.request.session_files
        if not files:
            return ""
        lines = [_describe_file(item) for item in files]
        return (
            "Session Files Available:\n"
            + "\n".join(lines)
            + "\n\nUse read_file with the exact fileId to read file contents."
        )

    def blackboard_text(self) -> str:
        entries = self.memory.blackboard
        if not entries:
            return ""
        lines = [
            f"[Iteration {entry.iteration}] [{entry.category.value}] {entry.content}"
            for entry in entries
        ]
        body = "\n".join(lines)
        if self.loop_report is not None:
            return f"{self.loop_report.warning()}\n\n{body}"
        return body

    def scratchpad_text(self) -> str:
        # Shown verbatim; reference tokens stay visible so the model can reuse them
        scratchpad = self.memory.scratchpad
        if not scratchpad.strip():
            return ""
        if len(scratchpad) > MAX_SCRATCHPAD_CHARS:
            return (
                scratchpad[-MAX_SCRATCHPAD_CHARS:]
                + "\n\n[...older content truncated, showing last 50KB...]"
            )
        return scratchpad

    def previous_results_text(self) -> str:
        results = self.request.previous_tool_results
        if not results:
            return ""
        blocks: List[str] = []
        for result in results:
            if not result.success:
                blocks.append(
                    f"### Tool: {result.tool} (FAILED)\nError: {result.error or 'Unknown error'}"
                )
                continue
            rendered = json.dumps(result.result, indent=2, default=str)
            if len(rendered) > MAX_RESULT_CHARS:
                rendered = rendered[:MAX_RESULT_CHARS] + "\n...[truncated - save to scratchpad NOW]"
            blocks.append(f"### Tool: {result.tool}\n```json\n{rendered}\n```")
        return "\n\n".join(blocks)

    def assistance_text(self) -> str:
        assistance = self.request.assistance_response
        if assistance is None:
            return ""
        answer = assistance.answer()
        if not answer and not assistance.file_id:
            return ""
        lines = []
        if answer:
            lines.append(f'The user answered: "{answer}"')
        if assistance.file_id:
            lines.append(f'The user attached a file (fileId: "{assistance.file_id}").')
        return "\n".join(lines)

    def attributes_text(self) -> str:
        attributes = self.memory.attributes
        if not attributes:
            return ""
        return "\n".join(
            f"- {name} (from {attribute.tool or 'unknown'}, {attribute.size} chars, "
            f"iteration {attribute.iteration}): use {attribute_reference(name)}"
            for name, attribute in attributes.items()
        )

    def artifacts_text(self) -> str:
        if not self.memory.artifacts:
            return ""
        return "\n".join(
            f"- {artifact.title or '(untitled)'} [{artifact.type.value}] (id: {artifact.id})"
            for artifact in self.memory.artifacts
        )

    def user_prompt(self) -> str:
        return resolve_string(self.request.prompt, self.memory)

    def variables(self) -> Dict[str, str]:
        """Rendered value of every runtime template variable."""

        return {
            "TOOLS_LIST": self.tools_list(),
            "SESSION_FILES": self.session_files_text(),
            "BLACKBOARD_CONTENT": self.blackboard_text(),
            "SCRATCHPAD_CONTENT": self.scratchpad_text(),
            "PREVIOUS_RESULTS": self.previous_results_text(),
            "CURRENT_ITERATION": str(self.request.iteration),
            "ASSISTANCE_RESPONSE": self.assistance_text(),
            "USER_PROMPT": self.user_prompt(),
            "ATTRIBUTES_LIST": self.attributes_text(),
            "ARTIFACTS_LIST": self.artifacts_text(),
        }


def _describe_file(item: SessionFile) -> str:
    info = f'- {item.filename} (fileId: "{item.id}", type: {item.mime_type}, size: {item.size} bytes)'
    if item.content and item.size < MAX_INLINE_FILE_BYTES and _is_text_like(item.mime_type):
        info += f"\n  Content:\n```\n{item.content}\n```"
    return info


def _is_text_like(mime_type: str) -> bool:
    mime = mime_type.lower()
    return mime.startswith("text/") or any(marker in mime for marker in _TEXT_MIME_MARKERS)


def build_prompt_context(
    request: IterationRequest,
    *,
    tools: Mapping[str, ToolSpec] | None = None,
) -> PromptContext:
    """Assemble a PromptContext, running the loop detector over the blackboard."""

    memory = MemorySnapshot.from_request(request)
    return PromptContext(
        request=request,
        memory=memory,
        tools=tools if tools is not None else DEFAULT_TOOLS,
        loop_report=detect_loop(memory.blackboard),
    )
