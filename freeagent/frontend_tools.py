"""Caller-side toolbox.

The engine hands back calls to tools it has no executor for as frontend
handlers. These tools operate on the caller's own session state (blackboard,
scratchpad, attributes, files, assistance requests), so the caller runs them
and feeds the results into the next iteration's previous results.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List

from .logging_utils import log_deterministic, log_error, log_info
from .memory import summarize_attributes, write_scratchpad
from .schemas import (
    AgentSession,
    AssistanceRequest,
    BlackboardCategory,
    BlackboardEntry,
    FrontendHandler,
    ToolResult,
)

Handler = Callable[[Dict[str, Any]], Any]


class FrontendToolError(Exception):
    """Raised by a caller-side tool; reported as a failed ToolResult."""


class FrontendToolbox:
    """Executes frontend handlers against an AgentSession (mutating it)."""

    def __init__(self, session: AgentSession) -> None:
        self.session = session
        self.handlers: Dict[str, Handler] = {
            "write_blackboard": self.write_blackboard,
            "read_blackboard": self.read_blackboard,
            "write_scratchpad": self.write_scratchpad,
            "read_scratchpad": self.read_scratchpad,
            "read_file": self.read_file,
            "read_prompt": self.read_prompt,
            "read_prompt_files": self.read_prompt_files,
            "read_attribute": self.read_attribute,
            "request_assistance": self.request_assistance,
        }

    def register(self, tool: str, handler: Handler) -> None:
        self.handlers[tool] = handler

    def execute(self, handler: FrontendHandler) -> ToolResult:
        tool = handler.tool
        func = self.handlers.get(tool) or self.handlers.get(tool.split(":", 1)[0])
        if func is None:
            return ToolResult(tool=tool, success=False, error=f"Unknown frontend tool: {tool}")
        try:
            result = func(handler.params)
        except (FrontendToolError, ValueError) as exc:
            return ToolResult(tool=tool, success=False, error=str(exc))
        except Exception as exc:
            # A failing handler never aborts the session loop
            message = str(exc) or type(exc).__name__
            log_error(f"Frontend tool {tool} failed: {message}")
            return ToolResult(tool=tool, success=False, error=message)
        log_deterministic(f"Frontend tool {tool} executed")
        return ToolResult(tool=tool, success=True, result=result)

    def execute_all(self, handlers: List[FrontendHandler]) -> List[ToolResult]:
        return [self.execute(handler) for handler in handlers]

    # ------------------------------------------------------------------
    # Blackboard
    # ------------------------------------------------------------------

    def write_blackboard(self, params: Dict[str, Any]) -> Dict[str, Any]:
        content = params.get("content")
        if not content:
            raise FrontendToolError("write_blackboard requires 'content'")
        try:
            category = BlackboardCategory(str(params.get("category") or "observation").lower())
        except ValueError:
            category = BlackboardCategory.OBSERVATION
        data = params.get("data")
        entry = BlackboardEntry(
            category=category,
            content=str(content),
            iteration=self.session.iteration,
            data=data if isinstance(data, dict) else None,
        )
        self.session.blackboard.append(entry)
        return {"success": True, "entries": len(self.session.blackboard)}

    def read_blackboard(self, params: Dict[str, Any]) -> List[Dict[str, Any]]:
        category = params.get("filter") or params.get("category")
        entries = self.session.blackboard
        if category:
            entries = [entry for entry in entries if entry.category.value == str(category).lower()]
        return [entry.model_dump(mode="json") for entry in entries]

    # ------------------------------------------------------------------
    # Scratchpad
    # ------------------------------------------------------------------

    def write_scratchpad(self, params: Dict[str, Any]) -> Dict[str, Any]:
        content = params.get("content")
        if content is None:
            raise FrontendToolError("write_scratchpad requires 'content'")
        if not isinstance(content, str):
            content = str(content)
        mode = params.get("mode") or "append"
        self.session.scratchpad = write_scratchpad(self.session.scratchpad, content, mode)
        log_info(f"Scratchpad {mode}: {len(content)} chars (now {len(self.session.scratchpad)})")
        return {"success": True, "length": len(self.session.scratchpad)}

    def read_scratchpad(self, params: Dict[str, Any]) -> Dict[str, Any]:
        # No reference expansion here; read_attribute returns the stored data
        return {
            "content": self.session.scratchpad,
            "note": (
                "References like {{attribute:name}} are placeholders. Use "
                "read_attribute({\"names\": [\"name\"]}) to fetch the full data."
            ),
            "available_attributes": summarize_attributes(self.session.attributes),
        }

    # ------------------------------------------------------------------
    # Prompt and files
    # ------------------------------------------------------------------

    def read_file(self, params: Dict[str, Any]) -> Dict[str, Any]:
        file_id = params.get("fileId") or params.get("file_id")
        for item in self.session.session_files:
            if item.id == file_id:
                return {
                    "filename": item.filename,
                    "content": item.content,
                    "mimeType": item.mime_type,
                    "size": item.size,
                }
        raise FrontendToolError(f"File not found: {file_id}")

    def read_prompt(self, params: Dict[str, Any]) -> str:
        return self.session.prompt

    def read_prompt_files(self, params: Dict[str, Any]) -> List[Dict[str, Any]]:
        return [
            {"id": item.id, "filename": item.filename, "mimeType": item.mime_type, "size": item.size}
            for item in self.session.session_files
        ]

    # ------------------------------------------------------------------
    # Attributes
    # ------------------------------------------------------------------

    def read_attribute(self, params: Dict[str, Any]) -> Dict[str, Any]:
        names = params.get("names") or params.get("name") or []
        if isinstance(names, str):
            names = [names]
        if not isinstance(names, list) or not all(isinstance(name, str) for name in names):
            raise FrontendToolError("read_attribute 'names' must be a string or a list of strings")
        attributes = self.session.attributes

        if not names:
            metadata = summarize_attributes(attributes)
            return {"attributes": metadata, "count": len(metadata)}

        results: Dict[str, Any] = {}
        for name in names:
            attribute = attributes.get(name)
            results[name] = attribute.value if attribute else f"Attribute '{name}' not found"
        return results

    # ------------------------------------------------------------------
    # Assistance
    # ------------------------------------------------------------------

    def request_assistance(self, params: Dict[str, Any]) -> Dict[str, Any]:
        question = params.get("question")
        if not question:
            raise FrontendToolError("request_assistance requires 'question'")
        choices = params.get("choices")
        request = AssistanceRequest(
            question=str(question),
            context=params.get("context"),
            input_type=params.get("inputType") or "text",
            choices=[str(choice) for choice in choices] if isinstance(choices, list) else None,
        )
        self.session.assistance_request = request
        log_info(f"Assistance requested: {request.question}")
        return {"awaiting_response": True, "request_id": request.id}
