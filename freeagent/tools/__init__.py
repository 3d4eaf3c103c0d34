"""Tool catalog, executors and the concurrent dispatcher."""

from .catalog import DEFAULT_TOOLS, ToolParam, ToolSpec, render_tool_catalog
from .dispatcher import DispatchOutcome, PreparedCall, ToolDispatcher
from .executors import (
    FunctionToolExecutor,
    HttpToolExecutor,
    ToolExecutor,
    default_executors,
    shape_request_body,
)
from .secrets import apply_secret_overrides, merge_secret_override

__all__ = [
    "DEFAULT_TOOLS",
    "DispatchOutcome",
    "FunctionToolExecutor",
    "HttpToolExecutor",
    "PreparedCall",
    "ToolDispatcher",
    "ToolExecutor",
    "ToolParam",
    "ToolSpec",
    "apply_secret_overrides",
    "default_executors",
    "merge_secret_override",
    "render_tool_catalog",
    "shape_request_body",
]
