"""Concurrent tool dispatch.

Each call is prepared deterministically (reference resolution, ``saveAs``
extraction, secret merge) and then every server-side call runs at once.
Results come back in the order the model listed the calls. Calls without an
executor are handed back to the caller as frontend handlers.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence

from ..config import Config
from ..logging_utils import log_deterministic, log_error, log_info, log_success
from ..memory import MemorySnapshot
from ..references import resolve_references, summarize_resolutions
from ..schemas import FrontendHandler, SecretOverride, ToolCall, ToolResult
from .executors import ToolExecutor, default_executors
from .secrets import apply_secret_overrides, secret_keys

SAVE_AS_KEY = "saveAs"


@dataclass
class PreparedCall:
    """A tool call after resolution, ready to run or hand to the caller."""

    call: ToolCall
    # Resolved params without saveAs and without secrets
    params: Dict[str, Any]
    save_as: Optional[str] = None
    executor: Optional[ToolExecutor] = None
    result: Optional[ToolResult] = None

    @property
    def frontend(self) -> bool:
        return self.executor is None


@dataclass
class DispatchOutcome:
    calls: List[PreparedCall] = field(default_factory=list)

    @property
    def tool_results(self) -> List[ToolResult]:
        return [prepared.result for prepared in self.calls if prepared.result is not None]

    @property
    def frontend_handlers(self) -> List[FrontendHandler]:
        return [
            FrontendHandler(tool=prepared.call.tool, params=prepared.params)
            for prepared in self.calls
            if prepared.frontend
        ]


class ToolDispatcher:
    """Runs the tool calls of one iteration."""

    def __init__(
        self,
        executors: Mapping[str, ToolExecutor] | None = None,
        *,
        timeout: float | None = None,
    ) -> None:
        self.executors: Dict[str, ToolExecutor] = dict(
            executors if executors is not None else default_executors()
        )
        self.timeout = timeout

    def register(self, tool: str, executor: ToolExecutor) -> None:
        self.executors[tool] = executor

    def executor_for(self, tool: str) -> Optional[ToolExecutor]:
        """Executor for an exact tool id, else for its base tool."""
        return self.executors.get(tool) or self.executors.get(tool.split(":", 1)[0])

    def prepare(self, call: ToolCall, memory: MemorySnapshot) -> PreparedCall:
        resolved = resolve_references(call.params, memory)
        for line in summarize_resolutions(call.params, resolved):
            log_deterministic(f"{call.tool}: {line}")

        save_as = resolved.pop(SAVE_AS_KEY, None)
        if save_as is not None and not isinstance(save_as, str):
            save_as = str(save_as)

        return PreparedCall(
            call=call,
            params=resolved,
            save_as=save_as.strip() if save_as and save_as.strip() else None,
            executor=self.executor_for(call.tool),
        )

    async def dispatch(
        self,
        calls: Sequence[ToolCall],
        memory: MemorySnapshot,
        secret_overrides: Mapping[str, SecretOverride] | None = None,
    ) -> DispatchOutcome:
        prepared = [self.prepare(call, memory) for call in calls]
        server_side = [item for item in prepared if not item.frontend]
        overrides = secret_overrides or {}

        if server_side:
            log_info(f"Dispatching {len(server_side)} tool call(s): {', '.join(item.call.tool for item in server_side)}")

        results = await asyncio.gather(
            *[self._run(item, overrides) for item in server_side],
            return_exceptions=True,
        )
        for item, result in zip(server_side, results):
            if isinstance(result, BaseException):
                # _run captures executor errors; this covers anything raised around it
                result = ToolResult(tool=item.call.tool, success=False, error=_describe(result))
            item.result = result

        frontend = [item.call.tool for item in prepared if item.frontend]
        if frontend:
            log_info(f"Returning {len(frontend)} frontend handler(s): {', '.join(frontend)}")

        return DispatchOutcome(calls=prepared)

    async def _run(self, item: PreparedCall, overrides: Mapping[str, SecretOverride]) -> ToolResult:
        tool = item.call.tool
        params = apply_secret_overrides(tool, item.params, overrides)
        applied = secret_keys(tool, overrides)
        if applied:
            log_deterministic(f"{tool}: applied secrets {', '.join(applied)}")

        timeout = self.timeout if self.timeout is not None else Config.TOOL_TIMEOUT_SECONDS
        try:
            result = await asyncio.wait_for(item.executor.execute(tool, params), timeout=timeout)
        except asyncio.TimeoutError:
            log_error(f"Tool {tool} timed out after {timeout}s")
            return ToolResult(tool=tool, success=False, error=f"Tool timed out after {timeout}s")
        except Exception as exc:
            log_error(f"Tool {tool} failed: {_describe(exc)}")
            return ToolResult(tool=tool, success=False, error=_describe(exc))

        log_success(f"Tool {tool} completed")
        return ToolResult(tool=tool, success=True, result=result)


def _describe(exc: BaseException) -> str:
    return str(exc) or type(exc).__name__
