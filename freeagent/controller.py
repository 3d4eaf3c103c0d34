"""
Iteration controller.

Runs exactly one iteration of the agent loop as a pure function of the
request: assemble the prompt, call the model once, parse and repair its
output, dispatch the tool calls concurrently, and return the memory delta.
Nothing is retained between calls; the caller owns the loop.

Failures of the prompt template, the provider or the parser do not raise out
of run_iteration. They become an IterationResponse with ``success=False``,
status ``error`` and the full debug trace, so the caller can always show the
user what was sent and what came back.
"""

from __future__ import annotations

from typing import Dict, List, Mapping, Optional

import httpx

from .config import Config
from .errors import ConfigurationError, ParseError, ProviderError
from .logging_utils import log_error, log_info, log_success
from .loop_detection import detect_loop
from .memory import MemorySnapshot, save_tool_result_as_attribute, write_scratchpad
from .parsing import ParseOutcome, parse_agent_response
from .prompts import build_prompt_context, render_prompt
from .providers import call_provider
from .providers.base import GenerationSettings
from .schemas import (
    AgentResponse,
    DebugTrace,
    IterationRequest,
    IterationResponse,
    IterationStatus,
    NamedAttribute,
    ToolResult,
)
from .tools import DEFAULT_TOOLS, ToolDispatcher, ToolSpec
from .tools.dispatcher import DispatchOutcome


class IterationController:
    """Executes single iterations against a provider and a tool dispatcher.

    Args:
        dispatcher: Tool dispatcher; defaults to HTTP executors for every
            server-side tool in the catalog
        tools: Tool catalog rendered into the prompt
        http_client: Optional shared client for the provider call
        settings: Generation settings (max tokens, temperature)
    """

    def __init__(
        self,
        dispatcher: ToolDispatcher | None = None,
        *,
        tools: Mapping[str, ToolSpec] | None = None,
        http_client: httpx.AsyncClient | None = None,
        settings: GenerationSettings | None = None,
    ) -> None:
        self.dispatcher = dispatcher or ToolDispatcher()
        self.tools = tools if tools is not None else DEFAULT_TOOLS
        self.http_client = http_client
        self.settings = settings

    async def run_iteration(self, request: IterationRequest) -> IterationResponse:
        model = request.model or Config.DEFAULT_MODEL
        iteration = request.iteration
        log_info(f"Iteration {iteration}: model={model}, prompt={request.prompt[:100]!r}")

        debug = DebugTrace(
            model=model,
            scratchpad_length=len(request.scratchpad or ""),
            blackboard_entries=len(request.blackboard),
            previous_results_count=len(request.previous_tool_results),
        )

        # ------------------------------------------------------------------
        # Prompt
        # ------------------------------------------------------------------
        try:
            context = build_prompt_context(request, tools=self.tools)
            rendered = render_prompt(request.prompt_sections, context)
        except ConfigurationError as exc:
            log_error(f"Prompt assembly failed: {exc}")
            return _error_response(request, debug, str(exc))

        debug.system_prompt = rendered.system
        debug.user_prompt = rendered.user
        debug.full_prompt_sent = rendered.combined()
        if context.loop_report is not None:
            debug.loop_warning = context.loop_report.warning()

        # ------------------------------------------------------------------
        # Model call
        # ------------------------------------------------------------------
        try:
            reply = await call_provider(
                rendered.system,
                rendered.user,
                model,
                client=self.http_client,
                settings=self.settings,
            )
        except ConfigurationError as exc:
            log_error(f"Provider configuration error: {exc}")
            return _error_response(request, debug, str(exc))
        except ProviderError as exc:
            log_error(f"Provider call failed: {exc}")
            debug.provider = exc.provider
            return _error_response(request, debug, str(exc))

        debug.provider = reply.provider
        debug.raw_llm_response = reply.text

        # ------------------------------------------------------------------
        # Parse
        # ------------------------------------------------------------------
        outcome = parse_agent_response(reply.text)
        if outcome is None:
            error = ParseError("Failed to parse agent response", raw_text=reply.text)
            debug.parse_error = error.details()
            return _error_response(request, debug, str(error))

        debug.parse_tier = outcome.tier
        if outcome.degraded:
            debug.parse_error = ParseError(
                "Failed to parse agent response",
                raw_text=reply.text,
                salvaged_reasoning=outcome.response.reasoning,
            ).details()
            return _error_response(
                request,
                debug,
                "Failed to parse agent response",
                response=outcome.response,
                warnings=outcome.warnings,
            )

        return await self._complete(request, outcome, debug)

    async def _complete(
        self,
        request: IterationRequest,
        outcome: ParseOutcome,
        debug: DebugTrace,
    ) -> IterationResponse:
        agent: AgentResponse = outcome.response
        iteration = request.iteration
        warnings: List[str] = list(outcome.warnings)

        entry = None
        if agent.blackboard_entry is not None:
            entry = agent.blackboard_entry.model_copy(update={"iteration": iteration})
            agent.blackboard_entry = entry
        else:
            warnings.append("Response had no blackboard_entry; nothing was recorded for this iteration")

        if agent.status == IterationStatus.COMPLETED and agent.final_report is None:
            warnings.append("Status is completed but no final_report was provided")

        artifacts = [artifact.model_copy(update={"iteration": iteration}) for artifact in agent.artifacts]
        agent.artifacts = artifacts

        memory = MemorySnapshot.from_request(request)
        dispatched = await self.dispatcher.dispatch(agent.tool_calls, memory, request.secret_overrides)
        tool_results, new_attributes, scratchpad = _apply_save_as(request, dispatched, warnings)

        history = list(request.blackboard) + ([entry] if entry is not None else [])
        loop_report = detect_loop(history)
        if loop_report is not None:
            debug.loop_warning = loop_report.warning()

        for warning in warnings:
            log_error(f"Warning: {warning}")

        frontend_handlers = dispatched.frontend_handlers
        log_success(
            f"Iteration {iteration} complete: status={agent.status.value}, "
            f"{len(tool_results)} tool result(s), {len(frontend_handlers)} frontend handler(s)"
        )

        return IterationResponse(
            success=True,
            iteration=iteration,
            status=agent.status,
            response=agent,
            blackboard_entry=entry,
            tool_results=tool_results,
            frontend_handlers=frontend_handlers,
            new_attributes=new_attributes,
            scratchpad=scratchpad,
            artifacts=artifacts,
            final_report=agent.final_report,
            message_to_user=agent.message_to_user,
            warnings=warnings,
            debug=debug,
        )


def _apply_save_as(
    request: IterationRequest,
    dispatched: DispatchOutcome,
    warnings: List[str],
) -> tuple[List[ToolResult], Dict[str, NamedAttribute], Optional[str]]:
    """Store ``saveAs`` results as attributes and reference them from the scratchpad."""

    tool_results: List[ToolResult] = []
    new_attributes: Dict[str, NamedAttribute] = {}
    scratchpad = request.scratchpad or ""
    changed = False

    for prepared in dispatched.calls:
        if prepared.frontend:
            if prepared.save_as:
                warnings.append(f"saveAs ignored for caller-handled tool {prepared.call.tool}")
            continue
        result = prepared.result
        if result is None:
            continue
        if prepared.save_as and result.success:
            saved = save_tool_result_as_attribute(
                prepared.save_as,
                result,
                params=prepared.params,
                iteration=request.iteration,
            )
            new_attributes[prepared.save_as] = saved.attribute
            scratchpad = write_scratchpad(scratchpad, saved.scratchpad_line, "append")
            changed = True
            log_info(f"Saved {result.tool} result as attribute '{prepared.save_as}' ({saved.attribute.size} chars)")
            result = saved.summary
        tool_results.append(result)

    return tool_results, new_attributes, scratchpad if changed else None


def _error_response(
    request: IterationRequest,
    debug: DebugTrace,
    message: str,
    *,
    response: AgentResponse | None = None,
    warnings: List[str] | None = None,
) -> IterationResponse:
    return IterationResponse(
        success=False,
        iteration=request.iteration,
        status=IterationStatus.ERROR,
        response=response,
        error=message,
        message_to_user=response.message_to_user if response else None,
        warnings=list(warnings or []),
        debug=debug,
    )


async def run_iteration(
    request: IterationRequest,
    *,
    controller: IterationController | None = None,
) -> IterationResponse:
    """Run one iteration with a default controller."""

    return await (controller or IterationController()).run_iteration(request)
