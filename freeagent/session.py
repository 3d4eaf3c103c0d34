"""
Session runner (caller side).

The engine runs one iteration per call and forgets it. SessionRunner is the
loop around it: it builds each IterationRequest from an AgentSession,
retries failed iterations, folds the returned delta back into the session,
runs frontend handlers through the caller-side toolbox and decides when to
stop.

Stop conditions:
- the model reports ``completed``
- the model asks for help (``needs_assistance`` or a request_assistance call)
- an iteration still fails after MAX_RETRY_ATTEMPTS attempts
- stop() was called
- MAX_ITERATIONS iterations have run
"""

from __future__ import annotations

from typing import Awaitable, Callable, Optional, Union

from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_fixed

from .config import Config
from .controller import IterationController
from .errors import FreeAgentError
from .frontend_tools import FrontendToolbox
from .logging_utils import colored, Color, log_error, log_info, log_success
from .persistence import PersistenceStrategy
from .schemas import (
    AgentSession,
    AssistanceRequest,
    AssistanceResponse,
    BlackboardCategory,
    BlackboardEntry,
    IterationRecord,
    IterationRequest,
    IterationResponse,
    IterationStatus,
    SessionStatus,
)

Engine = Callable[[IterationRequest], Awaitable[IterationResponse]]


class IterationFailed(FreeAgentError):
    """An iteration came back with ``success=False``; triggers a retry."""

    def __init__(self, response: IterationResponse) -> None:
        self.response = response
        super().__init__(response.error or "Iteration failed")


class SessionRunner:
    """Drives an AgentSession through successive iterations.

    Args:
        engine: IterationController or any async callable taking an
            IterationRequest (e.g. a client for a remote /free-agent endpoint)
        persistence: Optional store for session snapshots and iteration records
        max_iterations: Iteration cap (default Config.MAX_ITERATIONS)
        max_attempts: Attempts per iteration (default Config.MAX_RETRY_ATTEMPTS)
        retry_wait: Seconds between attempts
    """

    def __init__(
        self,
        engine: Union[IterationController, Engine, None] = None,
        *,
        persistence: Optional[PersistenceStrategy] = None,
        max_iterations: Optional[int] = None,
        max_attempts: Optional[int] = None,
        retry_wait: float = 1.0,
    ) -> None:
        if engine is None:
            engine = IterationController()
        self.engine: Engine = engine.run_iteration if isinstance(engine, IterationController) else engine
        self.persistence = persistence
        self.max_iterations = max_iterations or Config.MAX_ITERATIONS
        self.max_attempts = max_attempts or Config.MAX_RETRY_ATTEMPTS
        self.retry_wait = retry_wait
        self._stop_requested = False

    # ------------------------------------------------------------------
    # Request building
    # ------------------------------------------------------------------

    def build_request(self, session: AgentSession) -> IterationRequest:
        return IterationRequest(
            prompt=session.prompt,
            model=session.model,
            blackboard=list(session.blackboard),
            scratchpad=session.scratchpad,
            session_files=list(session.session_files),
            previous_tool_results=list(session.previous_tool_results),
            iteration=session.iteration + 1,
            assistance_response=session.assistance_response,
            secret_overrides=dict(session.secret_overrides),
            tool_result_attributes=dict(session.attributes),
            artifacts=list(session.artifacts),
            prompt_sections=list(session.prompt_sections),
            tool_overrides=dict(session.tool_overrides),
            disabled_tools=list(session.disabled_tools),
        )

    # ------------------------------------------------------------------
    # One iteration
    # ------------------------------------------------------------------

    async def call_engine(self, session: AgentSession, request: IterationRequest) -> IterationResponse:
        """Call the engine, retrying while iterations come back unsuccessful.

        Returns the last response when every attempt failed.
        """

        attempt_number = 0
        try:
            async for attempt in AsyncRetrying(
                retry=retry_if_exception_type(IterationFailed),
                stop=stop_after_attempt(self.max_attempts),
                wait=wait_fixed(self.retry_wait),
                reraise=True,
            ):
                with attempt:
                    attempt_number += 1
                    if attempt_number > 1:
                        session.retry_count += 1
                        log_info(f"Retrying iteration {request.iteration} ({attempt_number}/{self.max_attempts})")
                    response = await self.engine(request)
                    if not response.success:
                        raise IterationFailed(response)
                    return response
        except IterationFailed as exc:
            log_error(f"Iteration {request.iteration} failed after {attempt_number} attempt(s): {exc}")
            return exc.response

        # AsyncRetrying with reraise=True exits via return or raise
        raise RuntimeError("Retry loop exited unexpectedly")

    async def step(self, session: AgentSession) -> IterationResponse:
        """Run one iteration and apply its outcome to ``session``."""

        request = self.build_request(session)
        session.status = SessionStatus.RUNNING
        response = await self.call_engine(session, request)
        self.apply_response(session, response)

        if self.persistence is not None:
            await self.persistence.save_iteration(
                IterationRecord(
                    session_id=session.id,
                    iteration=request.iteration,
                    request=request,
                    response=response,
                )
            )
            await self.persistence.save_session(session)
        return response

    def apply_response(self, session: AgentSession, response: IterationResponse) -> None:
        """Fold an iteration's delta into the session and run frontend handlers."""

        session.debug_log.append(response.debug)

        if not response.success:
            session.status = SessionStatus.ERROR
            session.error = response.error
            session.stop_reason = "error"
            return

        session.iteration = response.iteration
        session.error = None
        # The answer has been delivered with this iteration's request
        session.assistance_response = None

        if response.blackboard_entry is not None:
            session.blackboard.append(response.blackboard_entry)
        session.attributes.update(response.new_attributes)
        if response.scratchpad is not None:
            session.scratchpad = response.scratchpad
        session.artifacts.extend(response.artifacts)
        if response.final_report is not None:
            session.final_report = response.final_report

        toolbox = FrontendToolbox(session)
        frontend_results = toolbox.execute_all(response.frontend_handlers)
        session.previous_tool_results = list(response.tool_results) + frontend_results

        if response.message_to_user:
            print(colored(f"Agent: {response.message_to_user}", Color.CYAN))

        if response.status == IterationStatus.COMPLETED:
            session.status = SessionStatus.COMPLETED
            session.stop_reason = "completed"
        elif response.status == IterationStatus.NEEDS_ASSISTANCE or session.assistance_request is not None:
            if session.assistance_request is None:
                session.assistance_request = AssistanceRequest(
                    question=response.message_to_user or "The agent needs your input to continue."
                )
            session.status = SessionStatus.NEEDS_ASSISTANCE
            session.stop_reason = "needs_assistance"
        elif response.status == IterationStatus.ERROR:
            # The model itself reported failure
            session.status = SessionStatus.ERROR
            session.error = response.message_to_user or "Agent reported an error"
            session.stop_reason = "error"
        else:
            session.status = SessionStatus.RUNNING

    # ------------------------------------------------------------------
    # Loop
    # ------------------------------------------------------------------

    async def run(self, session: AgentSession) -> AgentSession:
        """Iterate until a stop condition is reached; returns the session."""

        self._stop_requested = False
        log_info(f"Session {session.id}: starting at iteration {session.iteration + 1}")

        while True:
            if self._stop_requested:
                session.status = SessionStatus.STOPPED
                session.stop_reason = "stopped"
                break
            if session.iteration >= self.max_iterations:
                session.status = SessionStatus.STOPPED
                session.stop_reason = "max_iterations"
                log_info(f"Session {session.id}: reached max iterations ({self.max_iterations})")
                break

            await self.step(session)
            if session.status != SessionStatus.RUNNING:
                break

        if self.persistence is not None:
            await self.persistence.save_session(session)

        if session.status == SessionStatus.COMPLETED:
            log_success(f"Session {session.id} completed after {session.iteration} iteration(s)")
        elif session.status == SessionStatus.ERROR:
            log_error(f"Session {session.id} stopped with error: {session.error}")
        else:
            log_info(f"Session {session.id} paused: {session.stop_reason}")
        return session

    def stop(self) -> None:
        """Ask the loop to stop before its next iteration."""
        self._stop_requested = True

    # ------------------------------------------------------------------
    # User input
    # ------------------------------------------------------------------

    @staticmethod
    def answer_assistance(
        session: AgentSession,
        response: Optional[str] = None,
        *,
        selected_choice: Optional[str] = None,
        file_id: Optional[str] = None,
    ) -> None:
        """Record the user's answer; the next request carries it to the model."""

        session.assistance_response = AssistanceResponse(
            response=response,
            selected_choice=selected_choice,
            file_id=file_id,
        )
        session.assistance_request = None
        session.status = SessionStatus.RUNNING
        session.stop_reason = None

    @staticmethod
    def interject(session: AgentSession, message: str) -> BlackboardEntry:
        """Add a user note to the blackboard; the model sees it next iteration."""

        entry = BlackboardEntry(
            category=BlackboardCategory.USER_INTERJECTION,
            content=message,
            iteration=session.iteration,
        )
        session.blackboard.append(entry)
        return entry
