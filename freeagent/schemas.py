"""
Pydantic schemas for the FreeAgent iteration engine.

All data crossing the engine boundary is defined here: the memory model
(blackboard, scratchpad, named attributes, artifacts), tool calls and
results, the canonical model response, and the request/response envelopes.

Design Philosophy:
- The engine is stateless; every field it needs arrives in IterationRequest
  and every change it makes leaves in IterationResponse
- Wire names are camelCase (the workflow UI speaks camelCase), Python
  attributes are snake_case; both are accepted on input
- The model's own output (AgentResponse) keeps the snake_case field names the
  prompt instructs the model to emit
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional
from uuid import NAMESPACE_URL, uuid4, uuid5
import json

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    """Base for models exchanged with the caller (camelCase on the wire)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ============================================================================
# Enumerations
# ============================================================================


class BlackboardCategory(str, Enum):
    OBSERVATION = "observation"
    INSIGHT = "insight"
    PLAN = "plan"
    DECISION = "decision"
    ERROR = "error"
    QUESTION = "question"
    ARTIFACT = "artifact"
    USER_INTERJECTION = "user_interjection"


class IterationStatus(str, Enum):
    """Iteration state machine.

    ``in_progress`` is the initial state and the default whenever the model
    gives no terminal signal. ``completed`` is terminal and should carry a
    final report. ``needs_assistance`` blocks until the caller supplies an
    answer. ``error`` is terminal for the current call only; the caller may
    retry with unchanged state.
    """

    IN_PROGRESS = "in_progress"
    NEEDS_ASSISTANCE = "needs_assistance"
    COMPLETED = "completed"
    ERROR = "error"


class ArtifactType(str, Enum):
    TEXT = "text"
    FILE = "file"
    IMAGE = "image"
    DATA = "data"


# ============================================================================
# Memory Model
# ============================================================================


class BlackboardEntry(WireModel):
    """One line of the append-only planning journal."""

    category: BlackboardCategory = Field(..., description="Kind of note")
    content: str = Field(..., description="What the agent did or learned")
    # Stamped by the controller; callers that omit it get 0
    iteration: int = Field(0, ge=0, description="Iteration that produced the entry")
    data: Optional[Dict[str, Any]] = Field(None, description="Optional structured payload")


class NamedAttribute(WireModel):
    """A tool result stored out-of-band and referenced by name.

    Large tool outputs live here instead of being echoed back to the model, so
    the model can refer to them with ``{{attribute:name}}`` without spending
    context on the payload.
    """

    name: str = Field(..., description="Unique key (last write wins)")
    tool: str = Field("", description="Tool that produced the value")
    params: Dict[str, Any] = Field(default_factory=dict, description="Params of the producing call")
    value: Any = Field(None, description="Full tool result, untruncated")
    size: int = Field(0, ge=0, description="Approximate size in characters")
    iteration: int = Field(0, ge=0)
    created_at: Optional[datetime] = None

    @model_validator(mode="after")
    def _fill_size(self) -> "NamedAttribute":
        if not self.size:
            self.size = len(self.value_text())
        return self

    def value_text(self) -> str:
        """Return the value as text (strings verbatim, everything else as JSON)."""
        if isinstance(self.value, str):
            return self.value
        return json.dumps(self.value, indent=2, default=str)


class Artifact(WireModel):
    """A deliverable produced by the agent (report, file, image, dataset)."""

    id: str = Field(default_factory=lambda: str(uuid4()))
    type: ArtifactType = ArtifactType.TEXT
    title: str = Field("", description="Human-readable title, also usable as a reference key")
    content: str = ""
    description: Optional[str] = None
    mime_type: Optional[str] = None
    iteration: int = Field(0, ge=0)


class SessionFile(WireModel):
    """Metadata (and optionally content) of a file the user attached to the session."""

    id: str
    filename: str
    mime_type: str = "application/octet-stream"
    size: int = Field(0, ge=0)
    content: Optional[str] = None


# ============================================================================
# Tool Calls
# ============================================================================


class ToolCall(WireModel):
    tool: str = Field(..., description="Tool id, optionally 'base_tool:instance'")
    params: Dict[str, Any] = Field(default_factory=dict)

    @property
    def base_tool(self) -> str:
        """Tool id without an instance suffix (``execute_sql:crm`` -> ``execute_sql``)."""
        return self.tool.split(":", 1)[0]


class ToolResult(WireModel):
    tool: str
    success: bool
    result: Any = None
    error: Optional[str] = None


class FrontendHandler(WireModel):
    """A tool call the caller must execute itself (no server-side executor)."""

    tool: str
    params: Dict[str, Any] = Field(default_factory=dict)


class SecretOverride(WireModel):
    """Caller-supplied credentials for one tool.

    ``params`` keys may be dotted paths (``headers.Authorization``). ``headers``
    is shorthand for entries merged into the ``headers`` param.
    """

    params: Dict[str, Any] = Field(default_factory=dict)
    headers: Dict[str, str] = Field(default_factory=dict)


class ToolOverride(WireModel):
    description: Optional[str] = None


# ============================================================================
# Prompt Template
# ============================================================================


class PromptSection(WireModel):
    """One block of the system prompt, supplied by the caller."""

    id: str
    title: str = ""
    type: str = Field("custom", description="'dynamic' marks a section with runtime variables")
    content: str = ""
    order: int = 0
    editable: str = "editable"
    variables: Optional[List[str]] = None

    @property
    def is_dynamic(self) -> bool:
        return self.type == "dynamic" or self.editable == "dynamic"


# ============================================================================
# Model Output
# ============================================================================


class FinalReport(BaseModel):
    summary: str = ""
    tools_used: List[str] = Field(default_factory=list)
    artifacts_created: List[Dict[str, Any]] = Field(default_factory=list)
    key_findings: List[str] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)

    @field_validator("tools_used", "key_findings", "recommendations", mode="before")
    @classmethod
    def _wrap_single_string(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [value] if value else []
        if value is None:
            return []
        return value

    @field_validator("artifacts_created", mode="before")
    @classmethod
    def _coerce_artifact_refs(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, list):
            return [item if isinstance(item, dict) else {"title": str(item)} for item in value]
        return value


class AgentResponse(BaseModel):
    """Canonical structure every provider's output is normalized into."""

    reasoning: str = ""
    tool_calls: List[ToolCall] = Field(default_factory=list)
    # Required by the prompt contract but tolerated as missing (flagged, not fatal)
    blackboard_entry: Optional[BlackboardEntry] = None
    status: IterationStatus = IterationStatus.IN_PROGRESS
    message_to_user: Optional[str] = None
    artifacts: List[Artifact] = Field(default_factory=list)
    final_report: Optional[FinalReport] = None


# ============================================================================
# Request / Response Envelopes
# ============================================================================


class AssistanceResponse(WireModel):
    response: Optional[str] = None
    selected_choice: Optional[str] = None
    file_id: Optional[str] = None

    def answer(self) -> str:
        return self.response or self.selected_choice or ""


class IterationRequest(WireModel):
    """Complete state snapshot submitted by the caller for one iteration."""

    prompt: str = Field(..., description="The user's task")
    model: Optional[str] = Field(None, description="Model id; Config.DEFAULT_MODEL when omitted")
    blackboard: List[BlackboardEntry] = Field(default_factory=list)
    scratchpad: str = ""
    session_files: List[SessionFile] = Field(default_factory=list)
    previous_tool_results: List[ToolResult] = Field(default_factory=list)
    iteration: int = Field(1, ge=0)
    assistance_response: Optional[AssistanceResponse] = None
    secret_overrides: Dict[str, SecretOverride] = Field(default_factory=dict)
    tool_result_attributes: Dict[str, NamedAttribute] = Field(default_factory=dict)
    artifacts: List[Artifact] = Field(default_factory=list)
    prompt_sections: List[PromptSection] = Field(default_factory=list)
    tool_overrides: Dict[str, ToolOverride] = Field(default_factory=dict)
    disabled_tools: List[str] = Field(default_factory=list)

    @field_validator("tool_result_attributes", mode="before")
    @classmethod
    def _index_attributes(cls, value: Any) -> Any:
        # Accept a list as well as a map; duplicate names keep the last entry.
        if isinstance(value, list):
            from .memory import index_attributes

            return index_attributes(value)
        if isinstance(value, dict):
            return {
                key: ({**item, "name": key} if isinstance(item, dict) and "name" not in item else item)
                for key, item in value.items()
            }
        return value

    @field_validator("artifacts", mode="before")
    @classmethod
    def _stable_artifact_ids(cls, value: Any) -> Any:
        # An artifact sent without an id gets one derived from its position,
        # title and iteration, so the same body always renders the same prompt.
        if not isinstance(value, list):
            return value
        stable = []
        for index, item in enumerate(value):
            if isinstance(item, dict) and not item.get("id"):
                seed = f"{index}:{item.get('title', '')}:{item.get('iteration', 0)}"
                item = {**item, "id": str(uuid5(NAMESPACE_URL, f"freeagent-artifact:{seed}"))}
            stable.append(item)
        return stable


class DebugTrace(WireModel):
    """Observability payload returned with every iteration, including failures."""

    system_prompt: str = ""
    user_prompt: str = ""
    full_prompt_sent: str = ""
    raw_llm_response: str = Field("", alias="rawLLMResponse")
    model: str = ""
    provider: Optional[str] = None
    parse_tier: Optional[str] = None
    parse_error: Optional[Dict[str, Any]] = None
    loop_warning: Optional[str] = None
    scratchpad_length: int = 0
    blackboard_entries: int = 0
    previous_results_count: int = 0


class IterationResponse(WireModel):
    """Engine output: the model's decisions plus the memory delta for the caller."""

    success: bool
    iteration: int
    status: IterationStatus
    response: Optional[AgentResponse] = None
    blackboard_entry: Optional[BlackboardEntry] = None
    tool_results: List[ToolResult] = Field(default_factory=list)
    frontend_handlers: List[FrontendHandler] = Field(default_factory=list)
    new_attributes: Dict[str, NamedAttribute] = Field(default_factory=dict)
    # Only set when the engine changed the scratchpad (save-as references)
    scratchpad: Optional[str] = None
    artifacts: List[Artifact] = Field(default_factory=list)
    final_report: Optional[FinalReport] = None
    message_to_user: Optional[str] = None
    error: Optional[str] = None
    warnings: List[str] = Field(default_factory=list)
    debug: DebugTrace = Field(default_factory=DebugTrace)


# ============================================================================
# Caller-side Session State
# ============================================================================


class AssistanceRequest(WireModel):
    """A question the agent put to the user via request_assistance."""

    id: str = Field(default_factory=lambda: str(uuid4()))
    question: str = ""
    context: Optional[str] = None
    input_type: str = "text"
    choices: Optional[List[str]] = None
    requested_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class SessionStatus(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    NEEDS_ASSISTANCE = "needs_assistance"
    COMPLETED = "completed"
    ERROR = "error"
    STOPPED = "stopped"


class AgentSession(WireModel):
    """Everything the caller persists between iterations."""

    id: str = Field(default_factory=lambda: str(uuid4()))
    prompt: str
    model: Optional[str] = None
    status: SessionStatus = SessionStatus.IDLE
    iteration: int = Field(0, ge=0)
    blackboard: List[BlackboardEntry] = Field(default_factory=list)
    scratchpad: str = ""
    attributes: Dict[str, NamedAttribute] = Field(default_factory=dict)
    artifacts: List[Artifact] = Field(default_factory=list)
    session_files: List[SessionFile] = Field(default_factory=list)
    previous_tool_results: List[ToolResult] = Field(default_factory=list)
    assistance_request: Optional[AssistanceRequest] = None
    assistance_response: Optional[AssistanceResponse] = None
    final_report: Optional[FinalReport] = None
    error: Optional[str] = None
    stop_reason: Optional[str] = None
    retry_count: int = 0
    prompt_sections: List[PromptSection] = Field(default_factory=list)
    secret_overrides: Dict[str, SecretOverride] = Field(default_factory=dict)
    tool_overrides: Dict[str, ToolOverride] = Field(default_factory=dict)
    disabled_tools: List[str] = Field(default_factory=list)
    # Raw debug trace of every iteration, for the RAW viewer
    debug_log: List[DebugTrace] = Field(default_factory=list)


class IterationRecord(WireModel):
    """A stored request/response pair; enough to replay the iteration."""

    session_id: str
    iteration: int
    request: IterationRequest
    response: IterationResponse
    recorded_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
