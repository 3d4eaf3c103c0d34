"""
FreeAgent - a stateless iteration engine for autonomous tool-using agents.

Each call takes the caller's full state snapshot, asks a model what to do
next, runs the requested tools concurrently and returns the memory delta.
"""

__version__ = "0.1.0"

from .config import Config
from .controller import IterationController, run_iteration
from .errors import (
    ConfigurationError,
    FreeAgentError,
    ParseError,
    ProviderError,
    ToolExecutionError,
)
from .schemas import (
    AgentResponse,
    AgentSession,
    Artifact,
    BlackboardCategory,
    BlackboardEntry,
    IterationRequest,
    IterationResponse,
    IterationStatus,
    NamedAttribute,
    PromptSection,
    SessionStatus,
    ToolCall,
    ToolResult,
)
from .session import SessionRunner

__all__ = [
    "__version__",
    "AgentResponse",
    "AgentSession",
    "Artifact",
    "BlackboardCategory",
    "BlackboardEntry",
    "Config",
    "ConfigurationError",
    "FreeAgentError",
    "IterationController",
    "IterationRequest",
    "IterationResponse",
    "IterationStatus",
    "NamedAttribute",
    "ParseError",
    "PromptSection",
    "ProviderError",
    "SessionRunner",
    "SessionStatus",
    "ToolCall",
    "ToolExecutionError",
    "ToolResult",
    "run_iteration",
]
