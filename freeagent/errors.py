"""Error taxonomy for the iteration engine.

Configuration, provider and parse errors end an iteration with status
``error``. Tool failures are captured per call as ToolResult data, and
reference misses are rendered inline as marker strings, so neither has to be
raised past the dispatcher.
"""

from __future__ import annotations


class FreeAgentError(Exception):
    """Base class for engine errors."""


class ConfigurationError(FreeAgentError):
    """Raised before any network call when a credential or the prompt template is missing."""


class ProviderError(FreeAgentError):
    """Raised when the model provider returns a non-2xx status or no usable text.

    ``status`` and ``body`` carry the upstream response verbatim so the caller can
    diagnose the failure from the iteration response alone.
    """

    def __init__(
        self,
        message: str,
        *,
        provider: str | None = None,
        status: int | None = None,
        body: str | None = None,
    ) -> None:
        self.provider = provider
        self.status = status
        self.body = body
        super().__init__(message)

    @classmethod
    def from_status(cls, provider: str, status: int, body: str) -> "ProviderError":
        return cls(
            f"LLM Error {status}: {body}",
            provider=provider,
            status=status,
            body=body,
        )


class ParseError(FreeAgentError):
    """Raised when every repair tier failed to recover a structured response."""

    def __init__(self, message: str, *, raw_text: str = "", salvaged_reasoning: str | None = None) -> None:
        self.raw_text = raw_text
        self.salvaged_reasoning = salvaged_reasoning
        super().__init__(message)

    def details(self) -> dict[str, object]:
        """Preview of the unparseable output for the debug trace."""
        return {
            "responseLength": len(self.raw_text),
            "preview": self.raw_text[:500],
            "ending": self.raw_text[-200:],
        }


class ToolExecutionError(FreeAgentError):
    """Raised by a tool executor; the dispatcher turns it into a failed ToolResult."""

    def __init__(self, message: str, *, tool: str | None = None, status: int | None = None) -> None:
        self.tool = tool
        self.status = status
        super().__init__(message)


__all__ = [
    "FreeAgentError",
    "ConfigurationError",
    "ProviderError",
    "ParseError",
    "ToolExecutionError",
]
