"""
FreeAgent Configuration

Loads configuration from environment variables with sensible defaults.
Credentials for model providers and tool collaborators live here, never in
the iteration request body.
"""

import os
from pathlib import Path
from dotenv import load_dotenv

# Load .env file if it exists
load_dotenv()


class Config:
    """Process configuration loaded from environment variables."""

    # Model used when a request does not name one
    DEFAULT_MODEL: str = os.getenv("FREEAGENT_DEFAULT_MODEL", "gemini-2.5-flash")

    # Provider API keys
    GEMINI_API_KEY: str | None = os.getenv("GEMINI_API_KEY")
    ANTHROPIC_API_KEY: str | None = os.getenv("ANTHROPIC_API_KEY")
    XAI_API_KEY: str | None = os.getenv("XAI_API_KEY")

    # Local Ollama server (no key required)
    OLLAMA_BASE_URL: str = os.getenv("OLLAMA_BASE_URL", "http://127.0.0.1:11434")

    # Tool collaborators. Each server-side tool is a POST to
    # {TOOLS_BASE_URL}/functions/v1/{endpoint}
    TOOLS_BASE_URL: str | None = os.getenv("FREEAGENT_TOOLS_URL")
    TOOLS_API_KEY: str | None = os.getenv("FREEAGENT_TOOLS_KEY")

    # Generation settings
    MAX_OUTPUT_TOKENS: int = int(os.getenv("FREEAGENT_MAX_OUTPUT_TOKENS", "16384"))
    TEMPERATURE: float = float(os.getenv("FREEAGENT_TEMPERATURE", "0.7"))

    # Timeouts
    LLM_TIMEOUT_SECONDS: float = float(os.getenv("FREEAGENT_LLM_TIMEOUT", "120"))
    TOOL_TIMEOUT_SECONDS: float = float(os.getenv("FREEAGENT_TOOL_TIMEOUT", "60"))

    # Caller-side session loop
    MAX_ITERATIONS: int = int(os.getenv("FREEAGENT_MAX_ITERATIONS", "50"))
    MAX_RETRY_ATTEMPTS: int = int(os.getenv("FREEAGENT_MAX_RETRIES", "3"))

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Project Paths
    PROJECT_ROOT: Path = Path(__file__).parent.parent
    SESSIONS_DIR: Path = PROJECT_ROOT / "sessions"

    @classmethod
    def api_key_for(cls, provider: str) -> str | None:
        """Return the credential for a provider family, or None if unset."""
        keys = {
            "gemini": cls.GEMINI_API_KEY,
            "anthropic": cls.ANTHROPIC_API_KEY,
            "xai": cls.XAI_API_KEY,
        }
        return keys.get(provider)

    @classmethod
    def validate(cls) -> None:
        """Validate configuration and raise errors if required values are missing."""
        from .errors import ConfigurationError

        if not any((cls.GEMINI_API_KEY, cls.ANTHROPIC_API_KEY, cls.XAI_API_KEY)) and not cls.OLLAMA_BASE_URL:
            raise ConfigurationError(
                "No model provider is configured. Set GEMINI_API_KEY, ANTHROPIC_API_KEY "
                "or XAI_API_KEY, or point OLLAMA_BASE_URL at a local server."
            )

        if cls.TOOLS_API_KEY and not cls.TOOLS_BASE_URL:
            raise ConfigurationError(
                "FREEAGENT_TOOLS_KEY is set but FREEAGENT_TOOLS_URL is missing. "
                "Server-side tools need a base URL."
            )

    @classmethod
    def display(cls) -> str:
        """Return a formatted string showing current configuration."""
        configured = [
            name
            for name in ("gemini", "anthropic", "xai")
            if cls.api_key_for(name)
        ]
        lines = [
            "FreeAgent Configuration:",
            f"  Default Model: {cls.DEFAULT_MODEL}",
            f"  Providers with keys: {', '.join(configured) or 'none'}",
            f"  Ollama: {cls.OLLAMA_BASE_URL}",
            f"  Tools URL: {cls.TOOLS_BASE_URL or 'not set (all tools caller-handled)'}",
            f"  LLM Timeout: {cls.LLM_TIMEOUT_SECONDS}s",
            f"  Tool Timeout: {cls.TOOL_TIMEOUT_SECONDS}s",
            f"  Max Iterations: {cls.MAX_ITERATIONS}",
        ]
        return "\n".join(lines)
