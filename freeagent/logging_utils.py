"""Logging utilities for FreeAgent iterations.

Provides color-coded console output to distinguish deterministic engine work
(prompt assembly, parsing, reference resolution) from model calls and tool I/O.
"""

import os
from enum import Enum


class Color(Enum):
    """ANSI color codes for terminal output."""

    # Colors for operation types
    BLUE = "\033[94m"      # Deterministic operations (prompt, parse, resolve)
    YELLOW = "\033[93m"    # Model calls
    RED = "\033[91m"       # Errors
    GREEN = "\033[92m"     # Success/completion
    CYAN = "\033[96m"      # Info/metadata (tool dispatch, session loop)

    # Formatting
    BOLD = "\033[1m"
    RESET = "\033[0m"


def colored(text: str, color: Color, bold: bool = False) -> str:
    """Wrap text in ANSI color codes if colors are enabled.

    Args:
        text: Text to colorize
        color: Color to apply
        bold: Whether to make text bold

    Returns:
        Colorized text if FREEAGENT_NO_COLOR is not set, otherwise plain text
    """
    if os.getenv("FREEAGENT_NO_COLOR"):
        return text

    prefix = color.value
    if bold:
        prefix = Color.BOLD.value + prefix

    return f"{prefix}{text}{Color.RESET.value}"


def debug_llm_enabled() -> bool:
    """Return True when DEBUG_LLM asks for full prompt/response dumps."""
    return os.getenv("DEBUG_LLM", "").lower() in ("1", "true", "yes")


def verbose_enabled() -> bool:
    """Return False when LOG_LEVEL is WARNING or above; errors always print."""
    return os.getenv("LOG_LEVEL", "INFO").upper() not in ("WARNING", "ERROR", "CRITICAL")


def log_deterministic(message: str) -> None:
    """Log a deterministic operation (blue)."""
    if not verbose_enabled():
        return
    print(colored(f"{LOG_TAG_DETERMINISTIC} {message}", Color.BLUE))


def log_llm(message: str) -> None:
    """Log a model call (yellow)."""
    if not verbose_enabled():
        return
    print(colored(f"{LOG_TAG_LLM} {message}", Color.YELLOW))


def log_error(message: str) -> None:
    """Log an error (red)."""
    print(colored(f"{LOG_TAG_ERROR} {message}", Color.RED))


def log_success(message: str) -> None:
    """Log a success (green)."""
    if not verbose_enabled():
        return
    print(colored(f"{LOG_TAG_SUCCESS} {message}", Color.GREEN))


def log_info(message: str) -> None:
    """Log metadata/info (cyan)."""
    if not verbose_enabled():
        return
    print(colored(f"{LOG_TAG_INFO} {message}", Color.CYAN))


def dump_block(title: str, body: str) -> None:
    """Print a framed block, used for DEBUG_LLM prompt and response dumps."""
    print(f"\n{'='*80}")
    print(f"[{title}]")
    print(f"{'-'*80}")
    print(body)
    print(f"{'='*80}\n")


# Markers for operation types (color-blind accessible)
LOG_TAG_DETERMINISTIC = "[•]"  # Deterministic operation
LOG_TAG_LLM = "[AI]"           # Model call
LOG_TAG_ERROR = "[!]"          # Error
LOG_TAG_SUCCESS = "[✓]"        # Success
LOG_TAG_INFO = "[i]"           # Information
