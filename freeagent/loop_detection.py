"""Heuristic loop detection over recent blackboard entries.

An agent that keeps writing the same note is usually repeating the same
action. The detector counts normalized duplicates in a short window and, when
one repeats often enough, produces a warning the prompt assembler shows next
to the blackboard. It never blocks or alters tool dispatch.
"""

from __future__ import annotations

import re
from collections import Counter
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

from .schemas import BlackboardEntry

LOOP_WINDOW = 5
LOOP_THRESHOLD = 3

_STEP_MARKER = re.compile(r"^step\s*\d+\s*[:.)\-]*\s*", re.IGNORECASE)
_WHITESPACE = re.compile(r"\s+")


@dataclass(frozen=True)
class LoopReport:
    content: str
    occurrences: int
    window: int
    iterations: tuple[int, ...]

    def warning(self) -> str:
        iterations = ", ".join(str(i) for i in self.iterations)
        return (
            "WARNING: LOOP DETECTED. The same blackboard entry appears "
            f"{self.occurrences} times in your last {self.window} entries "
            f"(iterations {iterations}): \"{self.content}\". "
            "You are repeating yourself. Change strategy now: use the data already in "
            "your scratchpad, try a different tool, or call request_assistance."
        )


def normalize_entry(content: str) -> str:
    """Trim, lowercase, drop a leading ``step N`` marker and collapse whitespace."""

    text = content.strip().lower()
    text = _STEP_MARKER.sub("", text)
    return _WHITESPACE.sub(" ", text).strip()


def detect_loop(
    entries: Sequence[BlackboardEntry] | Iterable[BlackboardEntry],
    *,
    window: int = LOOP_WINDOW,
    threshold: int = LOOP_THRESHOLD,
) -> Optional[LoopReport]:
    """Return a report when a normalized entry repeats ``threshold`` times in the window."""

    recent = list(entries)[-window:]
    if len(recent) < threshold:
        return None

    normalized = [normalize_entry(entry.content) for entry in recent]
    counts = Counter(text for text in normalized if text)
    if not counts:
        return None

    content, occurrences = counts.most_common(1)[0]
    if occurrences < threshold:
        return None

    iterations = tuple(
        entry.iteration for entry, text in zip(recent, normalized) if text == content
    )
    return LoopReport(
        content=content,
        occurrences=occurrences,
        window=len(recent),
        iterations=iterations,
    )
