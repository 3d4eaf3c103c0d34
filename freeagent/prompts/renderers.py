"""Prompt rendering utilities."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, List, Sequence

from ..errors import ConfigurationError
from ..logging_utils import log_deterministic
from ..schemas import PromptSection
from .context import PromptContext

_VARIABLE = re.compile(r"\{\{([A-Z][A-Z0-9_]*)\}\}")


@dataclass
class RenderedPrompt:
    system: str
    user: str

    def combined(self) -> str:
        """Single-message form used by providers without a system role."""
        return f"{self.system}\n\nUser Task: {self.user}"


def render_prompt(sections: Sequence[PromptSection], context: PromptContext) -> RenderedPrompt:
    """Render caller-supplied sections into a system prompt.

    Sections are emitted in ascending ``order`` (ties keep their listed
    position) and joined by a blank line. ``{{NAME}}`` placeholders for the
    runtime variables are replaced in every section; unknown placeholders stay
    as-is. A dynamic section whose variables all render empty is dropped, as is
    any section that ends up blank.
    """

    if not sections:
        raise ConfigurationError(
            "No prompt sections supplied. The engine has no built-in prompt; "
            "send promptSections with the request (see examples/prompt_template.json)."
        )

    variables = context.variables()
    rendered: List[str] = []
    omitted: List[str] = []

    for section in sorted(sections, key=lambda item: item.order):
        if section.is_dynamic and _all_variables_empty(section, variables):
            omitted.append(section.id)
            continue
        text = _substitute(section.content, variables)
        if not text.strip():
            omitted.append(section.id)
            continue
        rendered.append(text)

    if omitted:
        log_deterministic(f"Prompt sections omitted (empty): {', '.join(omitted)}")

    return RenderedPrompt(system="\n\n".join(rendered), user=variables["USER_PROMPT"])


def section_variables(section: PromptSection) -> List[str]:
    """Variables a section declares, or the ones its content references."""

    if section.variables:
        return [name.strip("{} ") for name in section.variables]
    return _VARIABLE.findall(section.content)


def _all_variables_empty(section: PromptSection, variables: Dict[str, str]) -> bool:
    names = [name for name in section_variables(section) if name in variables]
    if not names:
        return False
    return all(not variables[name].strip() for name in names)


def _substitute(content: str, variables: Dict[str, str]) -> str:
    def replace(match: re.Match[str]) -> str:
        name = match.group(1)
        return variables.get(name, match.group(0))

    return _VARIABLE.sub(replace, content)
