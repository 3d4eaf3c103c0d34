"""Prompt template scaffolding.

A template is an ordered list of caller-supplied sections. The engine ships no
default prompt; callers register their own templates (usually loaded from a
JSON file exported by the workflow UI) and send the sections with each request.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List

from ..errors import ConfigurationError
from ..schemas import PromptSection

TEMPLATE_VARIABLES = (
    "TOOLS_LIST",
    "SESSION_FILES",
    "BLACKBOARD_CONTENT",
    "SCRATCHPAD_CONTENT",
    "PREVIOUS_RESULTS",
    "CURRENT_ITERATION",
    "ASSISTANCE_RESPONSE",
    "USER_PROMPT",
    "ATTRIBUTES_LIST",
    "ARTIFACTS_LIST",
)


@dataclass
class PromptTemplate:
    """A named, versioned set of prompt sections."""

    name: str
    sections: List[PromptSection] = field(default_factory=list)
    version: str = "1"
    description: str = ""

    def sorted_sections(self) -> List[PromptSection]:
        # sorted() is stable, so equal orders keep their listed position
        return sorted(self.sections, key=lambda section: section.order)

    @classmethod
    def from_dict(cls, data: Dict) -> "PromptTemplate":
        return cls(
            name=data.get("name") or data.get("id") or "template",
            sections=[PromptSection.model_validate(item) for item in data.get("sections", [])],
            version=str(data.get("version", "1")),
            description=data.get("description", ""),
        )

    @classmethod
    def from_file(cls, path: str | Path) -> "PromptTemplate":
        """Load a template JSON file ({id, name, version, description, sections})."""

        template_path = Path(path)
        if not template_path.exists():
            raise ConfigurationError(
                f"Prompt template not found: {template_path}\n"
                "Export a template from the workflow UI or write one by hand; "
                "see examples/prompt_template.json for the format."
            )
        with template_path.open("r", encoding="utf-8") as handle:
            return cls.from_dict(json.load(handle))


class PromptLibrary:
    """Container for named prompt templates."""

    def __init__(self) -> None:
        self.templates: Dict[str, PromptTemplate] = {}

    def register(self, template: PromptTemplate) -> None:
        self.templates[template.name] = template

    def get(self, name: str) -> PromptTemplate:
        try:
            return self.templates[name]
        except KeyError:
            available = ", ".join(sorted(self.templates)) or "none registered"
            raise ConfigurationError(
                f"Unknown prompt template '{name}' (available: {available})"
            ) from None
