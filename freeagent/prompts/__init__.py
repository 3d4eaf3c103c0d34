"""System prompt assembly from caller-supplied sections."""

from .context import PromptContext, build_prompt_context
from .renderers import RenderedPrompt, render_prompt, section_variables
from .sections import TEMPLATE_VARIABLES, PromptLibrary, PromptTemplate

__all__ = [
    "PromptContext",
    "PromptLibrary",
    "PromptTemplate",
    "RenderedPrompt",
    "TEMPLATE_VARIABLES",
    "build_prompt_context",
    "render_prompt",
    "section_variables",
]
