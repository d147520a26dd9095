"""
Prompt templates for reviewer and selector calls.

Templates live in prompts/<name>.md at the repository root and are
rendered with str.format(); JSON examples inside them use {{ and }}.
An HTML comment at the top of each template lists its variables and is
stripped before anything reaches a model.
"""

import logging
import re
import string
from functools import lru_cache
from pathlib import Path

logger = logging.getLogger(__name__)

__all__ = [
    "PromptError", "load_prompt", "render_prompt", "template_variables",
    "build_section", "bullet_list", "strip_html_comments", "clear_cache", "PROMPTS_DIR",
]

PROMPTS_DIR = Path(__file__).resolve().parent.parent.parent / "prompts"

_HTML_COMMENT_PATTERN = re.compile(r'<!--.*?-->\s*', re.DOTALL)


class PromptError(Exception):
    """Template missing, or rendered without all of its variables."""
    pass


def strip_html_comments(content: str) -> str:
    return _HTML_COMMENT_PATTERN.sub('', content).lstrip()


@lru_cache(maxsize=None)
def load_prompt(name: str) -> str:
    """
    Load a prompt template by name, comments stripped (cached).

    Raises:
        PromptError: If prompts/<name>.md doesn't exist
    """
    prompt_path = PROMPTS_DIR / f"{name}.md"
    if not prompt_path.is_file():
        raise PromptError(f"Prompt template '{name}' not found. Expected file: {prompt_path}")

    logger.debug(f"Loading prompt template: {name}")
    return strip_html_comments(prompt_path.read_text())


def template_variables(name: str) -> set[str]:
    """Placeholder names a template expects."""
    return {
        field
        for _, field, _, _ in string.Formatter().parse(load_prompt(name))
        if field
    }


def render_prompt(name: str, **kwargs) -> str:
    """
    Render a template. Every placeholder must be supplied; extras are ignored.

    Raises:
        PromptError: If template not found or a variable is missing
    """
    missing = template_variables(name) - kwargs.keys()
    if missing:
        raise PromptError(
            f"Missing required variable(s) {sorted(missing)} in prompt '{name}'. "
            f"Provided: {sorted(kwargs)}"
        )
    return load_prompt(name).format(**kwargs)


def build_section(content: str | None, header: str, empty_msg: str | None = None) -> str:
    """Markdown section for optional content; "" when there's nothing and no empty_msg."""
    body = content or empty_msg
    if body is None:
        return ""
    return f"{header}\n\n{body}\n"


def bullet_list(items: list[str] | None, numbered: bool = False, empty: str = "None") -> str:
    """Render items as a markdown list, or `empty` if there are none."""
    if not items:
        return empty
    if numbered:
        return "\n".join(f"{i}. {item}" for i, item in enumerate(items, 1))
    return "\n".join(f"- {item}" for item in items)


def clear_cache():
    """Clear the template cache."""
    load_prompt.cache_clear()
