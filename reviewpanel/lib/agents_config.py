"""
Agent command configuration.

Loads agents.yaml to determine which CLI command runs each kind of
reviewer call. If no config file exists, every call uses the default.

COMMAND TEMPLATES
=================

    commands:
      default: claude -p --output-format json
      universal: claude -p --model opus --output-format json
      feature: claude -p --model haiku --output-format json
      panel_selection: claude -p --output-format json

Keys are "default", the reviewer validation types ("universal", "domain",
"feature", see routing.classify_reviewer) and "panel_selection" for the
semantic selector. A missing key falls back to "default".

Templates support {prompt}. If present, the prompt is substituted as a CLI
argument; otherwise it is passed via stdin (preferred for long prompts).
"""

import logging
import re
import shlex
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml

logger = logging.getLogger(__name__)

DEFAULT_COMMAND = "claude -p --output-format json"

DEFAULT_COMMANDS = {
    "default": DEFAULT_COMMAND,
}

COMMAND_KEYS = ("default", "universal", "domain", "feature", "panel_selection")

_PROMPT_PLACEHOLDER = "__PROMPT_PLACEHOLDER__"


@dataclass
class AgentsConfig:
    """Agent configuration from agents.yaml."""
    commands: dict[str, str] = field(default_factory=lambda: DEFAULT_COMMANDS.copy())

    def template_for(self, key: str) -> str:
        return self.commands.get(key) or self.commands.get("default") or DEFAULT_COMMAND


def load_agents_config(project_dir: Optional[Path]) -> AgentsConfig:
    """Read agents.yaml from project_dir; defaults when absent or unreadable."""
    config_path = project_dir / "agents.yaml" if project_dir is not None else None
    if config_path is None or not config_path.is_file():
        return AgentsConfig()

    try:
        data = yaml.safe_load(config_path.read_text()) or {}
        overrides = data.get("commands") or {}
        commands = dict(DEFAULT_COMMANDS)
        for key, template in overrides.items():
            if key in COMMAND_KEYS:
                commands[key] = template
            else:
                logger.warning(f"Ignoring unknown command key '{key}' in {config_path}")
    except (yaml.YAMLError, AttributeError, TypeError) as e:
        logger.warning(f"Failed to parse {config_path}: {e}")
        return AgentsConfig()

    return AgentsConfig(commands=commands)


@dataclass
class AgentCommand:
    """A command line ready for subprocess.run()."""
    cmd: list[str]
    prompt_via_stdin: bool
    output_format: str | None  # value of --output-format, if given

    def get_stdin_input(self, prompt: str) -> str | None:
        return prompt if self.prompt_via_stdin else None


def _flag_value(args: list[str], flag: str) -> str | None:
    """Value of `--flag value` or `--flag=value` in args."""
    for i, arg in enumerate(args):
        if arg.startswith(flag + "="):
            return arg.partition("=")[2]
        if arg == flag:
            return args[i + 1] if i + 1 < len(args) else None
    return None


def get_agent_command(config: AgentsConfig, key: str, prompt: str | None = None) -> AgentCommand:
    """Build the command list for a call type.

    Args:
        config: AgentsConfig instance
        key: "default", a validation type, or "panel_selection"
        prompt: Prompt text, substituted if the template contains {prompt}

    Example:
        >>> get_agent_command(AgentsConfig(), "universal").cmd
        ['claude', '-p', '--output-format', 'json']
    """
    template = config.template_for(key)
    via_stdin = "{prompt}" not in template

    # {prompt} becomes a single opaque token so quotes in the prompt can't confuse shlex
    marked = template.replace("{prompt}", _PROMPT_PLACEHOLDER)
    leftover = re.findall(r'\{(\w+)\}', marked)
    if leftover:
        logger.error(f"Command '{key}' has unsubstituted variables: {leftover}. Template: {template}")

    args = shlex.split(marked)
    output_format = _flag_value(args, "--output-format")
    if prompt is not None and not via_stdin:
        args = [prompt if a == _PROMPT_PLACEHOLDER else a for a in args]

    return AgentCommand(
        cmd=args,
        prompt_via_stdin=via_stdin,
        output_format=output_format,
    )
