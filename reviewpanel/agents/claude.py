"""
Claude agent integration for review panels.

Claude is the text-generation collaborator: every panel member is one
Claude CLI call, and the semantic panel selector is one more.

Failures are split the same way the rest of the package splits them:
anything that stops a response from arriving is a ProviderError, a
response that arrives but isn't a JSON object is a ParseError.
"""

import json
import logging
import os
import re
import subprocess
from pathlib import Path
from typing import Optional

from reviewpanel.lib.agents_config import AgentsConfig, get_agent_command
from reviewpanel.lib.errors import ParseError, ProviderError
from reviewpanel.lib.prompts import bullet_list, render_prompt
from reviewpanel.lib.routing import VALID_ROLES
from reviewpanel.lib.validate import ValidationError, validate

logger = logging.getLogger(__name__)

_FENCE_PATTERN = re.compile(r'```(?:json)?\s*\n([\s\S]*?)\n\s*```')


def extract_json_object(text: str) -> dict:
    """Pull a JSON object out of a model response.

    Handles bare JSON, JSON in a ```json fence with prose around it, and JSON
    preceded by an explanation.

    Raises:
        ParseError: If no JSON object can be found
    """
    text = text.strip()

    candidates = [text]
    fence = _FENCE_PATTERN.search(text)
    if fence:
        candidates.insert(0, fence.group(1).strip())
    start, end = text.find("{"), text.rfind("}")
    if start != -1 and end > start:
        candidates.append(text[start:end + 1])

    for candidate in candidates:
        try:
            data = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(data, dict):
            return data

    preview = text[:200] + ("..." if len(text) > 200 else "")
    raise ParseError(f"No JSON object in response: {preview!r}")


class ClaudeAgent:
    """Runs the Claude CLI for structured generation.

    Args:
        config: Agent command templates (agents.yaml)
        command_key: Which template to use ("default", a validation type,
            or "panel_selection")
        timeout: Seconds before the call is abandoned
        cwd: Working directory for the CLI
    """

    def __init__(
        self,
        config: Optional[AgentsConfig] = None,
        command_key: str = "default",
        timeout: int = 300,
        cwd: Optional[Path] = None,
    ):
        self.config = config or AgentsConfig()
        self.command_key = command_key
        self.timeout = timeout
        self.cwd = cwd

    def for_key(self, command_key: str) -> "ClaudeAgent":
        """Same agent, different command template."""
        return ClaudeAgent(self.config, command_key, self.timeout, self.cwd)

    def generate_structured(self, prompt: str, instructions: str = "") -> dict:
        """Send instructions + prompt to Claude and return the JSON object it answers with.

        Raises:
            ProviderError: Timeout, missing CLI, non-zero exit, CLI-reported error
            ParseError: Response isn't a JSON object
        """
        full_prompt = f"{instructions.rstrip()}\n\n---\n\n{prompt}" if instructions else prompt
        command = get_agent_command(self.config, self.command_key, full_prompt)

        # Remove ANTHROPIC_API_KEY so Claude uses OAuth credentials instead
        env = {k: v for k, v in os.environ.items() if k != "ANTHROPIC_API_KEY"}

        try:
            result = subprocess.run(
                command.cmd,
                cwd=str(self.cwd) if self.cwd else None,
                input=command.get_stdin_input(full_prompt),
                capture_output=True,
                text=True,
                timeout=self.timeout,
                env=env,
            )
        except subprocess.TimeoutExpired:
            raise ProviderError(f"Claude timed out after {self.timeout}s") from None
        except FileNotFoundError:
            raise ProviderError(f"Claude CLI not found: {command.cmd[0]}") from None

        if result.returncode != 0:
            error_msg = result.stderr.strip() or result.stdout.strip()
            if not error_msg:
                error_msg = "(no output - check 'claude --version' and auth status)"
            raise ProviderError(f"Claude failed (exit {result.returncode}): {error_msg}")

        inner = result.stdout
        if command.output_format == "json":
            # Claude CLI with --output-format json wraps the response in {"type":"result", "result": "..."}
            try:
                wrapper = json.loads(result.stdout.strip())
            except json.JSONDecodeError:
                wrapper = None
            if isinstance(wrapper, dict) and "result" in wrapper:
                if wrapper.get("is_error"):
                    raise ProviderError(f"Claude reported an error: {wrapper.get('result')}")
                inner = wrapper["result"]
                if isinstance(inner, dict):
                    return inner

        return extract_json_object(str(inner))


class ClaudePanelSelector:
    """Semantic panel selector backed by Claude.

    select_panel(description) renders the panel_selection prompt, asks the
    agent, and returns the reviewer ids it picked. The response must match
    the panel_selection schema. Checking the ids against known roles is left
    to SemanticSelector.
    """

    def __init__(self, agent: ClaudeAgent, instructions: str = ""):
        self.agent = agent
        self.instructions = instructions

    def select_panel(self, description: str) -> list[str]:
        prompt = render_prompt(
            "panel_selection",
            description=description,
            available_roles=bullet_list(list(VALID_ROLES)),
        )
        data = self.agent.generate_structured(prompt, self.instructions)

        try:
            validate(data, "panel_selection")
        except ValidationError as e:
            raise ParseError(f"Invalid panel selection: {e}") from None

        if data.get("reasoning"):
            logger.info(f"Panel selection reasoning: {data['reasoning']}")
        return list(data["validators"])
