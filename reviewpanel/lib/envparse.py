"""
Parser for validation.env.

KEY=value lines only, no shell evaluation. Values that look like they
were meant for a shell (substitution, chaining, pipes) are rejected
outright rather than passed through as literal text.
"""

import logging
import re
from pathlib import Path

logger = logging.getLogger(__name__)

# backtick, $( ... ), ${ ... }, ;, &&, ||, |
_SHELL_META = re.compile(r'`|\$[({]|;|&&|\|')

KEY_PATTERN = re.compile(r'^[A-Z][A-Z0-9_]*$')

TRUE_VALUES = ("1", "true", "yes", "on")
FALSE_VALUES = ("0", "false", "no", "off", "")


def _unquote(value: str) -> str:
    if len(value) > 1 and value[0] in "\"'" and value.endswith(value[0]):
        return value[1:-1]
    return value


def _parse_line(lineno: int, line: str) -> tuple[str, str]:
    key, sep, value = line.partition('=')
    if not sep:
        raise ValueError(f"Line {lineno}: Invalid syntax (no '=')")

    key = key.strip()
    if KEY_PATTERN.fullmatch(key) is None:
        raise ValueError(f"Line {lineno}: Invalid key '{key}'")

    value = _unquote(value.strip())
    if _SHELL_META.search(value):
        raise ValueError(f"Line {lineno}: Forbidden pattern in value")
    return key, value


def parse_env(text: str) -> dict:
    """
    Parse env file content into a dict. Later keys win.

    Raises:
        ValueError: Malformed line, bad key, or shell syntax in a value
    """
    lines = (
        (n, raw.strip()) for n, raw in enumerate(text.splitlines(), 1)
    )
    return dict(
        _parse_line(n, line)
        for n, line in lines
        if line and not line.startswith('#')
    )


def load_env(filepath) -> dict:
    """
    Read and parse an env file.

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: See parse_env()
    """
    path = Path(filepath)
    if not path.is_file():
        raise FileNotFoundError(f"Env file not found: {filepath}")
    return parse_env(path.read_text())


def env_bool(env: dict, key: str, default: bool) -> bool:
    """Read a boolean setting; unrecognized values log a warning and use default."""
    raw = env.get(key)
    if raw is None:
        return default
    value = raw.strip().lower()
    if value in TRUE_VALUES:
        return True
    if value in FALSE_VALUES:
        return False
    logger.warning(f"Unknown {key} '{raw}', using default: {default}")
    return default


def env_int(env: dict, key: str, default: int, minimum: int = 1) -> int:
    """Read an integer setting; invalid or too-small values log a warning and use default."""
    raw = env.get(key)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning(f"Invalid {key} '{raw}' (not an integer), using default: {default}")
        return default
    if value < minimum:
        logger.warning(f"Invalid {key} '{raw}' (must be >= {minimum}), using default: {default}")
        return default
    return value
