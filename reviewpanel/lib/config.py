"""
Configuration loader for panel validation.

Loads project-level validation settings from validation.env. Every key is
optional; a missing file means defaults.

    SMART_SELECTION=true          # semantic panel selection for unknown domains
    MAX_PARALLEL_REVIEWERS=5      # concurrent reviewer calls per run
    REVIEW_TIMEOUT=300            # seconds per reviewer call
    REVIEWERS_DIR=reviewers       # instruction documents, relative to project
"""

import logging
from dataclasses import dataclass
from pathlib import Path

from . import envparse

logger = logging.getLogger(__name__)

DEFAULT_MAX_PARALLEL_REVIEWERS = 5
DEFAULT_REVIEW_TIMEOUT = 300
DEFAULT_REVIEWERS_DIR = "reviewers"


@dataclass
class ValidationConfig:
    """Validation settings from validation.env"""
    reviewers_dir: Path
    smart_selection: bool = False
    max_parallel_reviewers: int = DEFAULT_MAX_PARALLEL_REVIEWERS
    review_timeout: int = DEFAULT_REVIEW_TIMEOUT


def load_validation_config(project_dir: Path) -> ValidationConfig:
    """Load validation.env and return ValidationConfig."""
    env_path = project_dir / "validation.env"
    env = envparse.load_env(str(env_path)) if env_path.exists() else {}

    reviewers_dir = Path(env.get("REVIEWERS_DIR") or DEFAULT_REVIEWERS_DIR)
    if not reviewers_dir.is_absolute():
        reviewers_dir = project_dir / reviewers_dir

    return ValidationConfig(
        reviewers_dir=reviewers_dir,
        smart_selection=envparse.env_bool(env, "SMART_SELECTION", False),
        max_parallel_reviewers=envparse.env_int(
            env, "MAX_PARALLEL_REVIEWERS", DEFAULT_MAX_PARALLEL_REVIEWERS
        ),
        review_timeout=envparse.env_int(env, "REVIEW_TIMEOUT", DEFAULT_REVIEW_TIMEOUT),
    )
