"""
Telemetry for validation runs.

Records one line per completed validation run to a JSONL file under the
project's pm/ directory. Recording is fire-and-forget: a failed write is
logged and never interrupts validation.
"""

import json
import logging
from dataclasses import dataclass, asdict, field
from pathlib import Path
from typing import Optional

from reviewpanel.lib.types import STATUS_ERRORED, STATUS_NEEDS_IMPROVEMENT

logger = logging.getLogger(__name__)

STATS_FILENAME = "validation_stats.jsonl"


@dataclass
class ReviewerCallStats:
    """Outcome of one reviewer call within a run."""
    reviewer_id: str
    status: str  # reviewer status, or "errored"
    elapsed_seconds: float
    error: Optional[str] = None

    @property
    def passed(self) -> bool:
        return self.status not in (STATUS_NEEDS_IMPROVEMENT, STATUS_ERRORED)


@dataclass
class ValidationRunStats:
    """Stats for a single validation run."""
    timestamp: str
    run_id: str
    work_item_id: str
    kind: str
    panel_size: int
    elapsed_seconds: float
    overall_status: Optional[str] = None  # None when no verdict was built
    reviewers: list[ReviewerCallStats] = field(default_factory=list)

    def to_dict(self) -> dict:
        data = asdict(self)
        for row, call in zip(data["reviewers"], self.reviewers):
            row["passed"] = call.passed
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "ValidationRunStats":
        data = dict(data)
        reviewers = []
        for row in data.pop("reviewers", []):
            row = {k: v for k, v in row.items() if k != "passed"}
            reviewers.append(ReviewerCallStats(**row))
        return cls(reviewers=reviewers, **data)


def get_stats_path(project_dir: Path) -> Path:
    return project_dir / "pm" / STATS_FILENAME


def record_run_stats(project_dir: Path, stats: ValidationRunStats) -> None:
    """Append run stats to the project's stats file. Never raises on I/O errors."""
    stats_file = get_stats_path(project_dir)
    try:
        stats_file.parent.mkdir(parents=True, exist_ok=True)
        with open(stats_file, "a") as f:
            f.write(json.dumps(stats.to_dict()) + "\n")
            f.flush()
    except OSError as e:
        logger.warning(f"Failed to record validation stats for {stats.work_item_id}: {e}")


def load_run_stats(project_dir: Path) -> list[ValidationRunStats]:
    """Load all run stats for a project. Skips corrupted lines."""
    stats_file = get_stats_path(project_dir)
    if not stats_file.exists():
        return []

    stats = []
    for line_num, line in enumerate(stats_file.read_text().splitlines(), 1):
        if not line.strip():
            continue
        try:
            stats.append(ValidationRunStats.from_dict(json.loads(line)))
        except (json.JSONDecodeError, TypeError) as e:
            logger.warning(f"Skipping corrupted stats line {line_num} in {stats_file}: {e}")
    return stats


@dataclass
class ReviewerPassRate:
    """Pass/fail counts for one reviewer across runs."""
    reviewer_id: str
    passed: int = 0
    failed: int = 0
    errored: int = 0

    @property
    def total(self) -> int:
        return self.passed + self.failed + self.errored


def summarize_reviewer_pass_rates(stats: list[ValidationRunStats]) -> dict[str, ReviewerPassRate]:
    """Count passes, fails and errors per reviewer, in first-seen order."""
    rates: dict[str, ReviewerPassRate] = {}
    for run in stats:
        for call in run.reviewers:
            rate = rates.setdefault(call.reviewer_id, ReviewerPassRate(call.reviewer_id))
            if call.status == STATUS_ERRORED:
                rate.errored += 1
            elif call.passed:
                rate.passed += 1
            else:
                rate.failed += 1
    return rates


def format_duration(seconds: float) -> str:
    """Format seconds as human-readable duration."""
    if seconds < 60:
        return f"{seconds:.1f}s"
    minutes = int(seconds // 60)
    secs = seconds % 60
    if minutes < 60:
        return f"{minutes}m {secs:.0f}s"
    hours = minutes // 60
    mins = minutes % 60
    return f"{hours}h {mins}m"
