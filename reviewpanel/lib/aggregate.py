"""
Aggregation of panel results into one verdict.

Reduces the per-reviewer ReviewResults of one validation run to a single
AggregatedVerdict: mean score, severity-bucketed issues with provenance,
deduplicated strengths, frequency-ranked improvement priorities and an
overall status by strict precedence.

Failed panel members never reach the arithmetic. They are passed in
separately and show up as "errored" summary rows, shrink the averaging
denominator, and block ready_to_publish.
"""

import logging
import math
from collections import Counter
from typing import Optional

from reviewpanel.lib.routing import REVIEWER_PREFIX
from reviewpanel.lib.types import (
    STATUS_ACCEPTABLE,
    STATUS_ERRORED,
    STATUS_EXCELLENT,
    STATUS_NEEDS_IMPROVEMENT,
    AggregatedVerdict,
    AnnotatedIssue,
    PriorityMention,
    ReviewerSummary,
    ReviewResult,
)

logger = logging.getLogger(__name__)

__all__ = [
    "MAX_PRIORITIES",
    "aggregate",
    "extract_domain",
    "is_similar",
    "dedupe_strengths",
    "rank_priorities",
    "determine_overall_status",
]

MAX_PRIORITIES = 5


def extract_domain(reviewer_id: str) -> str:
    """Recover the topic segment of a reviewer id.

    "reviewer-epic-solution-architect" -> "solution-architect". Anything that
    isn't reviewer-{kind}-{topic} yields "unknown".
    """
    parts = reviewer_id.split("-")
    if len(parts) < 3 or parts[0] != REVIEWER_PREFIX or not parts[1]:
        return "unknown"
    topic = "-".join(parts[2:])
    return topic or "unknown"


def is_similar(a: str, b: str) -> bool:
    """Case-insensitive containment in either direction."""
    a, b = a.lower(), b.lower()
    return a in b or b in a


def dedupe_strengths(results: list[ReviewResult]) -> list[str]:
    """Keep each strength unless it's similar to one already kept. Blanks are dropped."""
    kept: list[str] = []
    for result in results:
        for strength in result.strengths:
            if not strength.strip():
                continue
            if not any(is_similar(s, strength) for s in kept):
                kept.append(strength)
    return kept


def rank_priorities(results: list[ReviewResult], limit: int = MAX_PRIORITIES) -> list[PriorityMention]:
    """Rank improvement priorities by how many times they were mentioned.

    Exact-string counting; ties keep first-seen order.
    """
    counts = Counter()
    for result in results:
        counts.update(result.improvement_priorities)
    # Counter preserves insertion order and sorted() is stable
    ranked = sorted(counts.items(), key=lambda kv: kv[1], reverse=True)
    return [PriorityMention(priority=p, mentioned_by=n) for p, n in ranked[:limit]]


def determine_overall_status(statuses: list[str]) -> str:
    """Strict precedence: any needs-improvement wins, all excellent is excellent."""
    if STATUS_NEEDS_IMPROVEMENT in statuses:
        return STATUS_NEEDS_IMPROVEMENT
    if statuses and all(s == STATUS_EXCELLENT for s in statuses):
        return STATUS_EXCELLENT
    return STATUS_ACCEPTABLE


def _round_half_up(value: float) -> int:
    # round() would give banker's rounding (78.5 -> 78)
    return math.floor(value + 0.5)


def _bucket_issues(results: list[ReviewResult]) -> dict[str, list[AnnotatedIssue]]:
    buckets: dict[str, list[AnnotatedIssue]] = {"critical": [], "major": [], "minor": []}
    for result in results:
        domain = extract_domain(result.reviewer_id)
        for issue in result.issues:
            buckets[issue.severity].append(AnnotatedIssue(
                severity=issue.severity,
                category=issue.category,
                description=issue.description,
                suggestion=issue.suggestion,
                reviewer_id=result.reviewer_id,
                domain=domain,
            ))
    return buckets


def aggregate(
    results: list[ReviewResult],
    kind: str,
    failures: Optional[dict[str, str]] = None,
    reviewers: Optional[list[str]] = None,
) -> AggregatedVerdict:
    """Build the verdict for one validation run.

    Args:
        results: Successful reviewer results (at least one)
        kind: "epic" or "story"
        failures: reviewer_id -> error message for members that failed
        reviewers: Panel in dispatch order (defaults to results then failures)

    Raises:
        ValueError: If results is empty
    """
    if not results:
        raise ValueError("Cannot aggregate an empty result set")

    failures = failures or {}
    if reviewers is None:
        reviewers = [r.reviewer_id for r in results] + list(failures)

    average = _round_half_up(sum(r.score for r in results) / len(results))
    buckets = _bucket_issues(results)
    overall = determine_overall_status([r.status for r in results])

    summary = [
        ReviewerSummary(
            reviewer_id=r.reviewer_id,
            status=r.status,
            score=r.score,
            issue_count=r.issue_count,
        )
        for r in results
    ]
    summary.extend(
        ReviewerSummary(
            reviewer_id=rid,
            status=STATUS_ERRORED,
            score=None,
            issue_count=0,
            error=err,
        )
        for rid, err in failures.items()
    )

    if failures:
        logger.info(
            f"Aggregated {len(results)} results, {len(failures)} errored "
            f"({', '.join(failures)}) excluded from scoring"
        )

    return AggregatedVerdict(
        kind=kind,
        reviewer_count=len(reviewers),
        reviewers=tuple(reviewers),
        average_score=average,
        overall_status=overall,
        ready_to_publish=overall != STATUS_NEEDS_IMPROVEMENT and not failures,
        critical_issues=tuple(buckets["critical"]),
        major_issues=tuple(buckets["major"]),
        minor_issues=tuple(buckets["minor"]),
        strengths=tuple(dedupe_strengths(results)),
        improvement_priorities=tuple(rank_priorities(results)),
        per_reviewer_summary=tuple(summary),
        errored_reviewers=tuple(failures),
    )
