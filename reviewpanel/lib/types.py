"""
Shared data types for panel review.

This module contains dataclasses used across the selector, dispatcher,
aggregator and feedback store to avoid circular imports.
"""

from dataclasses import dataclass, field, asdict
from typing import Optional

STATUS_NEEDS_IMPROVEMENT = "needs-improvement"
STATUS_ACCEPTABLE = "acceptable"
STATUS_EXCELLENT = "excellent"
STATUS_ERRORED = "errored"  # Summary rows only, never returned by a reviewer

REVIEW_STATUSES = (STATUS_NEEDS_IMPROVEMENT, STATUS_ACCEPTABLE, STATUS_EXCELLENT)

SEVERITIES = ("critical", "major", "minor")

KIND_EPIC = "epic"
KIND_STORY = "story"


@dataclass(frozen=True)
class ReviewIssue:
    """A single issue raised by one reviewer."""
    severity: str  # critical, major, minor
    category: str
    description: str
    suggestion: str = ""


@dataclass(frozen=True)
class ReviewResult:
    """Structured assessment returned by one reviewer for one work item.

    Built only from schema-validated data (see dispatch.parse_review_result),
    so the aggregator never has to guess at missing fields.
    """
    reviewer_id: str
    status: str
    score: int
    issues: tuple[ReviewIssue, ...] = ()
    strengths: tuple[str, ...] = ()
    improvement_priorities: tuple[str, ...] = ()

    @property
    def issue_count(self) -> int:
        return len(self.issues)

    @classmethod
    def from_dict(cls, reviewer_id: str, data: dict) -> "ReviewResult":
        return cls(
            reviewer_id=reviewer_id,
            status=data["status"],
            score=data["score"],
            issues=tuple(
                ReviewIssue(
                    severity=i["severity"],
                    category=i["category"],
                    description=i["description"],
                    suggestion=i.get("suggestion", ""),
                )
                for i in data.get("issues", [])
            ),
            strengths=tuple(data.get("strengths", [])),
            improvement_priorities=tuple(data.get("improvement_priorities", [])),
        )


@dataclass(frozen=True)
class AnnotatedIssue:
    """An issue carried into the verdict with its provenance."""
    severity: str
    category: str
    description: str
    suggestion: str
    reviewer_id: str
    domain: str


@dataclass(frozen=True)
class PriorityMention:
    priority: str
    mentioned_by: int


@dataclass(frozen=True)
class ReviewerSummary:
    """One row of the per-reviewer summary.

    Errored members have status "errored", score None and the failure
    message in error.
    """
    reviewer_id: str
    status: str
    score: Optional[int]
    issue_count: int
    error: Optional[str] = None


@dataclass(frozen=True)
class AggregatedVerdict:
    """Reconciled verdict for one validation run of one work item."""
    kind: str
    reviewer_count: int
    reviewers: tuple[str, ...]
    average_score: int
    overall_status: str
    ready_to_publish: bool
    critical_issues: tuple[AnnotatedIssue, ...] = ()
    major_issues: tuple[AnnotatedIssue, ...] = ()
    minor_issues: tuple[AnnotatedIssue, ...] = ()
    strengths: tuple[str, ...] = ()
    improvement_priorities: tuple[PriorityMention, ...] = ()
    per_reviewer_summary: tuple[ReviewerSummary, ...] = ()
    errored_reviewers: tuple[str, ...] = field(default=())

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "AggregatedVerdict":
        return cls(
            kind=data["kind"],
            reviewer_count=data["reviewer_count"],
            reviewers=tuple(data.get("reviewers", [])),
            average_score=data["average_score"],
            overall_status=data["overall_status"],
            ready_to_publish=data["ready_to_publish"],
            critical_issues=tuple(AnnotatedIssue(**i) for i in data.get("critical_issues", [])),
            major_issues=tuple(AnnotatedIssue(**i) for i in data.get("major_issues", [])),
            minor_issues=tuple(AnnotatedIssue(**i) for i in data.get("minor_issues", [])),
            strengths=tuple(data.get("strengths", [])),
            improvement_priorities=tuple(
                PriorityMention(**p) for p in data.get("improvement_priorities", [])
            ),
            per_reviewer_summary=tuple(
                ReviewerSummary(**r) for r in data.get("per_reviewer_summary", [])
            ),
            errored_reviewers=tuple(data.get("errored_reviewers", [])),
        )
