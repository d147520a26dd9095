"""
Verdict formatting utilities.

Plain-text renderings of an AggregatedVerdict for whoever hosts the
panel: a full report, and a compact list of actionable items to feed back
into refinement of the work item.
"""

from reviewpanel.lib.types import AggregatedVerdict, AnnotatedIssue


def _issue_line(issue: AnnotatedIssue) -> str:
    line = f"- [{issue.domain}] {issue.category}: {issue.description}"
    if issue.suggestion:
        line += f" (suggestion: {issue.suggestion})"
    return line


def format_verdict(verdict: AggregatedVerdict) -> str:
    """Format verdict as readable string."""
    publish = "yes" if verdict.ready_to_publish else "no"
    lines = [
        f"**Status:** {verdict.overall_status}",
        f"**Average Score:** {verdict.average_score}/100",
        f"**Reviewers:** {verdict.reviewer_count}",
        f"**Ready to Publish:** {publish}",
    ]

    for title, issues in (
        ("Critical Issues", verdict.critical_issues),
        ("Major Issues", verdict.major_issues),
        ("Minor Issues", verdict.minor_issues),
    ):
        if issues:
            lines.append(f"\n**{title}:**")
            lines.extend(_issue_line(i) for i in issues)

    if verdict.strengths:
        lines.append("\n**Strengths:**")
        lines.extend(f"- {s}" for s in verdict.strengths)

    if verdict.improvement_priorities:
        lines.append("\n**Improvement Priorities:**")
        for i, p in enumerate(verdict.improvement_priorities, 1):
            lines.append(f"{i}. {p.priority} (mentioned by {p.mentioned_by})")

    lines.append("\n**Per Reviewer:**")
    for row in verdict.per_reviewer_summary:
        if row.error:
            lines.append(f"- {row.reviewer_id}: errored - {row.error}")
        else:
            lines.append(f"- {row.reviewer_id}: {row.status} ({row.score}), {row.issue_count} issues")

    return "\n".join(lines)


def format_verdict_for_refinement(verdict: AggregatedVerdict) -> str:
    """Format verdict for a refinement prompt.

    Only critical and major issues plus the ranked priorities; minor
    issues and strengths are left out.
    """
    parts = []

    blocking = verdict.critical_issues + verdict.major_issues
    if blocking:
        parts.append("Issues to address:")
        for issue in blocking:
            parts.append(f"  - [{issue.severity}] {issue.category}: {issue.description}")
            if issue.suggestion:
                parts.append(f"    Suggestion: {issue.suggestion}")

    if verdict.improvement_priorities:
        parts.append("Priorities:")
        for p in verdict.improvement_priorities:
            parts.append(f"  - {p.priority}")

    if verdict.errored_reviewers:
        parts.append(f"Not reviewed (reviewer errors): {', '.join(verdict.errored_reviewers)}")

    if not parts:
        return f"Review {verdict.overall_status} (no specific feedback provided)"

    return "\n".join(parts)
