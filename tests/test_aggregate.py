"""Tests for the aggregate module."""

import pytest

from reviewpanel.lib.aggregate import (
    MAX_PRIORITIES,
    aggregate,
    dedupe_strengths,
    determine_overall_status,
    extract_domain,
    is_similar,
    rank_priorities,
)
from reviewpanel.lib.types import AggregatedVerdict, ReviewIssue, ReviewResult


def result(reviewer_id, status="acceptable", score=80, issues=(), strengths=(), priorities=()):
    return ReviewResult(
        reviewer_id=reviewer_id,
        status=status,
        score=score,
        issues=tuple(issues),
        strengths=tuple(strengths),
        improvement_priorities=tuple(priorities),
    )


class TestExtractDomain:
    """Tests for extract_domain()."""

    def test_single_segment_topic(self):
        assert extract_domain("reviewer-epic-security") == "security"

    def test_hyphenated_topic(self):
        assert extract_domain("reviewer-epic-solution-architect") == "solution-architect"
        assert extract_domain("reviewer-story-test-architect") == "test-architect"

    def test_not_a_reviewer_id(self):
        assert extract_domain("not-a-reviewer-id") == "unknown"

    def test_too_few_segments(self):
        assert extract_domain("reviewer-epic") == "unknown"
        assert extract_domain("security") == "unknown"

    def test_empty_topic(self):
        assert extract_domain("reviewer-epic-") == "unknown"


class TestIsSimilar:
    """Tests for is_similar()."""

    def test_containment_both_orders(self):
        assert is_similar("Clear scope", "Clear scope and boundaries")
        assert is_similar("Clear scope and boundaries", "Clear scope")

    def test_case_insensitive(self):
        assert is_similar("CLEAR SCOPE", "clear scope and boundaries")
        assert is_similar("clear scope and boundaries", "Clear Scope")

    def test_unrelated(self):
        assert not is_similar("Good test coverage", "Clear scope")


class TestDedupeStrengths:
    """Tests for dedupe_strengths()."""

    def test_keeps_first_and_drops_similar(self):
        results = [
            result("reviewer-epic-developer", strengths=["Clear scope", "Good naming"]),
            result("reviewer-epic-security", strengths=["clear scope and boundaries", "Threat model"]),
        ]
        assert dedupe_strengths(results) == ["Clear scope", "Good naming", "Threat model"]

    def test_longer_first_absorbs_shorter(self):
        results = [
            result("reviewer-epic-developer", strengths=["Clear scope and boundaries"]),
            result("reviewer-epic-qa", strengths=["Clear scope"]),
        ]
        assert dedupe_strengths(results) == ["Clear scope and boundaries"]

    def test_no_strengths(self):
        assert dedupe_strengths([result("reviewer-epic-developer")]) == []

    def test_blank_strength_does_not_absorb_others(self):
        results = [
            result("reviewer-epic-developer", strengths=["", "Clear API"]),
            result("reviewer-epic-qa", strengths=["  ", "Good tests"]),
        ]
        assert dedupe_strengths(results) == ["Clear API", "Good tests"]


class TestRankPriorities:
    """Tests for rank_priorities()."""

    def test_ranked_by_count(self):
        results = [
            result("reviewer-epic-a", priorities=["R", "P", "Q"]),
            result("reviewer-epic-b", priorities=["P", "Q"]),
            result("reviewer-epic-c", priorities=["P"]),
        ]
        ranked = rank_priorities(results)
        assert [(p.priority, p.mentioned_by) for p in ranked] == [("P", 3), ("Q", 2), ("R", 1)]

    def test_ties_keep_first_seen_order(self):
        results = [
            result("reviewer-epic-a", priorities=["B", "A"]),
            result("reviewer-epic-b", priorities=["C"]),
        ]
        assert [p.priority for p in rank_priorities(results)] == ["B", "A", "C"]

    def test_capped_at_five(self):
        results = [
            result("reviewer-epic-a", priorities=[f"P{i}" for i in range(8)]),
            result("reviewer-epic-b", priorities=[f"P{i}" for i in range(4, 12)]),
        ]
        ranked = rank_priorities(results)
        assert len(ranked) == MAX_PRIORITIES == 5
        assert [p.priority for p in ranked[:4]] == ["P4", "P5", "P6", "P7"]

    def test_exact_string_match_only(self):
        results = [
            result("reviewer-epic-a", priorities=["Add tests"]),
            result("reviewer-epic-b", priorities=["add tests"]),
        ]
        assert [p.mentioned_by for p in rank_priorities(results)] == [1, 1]


class TestDetermineOverallStatus:
    """Tests for determine_overall_status()."""

    @pytest.mark.parametrize("statuses,expected", [
        (["excellent", "acceptable", "needs-improvement"], "needs-improvement"),
        (["excellent", "excellent", "excellent"], "excellent"),
        (["excellent", "acceptable", "excellent"], "acceptable"),
        (["acceptable"], "acceptable"),
        (["excellent"], "excellent"),
        (["needs-improvement"], "needs-improvement"),
    ])
    def test_precedence(self, statuses, expected):
        assert determine_overall_status(statuses) == expected

    def test_one_failing_reviewer_overrides_many_excellent(self):
        statuses = ["excellent"] * 10 + ["needs-improvement"]
        assert determine_overall_status(statuses) == "needs-improvement"


class TestAggregate:
    """Tests for aggregate()."""

    def test_empty_results_raise(self):
        with pytest.raises(ValueError):
            aggregate([], "epic")

    def test_single_result(self):
        verdict = aggregate([result("reviewer-epic-developer", "excellent", 91)], "epic")
        assert verdict.average_score == 91
        assert verdict.overall_status == "excellent"
        assert verdict.reviewer_count == 1
        assert verdict.ready_to_publish is True

    def test_average_rounds_half_up(self):
        results = [
            result("reviewer-epic-a", score=78),
            result("reviewer-epic-b", score=79),
        ]
        assert aggregate(results, "epic").average_score == 79

    def test_issues_bucketed_with_provenance(self):
        results = [
            result("reviewer-epic-solution-architect", issues=[
                ReviewIssue("critical", "scope", "No boundaries", "Define them"),
                ReviewIssue("minor", "naming", "Vague name"),
            ]),
            result("reviewer-epic-security", issues=[
                ReviewIssue("major", "auth", "No MFA"),
                ReviewIssue("critical", "secrets", "Keys in repo"),
            ]),
        ]
        verdict = aggregate(results, "epic")

        assert [i.description for i in verdict.critical_issues] == ["No boundaries", "Keys in repo"]
        assert [i.description for i in verdict.major_issues] == ["No MFA"]
        assert [i.description for i in verdict.minor_issues] == ["Vague name"]

        first = verdict.critical_issues[0]
        assert first.reviewer_id == "reviewer-epic-solution-architect"
        assert first.domain == "solution-architect"
        assert first.suggestion == "Define them"
        assert verdict.critical_issues[1].domain == "security"

        total = len(verdict.critical_issues) + len(verdict.major_issues) + len(verdict.minor_issues)
        assert total == 4

    def test_per_reviewer_summary(self):
        results = [
            result("reviewer-epic-developer", "acceptable", 75, issues=[
                ReviewIssue("major", "a", "x"), ReviewIssue("minor", "b", "y"),
            ]),
            result("reviewer-epic-qa", "excellent", 95),
        ]
        rows = aggregate(results, "epic").per_reviewer_summary
        assert [(r.reviewer_id, r.status, r.score, r.issue_count) for r in rows] == [
            ("reviewer-epic-developer", "acceptable", 75, 2),
            ("reviewer-epic-qa", "excellent", 95, 0),
        ]
        assert all(r.error is None for r in rows)

    def test_user_management_scenario(self):
        results = [
            result("reviewer-epic-solution-architect", "excellent", 95),
            result("reviewer-epic-backend", "acceptable", 82),
            result("reviewer-epic-security", "needs-improvement", 60),
        ]
        verdict = aggregate(results, "epic")
        assert verdict.average_score == 79
        assert verdict.overall_status == "needs-improvement"
        assert verdict.ready_to_publish is False


class TestAggregateWithFailures:
    """Errored members shrink the denominator and block publishing."""

    def test_failed_member_excluded_from_score(self):
        results = [
            result("reviewer-epic-developer", "excellent", 90),
            result("reviewer-epic-security", "excellent", 80),
        ]
        verdict = aggregate(
            results,
            "epic",
            failures={"reviewer-epic-api": "Claude timed out after 300s"},
            reviewers=["reviewer-epic-developer", "reviewer-epic-api", "reviewer-epic-security"],
        )
        assert verdict.average_score == 85
        assert verdict.overall_status == "excellent"
        assert verdict.reviewer_count == 3
        assert verdict.reviewers == (
            "reviewer-epic-developer", "reviewer-epic-api", "reviewer-epic-security",
        )
        assert verdict.errored_reviewers == ("reviewer-epic-api",)
        assert verdict.ready_to_publish is False

    def test_errored_summary_row(self):
        verdict = aggregate(
            [result("reviewer-epic-developer")],
            "epic",
            failures={"reviewer-epic-api": "bad json"},
        )
        errored = [r for r in verdict.per_reviewer_summary if r.reviewer_id == "reviewer-epic-api"]
        assert len(errored) == 1
        assert errored[0].status == "errored"
        assert errored[0].score is None
        assert errored[0].issue_count == 0
        assert errored[0].error == "bad json"

    def test_verdict_round_trips_through_dict(self):
        verdict = aggregate(
            [result("reviewer-epic-developer", issues=[ReviewIssue("minor", "a", "b")],
                    strengths=["Clear"], priorities=["Add tests"])],
            "epic",
            failures={"reviewer-epic-api": "boom"},
        )
        assert AggregatedVerdict.from_dict(verdict.to_dict()) == verdict
