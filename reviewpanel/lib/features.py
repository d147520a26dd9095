"""
Feature inference from acceptance criteria.

Scans free-text acceptance criteria for keyword patterns and emits feature
tags, independent of whatever the owning Epic declares. Matching is a
case-insensitive substring test over all criteria joined together.
"""

from typing import Iterable, Optional

__all__ = ["FEATURE_KEYWORDS", "infer_features"]

# Ordered: inferred tags come back in this order
FEATURE_KEYWORDS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("authentication", ("login", "authenticate", "sign in")),
    ("crud-operations", ("create", "update", "delete", "edit")),
    ("search", ("search", "filter", "find")),
    ("real-time", ("real-time", "websocket", "live")),
    ("responsive-design", ("mobile", "responsive", "tablet")),
    ("file-upload", ("upload", "file", "attachment")),
    ("notifications", ("notify", "notification", "alert")),
    ("reporting", ("report", "analytics", "dashboard")),
)


def infer_features(criteria: Optional[Iterable[str]]) -> list[str]:
    """Infer feature tags from acceptance criteria.

    Args:
        criteria: Acceptance criteria strings (None is treated as empty)

    Returns:
        Feature tags in FEATURE_KEYWORDS order, no duplicates. Empty list
        for None or empty input.

    Example:
        >>> infer_features(["User can login with email and password"])
        ['authentication']
    """
    if not criteria:
        return []

    text = " ".join(c for c in criteria if c).lower()
    if not text:
        return []

    return [
        feature
        for feature, keywords in FEATURE_KEYWORDS
        if any(k in text for k in keywords)
    ]
