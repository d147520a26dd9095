"""
Reviewer panel selection.

Three strategies share one interface (select_for_epic / select_for_story):

- StaticSelector: universal + domain + declared features + inferred features,
  straight from the routing table.
- SemanticSelector: asks a delegate (an LLM-backed panel selector) to pick
  reviewers for a free-text description of the work item.
- HybridSelector: static for known domains; for unknown domains a
  read-through PanelCache in front of the SemanticSelector.

Panels are returned as lists in first-seen order with duplicates removed.
"""

import logging
from itertools import chain
from typing import Callable, Iterable, Optional

from reviewpanel.lib.errors import ParseError, ProviderError
from reviewpanel.lib.features import infer_features
from reviewpanel.lib.panel_cache import PanelCache
from reviewpanel.lib.routing import (
    RoutingRules,
    RoutingTable,
    default_routing_table,
    is_valid_reviewer_id,
)
from reviewpanel.lib.types import KIND_EPIC, KIND_STORY
from reviewpanel.pm.models import WorkItem

logger = logging.getLogger(__name__)


def unique_panel(*groups: Iterable[str]) -> list[str]:
    """Union reviewer id groups, keeping first-seen order."""
    return list(dict.fromkeys(chain.from_iterable(groups)))


def _feature_reviewers(rules: RoutingRules, features: Optional[Iterable[str]]) -> list[str]:
    return unique_panel(*(rules.feature_reviewers(f) for f in (features or [])))


def _story_features(rules: RoutingRules, story: WorkItem, epic: WorkItem) -> list[str]:
    """Reviewers for the epic's declared features plus the story's inferred ones."""
    return unique_panel(
        _feature_reviewers(rules, epic.features),
        _feature_reviewers(rules, infer_features(story.acceptance_criteria)),
    )


class Selector:
    """Interface shared by all panel selection strategies.

    reselect only matters to strategies that cache; the others ignore it.
    """

    def select_for_epic(self, epic: WorkItem, reselect: bool = False) -> list[str]:
        raise NotImplementedError

    def select_for_story(self, story: WorkItem, epic: WorkItem, reselect: bool = False) -> list[str]:
        raise NotImplementedError


class StaticSelector(Selector):
    """Rule-table routing. Unknown domains contribute nothing."""

    def __init__(self, table: Optional[RoutingTable] = None):
        self.table = table or default_routing_table()

    def select_for_epic(self, epic: WorkItem, reselect: bool = False) -> list[str]:
        rules = self.table.epic
        return unique_panel(
            rules.universal,
            rules.domain_reviewers(epic.domain),
            _feature_reviewers(rules, epic.features),
        )

    def select_for_story(self, story: WorkItem, epic: WorkItem, reselect: bool = False) -> list[str]:
        # Stories never declare a domain; they inherit the epic's
        rules = self.table.story
        return unique_panel(
            rules.universal,
            rules.domain_reviewers(epic.domain),
            _story_features(rules, story, epic),
        )


def describe_work_item(item: WorkItem, kind: str, epic: Optional[WorkItem] = None) -> str:
    """Plain-text description of a work item for the semantic selector."""
    label = kind.capitalize()
    domain = epic.domain if epic is not None else item.domain
    lines = [
        f"Work item type: {label}",
        f"{label} Name: {item.name}",
        f"Domain: {domain or '(none)'}",
        f"Description: {item.description}",
    ]
    if kind == KIND_EPIC:
        lines.append(f"Features: {', '.join(item.features)}")
    else:
        lines.append(f"User Type: {item.user_type}")
        if epic is not None:
            lines.append(f"Parent Epic: {epic.name}")
            lines.append(f"Epic Features: {', '.join(epic.features)}")
        lines.append("Acceptance Criteria:")
        for i, ac in enumerate(item.acceptance_criteria, 1):
            lines.append(f"{i}. {ac}")
    return "\n".join(lines)


class SemanticSelector(Selector):
    """Delegate-based selection for domains the routing table doesn't know.

    The delegate must provide select_panel(description) -> list[str]. Ids
    that don't look like reviewer-{kind}-{role} for a known role are dropped.
    Delegate failures (ProviderError, ParseError) propagate to the caller.
    """

    def __init__(self, delegate, table: Optional[RoutingTable] = None):
        self.delegate = delegate
        self.table = table or default_routing_table()

    def _ask(self, description: str, kind: str) -> list[str]:
        chosen = list(self.delegate.select_panel(description) or [])
        valid = [r for r in chosen if is_valid_reviewer_id(r, kind)]
        if len(valid) < len(chosen):
            invalid = [r for r in chosen if r not in valid]
            logger.warning(f"Semantic selector returned invalid reviewer ids: {', '.join(map(str, invalid))}")
        return valid

    def select_for_epic(self, epic: WorkItem, reselect: bool = False) -> list[str]:
        rules = self.table.epic
        chosen = self._ask(describe_work_item(epic, KIND_EPIC), KIND_EPIC)
        return unique_panel(rules.universal, chosen, _feature_reviewers(rules, epic.features))

    def select_for_story(self, story: WorkItem, epic: WorkItem, reselect: bool = False) -> list[str]:
        rules = self.table.story
        chosen = self._ask(describe_work_item(story, KIND_STORY, epic), KIND_STORY)
        return unique_panel(rules.universal, chosen, _story_features(rules, story, epic))


class HybridSelector(Selector):
    """Static routing for known domains, cached semantic selection otherwise.

    On the fallback path the cache is consulted first and a hit is returned
    verbatim. On a miss the semantic selector runs once and its panel is
    written to the cache. If the semantic selector fails, the static panel
    is returned and nothing is cached, so the next run retries.
    """

    def __init__(
        self,
        table: Optional[RoutingTable] = None,
        semantic: Optional[SemanticSelector] = None,
        cache: Optional[PanelCache] = None,
    ):
        self.table = table or default_routing_table()
        self.static = StaticSelector(self.table)
        self.semantic = semantic
        self.cache = cache if cache is not None else PanelCache()

    def select_for_epic(self, epic: WorkItem, reselect: bool = False) -> list[str]:
        if self.semantic is None or self.table.epic.is_known_domain(epic.domain):
            return self.static.select_for_epic(epic)
        return self._fallback(
            epic.id,
            epic.domain,
            lambda: self.semantic.select_for_epic(epic),
            lambda: self.static.select_for_epic(epic),
            reselect,
        )

    def select_for_story(self, story: WorkItem, epic: WorkItem, reselect: bool = False) -> list[str]:
        if self.semantic is None or self.table.story.is_known_domain(epic.domain):
            return self.static.select_for_story(story, epic)
        return self._fallback(
            story.id,
            epic.domain,
            lambda: self.semantic.select_for_story(story, epic),
            lambda: self.static.select_for_story(story, epic),
            reselect,
        )

    def _fallback(
        self,
        work_item_id: str,
        domain: Optional[str],
        cold: Callable[[], list[str]],
        static: Callable[[], list[str]],
        reselect: bool,
    ) -> list[str]:
        if not reselect:
            cached = self.cache.get(work_item_id)
            if cached is not None:
                logger.info(f"Using cached panel for {work_item_id} ({len(cached)} reviewers)")
                return cached

        logger.info(f"Unknown domain '{domain}' for {work_item_id} - using semantic selection")
        try:
            panel = cold()
        except (ProviderError, ParseError) as e:
            logger.warning(f"Semantic selection failed for {work_item_id}, using static panel: {e}")
            return static()

        self.cache.put(work_item_id, panel)
        return panel
