"""Tests for panel selection strategies."""

import pytest

from conftest import FakePanelSelector
from reviewpanel.lib.errors import ParseError, ProviderError
from reviewpanel.lib.panel_cache import PanelCache
from reviewpanel.lib.routing import DEFAULT_EPIC_UNIVERSAL, DEFAULT_STORY_UNIVERSAL
from reviewpanel.lib.selector import (
    HybridSelector,
    SemanticSelector,
    StaticSelector,
    describe_work_item,
    unique_panel,
)
from reviewpanel.pm.models import WorkItem


@pytest.fixture
def user_epic():
    return WorkItem(
        id="context-0001",
        kind="epic",
        name="User Accounts",
        domain="user-management",
        features=["authentication"],
    )


@pytest.fixture
def odd_epic():
    return WorkItem(
        id="context-0002",
        kind="epic",
        name="Telescope Scheduling",
        description="Book observation slots on shared telescopes",
        domain="astronomy",
        features=["search"],
    )


def story_for(epic, criteria=None, story_id="context-0001-0001"):
    return WorkItem(
        id=story_id,
        kind="story",
        name="Sign in",
        parent_id=epic.id,
        acceptance_criteria=criteria or [],
    )


class TestUniquePanel:

    def test_first_seen_order_no_duplicates(self):
        assert unique_panel(["a", "b"], ["b", "c"], ["a", "d"]) == ["a", "b", "c", "d"]

    def test_empty(self):
        assert unique_panel() == []


class TestStaticSelector:
    """Tests for StaticSelector."""

    def test_epic_universal_domain_and_features(self, user_epic):
        panel = StaticSelector().select_for_epic(user_epic)
        assert panel[:3] == list(DEFAULT_EPIC_UNIVERSAL)
        for rid in ("reviewer-epic-backend", "reviewer-epic-database", "reviewer-epic-api"):
            assert rid in panel
        assert len(panel) == len(set(panel))

    def test_epic_unknown_domain_is_universal_only(self, odd_epic):
        odd_epic.features = []
        panel = StaticSelector().select_for_epic(odd_epic)
        assert panel == list(DEFAULT_EPIC_UNIVERSAL)

    def test_epic_no_domain_no_features(self):
        epic = WorkItem(id="context-0003", kind="epic", name="Bare")
        assert StaticSelector().select_for_epic(epic) == list(DEFAULT_EPIC_UNIVERSAL)

    def test_epic_undefined_feature_contributes_nothing(self):
        epic = WorkItem(id="context-0003", kind="epic", name="X", features=["teleportation"])
        assert StaticSelector().select_for_epic(epic) == list(DEFAULT_EPIC_UNIVERSAL)

    def test_story_inherits_epic_domain(self, user_epic):
        panel = StaticSelector().select_for_story(story_for(user_epic), user_epic)
        assert panel[:3] == list(DEFAULT_STORY_UNIVERSAL)
        assert "reviewer-story-ux" in panel
        assert "reviewer-story-database" in panel

    def test_story_inferred_features(self):
        epic = WorkItem(id="context-0004", kind="epic", name="Docs")
        story = story_for(epic, ["User can upload a PDF", "User receives a notification"])
        panel = StaticSelector().select_for_story(story, epic)
        assert panel == list(DEFAULT_STORY_UNIVERSAL) + ["reviewer-story-backend", "reviewer-story-api"]

    def test_story_missing_criteria(self):
        epic = WorkItem(id="context-0004", kind="epic", name="Docs")
        story = story_for(epic)
        assert StaticSelector().select_for_story(story, epic) == list(DEFAULT_STORY_UNIVERSAL)


class TestDescribeWorkItem:

    def test_epic(self, odd_epic):
        text = describe_work_item(odd_epic, "epic")
        assert "Work item type: Epic" in text
        assert "Domain: astronomy" in text
        assert "Features: search" in text

    def test_story_uses_epic_domain(self, odd_epic):
        story = story_for(odd_epic, ["User can find a free slot"])
        text = describe_work_item(story, "story", odd_epic)
        assert "Work item type: Story" in text
        assert "Domain: astronomy" in text
        assert "Parent Epic: Telescope Scheduling" in text
        assert "1. User can find a free slot" in text


class TestSemanticSelector:
    """Tests for SemanticSelector."""

    def test_union_with_universal_and_features(self, odd_epic):
        delegate = FakePanelSelector(["reviewer-epic-data", "reviewer-epic-developer"])
        panel = SemanticSelector(delegate).select_for_epic(odd_epic)
        assert panel == list(DEFAULT_EPIC_UNIVERSAL) + ["reviewer-epic-data"]
        assert len(delegate.calls) == 1
        assert "astronomy" in delegate.calls[0]

    def test_invalid_ids_dropped_with_warning(self, odd_epic, caplog):
        delegate = FakePanelSelector(["reviewer-epic-data", "reviewer-story-qa", "wizard"])
        panel = SemanticSelector(delegate).select_for_epic(odd_epic)
        assert "reviewer-story-qa" not in panel
        assert "wizard" not in panel
        assert "reviewer-epic-data" in panel
        assert "invalid reviewer ids" in caplog.text

    def test_story(self, odd_epic):
        delegate = FakePanelSelector(["reviewer-story-data"])
        story = story_for(odd_epic, ["User can login"])
        panel = SemanticSelector(delegate).select_for_story(story, odd_epic)
        assert panel == list(DEFAULT_STORY_UNIVERSAL) + [
            "reviewer-story-data",
            "reviewer-story-database",
            "reviewer-story-backend",
            "reviewer-story-security",
        ]

    def test_delegate_errors_propagate(self, odd_epic):
        delegate = FakePanelSelector(error=ProviderError("down"))
        with pytest.raises(ProviderError):
            SemanticSelector(delegate).select_for_epic(odd_epic)


class TestHybridSelector:
    """Tests for HybridSelector."""

    def test_known_domain_never_asks_delegate(self, user_epic):
        delegate = FakePanelSelector(["reviewer-epic-data"])
        selector = HybridSelector(semantic=SemanticSelector(delegate))
        panel = selector.select_for_epic(user_epic)
        assert panel == StaticSelector().select_for_epic(user_epic)
        assert delegate.calls == []

    def test_no_semantic_selector_is_static(self, odd_epic):
        selector = HybridSelector()
        panel = selector.select_for_epic(odd_epic)
        assert panel[:3] == list(DEFAULT_EPIC_UNIVERSAL)

    def test_unknown_domain_selected_once(self, odd_epic):
        delegate = FakePanelSelector(["reviewer-epic-data"])
        cache = PanelCache()
        selector = HybridSelector(semantic=SemanticSelector(delegate), cache=cache)

        first = selector.select_for_epic(odd_epic)
        second = selector.select_for_epic(odd_epic)

        assert first == second
        assert len(delegate.calls) == 1
        assert cache.get(odd_epic.id) == first

    def test_cache_hit_returned_verbatim(self, odd_epic, caplog):
        caplog.set_level("INFO")
        delegate = FakePanelSelector(["reviewer-epic-data"])
        cache = PanelCache()
        cache.put(odd_epic.id, ["reviewer-epic-ux"])
        selector = HybridSelector(semantic=SemanticSelector(delegate), cache=cache)

        assert selector.select_for_epic(odd_epic) == ["reviewer-epic-ux"]
        assert delegate.calls == []
        assert "Using cached panel" in caplog.text

    def test_reselect_overwrites(self, odd_epic):
        delegate = FakePanelSelector(["reviewer-epic-data"])
        cache = PanelCache()
        cache.put(odd_epic.id, ["reviewer-epic-ux"])
        selector = HybridSelector(semantic=SemanticSelector(delegate), cache=cache)

        panel = selector.select_for_epic(odd_epic, reselect=True)
        assert "reviewer-epic-data" in panel
        assert cache.get(odd_epic.id) == panel
        assert len(delegate.calls) == 1

    @pytest.mark.parametrize("error", [ProviderError("timeout"), ParseError("garbage")])
    def test_delegate_failure_falls_back_uncached(self, odd_epic, error, caplog):
        delegate = FakePanelSelector(error=error)
        cache = PanelCache()
        selector = HybridSelector(semantic=SemanticSelector(delegate), cache=cache)

        panel = selector.select_for_epic(odd_epic)
        assert panel == StaticSelector().select_for_epic(odd_epic)
        assert cache.get(odd_epic.id) is None
        assert "Semantic selection failed" in caplog.text

    def test_story_with_unknown_epic_domain(self, odd_epic):
        delegate = FakePanelSelector(["reviewer-story-data"])
        cache = PanelCache()
        selector = HybridSelector(semantic=SemanticSelector(delegate), cache=cache)
        story = story_for(odd_epic, story_id="context-0002-0001")

        first = selector.select_for_story(story, odd_epic)
        second = selector.select_for_story(story, odd_epic)
        assert first == second
        assert len(delegate.calls) == 1
        assert cache.get(story.id) == first
