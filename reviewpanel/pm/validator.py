"""
Panel validation of Epics and Stories.

One validation run:

    select panel -> load instructions -> render prompt -> dispatch
        -> aggregate -> store feedback -> record on work item -> telemetry

Instructions for the whole panel are loaded before anything is dispatched,
so a missing document aborts the run with no calls made. Reviewer failures
are isolated by the dispatcher; if every member fails no verdict is built
and PanelFailedError is raised.
"""

import logging
import time
import uuid
from datetime import datetime
from pathlib import Path
from typing import Optional

from reviewpanel.agents.claude import ClaudeAgent, ClaudePanelSelector
from reviewpanel.lib.aggregate import aggregate
from reviewpanel.lib.agents_config import load_agents_config
from reviewpanel.lib.config import ValidationConfig, load_validation_config
from reviewpanel.lib.dispatch import Generator, ReviewerOutcome, dispatch_panel
from reviewpanel.lib.errors import ConfigurationError, PanelFailedError
from reviewpanel.lib.feedback import FeedbackStore, FileFeedbackStore
from reviewpanel.lib.instructions import InstructionStore
from reviewpanel.lib.panel_cache import WorkItemPanelCache
from reviewpanel.lib.prompts import build_section, bullet_list, render_prompt
from reviewpanel.lib.routing import RoutingTable, classify_reviewer, load_routing_table
from reviewpanel.lib.selector import HybridSelector, SemanticSelector, Selector
from reviewpanel.lib.stats import ReviewerCallStats, ValidationRunStats, record_run_stats
from reviewpanel.lib.types import KIND_EPIC, KIND_STORY, STATUS_ERRORED, AggregatedVerdict
from reviewpanel.pm.models import WorkItem
from reviewpanel.pm.work_items import list_stories_for_epic, record_validation

logger = logging.getLogger(__name__)


def build_epic_prompt(epic: WorkItem, story_count: int, context: str = "") -> str:
    return render_prompt(
        "epic_review",
        epic_id=epic.id,
        epic_name=epic.name,
        domain=epic.domain or "(none)",
        description=epic.description,
        features=bullet_list(epic.features),
        dependencies=bullet_list(epic.dependencies),
        story_count=story_count,
        epic_context=build_section(context, "## Project Context"),
    )


def build_story_prompt(story: WorkItem, epic: WorkItem, context: str = "") -> str:
    return render_prompt(
        "story_review",
        story_id=story.id,
        story_name=story.name,
        user_type=story.user_type or "(unspecified)",
        description=story.description,
        acceptance_criteria=bullet_list(story.acceptance_criteria, numbered=True),
        dependencies=bullet_list(story.dependencies),
        epic_name=epic.name,
        epic_domain=epic.domain or "(none)",
        epic_features=", ".join(epic.features) or "None",
        story_context=build_section(context, "## Project Context"),
    )


class WorkItemValidator:
    """Validates Epics and Stories with a reviewer panel.

    Args:
        project_dir: Project directory (pm/ records, validation.env,
            validators.yaml, reviewers/)
        generator: Text-generation collaborator with
            generate_structured(prompt, instructions) -> dict. If it also has
            for_key(command_key), each reviewer gets the command for its
            validation type.
        selector: Panel selection strategy (default: HybridSelector with the
            work-item panel cache)
        feedback_store: Verdict store (default: FileFeedbackStore)
        config: Validation settings (default: validation.env)
        routing: Routing table (default: validators.yaml over built-ins)
        instruction_store: Reviewer instructions (default: config.reviewers_dir)
        panel_selector: Semantic selection delegate with
            select_panel(description), used when SMART_SELECTION is on
    """

    def __init__(
        self,
        project_dir: Path,
        generator: Generator,
        selector: Optional[Selector] = None,
        feedback_store: Optional[FeedbackStore] = None,
        config: Optional[ValidationConfig] = None,
        routing: Optional[RoutingTable] = None,
        instruction_store: Optional[InstructionStore] = None,
        panel_selector=None,
    ):
        self.project_dir = project_dir
        self.generator = generator
        self.config = config or load_validation_config(project_dir)
        self.routing = routing or load_routing_table(project_dir)
        self.instructions = instruction_store or InstructionStore(self.config.reviewers_dir)
        self.feedback = feedback_store if feedback_store is not None else FileFeedbackStore(project_dir)

        if selector is None:
            semantic = None
            if self.config.smart_selection:
                if panel_selector is not None:
                    semantic = SemanticSelector(panel_selector, self.routing)
                else:
                    logger.warning("SMART_SELECTION is on but no panel selector was given; unknown domains get the static panel")
            selector = HybridSelector(self.routing, semantic, WorkItemPanelCache(project_dir))
        self.selector = selector

    def validate_epic(self, epic: WorkItem, context: str = "", reselect: bool = False) -> AggregatedVerdict:
        """Run the epic's panel and return the aggregated verdict.

        Raises:
            ConfigurationError: Empty panel or missing reviewer instructions
            PanelFailedError: Every reviewer failed
        """
        panel = self.selector.select_for_epic(epic, reselect=reselect)
        story_count = len(list_stories_for_epic(self.project_dir, epic.id))
        prompt = build_epic_prompt(epic, story_count, context)
        return self._run(epic, KIND_EPIC, panel, prompt)

    def validate_story(
        self, story: WorkItem, epic: WorkItem, context: str = "", reselect: bool = False
    ) -> AggregatedVerdict:
        """Run the story's panel (epic domain and features inherited) and return the verdict.

        Raises:
            ConfigurationError: Empty panel or missing reviewer instructions
            PanelFailedError: Every reviewer failed
        """
        panel = self.selector.select_for_story(story, epic, reselect=reselect)
        prompt = build_story_prompt(story, epic, context)
        return self._run(story, KIND_STORY, panel, prompt)

    def get_feedback(self, work_item_id: str) -> Optional[AggregatedVerdict]:
        return self.feedback.get_feedback(work_item_id)

    def _generator_for(self, kind: str):
        for_key = getattr(self.generator, "for_key", None)
        if for_key is None:
            return None
        return lambda rid: for_key(classify_reviewer(self.routing, rid, kind))

    def _run(self, item: WorkItem, kind: str, panel: list[str], prompt: str) -> AggregatedVerdict:
        if not panel:
            raise ConfigurationError(f"No reviewers selected for {item.id}")

        logger.info(f"Validating {kind} {item.id} with {len(panel)} reviewers: {', '.join(panel)}")
        instructions = self.instructions.load_panel(panel)

        run_id = uuid.uuid4().hex[:12]
        started = time.monotonic()
        outcomes = dispatch_panel(
            panel,
            prompt,
            instructions,
            self.generator,
            max_workers=self.config.max_parallel_reviewers,
            generator_for=self._generator_for(kind),
        )
        elapsed = time.monotonic() - started

        results = [o.result for o in outcomes if o.succeeded]
        failures = {o.reviewer_id: o.error or "not run" for o in outcomes if not o.succeeded}

        if not results:
            self._record_stats(run_id, item, kind, outcomes, elapsed, None)
            raise PanelFailedError(item.id, failures)

        verdict = aggregate(results, kind, failures, panel)
        self.feedback.store_feedback(item.id, verdict)
        record_validation(self.project_dir, item.id, panel, verdict.overall_status)
        self._record_stats(run_id, item, kind, outcomes, elapsed, verdict.overall_status)

        logger.info(
            f"Validated {item.id}: {verdict.overall_status} ({verdict.average_score}/100), "
            f"{len(verdict.critical_issues)} critical, {len(verdict.major_issues)} major"
        )
        return verdict

    def _record_stats(
        self,
        run_id: str,
        item: WorkItem,
        kind: str,
        outcomes: list[ReviewerOutcome],
        elapsed: float,
        overall_status: Optional[str],
    ) -> None:
        record_run_stats(self.project_dir, ValidationRunStats(
            timestamp=datetime.now().isoformat(),
            run_id=run_id,
            work_item_id=item.id,
            kind=kind,
            panel_size=len(outcomes),
            elapsed_seconds=round(elapsed, 3),
            overall_status=overall_status,
            reviewers=[
                ReviewerCallStats(
                    reviewer_id=o.reviewer_id,
                    status=o.result.status if o.succeeded else STATUS_ERRORED,
                    elapsed_seconds=round(o.elapsed_seconds, 3),
                    error=o.error,
                )
                for o in outcomes
            ],
        ))


def create_claude_validator(project_dir: Path, **kwargs) -> WorkItemValidator:
    """Build a validator backed by the Claude CLI.

    Commands come from agents.yaml, the per-call timeout from
    validation.env. Semantic selection is wired in but only used when
    SMART_SELECTION is on.
    """
    config = kwargs.pop("config", None) or load_validation_config(project_dir)
    agent = ClaudeAgent(
        load_agents_config(project_dir),
        timeout=config.review_timeout,
        cwd=project_dir,
    )
    kwargs.setdefault("panel_selector", ClaudePanelSelector(agent.for_key("panel_selection")))
    return WorkItemValidator(project_dir, agent, config=config, **kwargs)
