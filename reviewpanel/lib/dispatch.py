"""
Parallel dispatch of reviewer calls.

One structured-review request per panel member, run on a bounded thread
pool. The run blocks at a single fan-in point until every call has
settled. Each member is tracked by a ReviewerCall state machine:

    pending -> running -> succeeded
                       -> errored

ProviderError and ParseError settle a member as errored without touching
the others. Anything else is a bug: queued calls are cancelled and the
exception propagates, as does an interrupt from the caller.
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Callable, Optional, Protocol

from transitions import Machine

from reviewpanel.lib.errors import ParseError, ProviderError
from reviewpanel.lib.types import ReviewResult
from reviewpanel.lib.validate import ValidationError, validate

logger = logging.getLogger(__name__)

DEFAULT_MAX_WORKERS = 5

STATES = ["pending", "running", "succeeded", "errored"]

TRANSITIONS = [
    {"trigger": "start", "source": "pending", "dest": "running"},
    {"trigger": "succeed", "source": "running", "dest": "succeeded"},
    {"trigger": "fail", "source": "running", "dest": "errored"},
]


class Generator(Protocol):
    def generate_structured(self, prompt: str, instructions: str) -> dict: ...


def parse_review_result(reviewer_id: str, data: dict) -> ReviewResult:
    """Validate a raw reviewer response and build a ReviewResult.

    Raises:
        ParseError: If data doesn't match the review_result schema
    """
    if not isinstance(data, dict):
        raise ParseError(f"Expected a JSON object from {reviewer_id}, got {type(data).__name__}")
    try:
        validate(data, "review_result")
    except ValidationError as e:
        raise ParseError(f"Invalid review from {reviewer_id}: {e}") from None
    return ReviewResult.from_dict(reviewer_id, data)


class ReviewerCall:
    """State machine for one panel member's call."""

    def __init__(self, reviewer_id: str):
        self.reviewer_id = reviewer_id
        self.result: Optional[ReviewResult] = None
        self.error: Optional[str] = None
        self.elapsed_seconds = 0.0

        self.machine = Machine(
            model=self,
            states=STATES,
            transitions=TRANSITIONS,
            initial="pending",
            auto_transitions=False,
            send_event=True,
            after_state_change="on_state_change",
        )

    def on_state_change(self, event) -> None:
        logger.debug(
            f"[FSM] {self.reviewer_id}: {event.transition.source} -> "
            f"{event.transition.dest} ({event.event.name})"
        )

    def outcome(self) -> "ReviewerOutcome":
        return ReviewerOutcome(
            reviewer_id=self.reviewer_id,
            state=self.state,
            result=self.result,
            error=self.error,
            elapsed_seconds=self.elapsed_seconds,
        )


@dataclass
class ReviewerOutcome:
    """Settled result of one reviewer call."""
    reviewer_id: str
    state: str  # succeeded, errored, or pending if the call never ran
    result: Optional[ReviewResult] = None
    error: Optional[str] = None
    elapsed_seconds: float = 0.0

    @property
    def succeeded(self) -> bool:
        return self.state == "succeeded"


def _run_call(call: ReviewerCall, generator: Generator, prompt: str, instructions: str) -> ReviewerCall:
    call.start()
    started = time.monotonic()
    try:
        data = generator.generate_structured(prompt, instructions)
        result = parse_review_result(call.reviewer_id, data)
    except (ProviderError, ParseError) as e:
        call.elapsed_seconds = time.monotonic() - started
        call.error = str(e)
        logger.warning(f"Reviewer {call.reviewer_id} failed after {call.elapsed_seconds:.1f}s: {e}")
        call.fail()
        return call

    call.elapsed_seconds = time.monotonic() - started
    call.result = result
    logger.info(
        f"Reviewer {call.reviewer_id}: {result.status} ({result.score}) "
        f"in {call.elapsed_seconds:.1f}s"
    )
    call.succeed()
    return call


def dispatch_panel(
    panel: list[str],
    prompt: str,
    instructions: dict[str, str],
    generator: Generator,
    max_workers: int = DEFAULT_MAX_WORKERS,
    generator_for: Optional[Callable[[str], Generator]] = None,
) -> list[ReviewerOutcome]:
    """Run one review call per panel member and wait for all of them.

    Args:
        panel: Reviewer ids, in dispatch order
        prompt: Rendered work-item prompt, shared by every member
        instructions: reviewer_id -> instruction text (whole panel, preloaded)
        generator: Text-generation collaborator
        max_workers: Upper bound on concurrent calls
        generator_for: Optional per-reviewer generator (e.g. per-type command)

    Returns:
        One ReviewerOutcome per panel member, in panel order
    """
    calls = [ReviewerCall(rid) for rid in panel]
    if not calls:
        return []

    workers = max(1, min(max_workers, len(calls)))
    logger.info(f"Dispatching {len(calls)} reviewers ({workers} parallel)")
    started = time.monotonic()

    executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="reviewer")
    try:
        futures = {
            executor.submit(
                _run_call,
                call,
                generator_for(call.reviewer_id) if generator_for else generator,
                prompt,
                instructions[call.reviewer_id],
            ): call
            for call in calls
        }
        for future in as_completed(futures):
            future.result()
    except BaseException:
        logger.warning("Dispatch interrupted, cancelling queued reviewer calls")
        executor.shutdown(wait=False, cancel_futures=True)
        raise
    executor.shutdown(wait=True)

    outcomes = [call.outcome() for call in calls]
    failed = sum(1 for o in outcomes if not o.succeeded)
    logger.info(
        f"Panel settled in {time.monotonic() - started:.1f}s: "
        f"{len(outcomes) - failed} succeeded, {failed} errored"
    )
    return outcomes
