"""
Error taxonomy for panel validation.

ConfigurationError is fatal: the panel cannot be assembled and nothing is
dispatched. ProviderError and ParseError are per-reviewer: the failing
member is dropped from aggregation and reported as errored.
"""


class ReviewPanelError(Exception):
    """Base class for review panel errors."""
    pass


class ConfigurationError(ReviewPanelError):
    """Panel cannot be assembled (missing instructions, bad config)."""
    pass


class InstructionNotFound(ConfigurationError):
    """Reviewer instruction document does not exist."""

    def __init__(self, reviewer_id: str, path=None):
        self.reviewer_id = reviewer_id
        self.path = path
        msg = f"Instructions for reviewer '{reviewer_id}' not found"
        if path:
            msg += f": expected {path}"
        super().__init__(msg)


class ProviderError(ReviewPanelError):
    """Text-generation call failed (transport, auth, timeout, exit code)."""
    pass


class ParseError(ReviewPanelError):
    """Response could not be interpreted as the expected structure."""
    pass


class PanelFailedError(ReviewPanelError):
    """Every panel member failed, so no verdict can be built."""

    def __init__(self, work_item_id: str, errors: dict[str, str]):
        self.work_item_id = work_item_id
        self.errors = errors
        super().__init__(
            f"All {len(errors)} reviewers failed for {work_item_id}: "
            + "; ".join(f"{rid}: {err}" for rid, err in errors.items())
        )
