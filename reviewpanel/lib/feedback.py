"""
Feedback store for aggregated verdicts.

Keeps the latest verdict per work-item ID. Last write wins; re-validating
a work item replaces its previous verdict and no history is kept.

Stored in (file-backed variant):
  projects/<project>/pm/feedback/<work_item_id>.json
"""

import json
import logging
import threading
from pathlib import Path
from typing import Optional

from reviewpanel.lib.fileutil import atomic_write_text
from reviewpanel.lib.types import AggregatedVerdict

logger = logging.getLogger(__name__)


class FeedbackStore:
    """In-memory last-write-wins verdict store."""

    def __init__(self):
        self._verdicts: dict[str, AggregatedVerdict] = {}
        self._lock = threading.Lock()

    def store_feedback(self, work_item_id: str, verdict: AggregatedVerdict) -> None:
        with self._lock:
            self._verdicts[work_item_id] = verdict

    def get_feedback(self, work_item_id: str) -> Optional[AggregatedVerdict]:
        with self._lock:
            return self._verdicts.get(work_item_id)

    def clear(self, work_item_id: str) -> None:
        with self._lock:
            self._verdicts.pop(work_item_id, None)


class FileFeedbackStore(FeedbackStore):
    """Verdict store persisted as one JSON file per work item.

    Writes go through a temp file and os.replace(), so a reader never sees
    a partially written verdict.
    """

    def __init__(self, project_dir: Path):
        super().__init__()
        self.feedback_dir = project_dir / "pm" / "feedback"

    def _path(self, work_item_id: str) -> Path:
        return self.feedback_dir / f"{work_item_id}.json"

    def store_feedback(self, work_item_id: str, verdict: AggregatedVerdict) -> None:
        path = self._path(work_item_id)
        atomic_write_text(path, json.dumps(verdict.to_dict(), indent=2))
        super().store_feedback(work_item_id, verdict)
        logger.debug(f"Stored verdict for {work_item_id} at {path}")

    def get_feedback(self, work_item_id: str) -> Optional[AggregatedVerdict]:
        cached = super().get_feedback(work_item_id)
        if cached is not None:
            return cached

        path = self._path(work_item_id)
        if not path.exists():
            return None

        try:
            verdict = AggregatedVerdict.from_dict(json.loads(path.read_text()))
        except (json.JSONDecodeError, KeyError, TypeError) as e:
            logger.warning(f"Failed to load verdict for {work_item_id} from {path}: {e}")
            return None

        super().store_feedback(work_item_id, verdict)
        return verdict

    def clear(self, work_item_id: str) -> None:
        super().clear(work_item_id)
        path = self._path(work_item_id)
        if path.exists():
            path.unlink()
