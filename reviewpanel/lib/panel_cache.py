"""
Panel selection cache.

Read-through, write-once cache of reviewer panels keyed by work-item ID.
A cached panel is replayed verbatim on later runs so a semantic selection
is made at most once per work item. Entries are never invalidated
implicitly; only an explicit re-selection overwrites one.
"""

import logging
import threading
from pathlib import Path
from typing import Optional

from reviewpanel.pm.work_items import load_work_item, update_work_item

logger = logging.getLogger(__name__)


class PanelCache:
    """In-memory panel cache. Also the base for persisted caches."""

    def __init__(self):
        self._entries: dict[str, tuple[str, ...]] = {}
        self._lock = threading.Lock()

    def get(self, work_item_id: str) -> Optional[list[str]]:
        """Return the cached panel, or None on a miss."""
        with self._lock:
            entry = self._entries.get(work_item_id)
        return list(entry) if entry is not None else None

    def put(self, work_item_id: str, reviewer_ids: list[str]) -> None:
        with self._lock:
            self._entries[work_item_id] = tuple(reviewer_ids)


class WorkItemPanelCache(PanelCache):
    """Panel cache persisted in the work item's selected_validators field.

    The panel lives in the same record the planning ceremonies own, so a
    rerun of the pipeline on another machine replays the same panel.
    """

    def __init__(self, project_dir: Path):
        super().__init__()
        self.project_dir = project_dir

    def get(self, work_item_id: str) -> Optional[list[str]]:
        item = load_work_item(self.project_dir, work_item_id)
        if item is None or item.selected_validators is None:
            return None
        return list(item.selected_validators)

    def put(self, work_item_id: str, reviewer_ids: list[str]) -> None:
        updated = update_work_item(
            self.project_dir, work_item_id, {"selected_validators": list(reviewer_ids)}
        )
        if updated is None:
            logger.warning(
                f"Cannot cache panel for {work_item_id}: work item not found in {self.project_dir}"
            )
