"""
Work item CRUD operations for PM module.

Epics and Stories are stored as one JSON record each in:
  projects/<project>/pm/work_items/<id>.json

The planning ceremonies own these records; validation only writes back
metadata (last panel, status and timestamp). selected_validators belongs
to the panel cache and is only written by a semantic selection.
Every write is schema-validated and atomic.
"""

import json
import logging
from dataclasses import asdict
from datetime import datetime
from pathlib import Path
from typing import Optional

from reviewpanel.lib.fileutil import atomic_write_text
from reviewpanel.lib.types import KIND_EPIC, KIND_STORY
from reviewpanel.lib.validate import validate_before_write
from reviewpanel.pm.models import WorkItem

logger = logging.getLogger(__name__)


def get_pm_dir(project_dir: Path) -> Path:
    """Get PM directory for a project."""
    return project_dir / "pm"


def get_work_items_dir(project_dir: Path) -> Path:
    """Get work items directory for a project."""
    return get_pm_dir(project_dir) / "work_items"


def _work_item_path(project_dir: Path, work_item_id: str) -> Path:
    return get_work_items_dir(project_dir) / f"{work_item_id}.json"


def save_work_item(project_dir: Path, item: WorkItem) -> WorkItem:
    """Validate and write a work item record, replacing any existing one."""
    data = asdict(item)
    json_path = _work_item_path(project_dir, item.id)
    validate_before_write(data, "work_item", json_path)
    atomic_write_text(json_path, json.dumps(data, indent=2))
    return item


def load_work_item(project_dir: Path, work_item_id: str) -> Optional[WorkItem]:
    """Load a work item by ID."""
    path = _work_item_path(project_dir, work_item_id)

    if not path.exists():
        return None

    try:
        data = json.loads(path.read_text())
        return WorkItem(**data)
    except (json.JSONDecodeError, TypeError) as e:
        logger.warning(f"Failed to load work item {work_item_id}: {e}")
        return None


def list_work_items(project_dir: Path, kind: Optional[str] = None) -> list[WorkItem]:
    """List work items for a project, optionally filtered by kind."""
    items_dir = get_work_items_dir(project_dir)
    if not items_dir.exists():
        return []

    items = []
    for f in sorted(items_dir.glob("*.json")):
        try:
            data = json.loads(f.read_text())
            items.append(WorkItem(**data))
        except (json.JSONDecodeError, TypeError) as e:
            logger.warning(f"Failed to load work item file {f}: {e}")

    if kind is not None:
        items = [i for i in items if i.kind == kind]
    return items


def list_stories_for_epic(project_dir: Path, epic_id: str) -> list[WorkItem]:
    """Get the stories owned by an epic."""
    return [s for s in list_work_items(project_dir, KIND_STORY) if s.parent_id == epic_id]


def get_parent_epic(project_dir: Path, story: WorkItem) -> Optional[WorkItem]:
    """Load the epic that owns a story, or None if it can't be found."""
    if not story.parent_id:
        return None
    epic = load_work_item(project_dir, story.parent_id)
    if epic is not None and epic.kind != KIND_EPIC:
        logger.warning(f"Parent {story.parent_id} of {story.id} is not an epic (kind={epic.kind})")
        return None
    return epic


def update_work_item(project_dir: Path, work_item_id: str, updates: dict) -> Optional[WorkItem]:
    """Update a work item with new values.

    Args:
        project_dir: Project directory
        work_item_id: Work item ID
        updates: Dict of fields to update

    Returns:
        Updated WorkItem or None if not found
    """
    item = load_work_item(project_dir, work_item_id)
    if not item:
        return None

    item_dict = asdict(item)
    item_dict.update(updates)
    return save_work_item(project_dir, WorkItem(**item_dict))


def record_validation(
    project_dir: Path,
    work_item_id: str,
    panel: list[str],
    overall_status: str,
) -> Optional[WorkItem]:
    """Record a validation run in the work item's metadata.

    last_panel, last_status and last_validated land in a single atomic
    write. selected_validators is left to the panel cache.

    Returns:
        Updated WorkItem or None if not found
    """
    item = load_work_item(project_dir, work_item_id)
    if not item:
        logger.warning(f"Cannot record validation for {work_item_id}: work item not found")
        return None

    metadata = dict(item.metadata)
    metadata["last_validated"] = datetime.now().isoformat()
    metadata["last_status"] = overall_status
    metadata["last_panel"] = list(panel)

    return update_work_item(project_dir, work_item_id, {"metadata": metadata})
