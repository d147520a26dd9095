"""
PM (Project Management) module for reviewpanel.

Epic/Story records. The panel validation service lives in
reviewpanel.pm.validator.
"""

from reviewpanel.pm.models import WorkItem
from reviewpanel.pm.work_items import (
    save_work_item,
    load_work_item,
    list_work_items,
    list_stories_for_epic,
    get_parent_epic,
    update_work_item,
    record_validation,
)

__all__ = [
    "WorkItem",
    "save_work_item",
    "load_work_item",
    "list_work_items",
    "list_stories_for_epic",
    "get_parent_epic",
    "update_work_item",
    "record_validation",
]
