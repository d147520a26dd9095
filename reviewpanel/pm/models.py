"""
Data models for PM module.
"""

from dataclasses import dataclass, field
from typing import Optional

from reviewpanel.lib.types import KIND_EPIC, KIND_STORY


@dataclass
class WorkItem:
    """An Epic or Story from the project hierarchy.

    Epics declare a domain and feature tags. Stories never declare their own
    domain; they inherit the owning Epic's domain and features (parent_id)
    and add whatever can be inferred from their acceptance criteria.
    """
    id: str                                    # context-0001, context-0001-0002
    kind: str                                  # epic, story
    name: str
    description: str = ""
    domain: Optional[str] = None               # Epic only; may be unknown to the routing table
    features: list[str] = field(default_factory=list)
    acceptance_criteria: list[str] = field(default_factory=list)  # Story only
    user_type: str = ""                        # Story only
    dependencies: list[str] = field(default_factory=list)
    parent_id: Optional[str] = None            # Story -> owning Epic
    selected_validators: Optional[list[str]] = None  # Cached panel
    metadata: dict = field(default_factory=dict)     # last_validated, last_status

    @property
    def is_epic(self) -> bool:
        return self.kind == KIND_EPIC

    @property
    def is_story(self) -> bool:
        return self.kind == KIND_STORY
