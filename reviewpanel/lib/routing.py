"""
Reviewer routing table.

Maps work-item domains and feature tags to reviewer panels, plus a fixed
universal panel per work-item kind. Loaded once from defaults, optionally
overridden per project by validators.yaml.

VALIDATORS.YAML
===============

    epic:
      universal: [reviewer-epic-solution-architect, reviewer-epic-developer]
      domains:
        payments: [reviewer-epic-backend, reviewer-epic-security]
      features:
        billing: [reviewer-epic-data]
    story:
      domains:
        payments: [reviewer-story-backend]

Only the keys present are replaced; everything else keeps its default.
A domain or feature listed in the file replaces the default entry for that
key wholesale (no merging of reviewer lists).
"""

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml

from reviewpanel.lib.types import KIND_EPIC, KIND_STORY

logger = logging.getLogger(__name__)

REVIEWER_PREFIX = "reviewer"

# Roles a reviewer id may carry in its topic segment
VALID_ROLES = (
    "solution-architect", "developer", "security", "devops", "cloud",
    "backend", "database", "api", "frontend", "ui", "ux", "mobile",
    "data", "qa", "test-architect",
)

VALIDATION_TYPE_UNIVERSAL = "universal"
VALIDATION_TYPE_DOMAIN = "domain"
VALIDATION_TYPE_FEATURE = "feature"


def reviewer_id(kind: str, role: str) -> str:
    """Build a reviewer id, e.g. reviewer_id("epic", "api") -> "reviewer-epic-api"."""
    return f"{REVIEWER_PREFIX}-{kind}-{role}"


def _ids(kind: str, *roles: str) -> tuple[str, ...]:
    return tuple(reviewer_id(kind, r) for r in roles)


DEFAULT_EPIC_UNIVERSAL = _ids(KIND_EPIC, "solution-architect", "developer", "security")

DEFAULT_EPIC_DOMAINS = {
    "infrastructure": _ids(KIND_EPIC, "devops", "cloud", "backend"),
    "user-management": _ids(KIND_EPIC, "backend", "database", "security", "api"),
    "frontend": _ids(KIND_EPIC, "frontend", "ui", "ux"),
    "mobile": _ids(KIND_EPIC, "mobile", "ui", "ux", "api"),
    "data-processing": _ids(KIND_EPIC, "data", "database", "backend"),
    "api": _ids(KIND_EPIC, "api", "backend", "security"),
    "analytics": _ids(KIND_EPIC, "data", "backend", "database"),
    "communication": _ids(KIND_EPIC, "backend", "api", "security"),
}

DEFAULT_EPIC_FEATURES = {
    "authentication": _ids(KIND_EPIC, "security"),
    "authorization": _ids(KIND_EPIC, "security"),
    "database": _ids(KIND_EPIC, "database"),
    "testing": _ids(KIND_EPIC, "qa", "test-architect"),
    "deployment": _ids(KIND_EPIC, "devops", "cloud"),
    "api": _ids(KIND_EPIC, "api"),
    "ui": _ids(KIND_EPIC, "ui", "ux"),
    "mobile": _ids(KIND_EPIC, "mobile"),
    "real-time": _ids(KIND_EPIC, "backend", "api"),
    "data-storage": _ids(KIND_EPIC, "database", "data"),
    "logging": _ids(KIND_EPIC, "devops"),
    "monitoring": _ids(KIND_EPIC, "devops"),
    "security": _ids(KIND_EPIC, "security"),
}

DEFAULT_STORY_UNIVERSAL = _ids(KIND_STORY, "developer", "qa", "test-architect")

DEFAULT_STORY_DOMAINS = {
    "infrastructure": _ids(KIND_STORY, "devops", "cloud", "backend"),
    "user-management": _ids(KIND_STORY, "backend", "database", "security", "api", "ux"),
    "frontend": _ids(KIND_STORY, "frontend", "ui", "ux"),
    "mobile": _ids(KIND_STORY, "mobile", "ui", "ux"),
    "data-processing": _ids(KIND_STORY, "data", "database", "backend"),
    "api": _ids(KIND_STORY, "api", "backend", "security"),
    "analytics": _ids(KIND_STORY, "data", "backend", "database"),
    "communication": _ids(KIND_STORY, "backend", "api", "security"),
}

DEFAULT_STORY_FEATURES = {
    "authentication": _ids(KIND_STORY, "security"),
    "crud-operations": _ids(KIND_STORY, "database", "api"),
    "search": _ids(KIND_STORY, "database", "backend"),
    "real-time": _ids(KIND_STORY, "api", "backend"),
    "responsive-design": _ids(KIND_STORY, "ui", "frontend"),
    "file-upload": _ids(KIND_STORY, "backend", "api"),
    "notifications": _ids(KIND_STORY, "backend", "api"),
    "reporting": _ids(KIND_STORY, "data", "backend"),
}


@dataclass(frozen=True)
class RoutingRules:
    """Routing rules for one work-item kind."""
    universal: tuple[str, ...]
    domains: dict[str, tuple[str, ...]] = field(default_factory=dict)
    features: dict[str, tuple[str, ...]] = field(default_factory=dict)

    def is_known_domain(self, domain: Optional[str]) -> bool:
        return bool(domain) and domain in self.domains

    def domain_reviewers(self, domain: Optional[str]) -> tuple[str, ...]:
        if not domain:
            return ()
        return self.domains.get(domain, ())

    def feature_reviewers(self, feature: str) -> tuple[str, ...]:
        return self.features.get(normalize_feature(feature), ())


@dataclass(frozen=True)
class RoutingTable:
    """Routing rules for both Epics and Stories."""
    epic: RoutingRules
    story: RoutingRules

    def rules_for(self, kind: str) -> RoutingRules:
        if kind == KIND_EPIC:
            return self.epic
        if kind == KIND_STORY:
            return self.story
        raise ValueError(f"Unknown work item kind: {kind}")


def default_routing_table() -> RoutingTable:
    return RoutingTable(
        epic=RoutingRules(
            universal=DEFAULT_EPIC_UNIVERSAL,
            domains=dict(DEFAULT_EPIC_DOMAINS),
            features=dict(DEFAULT_EPIC_FEATURES),
        ),
        story=RoutingRules(
            universal=DEFAULT_STORY_UNIVERSAL,
            domains=dict(DEFAULT_STORY_DOMAINS),
            features=dict(DEFAULT_STORY_FEATURES),
        ),
    )


def normalize_feature(feature: str) -> str:
    """Normalize a feature tag for lookup: "Real Time" -> "real-time"."""
    return re.sub(r"\s+", "-", feature.strip().lower())


def _merge_rules(defaults: RoutingRules, data: dict) -> RoutingRules:
    universal = defaults.universal
    if "universal" in data:
        universal = tuple(data["universal"] or ())

    domains = dict(defaults.domains)
    for name, ids in (data.get("domains") or {}).items():
        domains[name] = tuple(ids or ())

    features = dict(defaults.features)
    for name, ids in (data.get("features") or {}).items():
        features[normalize_feature(name)] = tuple(ids or ())

    return RoutingRules(universal=universal, domains=domains, features=features)


def load_routing_table(project_dir: Optional[Path]) -> RoutingTable:
    """Load validators.yaml and return the RoutingTable.

    If project_dir is None or the file doesn't exist, returns defaults.
    """
    table = default_routing_table()
    if project_dir is None:
        return table

    config_path = project_dir / "validators.yaml"
    if not config_path.exists():
        return table

    try:
        data = yaml.safe_load(config_path.read_text()) or {}
        if not isinstance(data, dict):
            raise TypeError(f"expected a mapping, got {type(data).__name__}")
        return RoutingTable(
            epic=_merge_rules(table.epic, data.get(KIND_EPIC) or {}),
            story=_merge_rules(table.story, data.get(KIND_STORY) or {}),
        )
    except (yaml.YAMLError, TypeError, AttributeError) as e:
        logger.warning(f"Failed to parse {config_path}: {e}")
        return default_routing_table()


def is_valid_reviewer_id(candidate: str, kind: str) -> bool:
    """Check a reviewer id has the reviewer-{kind}-{role} shape with a known role."""
    prefix = f"{REVIEWER_PREFIX}-{kind}-"
    if not isinstance(candidate, str) or not candidate.startswith(prefix):
        return False
    return candidate[len(prefix):] in VALID_ROLES


def classify_reviewer(table: RoutingTable, candidate: str, kind: str) -> str:
    """Classify a reviewer as universal, domain or feature for this kind.

    Used to pick the agent command for the reviewer (see agents_config).
    """
    rules = table.rules_for(kind)
    if candidate in rules.universal:
        return VALIDATION_TYPE_UNIVERSAL
    if any(candidate in ids for ids in rules.domains.values()):
        return VALIDATION_TYPE_DOMAIN
    return VALIDATION_TYPE_FEATURE
