"""
Pattern catalog for the heuristic classifier and todo extractor.

Loads per-category pattern sets and the action keyword tiers from a YAML
file once, at startup. The loaded catalog is read-only: category pattern
sets and tiers are frozen models, and the catalog exposes no mutation API.

Usage:
    from mailtriage.processing.catalog import PatternCatalog
    catalog = PatternCatalog.load("mailtriage/processing/patterns.yaml")
    patterns = catalog.patterns_for(EmailCategory.NEWSLETTER)
"""

import logging
from pathlib import Path
from types import MappingProxyType
from typing import Mapping, Optional

import yaml

from mailtriage.processing.schemas import (
    ActionTier,
    CategoryPatternSet,
    EmailCategory,
    TodoPriority,
)

logger = logging.getLogger(__name__)

PATTERN_FIELDS = (
    "keywords",
    "sender_patterns",
    "subject_patterns",
    "body_patterns",
    "domain_patterns",
)


class CatalogError(ValueError):
    """Raised when the pattern catalog file is structurally invalid."""


class PatternCatalog:
    """
    Immutable table of category → CategoryPatternSet plus the ordered
    action tiers.

    Categories iterate in EmailCategory declaration order regardless of the
    order in the YAML file, so scoring ties resolve the same way for every
    catalog. Categories absent from the file get an empty pattern set.
    """

    def __init__(
        self,
        categories: Mapping[EmailCategory, CategoryPatternSet],
        action_tiers: list[ActionTier],
    ):
        ordered = {
            category: categories.get(category, CategoryPatternSet())
            for category in EmailCategory
        }
        self._categories = MappingProxyType(ordered)
        self._action_tiers = tuple(action_tiers)

    @classmethod
    def load(cls, yaml_path: str) -> "PatternCatalog":
        """Read a catalog from a YAML file."""
        path = Path(yaml_path)
        if not path.exists():
            raise FileNotFoundError(
                f"Pattern catalog not found: {yaml_path}. "
                f"Start from mailtriage/processing/patterns.yaml."
            )

        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        if not isinstance(data, dict):
            raise CatalogError(f"Pattern catalog must be a mapping: {yaml_path}")

        catalog = cls.from_dict(data)
        logger.info(
            "pattern_catalog.loaded",
            extra={
                "action": "pattern_catalog.loaded",
                "path": str(path),
                "category_count": sum(
                    1 for p in catalog._categories.values() if _pattern_count(p)
                ),
                "pattern_count": sum(_pattern_count(p) for p in catalog._categories.values()),
                "tier_count": len(catalog._action_tiers),
            },
        )
        return catalog

    @classmethod
    def from_dict(cls, data: dict) -> "PatternCatalog":
        """Build a catalog from already-parsed YAML data."""
        raw_categories = data.get("categories") or {}
        if not isinstance(raw_categories, dict):
            raise CatalogError("'categories' must be a mapping of category name to patterns")

        categories: dict[EmailCategory, CategoryPatternSet] = {}
        for name, section in raw_categories.items():
            try:
                category = EmailCategory(str(name).lower().strip())
            except ValueError:
                raise CatalogError(f"Unknown category in pattern catalog: {name}") from None
            categories[category] = cls._load_pattern_set(section)

        raw_tiers = data.get("action_tiers") or []
        if not isinstance(raw_tiers, list):
            raise CatalogError("'action_tiers' must be a list")

        tiers = [cls._load_tier(entry) for entry in raw_tiers]
        return cls(categories, tiers)

    @staticmethod
    def _load_pattern_set(section: Optional[dict]) -> CategoryPatternSet:
        """Normalize one category section: lowercase, strip, drop duplicates."""
        if not isinstance(section, dict):
            return CategoryPatternSet()
        fields = {}
        for field_name in PATTERN_FIELDS:
            fields[field_name] = _normalize(section.get(field_name, []))
        return CategoryPatternSet(**fields)

    @staticmethod
    def _load_tier(entry: dict) -> ActionTier:
        if not isinstance(entry, dict):
            raise CatalogError(f"Action tier must be a mapping, got: {entry!r}")
        try:
            priority = TodoPriority(entry.get("priority"))
        except ValueError:
            raise CatalogError(f"Unknown action tier priority: {entry.get('priority')}") from None
        return ActionTier(
            keywords=_normalize(entry.get("keywords", [])),
            priority=priority,
            confidence=float(entry.get("confidence", 0.5)),
        )

    # --- Read access ---

    @property
    def categories(self) -> Mapping[EmailCategory, CategoryPatternSet]:
        return self._categories

    @property
    def action_tiers(self) -> tuple[ActionTier, ...]:
        return self._action_tiers

    def patterns_for(self, category: EmailCategory) -> CategoryPatternSet:
        return self._categories[category]


def _normalize(values) -> tuple[str, ...]:
    if not isinstance(values, list):
        return ()
    seen: dict[str, None] = {}
    for value in values:
        if isinstance(value, str) and value.strip():
            seen.setdefault(value.lower().strip(), None)
    return tuple(seen)


def _pattern_count(patterns: CategoryPatternSet) -> int:
    return sum(len(getattr(patterns, name)) for name in PATTERN_FIELDS)
