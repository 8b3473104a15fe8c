"""
Category Mapping Service
========================

Maps free-text gap category labels, as written by people or by the AI
analysis step, onto canonical vendor categories.

Matching order (first match wins):
1. Exact alias, after trimming and lower-casing
2. Keyword substring, in ascending rule priority
3. No match -> None (uncategorized)

Rules are loaded from `category_rules.json` next to this module.

Version: 0.1.0
"""

import json
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any

from services.risk_engine.models.category import (
    CanonicalCategory,
    CategoryRule,
    CategoryRuleSet,
    MatchKind,
)
from shared.logging import get_logger


logger = get_logger(__name__)

DEFAULT_RULES_PATH = Path(__file__).with_name("category_rules.json")


@dataclass(frozen=True)
class CategoryMatch:
    """Outcome of a successful mapping."""

    category: CanonicalCategory
    match: MatchKind
    pattern: str
    priority: int


@lru_cache
def load_rule_set(path: Path = DEFAULT_RULES_PATH) -> CategoryRuleSet:
    """
    Load and validate a rule file.

    Cached per path so each file is read once per process.
    """
    with open(path, encoding="utf-8") as f:
        raw = json.load(f)

    rule_set = CategoryRuleSet.model_validate(raw)
    logger.info(
        "category_rules_loaded",
        path=str(path),
        version=rule_set.version,
        aliases=len(rule_set.aliases),
        keywords=len(rule_set.keywords),
    )
    return rule_set


class CategoryMapper:
    """
    Maps gap category labels to canonical categories.

    Pure and total: every input returns a canonical category or None.
    """

    def __init__(self, rule_set: CategoryRuleSet | None = None) -> None:
        """
        Initialize the mapper.

        Args:
            rule_set: Rules to apply (uses the bundled rules if not provided)
        """
        self.rule_set = rule_set or load_rule_set()
        self._aliases: dict[str, CategoryRule] = self.rule_set.aliases
        self._keywords: list[CategoryRule] = self.rule_set.keywords

    @classmethod
    def from_path(cls, path: Path | None) -> "CategoryMapper":
        """Build a mapper from a rule file, or the bundled one if `path` is None."""
        return cls(load_rule_set(path or DEFAULT_RULES_PATH))

    @staticmethod
    def normalize(label: Any) -> str | None:
        """Trim and lower-case a label; None when there is nothing to match."""
        if not isinstance(label, str):
            return None
        normalized = label.strip().lower()
        return normalized or None

    def explain(self, label: Any) -> CategoryMatch | None:
        """Map a label and report which rule matched."""
        normalized = self.normalize(label)
        if normalized is None:
            return None

        alias = self._aliases.get(normalized)
        if alias is not None:
            logger.debug(
                "gap_category_mapped",
                original=label,
                mapped=alias.category.value,
                match="exact",
            )
            return CategoryMatch(alias.category, MatchKind.EXACT, alias.pattern, alias.priority)

        for rule in self._keywords:
            if rule.pattern in normalized:
                logger.debug(
                    "gap_category_mapped",
                    original=label,
                    mapped=rule.category.value,
                    match="keyword",
                    keyword=rule.pattern,
                )
                return CategoryMatch(rule.category, MatchKind.KEYWORD, rule.pattern, rule.priority)

        logger.warning("gap_category_unmapped", original=label, normalized=normalized)
        return None

    def map(self, label: Any) -> CanonicalCategory | None:
        """Map a label to its canonical category, or None if uncategorized."""
        match = self.explain(label)
        return match.category if match else None
