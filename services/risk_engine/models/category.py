"""
Category Models
===============

Canonical vendor categories and the declarative rules that map free-text
gap labels onto them.

Version: 0.1.0
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class CanonicalCategory(str, Enum):
    """Vendor-matchable compliance domains."""

    KYC_AML = "KYC_AML"
    TRANSACTION_MONITORING = "TRANSACTION_MONITORING"
    SANCTIONS_SCREENING = "SANCTIONS_SCREENING"
    TRADE_SURVEILLANCE = "TRADE_SURVEILLANCE"
    RISK_ASSESSMENT = "RISK_ASSESSMENT"
    COMPLIANCE_TRAINING = "COMPLIANCE_TRAINING"
    REGULATORY_REPORTING = "REGULATORY_REPORTING"
    DATA_GOVERNANCE = "DATA_GOVERNANCE"


class MatchKind(str, Enum):
    """How a rule is compared against a normalized label."""

    EXACT = "exact"  # Whole label equals the pattern
    KEYWORD = "keyword"  # Pattern is a substring of the label


class CategoryRule(BaseModel):
    """One alias or keyword rule."""

    model_config = ConfigDict(frozen=True)

    pattern: str = Field(..., min_length=1)
    category: CanonicalCategory
    priority: int = Field(..., ge=0)
    match: MatchKind = MatchKind.KEYWORD

    @field_validator("pattern")
    @classmethod
    def normalize_pattern(cls, v: str) -> str:
        """Patterns are compared against trimmed, lower-cased labels."""
        normalized = v.strip().lower()
        if not normalized:
            raise ValueError("pattern must not be blank")
        return normalized


class CategoryRuleSet(BaseModel):
    """Ordered rule list as loaded from a rule file."""

    model_config = ConfigDict(frozen=True)

    version: str = "1"
    rules: tuple[CategoryRule, ...]

    @model_validator(mode="after")
    def check_unique_patterns(self) -> "CategoryRuleSet":
        """An exact alias may only be bound to one category."""
        seen: dict[str, CanonicalCategory] = {}
        for rule in self.rules:
            if rule.match != MatchKind.EXACT:
                continue
            bound = seen.get(rule.pattern)
            if bound is not None and bound != rule.category:
                raise ValueError(
                    f"alias '{rule.pattern}' bound to both {bound.value} and {rule.category.value}"
                )
            seen[rule.pattern] = rule.category
        return self

    @property
    def aliases(self) -> dict[str, CategoryRule]:
        """Exact alias rules keyed by pattern."""
        return {r.pattern: r for r in self.rules if r.match == MatchKind.EXACT}

    @property
    def keywords(self) -> list[CategoryRule]:
        """Keyword rules in priority order (stable for equal priorities)."""
        return sorted(
            (r for r in self.rules if r.match == MatchKind.KEYWORD),
            key=lambda r: r.priority,
        )
