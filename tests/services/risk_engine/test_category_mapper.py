"""
Category Mapper Tests
=====================

Tests for gap label to vendor category mapping.

Version: 0.1.0
"""

import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from services.risk_engine.models.category import (
    CanonicalCategory,
    CategoryRule,
    CategoryRuleSet,
    MatchKind,
)
from services.risk_engine.services.category_mapper import CategoryMapper, load_rule_set


@pytest.fixture
def mapper() -> CategoryMapper:
    """Mapper with the bundled rules."""
    return CategoryMapper()


# =============================================================================
# Normalization Tests
# =============================================================================


class TestNormalization:
    """Tests for input normalization."""

    @pytest.mark.parametrize("label", [None, "", "   ", "\t\n"])
    def test_blank_labels_are_uncategorized(self, mapper: CategoryMapper, label: str | None) -> None:
        assert mapper.map(label) is None

    @pytest.mark.parametrize("label", [42, 3.5, ["KYC"], {"label": "KYC"}])
    def test_non_strings_are_uncategorized(self, mapper: CategoryMapper, label: object) -> None:
        assert mapper.map(label) is None

    def test_case_insensitive(self, mapper: CategoryMapper) -> None:
        assert mapper.map("KYC") == CanonicalCategory.KYC_AML
        assert mapper.map("kyc") == CanonicalCategory.KYC_AML
        assert mapper.map("  Kyc  ") == CanonicalCategory.KYC_AML


# =============================================================================
# Alias Tests
# =============================================================================


class TestAliases:
    """Tests for exact alias matches."""

    @pytest.mark.parametrize(
        ("label", "expected"),
        [
            ("Geographic Risk Assessment", CanonicalCategory.RISK_ASSESSMENT),
            ("Product & Service Risk", CanonicalCategory.RISK_ASSESSMENT),
            ("Transaction Risk & Monitoring", CanonicalCategory.TRANSACTION_MONITORING),
            ("Governance & Controls", CanonicalCategory.DATA_GOVERNANCE),
            ("Regulatory Alignment", CanonicalCategory.REGULATORY_REPORTING),
            ("KYC/AML", CanonicalCategory.KYC_AML),
            ("kyc_aml", CanonicalCategory.KYC_AML),
            ("Sanctions", CanonicalCategory.SANCTIONS_SCREENING),
            ("Trade Surveillance", CanonicalCategory.TRADE_SURVEILLANCE),
            ("Training & Awareness", CanonicalCategory.COMPLIANCE_TRAINING),
        ],
    )
    def test_alias(self, mapper: CategoryMapper, label: str, expected: CanonicalCategory) -> None:
        assert mapper.map(label) == expected

    def test_alias_reported_as_exact(self, mapper: CategoryMapper) -> None:
        match = mapper.explain("Data Governance")

        assert match is not None
        assert match.match == MatchKind.EXACT
        assert match.pattern == "data governance"


# =============================================================================
# Keyword Tests
# =============================================================================


class TestKeywords:
    """Tests for priority-ordered keyword matches."""

    def test_kyc_in_longer_label(self, mapper: CategoryMapper) -> None:
        assert mapper.map("KYC and AML Procedures") == CanonicalCategory.KYC_AML

    def test_keyword_match_reported(self, mapper: CategoryMapper) -> None:
        match = mapper.explain("Payment Screening Controls")

        # "payment" outranks "screening" and "control"
        assert match is not None
        assert match.category == CanonicalCategory.TRANSACTION_MONITORING
        assert match.match == MatchKind.KEYWORD
        assert match.pattern == "payment"

    def test_priority_order(self, mapper: CategoryMapper) -> None:
        """Earlier rules win when several keywords appear."""
        assert mapper.map("Customer risk data") == CanonicalCategory.RISK_ASSESSMENT
        assert mapper.map("Market data controls") == CanonicalCategory.TRADE_SURVEILLANCE
        assert mapper.map("Embargo evaluation") == CanonicalCategory.SANCTIONS_SCREENING

    @pytest.mark.parametrize(
        ("label", "expected"),
        [
            ("Know Your Customer Program", CanonicalCategory.KYC_AML),
            ("Ongoing Monitoring", CanonicalCategory.TRANSACTION_MONITORING),
            ("Staff Education", CanonicalCategory.COMPLIANCE_TRAINING),
            ("Regulator Correspondence", CanonicalCategory.REGULATORY_REPORTING),
            ("Access Control Review", CanonicalCategory.DATA_GOVERNANCE),
            ("RISK", CanonicalCategory.RISK_ASSESSMENT),
        ],
    )
    def test_keyword(self, mapper: CategoryMapper, label: str, expected: CanonicalCategory) -> None:
        assert mapper.map(label) == expected

    def test_unknown_label(self, mapper: CategoryMapper) -> None:
        assert mapper.map("Completely Unknown Category") is None
        assert mapper.explain("Completely Unknown Category") is None


# =============================================================================
# Rule Set Tests
# =============================================================================


class TestRuleSet:
    """Tests for rule loading and validation."""

    def test_bundled_rules_cover_every_category(self) -> None:
        rule_set = load_rule_set()

        assert {r.category for r in rule_set.rules} == set(CanonicalCategory)

    def test_conflicting_alias_rejected(self) -> None:
        with pytest.raises(ValidationError):
            CategoryRuleSet(
                rules=(
                    CategoryRule(pattern="aml", category=CanonicalCategory.KYC_AML, priority=0, match=MatchKind.EXACT),
                    CategoryRule(
                        pattern="AML",
                        category=CanonicalCategory.TRANSACTION_MONITORING,
                        priority=0,
                        match=MatchKind.EXACT,
                    ),
                )
            )

    def test_custom_rules(self) -> None:
        mapper = CategoryMapper(
            CategoryRuleSet(
                rules=(
                    CategoryRule(pattern="crypto", category=CanonicalCategory.TRANSACTION_MONITORING, priority=1),
                    CategoryRule(pattern="wallet", category=CanonicalCategory.KYC_AML, priority=0),
                )
            )
        )

        assert mapper.map("Crypto wallet screening") == CanonicalCategory.KYC_AML
        assert mapper.map("KYC") is None

    def test_rules_loaded_from_file(self, tmp_path: Path) -> None:
        path = tmp_path / "rules.json"
        path.write_text(
            json.dumps(
                {
                    "version": "test",
                    "rules": [{"pattern": "Vendor Risk", "category": "RISK_ASSESSMENT", "priority": 0, "match": "exact"}],
                }
            ),
            encoding="utf-8",
        )

        mapper = CategoryMapper.from_path(path)

        assert mapper.rule_set.version == "test"
        assert mapper.map("vendor risk") == CanonicalCategory.RISK_ASSESSMENT
        assert mapper.map("vendor risk review") is None
