"""
Risk Classifier Tests
=====================

Tests for score to risk level classification.

Version: 0.1.0
"""

import pytest

from services.risk_engine.models.assessment import RiskLevel
from services.risk_engine.services.risk import RiskClassifier, classify_risk


@pytest.fixture
def classifier() -> RiskClassifier:
    return RiskClassifier()


class TestRiskBands:
    """Tests for band boundaries."""

    @pytest.mark.parametrize(
        ("score", "expected"),
        [
            (0, RiskLevel.CRITICAL),
            (29, RiskLevel.CRITICAL),
            (29.99, RiskLevel.CRITICAL),
            (30, RiskLevel.HIGH),
            (59, RiskLevel.HIGH),
            (60, RiskLevel.MEDIUM),
            (79, RiskLevel.MEDIUM),
            (80, RiskLevel.LOW),
            (100, RiskLevel.LOW),
        ],
    )
    def test_band(self, classifier: RiskClassifier, score: float, expected: RiskLevel) -> None:
        assert classifier.classify(score) == expected

    def test_out_of_range(self, classifier: RiskClassifier) -> None:
        assert classifier.classify(-10) == RiskLevel.CRITICAL
        assert classifier.classify(110) == RiskLevel.LOW

    @pytest.mark.parametrize("score", [float("nan"), None, "high", object()])
    def test_unreadable_scores_are_critical(self, classifier: RiskClassifier, score: object) -> None:
        assert classifier.classify(score) == RiskLevel.CRITICAL

    def test_numeric_strings(self, classifier: RiskClassifier) -> None:
        assert classifier.classify("85") == RiskLevel.LOW

    def test_module_shortcut(self) -> None:
        assert classify_risk(65) == RiskLevel.MEDIUM


class TestRiskLevelOrdering:
    """Tests for ordinal comparison."""

    def test_critical_is_worst(self) -> None:
        assert RiskLevel.CRITICAL.is_worse_than(RiskLevel.HIGH)
        assert RiskLevel.HIGH.is_worse_than(RiskLevel.MEDIUM)
        assert RiskLevel.MEDIUM.is_worse_than(RiskLevel.LOW)
        assert not RiskLevel.LOW.is_worse_than(RiskLevel.CRITICAL)

    def test_monotonic(self, classifier: RiskClassifier) -> None:
        """A higher score never yields a worse level."""
        levels = [classifier.classify(s) for s in range(0, 101)]

        for lower, higher in zip(levels, levels[1:]):
            assert not higher.is_worse_than(lower)
