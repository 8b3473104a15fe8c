"""
Risk Classification Service
===========================

Maps an overall compliance score (0-100) to a risk level.

Bands (lower bound inclusive):
- score < 30        -> CRITICAL
- 30 <= score < 60  -> HIGH
- 60 <= score < 80  -> MEDIUM
- score >= 80       -> LOW

Out-of-range input is clamped toward the worse case: negative and
unreadable scores are CRITICAL, scores above 100 are LOW.

Version: 0.1.0
"""

import math
from typing import Any

from services.risk_engine.models.assessment import RiskLevel


# (lower bound, level), best band first
RISK_BANDS: tuple[tuple[float, RiskLevel], ...] = (
    (80.0, RiskLevel.LOW),
    (60.0, RiskLevel.MEDIUM),
    (30.0, RiskLevel.HIGH),
)


class RiskClassifier:
    """Score to risk level classification."""

    def __init__(self, bands: tuple[tuple[float, RiskLevel], ...] = RISK_BANDS) -> None:
        self.bands = bands

    def classify(self, score: Any) -> RiskLevel:
        """Classify a score; never raises."""
        try:
            value = float(score)
        except (TypeError, ValueError):
            return RiskLevel.CRITICAL

        if math.isnan(value):
            return RiskLevel.CRITICAL

        for lower_bound, level in self.bands:
            if value >= lower_bound:
                return level
        return RiskLevel.CRITICAL


_default_classifier = RiskClassifier()


def classify_risk(score: Any) -> RiskLevel:
    """Classify with the default bands."""
    return _default_classifier.classify(score)
