"""
Assessment Models
=================

Lifecycle states and ordinal scales used by assessment runs.

Version: 0.1.0
"""

from enum import Enum


class AssessmentStatus(str, Enum):
    """Assessment run lifecycle status."""

    DRAFT = "DRAFT"
    SCORING = "SCORING"
    COMPLETED = "COMPLETED"
    NEEDS_REVIEW = "NEEDS_REVIEW"
    RESCORING = "RESCORING"
    FAILED = "FAILED"
    ACCEPTED = "ACCEPTED"
    ABANDONED = "ABANDONED"

    @property
    def is_terminal(self) -> bool:
        """Terminal runs accept no further actions."""
        return self in {
            AssessmentStatus.FAILED,
            AssessmentStatus.ACCEPTED,
            AssessmentStatus.ABANDONED,
        }


class Severity(str, Enum):
    """Gap severity."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class RiskLevel(str, Enum):
    """
    Risk level derived from a compliance score.

    Higher score means better compliance and therefore lower risk.
    """

    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"

    @property
    def rank(self) -> int:
        """Ordinal position, 0 for the worst level."""
        return _RISK_RANK[self]

    def is_worse_than(self, other: "RiskLevel") -> bool:
        """Check if this level indicates more risk than `other`."""
        return self.rank < other.rank


_RISK_RANK = {
    RiskLevel.CRITICAL: 0,
    RiskLevel.HIGH: 1,
    RiskLevel.MEDIUM: 2,
    RiskLevel.LOW: 3,
}
