"""
Evidence Tier Service
=====================

Grades evidence by how trustworthy it is.

Tiers:
- TIER_2: System generated or verified (structured exports, system records)
- TIER_1: Backed by a policy document
- TIER_0: Self-declared (manual answers, informal documents)
- PENDING: Not yet analyzed; contributes nothing to scoring

Failed document analyses never rise above PENDING, so they are left out
of scoring rather than counted as self-declared.

Version: 0.1.0
"""

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import assert_never

from services.risk_engine.models.evidence import (
    AiExtractedAnswer,
    AnalysisStatus,
    DocumentKind,
    EvidenceBasis,
    EvidenceItem,
    EvidenceTier,
    ManualAnswer,
    UploadedDocument,
)
from shared.config import ScoringSettings


# =============================================================================
# Tier Configuration
# =============================================================================


@dataclass
class TierMultipliers:
    """Score multiplier applied per evidence tier."""

    multipliers: dict[EvidenceTier, float] = field(
        default_factory=lambda: {
            EvidenceTier.TIER_0: 0.6,
            EvidenceTier.TIER_1: 0.8,
            EvidenceTier.TIER_2: 1.0,
            EvidenceTier.PENDING: 0.0,
        }
    )

    @classmethod
    def from_settings(cls, scoring: ScoringSettings) -> "TierMultipliers":
        return cls(
            multipliers={
                EvidenceTier.TIER_0: scoring.tier_0_multiplier,
                EvidenceTier.TIER_1: scoring.tier_1_multiplier,
                EvidenceTier.TIER_2: scoring.tier_2_multiplier,
                EvidenceTier.PENDING: 0.0,
            }
        )


_DOCUMENT_KIND_TIERS = {
    DocumentKind.SYSTEM_EXPORT: EvidenceTier.TIER_2,
    DocumentKind.POLICY: EvidenceTier.TIER_1,
    DocumentKind.INFORMAL: EvidenceTier.TIER_0,
}

_BASIS_TIERS = {
    EvidenceBasis.SYSTEM_RECORD: EvidenceTier.TIER_2,
    EvidenceBasis.POLICY_DOCUMENT: EvidenceTier.TIER_1,
    EvidenceBasis.NONE: EvidenceTier.TIER_0,
}


# =============================================================================
# Tier Classifier
# =============================================================================


class EvidenceTierClassifier:
    """
    Assigns evidence tiers.

    Classification is a pure function of the evidence item, so
    re-classifying a resubmitted item always reflects its latest state.
    """

    def __init__(self, multipliers: TierMultipliers | None = None) -> None:
        self.multipliers = multipliers or TierMultipliers()

    def classify(self, evidence: EvidenceItem) -> EvidenceTier:
        """
        Determine the tier of an evidence item.

        Raises:
            TypeError: If `evidence` is not a known evidence variant
        """
        if isinstance(evidence, UploadedDocument):
            return self._classify_document(evidence)
        if isinstance(evidence, ManualAnswer):
            return EvidenceTier.TIER_0
        if isinstance(evidence, AiExtractedAnswer):
            return _BASIS_TIERS[evidence.basis]
        raise TypeError(f"Unknown evidence type: {type(evidence).__name__}")

    def _classify_document(self, document: UploadedDocument) -> EvidenceTier:
        status = document.analysis_status
        if status == AnalysisStatus.PENDING or status == AnalysisStatus.FAILED:
            return EvidenceTier.PENDING
        if status == AnalysisStatus.ANALYZED:
            if document.document_kind is None:
                return EvidenceTier.TIER_0
            return _DOCUMENT_KIND_TIERS[document.document_kind]
        assert_never(status)

    def best_tier(self, tiers: Iterable[EvidenceTier]) -> EvidenceTier:
        """Highest resolved tier; TIER_0 when nothing resolved is linked."""
        present = set(tiers)
        for tier in (EvidenceTier.TIER_2, EvidenceTier.TIER_1):
            if tier in present:
                return tier
        return EvidenceTier.TIER_0

    def multiplier(self, tier: EvidenceTier) -> float:
        """Score multiplier for a tier (0 for PENDING)."""
        return self.multipliers.multipliers.get(tier, 0.0)
