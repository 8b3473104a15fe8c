"""
API Models
==========

Request and response bodies for the risk engine routes.

Version: 0.1.0
"""

from typing import Any

from pydantic import BaseModel, Field

from services.risk_engine.models.assessment import RiskLevel, Severity
from services.risk_engine.models.category import CanonicalCategory, MatchKind
from services.risk_engine.models.evidence import (
    AnalysisStatus,
    DocumentKind,
    EvidenceItem,
    EvidenceSource,
    EvidenceTier,
)
from services.risk_engine.models.template import AssessmentTemplate, QuestionAnswer


# =============================================================================
# Weights
# =============================================================================


class WeightInput(BaseModel):
    """Category weight as submitted (range checked on load)."""

    key: str
    weight: float


class WeightConfig(BaseModel):
    """Weight configuration of an assessment template."""

    categories: list[WeightInput]

    def to_config(self) -> dict[str, Any]:
        return self.model_dump()


class WeightValidationResponse(BaseModel):
    """Outcome of checking a weight configuration."""

    valid: bool
    sum: float
    tolerance: float
    normalized: dict[str, float]
    error: str | None = None


# =============================================================================
# Classification
# =============================================================================


class CategoryMappingRequest(BaseModel):
    """Label to map."""

    label: str | None = None


class CategoryMappingResponse(BaseModel):
    """Mapping outcome for a label."""

    label: str | None
    vendor_category: CanonicalCategory | None = None
    matched_by: MatchKind | None = None
    pattern: str | None = None


class RiskLevelResponse(BaseModel):
    """Risk level for a score."""

    score: float
    risk_level: RiskLevel


class EvidenceTierRequest(BaseModel):
    """Evidence item to grade."""

    evidence: EvidenceItem


class EvidenceTierResponse(BaseModel):
    """Tier assigned to an evidence item."""

    evidence_id: str
    source: EvidenceSource
    tier: EvidenceTier
    multiplier: float


# =============================================================================
# Scoring
# =============================================================================


class AggregateRequest(BaseModel):
    """Inputs for a one-off score computation."""

    sub_scores: dict[str, float] = Field(default_factory=dict)
    weights: WeightConfig
    evidence: list[EvidenceItem] = Field(default_factory=list)


class GapResponse(BaseModel):
    """A detected compliance gap."""

    gap_category: str
    severity: Severity
    description: str
    score: float
    vendor_category: CanonicalCategory | None = None


class LowConfidenceAnswerResponse(BaseModel):
    """An AI answer needing confirmation."""

    question_id: str
    question: str
    current_answer: str | None = None
    confidence: float
    section_title: str
    category: str


class QuestionScoreResponse(BaseModel):
    """Score of one template question."""

    question_id: str
    raw_quality_score: float
    tier: EvidenceTier
    multiplier: float
    final_score: float
    answered: bool


class SectionScoreResponse(BaseModel):
    """Score of one template section."""

    section_id: str
    title: str
    key: str
    raw_score: float
    score: float
    scaled_score: float
    question_scores: list[QuestionScoreResponse] = Field(default_factory=list)
    total_weight: float


class ScoreResponse(BaseModel):
    """Score output."""

    overall: float
    by_category: dict[str, float]
    risk_level: RiskLevel
    gaps: list[GapResponse] = Field(default_factory=list)
    low_confidence_answers: list[LowConfidenceAnswerResponse] = Field(default_factory=list)
    sections: list[SectionScoreResponse] = Field(default_factory=list)


class SectionScoringRequest(BaseModel):
    """Inputs for scoring a template from question-level answers."""

    template: AssessmentTemplate
    answers: list[QuestionAnswer] = Field(default_factory=list)
    evidence: list[EvidenceItem] = Field(default_factory=list)


# =============================================================================
# Assessment runs
# =============================================================================


class CreateRunRequest(BaseModel):
    """Request to start an assessment run."""

    organization_id: str = Field(..., min_length=1)
    weights: WeightConfig
    sub_scores: dict[str, float] = Field(default_factory=dict)


class RegisterDocumentRequest(BaseModel):
    """An uploaded document to attach to a run."""

    document_id: str = Field(..., min_length=1)
    filename: str | None = None
    categories: list[str] = Field(default_factory=list)
    question_ids: list[str] = Field(default_factory=list)


class AnalysisResultRequest(BaseModel):
    """Result reported by the document analysis collaborator."""

    status: AnalysisStatus
    document_kind: DocumentKind | None = None
    categories: list[str] | None = None
    question_ids: list[str] | None = None
    reason: str | None = None
