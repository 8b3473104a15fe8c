"""
Risk Engine Models
==================

Domain models for compliance risk scoring.

Modules:
- category: Canonical vendor categories and mapping rules
- evidence: Evidence variants and trust tiers
- assessment: Run lifecycle states, severities and risk levels
- weights: Category weight configuration
- template: Weighted sections and questions for question-level scoring

Version: 0.1.0
"""

from services.risk_engine.models.assessment import (
    AssessmentStatus,
    RiskLevel,
    Severity,
)
from services.risk_engine.models.category import (
    CanonicalCategory,
    CategoryRule,
    CategoryRuleSet,
    MatchKind,
)
from services.risk_engine.models.evidence import (
    AiExtractedAnswer,
    AnalysisStatus,
    DocumentKind,
    EvidenceBasis,
    EvidenceItem,
    EvidenceSource,
    EvidenceTier,
    ManualAnswer,
    UploadedDocument,
    evidence_adapter,
)
from services.risk_engine.models.template import (
    MAX_QUALITY_SCORE,
    AssessmentTemplate,
    QuestionAnswer,
    TemplateQuestion,
    TemplateSection,
)
from services.risk_engine.models.weights import (
    CategoryWeight,
    CategoryWeightSet,
)

__all__ = [
    # Assessment
    "AssessmentStatus",
    "RiskLevel",
    "Severity",
    # Category
    "CanonicalCategory",
    "CategoryRule",
    "CategoryRuleSet",
    "MatchKind",
    # Evidence
    "AiExtractedAnswer",
    "AnalysisStatus",
    "DocumentKind",
    "EvidenceBasis",
    "EvidenceItem",
    "EvidenceSource",
    "EvidenceTier",
    "ManualAnswer",
    "UploadedDocument",
    "evidence_adapter",
    # Weights
    "CategoryWeight",
    "CategoryWeightSet",
    # Template
    "AssessmentTemplate",
    "MAX_QUALITY_SCORE",
    "QuestionAnswer",
    "TemplateQuestion",
    "TemplateSection",
]
