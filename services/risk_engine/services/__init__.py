"""
Risk Engine Services
====================

Scoring and classification logic for compliance risk assessment.

Services:
- WeightValidator: Category weight validation and normalization
- CategoryMapper: Gap label to vendor category mapping
- RiskClassifier: Score to risk level classification
- EvidenceTierClassifier: Evidence trust grading
- ScoreAggregator: Weighted, evidence-discounted scoring
- ReanalysisOrchestrator: Assessment run workflow

Version: 0.1.0
"""

from services.risk_engine.services.aggregator import (
    CategoryScore,
    Gap,
    LowConfidenceQuestion,
    QuestionScore,
    ScoreAggregator,
    ScoreResult,
    ScoringConfig,
    SectionScore,
    scale_score,
)
from services.risk_engine.services.category_mapper import (
    CategoryMapper,
    CategoryMatch,
)
from services.risk_engine.services.evidence_tier import (
    EvidenceTierClassifier,
    TierMultipliers,
)
from services.risk_engine.services.reanalysis import (
    AssessmentRun,
    AssessmentWorkflow,
    EvidenceFailure,
    EvidenceSubmission,
    ReanalysisOrchestrator,
    WorkflowAction,
)
from services.risk_engine.services.risk import RiskClassifier, classify_risk
from services.risk_engine.services.weights import WEIGHT_TOLERANCE, WeightValidator


__all__ = [
    # Weights
    "WeightValidator",
    "WEIGHT_TOLERANCE",
    # Categories
    "CategoryMapper",
    "CategoryMatch",
    # Risk
    "RiskClassifier",
    "classify_risk",
    # Evidence
    "EvidenceTierClassifier",
    "TierMultipliers",
    # Aggregation
    "ScoreAggregator",
    "ScoringConfig",
    "ScoreResult",
    "CategoryScore",
    "Gap",
    "LowConfidenceQuestion",
    "QuestionScore",
    "SectionScore",
    "scale_score",
    # Workflow
    "ReanalysisOrchestrator",
    "AssessmentWorkflow",
    "AssessmentRun",
    "EvidenceSubmission",
    "EvidenceFailure",
    "WorkflowAction",
]
