"""
Scoring Routes
==============

Stateless endpoints for weight validation, category mapping, risk level
and evidence tier classification, one-off score aggregation, and
question-level template scoring.

Version: 0.1.0
"""

from fastapi import APIRouter, Depends, Query

from services.risk_engine.dependencies import get_aggregator
from services.risk_engine.exceptions import WeightsOutOfToleranceError
from services.risk_engine.models.api import (
    AggregateRequest,
    CategoryMappingRequest,
    CategoryMappingResponse,
    EvidenceTierRequest,
    EvidenceTierResponse,
    RiskLevelResponse,
    ScoreResponse,
    SectionScoringRequest,
    WeightConfig,
    WeightValidationResponse,
)
from services.risk_engine.models.template import AssessmentTemplate
from services.risk_engine.services.aggregator import ScoreAggregator
from services.risk_engine.services.risk import RiskClassifier
from services.risk_engine.services.weights import WeightValidator
from shared.logging import get_logger


logger = get_logger(__name__)

router = APIRouter()


@router.post("/weights/validate", response_model=WeightValidationResponse)
async def validate_weights(
    config: WeightConfig,
    aggregator: ScoreAggregator = Depends(get_aggregator),
) -> WeightValidationResponse:
    """
    Validate a weight configuration.

    Weights outside tolerance are reported as invalid rather than
    rejected. Malformed configurations return 422.
    """
    validator: WeightValidator = aggregator.weight_validator
    keys = [c.key for c in config.categories]
    values = [c.weight for c in config.categories]
    error: str | None = None

    try:
        validator.load_weight_set(config.to_config())
    except WeightsOutOfToleranceError as e:
        error = e.message

    return WeightValidationResponse(
        valid=error is None,
        sum=round(validator.sum_weights(values), 4),
        tolerance=validator.tolerance,
        normalized=dict(zip(keys, validator.normalize(values), strict=True)),
        error=error,
    )


@router.post("/categories/map", response_model=CategoryMappingResponse)
async def map_category(
    request: CategoryMappingRequest,
    aggregator: ScoreAggregator = Depends(get_aggregator),
) -> CategoryMappingResponse:
    """Map a gap category label to a vendor category."""
    match = aggregator.category_mapper.explain(request.label)
    if match is None:
        return CategoryMappingResponse(label=request.label)

    return CategoryMappingResponse(
        label=request.label,
        vendor_category=match.category,
        matched_by=match.match,
        pattern=match.pattern,
    )


@router.get("/risk-level", response_model=RiskLevelResponse)
async def get_risk_level(
    score: float = Query(..., allow_inf_nan=False, description="Overall compliance score (0-100)"),
) -> RiskLevelResponse:
    """Classify a score into a risk level."""
    return RiskLevelResponse(score=score, risk_level=RiskClassifier().classify(score))


@router.post("/evidence/tier", response_model=EvidenceTierResponse)
async def classify_evidence(
    request: EvidenceTierRequest,
    aggregator: ScoreAggregator = Depends(get_aggregator),
) -> EvidenceTierResponse:
    """Assign a trust tier to an evidence item."""
    classifier = aggregator.tier_classifier
    tier = classifier.classify(request.evidence)

    return EvidenceTierResponse(
        evidence_id=request.evidence.evidence_id,
        source=request.evidence.source_type,
        tier=tier,
        multiplier=classifier.multiplier(tier),
    )


@router.post("/aggregate", response_model=ScoreResponse)
async def aggregate_score(
    request: AggregateRequest,
    aggregator: ScoreAggregator = Depends(get_aggregator),
) -> ScoreResponse:
    """
    Compute a score without creating an assessment run.

    Returns the overall and per-category scores, risk level, gaps and
    low-confidence answers.
    """
    weights = aggregator.weight_validator.load_weight_set(request.weights.to_config())
    result = aggregator.aggregate(request.sub_scores, weights, request.evidence)

    logger.debug(
        "adhoc_score_calculated",
        overall=result.overall,
        risk_level=result.risk_level.value,
    )
    return ScoreResponse.model_validate(result.to_dict())


@router.post("/templates/normalize", response_model=AssessmentTemplate)
async def normalize_template(
    template: AssessmentTemplate,
    aggregator: ScoreAggregator = Depends(get_aggregator),
) -> AssessmentTemplate:
    """Rescale section and question weights that sum outside tolerance."""
    return aggregator.weight_validator.normalize_template(template)


@router.post("/sections", response_model=ScoreResponse)
async def score_sections(
    request: SectionScoringRequest,
    aggregator: ScoreAggregator = Depends(get_aggregator),
) -> ScoreResponse:
    """
    Score a template from question-level answers.

    Each question's 0-5 quality score is discounted by its best evidence
    tier; sections are weighted, scaled to 0-100 and combined. Weights
    outside tolerance at either level return 422.
    """
    result = aggregator.aggregate_sections(request.template, request.answers, request.evidence)

    logger.debug(
        "template_score_calculated",
        template=request.template.name,
        overall=result.overall,
        risk_level=result.risk_level.value,
    )
    return ScoreResponse.model_validate(result.to_dict())
