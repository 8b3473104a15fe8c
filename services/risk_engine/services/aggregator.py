"""
Score Aggregation Service
=========================

Combines per-category sub-scores, category weights and evidence into an
overall compliance score.

Steps:
1. Validate and normalize the weight set
2. Clamp sub-scores to [0, 100]; unanswered categories count as 0
3. Discount each category by the mean tier multiplier of its evidence
4. Weighted sum of the effective category scores
5. Detect gaps (categories below threshold) and map them to vendor categories
6. Collect AI answers whose confidence is too low to accept unreviewed

Templates can also be scored from question-level answers: each question's
0-5 quality score is discounted by its best evidence tier, questions are
weighted within their section, and sections are scaled to 0-100 and
weighted into the overall score.

Aggregation is a pure function of its inputs: the same frozen evidence
always produces an equal result.

Version: 0.1.0
"""

import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from services.risk_engine.exceptions import (
    AggregationError,
    InvalidWeightsError,
    RiskEngineError,
)
from services.risk_engine.models.assessment import RiskLevel, Severity
from services.risk_engine.models.category import CanonicalCategory
from services.risk_engine.models.evidence import (
    AiExtractedAnswer,
    AnalysisStatus,
    EvidenceItem,
    EvidenceTier,
    ManualAnswer,
    UploadedDocument,
    evidence_categories,
)
from services.risk_engine.models.template import (
    MAX_QUALITY_SCORE,
    AssessmentTemplate,
    QuestionAnswer,
    TemplateSection,
)
from services.risk_engine.models.weights import CategoryWeightSet
from services.risk_engine.services.category_mapper import CategoryMapper
from services.risk_engine.services.evidence_tier import EvidenceTierClassifier, TierMultipliers
from services.risk_engine.services.risk import RiskClassifier
from services.risk_engine.services.weights import WeightValidator
from shared.config import ScoringSettings
from shared.logging import get_logger


logger = get_logger(__name__)

MAX_SCORE = 100.0


# =============================================================================
# Scoring Configuration
# =============================================================================


@dataclass
class ScoringConfig:
    """Thresholds used during aggregation."""

    weight_tolerance: float = 0.01

    # AI answers below this confidence need review
    low_confidence_threshold: float = 0.6

    # Effective category scores below the threshold are gaps
    default_gap_threshold: float = 60.0
    gap_thresholds: dict[str, float] = field(default_factory=dict)

    # Gap severity bands over the effective score (upper bound inclusive)
    severity_bands: list[tuple[float, Severity]] = field(
        default_factory=lambda: [
            (0.0, Severity.CRITICAL),
            (20.0, Severity.HIGH),
            (40.0, Severity.MEDIUM),
        ]
    )

    @classmethod
    def from_settings(cls, scoring: ScoringSettings) -> "ScoringConfig":
        return cls(
            weight_tolerance=scoring.weight_tolerance,
            low_confidence_threshold=scoring.low_confidence_threshold,
            default_gap_threshold=scoring.default_gap_threshold,
            gap_thresholds=dict(scoring.gap_thresholds),
        )

    def gap_threshold(self, category_key: str) -> float:
        return self.gap_thresholds.get(category_key, self.default_gap_threshold)

    def severity(self, score: float) -> Severity:
        for upper_bound, severity in self.severity_bands:
            if score <= upper_bound:
                return severity
        return Severity.LOW


# =============================================================================
# Results
# =============================================================================


@dataclass(frozen=True)
class Gap:
    """A category scoring below its threshold."""

    gap_category: str
    severity: Severity
    description: str
    score: float
    vendor_category: CanonicalCategory | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "gap_category": self.gap_category,
            "severity": self.severity.value,
            "description": self.description,
            "score": self.score,
            "vendor_category": self.vendor_category.value if self.vendor_category else None,
        }


@dataclass(frozen=True)
class LowConfidenceQuestion:
    """An AI answer awaiting human confirmation."""

    question_id: str
    question: str
    current_answer: str | None
    confidence: float
    section_title: str
    category: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "question_id": self.question_id,
            "question": self.question,
            "current_answer": self.current_answer,
            "confidence": self.confidence,
            "section_title": self.section_title,
            "category": self.category,
        }


@dataclass(frozen=True)
class CategoryScore:
    """Score detail for one weighted category."""

    key: str
    weight: float  # Normalized
    raw_score: float  # Clamped sub-score
    multiplier: float  # Mean evidence tier multiplier
    effective_score: float
    tier_counts: dict[str, int] = field(default_factory=dict)
    pending_count: int = 0
    self_declared_only: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {
            "key": self.key,
            "weight": self.weight,
            "raw_score": self.raw_score,
            "multiplier": self.multiplier,
            "effective_score": self.effective_score,
            "tier_counts": dict(self.tier_counts),
            "pending_count": self.pending_count,
            "self_declared_only": self.self_declared_only,
        }


@dataclass(frozen=True)
class QuestionScore:
    """One question's evidence-discounted quality score (0-5)."""

    question_id: str
    raw_quality_score: float
    tier: EvidenceTier
    multiplier: float
    final_score: float
    answered: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {
            "question_id": self.question_id,
            "raw_quality_score": self.raw_quality_score,
            "tier": self.tier.value,
            "multiplier": self.multiplier,
            "final_score": self.final_score,
            "answered": self.answered,
        }


@dataclass(frozen=True)
class SectionScore:
    """Weighted question scores of one template section."""

    section_id: str
    title: str
    key: str
    raw_score: float  # 0-5, before tier discounting
    score: float  # 0-5
    scaled_score: float  # 0-100
    question_scores: tuple[QuestionScore, ...] = ()
    total_weight: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "section_id": self.section_id,
            "title": self.title,
            "key": self.key,
            "raw_score": self.raw_score,
            "score": self.score,
            "scaled_score": self.scaled_score,
            "question_scores": [q.to_dict() for q in self.question_scores],
            "total_weight": self.total_weight,
        }


@dataclass(frozen=True)
class ScoreResult:
    """
    Complete aggregation result.

    The risk level is always derived from `overall`, never stored.
    """

    overall: float
    categories: tuple[CategoryScore, ...]
    gaps: tuple[Gap, ...]
    low_confidence_questions: tuple[LowConfidenceQuestion, ...]
    sections: tuple[SectionScore, ...] = ()

    @property
    def by_category(self) -> dict[str, float]:
        """Effective score per category, in weight order."""
        return {c.key: c.effective_score for c in self.categories}

    @property
    def risk_level(self) -> RiskLevel:
        return RiskClassifier().classify(self.overall)

    @property
    def needs_review(self) -> bool:
        return bool(self.low_confidence_questions)

    def to_dict(self) -> dict[str, Any]:
        output: dict[str, Any] = {
            "overall": self.overall,
            "by_category": self.by_category,
            "risk_level": self.risk_level.value,
            "gaps": [g.to_dict() for g in self.gaps],
            "low_confidence_answers": [q.to_dict() for q in self.low_confidence_questions],
        }
        if self.sections:
            output["sections"] = [s.to_dict() for s in self.sections]
        return output


# =============================================================================
# Aggregator
# =============================================================================


class ScoreAggregator:
    """
    Weighted, evidence-discounted score aggregation.

    Handles:
    - Weight validation and normalization
    - Tier discounting per category
    - Gap detection and vendor category mapping
    - Low-confidence answer detection
    """

    def __init__(
        self,
        config: ScoringConfig | None = None,
        tier_classifier: EvidenceTierClassifier | None = None,
        category_mapper: CategoryMapper | None = None,
    ) -> None:
        """
        Initialize the aggregator.

        Args:
            config: Thresholds (defaults used if not provided)
            tier_classifier: Evidence tier classifier
            category_mapper: Gap category mapper (bundled rules if not provided)
        """
        self.config = config or ScoringConfig()
        self.tier_classifier = tier_classifier or EvidenceTierClassifier()
        self.category_mapper = category_mapper or CategoryMapper()
        self.weight_validator = WeightValidator(self.config.weight_tolerance)

    @classmethod
    def from_settings(cls, scoring: ScoringSettings) -> "ScoreAggregator":
        """Build an aggregator from application settings."""
        return cls(
            config=ScoringConfig.from_settings(scoring),
            tier_classifier=EvidenceTierClassifier(TierMultipliers.from_settings(scoring)),
            category_mapper=CategoryMapper.from_path(scoring.category_rules_path),
        )

    def aggregate(
        self,
        sub_scores: Mapping[str, float],
        weights: CategoryWeightSet | Mapping[str, float],
        evidence: Iterable[EvidenceItem] = (),
    ) -> ScoreResult:
        """
        Compute the overall score.

        Args:
            sub_scores: Raw score (0-100) per category key
            weights: Category weights, summing to 1.0 within tolerance
            evidence: Evidence items; later items replace earlier ones with
                the same `evidence_id`

        Returns:
            ScoreResult

        Raises:
            InvalidWeightsError: If the weight set is malformed or out of tolerance
            AggregationError: On any unexpected internal fault
        """
        weight_set = self._weight_set(weights)
        self.weight_validator.require_valid(weight_set.values, context="category weights")

        try:
            return self._aggregate(sub_scores, weight_set, evidence)
        except RiskEngineError:
            raise
        except Exception as e:
            raise _internal_fault(e) from e

    def _weight_set(self, weights: CategoryWeightSet | Mapping[str, float]) -> CategoryWeightSet:
        if isinstance(weights, CategoryWeightSet):
            weight_set = weights
        else:
            try:
                weight_set = CategoryWeightSet.from_mapping(dict(weights))
            except ValueError as e:
                raise InvalidWeightsError("Invalid category weights", details={"error": str(e)}) from e

        if not weight_set.categories:
            raise InvalidWeightsError("category weights must contain at least one category")
        return weight_set

    def _aggregate(
        self,
        sub_scores: Mapping[str, float],
        weight_set: CategoryWeightSet,
        evidence: Iterable[EvidenceItem],
    ) -> ScoreResult:
        items = _latest_by_id(evidence)
        answered_manually = {i.question_id for i in items if isinstance(i, ManualAnswer)}

        # Superseded AI answers no longer count toward tiers
        scoring_items = [
            i
            for i in items
            if not (isinstance(i, AiExtractedAnswer) and i.question_id in answered_manually)
        ]

        unknown = sorted(set(sub_scores) - set(weight_set.keys))
        if unknown:
            logger.warning("unweighted_sub_scores_ignored", categories=unknown)

        normalized = self.weight_validator.normalize(weight_set.values)
        categories: list[CategoryScore] = []
        overall = 0.0

        for key, weight in zip(weight_set.keys, normalized, strict=True):
            raw = _clamp(sub_scores.get(key, 0.0))
            tiers = [
                self.tier_classifier.classify(i)
                for i in scoring_items
                if key.strip().lower() in {c.strip().lower() for c in evidence_categories(i)}
            ]
            resolved = [t for t in tiers if t.is_resolved]

            if resolved:
                multiplier = sum(self.tier_classifier.multiplier(t) for t in resolved) / len(resolved)
            else:
                multiplier = self.tier_classifier.multiplier(EvidenceTier.TIER_0)

            effective = raw * multiplier
            overall += effective * weight

            tier_counts: dict[str, int] = {}
            for t in resolved:
                tier_counts[t.value] = tier_counts.get(t.value, 0) + 1

            categories.append(
                CategoryScore(
                    key=key,
                    weight=round(weight, 6),
                    raw_score=round(raw, 2),
                    multiplier=round(multiplier, 4),
                    effective_score=round(effective, 2),
                    tier_counts=tier_counts,
                    pending_count=len(tiers) - len(resolved),
                    self_declared_only=all(t == EvidenceTier.TIER_0 for t in resolved),
                )
            )

        result = ScoreResult(
            overall=round(min(max(overall, 0.0), MAX_SCORE), 2),
            categories=tuple(categories),
            gaps=tuple(self._detect_gaps(categories)),
            low_confidence_questions=tuple(self._low_confidence(items)),
        )

        logger.info(
            "score_aggregated",
            overall=result.overall,
            risk_level=result.risk_level.value,
            categories=len(categories),
            gaps=len(result.gaps),
            low_confidence=len(result.low_confidence_questions),
        )
        return result

    # =========================================================================
    # Question-level scoring
    # =========================================================================

    def score_question(self, question_id: str, answer: QuestionAnswer | None) -> QuestionScore:
        """
        Score a question from its answer's quality and best linked tier.

        An unanswered question scores 0 at TIER_0.
        """
        if answer is None:
            tier = EvidenceTier.TIER_0
            return QuestionScore(
                question_id=question_id,
                raw_quality_score=0.0,
                tier=tier,
                multiplier=self.tier_classifier.multiplier(tier),
                final_score=0.0,
                answered=False,
            )

        tier = self.tier_classifier.best_tier(answer.evidence_tiers)
        multiplier = self.tier_classifier.multiplier(tier)
        raw = answer.raw_quality_score or 0.0
        return QuestionScore(
            question_id=question_id,
            raw_quality_score=raw,
            tier=tier,
            multiplier=multiplier,
            final_score=raw * multiplier,
        )

    def score_section(
        self,
        section: TemplateSection,
        answers: Mapping[str, QuestionAnswer],
    ) -> SectionScore:
        """
        Score a section as the weighted sum of its question scores.

        Args:
            section: Template section with weighted questions
            answers: Answers keyed by question id; missing ones score 0

        Returns:
            SectionScore on the 0-5 scale, plus its 0-100 scaling

        Raises:
            WeightsOutOfToleranceError: If the question weights do not sum to 1.0
        """
        if not section.questions:
            logger.warning("empty_section", section_id=section.section_id, title=section.title)
            return SectionScore(
                section_id=section.section_id,
                title=section.title,
                key=section.key,
                raw_score=0.0,
                score=0.0,
                scaled_score=0.0,
            )

        weights = section.question_weights
        self.weight_validator.require_valid(
            weights,
            context=f'Question weights in section "{section.title}"',
        )
        normalized = self.weight_validator.normalize(weights)

        question_scores = tuple(
            self.score_question(q.question_id, answers.get(q.question_id)) for q in section.questions
        )
        raw = sum(q.raw_quality_score * w for q, w in zip(question_scores, normalized, strict=True))
        score = sum(q.final_score * w for q, w in zip(question_scores, normalized, strict=True))

        return SectionScore(
            section_id=section.section_id,
            title=section.title,
            key=section.key,
            raw_score=round(raw, 4),
            score=round(score, 4),
            scaled_score=round(scale_score(score), 2),
            question_scores=question_scores,
            total_weight=round(self.weight_validator.sum_weights(weights), 4),
        )

    def aggregate_sections(
        self,
        template: AssessmentTemplate,
        answers: Iterable[QuestionAnswer],
        evidence: Iterable[EvidenceItem] = (),
    ) -> ScoreResult:
        """
        Compute the overall score from question-level answers.

        Each section's scaled score is the effective score of its category.
        Tier discounting already happens per question, so `evidence` only
        feeds the low-confidence check.

        Raises:
            WeightsOutOfToleranceError: If the section weights, or the question
                weights of any section, do not sum to 1.0
            AggregationError: On any unexpected internal fault
        """
        if not template.sections:
            logger.warning("template_has_no_sections", template=template.name)
            return ScoreResult(overall=0.0, categories=(), gaps=(), low_confidence_questions=())

        self.weight_validator.require_valid(
            template.section_weights,
            context=f'Section weights in template "{template.name}"',
        )

        # Later answers to the same question win
        by_question = {a.question_id: a for a in answers}

        try:
            return self._aggregate_sections(template, by_question, evidence)
        except RiskEngineError:
            raise
        except Exception as e:
            raise _internal_fault(e) from e

    def _aggregate_sections(
        self,
        template: AssessmentTemplate,
        answers: Mapping[str, QuestionAnswer],
        evidence: Iterable[EvidenceItem],
    ) -> ScoreResult:
        sections = [self.score_section(s, answers) for s in template.sections]
        normalized = self.weight_validator.normalize(template.section_weights)
        fallback = self.tier_classifier.multiplier(EvidenceTier.TIER_0)

        categories: list[CategoryScore] = []
        overall = 0.0
        for section, weight in zip(sections, normalized, strict=True):
            overall += scale_score(section.score) * weight

            questions = section.question_scores
            tier_counts: dict[str, int] = {}
            for q in questions:
                tier_counts[q.tier.value] = tier_counts.get(q.tier.value, 0) + 1

            categories.append(
                CategoryScore(
                    key=section.key,
                    weight=round(weight, 6),
                    raw_score=round(scale_score(section.raw_score), 2),
                    multiplier=round(
                        sum(q.multiplier for q in questions) / len(questions) if questions else fallback,
                        4,
                    ),
                    effective_score=section.scaled_score,
                    tier_counts=tier_counts,
                    self_declared_only=all(q.tier == EvidenceTier.TIER_0 for q in questions),
                )
            )

        result = ScoreResult(
            overall=round(min(max(overall, 0.0), MAX_SCORE), 2),
            categories=tuple(categories),
            gaps=tuple(self._detect_gaps(categories)),
            low_confidence_questions=tuple(self._low_confidence(_latest_by_id(evidence))),
            sections=tuple(sections),
        )

        logger.info(
            "sections_aggregated",
            template=template.name,
            overall=result.overall,
            risk_level=result.risk_level.value,
            sections=len(sections),
            gaps=len(result.gaps),
        )
        return result

    # =========================================================================
    # Gaps and review
    # =========================================================================

    def _detect_gaps(self, categories: list[CategoryScore]) -> list[Gap]:
        gaps = []
        for category in categories:
            threshold = self.config.gap_threshold(category.key)
            if category.effective_score >= threshold:
                continue
            gaps.append(
                Gap(
                    gap_category=category.key,
                    severity=self.config.severity(category.effective_score),
                    description=(
                        f"{category.key} scored {category.effective_score:.2f}, "
                        f"below the {threshold:g} threshold"
                    ),
                    score=category.effective_score,
                    vendor_category=self.category_mapper.map(category.key),
                )
            )
        return gaps

    def _low_confidence(self, items: list[EvidenceItem]) -> list[LowConfidenceQuestion]:
        resolved_questions = {i.question_id for i in items if isinstance(i, ManualAnswer)}
        for item in items:
            if (
                isinstance(item, UploadedDocument)
                and item.analysis_status == AnalysisStatus.ANALYZED
                and self.tier_classifier.classify(item) in (EvidenceTier.TIER_1, EvidenceTier.TIER_2)
            ):
                resolved_questions.update(item.question_ids)

        pending: dict[str, LowConfidenceQuestion] = {}
        for item in items:
            if not isinstance(item, AiExtractedAnswer):
                continue
            if item.confidence >= self.config.low_confidence_threshold:
                continue
            if item.question_id in resolved_questions:
                continue
            pending[item.question_id] = LowConfidenceQuestion(
                question_id=item.question_id,
                question=item.question,
                current_answer=item.answer,
                confidence=item.confidence,
                section_title=item.section_title,
                category=item.category,
            )

        return [pending[qid] for qid in sorted(pending)]


def scale_score(score: float, from_max: float = MAX_QUALITY_SCORE, to_max: float = MAX_SCORE) -> float:
    """Map [0, from_max] linearly onto [0, to_max], clamping the input."""
    return min(max(score, 0.0), from_max) / from_max * to_max


def _internal_fault(error: Exception) -> AggregationError:
    logger.error("aggregation_failed", error=str(error), exc_info=True)
    return AggregationError(
        AggregationError.public_message,
        details={"error_type": type(error).__name__},
    )


def _latest_by_id(evidence: Iterable[EvidenceItem]) -> list[EvidenceItem]:
    latest: dict[str, EvidenceItem] = {}
    for item in evidence:
        latest.pop(item.evidence_id, None)
        latest[item.evidence_id] = item
    return list(latest.values())


def _clamp(value: Any) -> float:
    try:
        score = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(score):
        return 0.0
    return min(max(score, 0.0), MAX_SCORE)
