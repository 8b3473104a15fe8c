"""
Weight Validation Service
=========================

Validates and normalizes the category weights that combine sub-scores
into an overall score.

Weights must sum to 1.0 within a small tolerance (0.01 by default).

Version: 0.1.0
"""

from collections.abc import Sequence
from typing import Any

from pydantic import ValidationError

from services.risk_engine.exceptions import InvalidWeightsError, WeightsOutOfToleranceError
from services.risk_engine.models.template import AssessmentTemplate
from services.risk_engine.models.weights import CategoryWeightSet
from shared.logging import get_logger


logger = get_logger(__name__)

WEIGHT_TOLERANCE = 0.01


class WeightValidator:
    """Validation and normalization of weight sequences."""

    def __init__(self, tolerance: float = WEIGHT_TOLERANCE) -> None:
        """
        Initialize the validator.

        Args:
            tolerance: Allowed absolute deviation of the sum from 1.0
        """
        self.tolerance = tolerance

    def sum_weights(self, weights: Sequence[float] | None) -> float:
        """Arithmetic sum of the weights, 0 for empty input."""
        if not weights:
            return 0.0
        return float(sum(weights))

    def is_valid(
        self,
        weights: Sequence[float] | None,
        tolerance: float | None = None,
    ) -> bool:
        """Check that the weights sum to 1.0 within tolerance."""
        if not weights:
            return False
        tol = self.tolerance if tolerance is None else tolerance
        return abs(self.sum_weights(weights) - 1.0) <= tol

    def normalize(self, weights: Sequence[float] | None) -> list[float]:
        """
        Rescale weights so they sum to 1.0.

        All-zero weights are distributed equally.
        """
        if not weights:
            return []

        total = self.sum_weights(weights)
        if total == 0:
            return [1.0 / len(weights)] * len(weights)

        return [w / total for w in weights]

    def require_valid(
        self,
        weights: Sequence[float] | None,
        context: str = "weights",
    ) -> None:
        """
        Raise if the weights are outside tolerance.

        Raises:
            WeightsOutOfToleranceError: With the actual sum and context label
        """
        total = self.sum_weights(weights)
        if abs(total - 1.0) > self.tolerance:
            logger.warning(
                "weights_out_of_tolerance",
                context=context,
                total=round(total, 4),
                tolerance=self.tolerance,
            )
            raise WeightsOutOfToleranceError(context, total, self.tolerance)

    def normalize_template(self, template: AssessmentTemplate) -> AssessmentTemplate:
        """
        Rescale a template's section weights and each section's question
        weights wherever they sum outside tolerance.

        Levels already within tolerance are left untouched.
        """
        sections = list(template.sections)
        if sections and not self.is_valid(template.section_weights):
            logger.info(
                "section_weights_normalized",
                template=template.name,
                total=round(self.sum_weights(template.section_weights), 4),
            )
            sections = [
                s.model_copy(update={"weight": w})
                for s, w in zip(sections, self.normalize(template.section_weights), strict=True)
            ]

        for i, section in enumerate(sections):
            if not section.questions or self.is_valid(section.question_weights):
                continue
            logger.info(
                "question_weights_normalized",
                template=template.name,
                section=section.title,
                total=round(self.sum_weights(section.question_weights), 4),
            )
            questions = tuple(
                q.model_copy(update={"weight": w})
                for q, w in zip(section.questions, self.normalize(section.question_weights), strict=True)
            )
            sections[i] = section.model_copy(update={"questions": questions})

        return template.model_copy(update={"sections": tuple(sections)})

    def load_weight_set(
        self,
        config: CategoryWeightSet | dict[str, Any],
        context: str = "category weights",
    ) -> CategoryWeightSet:
        """
        Parse and validate a weight configuration.

        Accepts `{"categories": [{"key": ..., "weight": ...}]}`. Called when
        a template is loaded so a bad configuration fails once, up front.

        Raises:
            InvalidWeightsError: If the configuration is malformed
            WeightsOutOfToleranceError: If the weights do not sum to 1.0
        """
        if isinstance(config, CategoryWeightSet):
            weight_set = config
        else:
            try:
                weight_set = CategoryWeightSet.model_validate(config)
            except ValidationError as e:
                raise InvalidWeightsError(
                    f"Invalid {context} configuration",
                    details={"errors": e.errors(include_url=False, include_context=False)},
                ) from e

        if not weight_set.categories:
            raise InvalidWeightsError(f"{context} must contain at least one category")

        self.require_valid(weight_set.values, context=context)
        return weight_set
