"""
Risk Engine Errors
==================

Error kinds raised by the scoring engine. Each carries a stable code that
routes translate into HTTP responses.

Version: 0.1.0
"""

from typing import Any


class RiskEngineError(Exception):
    """Base error for the risk engine."""

    code = "RISK_ENGINE_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class InvalidWeightsError(RiskEngineError):
    """A weight set is malformed or fails the tolerance check."""

    code = "INVALID_WEIGHTS"


class WeightsOutOfToleranceError(InvalidWeightsError):
    """Weights do not sum to 1.0 within the allowed tolerance."""

    code = "WEIGHTS_OUT_OF_TOLERANCE"

    def __init__(self, context: str, total: float, tolerance: float) -> None:
        super().__init__(
            f"{context} sum to {total:.4f}, must equal 1.0 (±{tolerance})",
            details={"context": context, "sum": round(total, 4), "tolerance": tolerance},
        )
        self.context = context
        self.total = total
        self.tolerance = tolerance


class AggregationError(RiskEngineError):
    """Unexpected internal fault while computing a score."""

    code = "AGGREGATION_FAILURE"
    public_message = "Assessment failed, please retry"


class EvidenceAnalysisError(RiskEngineError):
    """Analysis of a single evidence item failed."""

    code = "EVIDENCE_ANALYSIS_FAILURE"

    def __init__(self, evidence_id: str, reason: str) -> None:
        super().__init__(
            f"Document {evidence_id} could not be analyzed: {reason}",
            details={"evidence_id": evidence_id, "reason": reason},
        )
        self.evidence_id = evidence_id
        self.reason = reason


class InvalidTransitionError(RiskEngineError):
    """An assessment run cannot perform the requested action in its state."""

    code = "INVALID_TRANSITION"


class RunNotFoundError(RiskEngineError):
    """No assessment run exists with the given id."""

    code = "RUN_NOT_FOUND"


class EvidenceNotFoundError(RiskEngineError):
    """No evidence item with the given id is registered on the run."""

    code = "EVIDENCE_NOT_FOUND"
