"""
Risk Engine Dependencies
========================

Process-wide service instances for route handlers.

Version: 0.1.0
"""

from services.risk_engine.services.aggregator import ScoreAggregator
from services.risk_engine.services.reanalysis import ReanalysisOrchestrator
from shared.config import settings


# Global instances
_aggregator: ScoreAggregator | None = None
_orchestrator: ReanalysisOrchestrator | None = None


def get_aggregator() -> ScoreAggregator:
    """
    Get the configured score aggregator.

    Creates and caches the instance on first call.
    """
    global _aggregator

    if _aggregator is None:
        _aggregator = ScoreAggregator.from_settings(settings.scoring)
    return _aggregator


def get_orchestrator() -> ReanalysisOrchestrator:
    """
    Get the assessment run orchestrator.

    Runs are held in memory by this instance.
    """
    global _orchestrator

    if _orchestrator is None:
        _orchestrator = ReanalysisOrchestrator(
            aggregator=get_aggregator(),
            analysis_timeout_seconds=settings.scoring.analysis_timeout_seconds,
        )
    return _orchestrator


def reset() -> None:
    """Drop cached instances (used by tests)."""
    global _aggregator, _orchestrator

    _aggregator = None
    _orchestrator = None
