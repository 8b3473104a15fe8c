"""
Risk Engine Services
====================

Services for compliance risk scoring.

Services:
- risk_engine: Weighted scoring, risk classification, gap mapping and
  the evidence re-analysis workflow
"""

__all__ = [
    "risk_engine",
]
