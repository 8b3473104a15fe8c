"""
Risk Engine Routes
==================

API route handlers for the Risk Engine Service.
"""

from services.risk_engine.routes import assessments, scoring


__all__ = ["assessments", "scoring"]
