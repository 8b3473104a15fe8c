"""
Risk Engine Test Suite
======================

Test organization:
- tests/services/risk_engine/   - Scoring services, workflow and HTTP routes

Run tests:
    pytest                                  # All tests
    pytest -k reanalysis                    # Subset by keyword
"""
