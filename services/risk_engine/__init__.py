"""
Risk Engine Service
===================

Compliance risk scoring and classification service.

Features:
- Weighted category scoring with evidence tier discounting
- Risk level classification
- Gap detection mapped to vendor categories
- Low-confidence answer review workflow
- Re-scoring as documents and answers arrive

Port: 8010
"""

__version__ = "0.1.0"
