"""
Shared Models
=============

Pydantic response models shared across services.
"""

from shared.models.common import (
    BaseResponse,
    ErrorResponse,
    HealthResponse,
)

__all__ = [
    "BaseResponse",
    "ErrorResponse",
    "HealthResponse",
]
