"""
Common Models
=============

Base response models shared by the service routes.

Version: 0.1.0
"""

from datetime import UTC, datetime
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class BaseResponse(BaseModel, Generic[T]):
    """Standard API response wrapper."""

    success: bool = True
    data: T | None = None
    message: str | None = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))


class ErrorResponse(BaseModel):
    """Error response model."""

    success: bool = False
    error: str
    error_code: str | None = None
    details: dict[str, Any] | None = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))


class HealthResponse(BaseModel):
    """Service health check response."""

    status: str = "healthy"
    service: str
    version: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))

    # Component health
    components: dict[str, dict[str, Any]] = Field(default_factory=dict)

    @property
    def is_healthy(self) -> bool:
        """Check if all components are healthy."""
        if self.status != "healthy":
            return False
        return all(
            c.get("status") == "healthy" for c in self.components.values()
        )
