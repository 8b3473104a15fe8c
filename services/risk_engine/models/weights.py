"""
Category Weight Models
======================

Weight configuration as supplied by assessment templates.

Version: 0.1.0
"""

from pydantic import BaseModel, ConfigDict, Field, model_validator


class CategoryWeight(BaseModel):
    """Weight of a single scoring category."""

    model_config = ConfigDict(frozen=True)

    key: str = Field(..., min_length=1)
    weight: float = Field(..., ge=0.0, le=1.0)


class CategoryWeightSet(BaseModel):
    """
    Ordered category weights.

    Order is the template's category order and drives the order of
    scores and gaps in results.
    """

    model_config = ConfigDict(frozen=True)

    categories: tuple[CategoryWeight, ...]

    @model_validator(mode="after")
    def check_unique_keys(self) -> "CategoryWeightSet":
        """Duplicate categories would be counted twice."""
        keys = [c.key for c in self.categories]
        duplicates = sorted({k for k in keys if keys.count(k) > 1})
        if duplicates:
            raise ValueError(f"duplicate category keys: {', '.join(duplicates)}")
        return self

    @classmethod
    def from_mapping(cls, weights: dict[str, float]) -> "CategoryWeightSet":
        """Build from a plain `{key: weight}` mapping."""
        return cls(categories=tuple(CategoryWeight(key=k, weight=w) for k, w in weights.items()))

    @property
    def keys(self) -> list[str]:
        """Category keys in order."""
        return [c.key for c in self.categories]

    @property
    def values(self) -> list[float]:
        """Weights in category order."""
        return [c.weight for c in self.categories]

    def as_dict(self) -> dict[str, float]:
        """Weights keyed by category."""
        return {c.key: c.weight for c in self.categories}
