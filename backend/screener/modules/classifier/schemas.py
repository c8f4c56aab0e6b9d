"""Normalized classifier output.

Every provider response is reduced to this shape before any policy runs, so
vendor drift stays inside the classifier module.
"""

from datetime import datetime

from pydantic import BaseModel, Field


class CategoryScore(BaseModel):
    """A single category reported by the classifier."""
    name: str = Field(..., min_length=1)
    confidence: float = Field(..., ge=0.0, le=1.0)

    class Config:
        frozen = True


class ClassificationResult(BaseModel):
    """Normalized result of one analysis call."""
    sentiment_score: float = Field(0.0, ge=-1.0, le=1.0)
    categories: tuple[CategoryScore, ...] = ()
    analyzed_at: datetime = Field(default_factory=datetime.utcnow)

    class Config:
        frozen = True

    def max_confidence(self) -> float:
        """Highest category confidence, 0.0 when no categories were reported."""
        return max((c.confidence for c in self.categories), default=0.0)
