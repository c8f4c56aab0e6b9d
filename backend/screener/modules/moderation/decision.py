"""Decision engine.

Maps a ClassificationResult to a Verdict. The preview path and the worker
path both call `decide`, so the function must stay pure: no I/O, no clock,
no randomness.
"""

import math
from dataclasses import dataclass
from typing import Optional

from pydantic import BaseModel

from screener.core.config import settings
from screener.modules.classifier.schemas import CategoryScore, ClassificationResult


@dataclass(frozen=True)
class DecisionPolicy:
    """Thresholds for the toxicity verdict.

    Toxic when any category reaches `category_threshold`, or when sentiment is
    at or below `negative_sentiment_threshold` and some category reaches
    `supporting_category_threshold`.
    """
    category_threshold: float = 0.70
    negative_sentiment_threshold: float = -0.60
    supporting_category_threshold: float = 0.40

    @classmethod
    def from_settings(cls) -> "DecisionPolicy":
        return cls(
            category_threshold=settings.MODERATION_CATEGORY_THRESHOLD,
            negative_sentiment_threshold=settings.MODERATION_NEGATIVE_SENTIMENT_THRESHOLD,
            supporting_category_threshold=settings.MODERATION_SUPPORTING_CATEGORY_THRESHOLD,
        )


class Verdict(BaseModel):
    """Moderation decision for one piece of text."""
    is_toxic: bool
    reason: Optional[str] = None
    classification: ClassificationResult

    class Config:
        frozen = True


def display_name(category_name: str) -> str:
    """Human-readable category name.

    Hierarchical names such as "/Sensitive Subjects/Hate" keep their last
    segment.
    """
    segment = category_name.rstrip("/").rsplit("/", 1)[-1].strip()
    return segment or category_name


def format_reason(category: CategoryScore) -> str:
    """Format a flag reason, e.g. "Flagged for: Insult (82%)"."""
    percent = int(math.floor(category.confidence * 100 + 0.5))
    return f"Flagged for: {display_name(category.name)} ({percent}%)"


def _strongest(categories: tuple[CategoryScore, ...], threshold: float) -> Optional[CategoryScore]:
    """Highest-confidence category at or above threshold; ties keep list order."""
    strongest = None
    for category in categories:
        if category.confidence < threshold:
            continue
        if strongest is None or category.confidence > strongest.confidence:
            strongest = category
    return strongest


def decide(
    classification: ClassificationResult,
    policy: Optional[DecisionPolicy] = None,
) -> Verdict:
    """Compute the verdict for a classification.

    Args:
        classification: Normalized classifier output
        policy: Thresholds; defaults to the configured policy

    Returns:
        Verdict with a reason naming the strongest crossing category, or
        reason=None when not toxic
    """
    policy = policy or DecisionPolicy.from_settings()

    trigger = _strongest(classification.categories, policy.category_threshold)
    if trigger is None and classification.sentiment_score <= policy.negative_sentiment_threshold:
        trigger = _strongest(classification.categories, policy.supporting_category_threshold)

    if trigger is None:
        return Verdict(is_toxic=False, reason=None, classification=classification)

    return Verdict(
        is_toxic=True,
        reason=format_reason(trigger),
        classification=classification,
    )
