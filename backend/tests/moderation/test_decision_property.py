"""Property-based tests for the moderation decision engine.

**Feature: content-screener, Property 1: Toxicity Verdict Thresholds**
**Feature: content-screener, Property 2: Verdict Determinism**
"""

import math

from hypothesis import given, settings, strategies as st

from screener.modules.classifier.schemas import CategoryScore, ClassificationResult
from screener.modules.moderation.decision import (
    DecisionPolicy,
    decide,
    display_name,
    format_reason,
)

POLICY = DecisionPolicy()

category_names = st.sampled_from(
    ["Toxic", "Insult", "Profanity", "/Sensitive Subjects/Hate", "Threat", "Identity Attack"]
)
confidences = st.floats(min_value=0.0, max_value=1.0, allow_nan=False)
sentiments = st.floats(min_value=-1.0, max_value=1.0, allow_nan=False)

category_strategy = st.builds(CategoryScore, name=category_names, confidence=confidences)
classification_strategy = st.builds(
    ClassificationResult,
    sentiment_score=sentiments,
    categories=st.lists(category_strategy, max_size=6).map(tuple),
)


def _classification(sentiment: float, *categories: tuple[str, float]) -> ClassificationResult:
    return ClassificationResult(
        sentiment_score=sentiment,
        categories=tuple(CategoryScore(name=n, confidence=c) for n, c in categories),
    )


class TestToxicityThresholds:
    """**Feature: content-screener, Property 1: Toxicity Verdict Thresholds**"""

    @given(classification=classification_strategy)
    @settings(max_examples=200)
    def test_verdict_matches_threshold_rule(self, classification: ClassificationResult) -> None:
        verdict = decide(classification, POLICY)

        high = any(c.confidence >= 0.70 for c in classification.categories)
        supported_negative = classification.sentiment_score <= -0.60 and any(
            c.confidence >= 0.40 for c in classification.categories
        )
        assert verdict.is_toxic == (high or supported_negative)

    @given(classification=classification_strategy)
    @settings(max_examples=200)
    def test_reason_present_iff_toxic(self, classification: ClassificationResult) -> None:
        verdict = decide(classification, POLICY)
        if verdict.is_toxic:
            assert verdict.reason is not None
            assert verdict.reason.startswith("Flagged for: ")
        else:
            assert verdict.reason is None

    @given(sentiment=sentiments)
    @settings(max_examples=50)
    def test_no_categories_is_never_toxic(self, sentiment: float) -> None:
        assert decide(_classification(sentiment), POLICY).is_toxic is False

    def test_high_confidence_category_is_toxic(self) -> None:
        verdict = decide(_classification(0.1, ("Insult", 0.82)), POLICY)
        assert verdict.is_toxic
        assert verdict.reason == "Flagged for: Insult (82%)"

    def test_threshold_is_inclusive(self) -> None:
        assert decide(_classification(0.0, ("Toxic", 0.70)), POLICY).is_toxic

    def test_negative_sentiment_with_supporting_category(self) -> None:
        verdict = decide(_classification(-0.8, ("Profanity", 0.45)), POLICY)
        assert verdict.is_toxic
        assert verdict.reason == "Flagged for: Profanity (45%)"

    def test_negative_sentiment_without_supporting_category(self) -> None:
        assert not decide(_classification(-0.9, ("Profanity", 0.39)), POLICY).is_toxic

    def test_mildly_negative_sentiment_is_not_enough(self) -> None:
        assert not decide(_classification(-0.59, ("Profanity", 0.65)), POLICY).is_toxic

    def test_reason_names_strongest_crossing_category(self) -> None:
        verdict = decide(
            _classification(0.0, ("Toxic", 0.75), ("Threat", 0.91), ("Insult", 0.3)),
            POLICY,
        )
        assert verdict.reason == "Flagged for: Threat (91%)"

    def test_ties_keep_first_category(self) -> None:
        verdict = decide(_classification(0.0, ("Toxic", 0.8), ("Insult", 0.8)), POLICY)
        assert verdict.reason == "Flagged for: Toxic (80%)"

    def test_custom_policy(self) -> None:
        strict = DecisionPolicy(category_threshold=0.5)
        assert decide(_classification(0.0, ("Toxic", 0.55)), strict).is_toxic
        assert not decide(_classification(0.0, ("Toxic", 0.55)), POLICY).is_toxic


class TestVerdictDeterminism:
    """**Feature: content-screener, Property 2: Verdict Determinism**"""

    @given(classification=classification_strategy)
    @settings(max_examples=100)
    def test_same_classification_same_verdict(self, classification: ClassificationResult) -> None:
        first = decide(classification, POLICY)
        second = decide(classification, POLICY)
        assert first == second


class TestReasonFormatting:
    def test_hierarchical_names_keep_last_segment(self) -> None:
        assert display_name("/Sensitive Subjects/Hate") == "Hate"
        assert display_name("Insult") == "Insult"

    @given(confidence=confidences)
    @settings(max_examples=100)
    def test_percentage_is_rounded(self, confidence: float) -> None:
        reason = format_reason(CategoryScore(name="Toxic", confidence=confidence))
        percent = int(reason[reason.index("(") + 1:reason.index("%")])
        assert percent == int(math.floor(confidence * 100 + 0.5))
        assert 0 <= percent <= 100
