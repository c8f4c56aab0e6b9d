"""Provider adapters for the external text classifier.

Each adapter knows how to build a request for one vendor and how to reduce
that vendor's response to a ClassificationResult. Adapters never interpret
scores; malformed entries are dropped and values are clamped to range.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional

from screener.modules.classifier.schemas import CategoryScore, ClassificationResult


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def _as_float(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if number != number:  # NaN
        return None
    return number


def _category(name: Any, confidence: Any) -> Optional[CategoryScore]:
    score = _as_float(confidence)
    if not isinstance(name, str) or not name.strip() or score is None:
        return None
    return CategoryScore(name=name.strip(), confidence=_clamp(score, 0.0, 1.0))


def _categories_from_list(entries: Any) -> list[CategoryScore]:
    categories = []
    for entry in entries or []:
        if not isinstance(entry, dict):
            continue
        category = _category(entry.get("name"), entry.get("confidence"))
        if category:
            categories.append(category)
    return categories


def _sentiment(value: Any) -> float:
    score = _as_float(value)
    return 0.0 if score is None else _clamp(score, -1.0, 1.0)


class ClassifierProvider(ABC):
    """Base class for classifier vendors."""

    provider_name: str = "base"

    @abstractmethod
    def build_request(self, text: str) -> dict:
        """Build the JSON body for an analysis request."""
        pass

    @abstractmethod
    def normalize(self, payload: dict) -> ClassificationResult:
        """Reduce a vendor response to a ClassificationResult."""
        pass

    def headers(self, api_key: str) -> dict:
        return {"Authorization": f"Bearer {api_key}"} if api_key else {}

    def params(self, api_key: str) -> dict:
        return {}


class NativeProvider(ClassifierProvider):
    """In-house classifier speaking the normalized shape directly.

    Accepts both camelCase and snake_case keys.
    """

    provider_name = "native"

    def build_request(self, text: str) -> dict:
        return {"text": text}

    def normalize(self, payload: dict) -> ClassificationResult:
        sentiment = payload.get("sentimentScore", payload.get("sentiment_score"))
        return ClassificationResult(
            sentiment_score=_sentiment(sentiment),
            categories=tuple(_categories_from_list(payload.get("categories"))),
        )


class GoogleNaturalLanguageProvider(ClassifierProvider):
    """Google Cloud Natural Language `documents:annotateText`.

    Content categories and moderation categories share the
    `{name, confidence}` shape and are merged into one list.
    """

    provider_name = "google_nl"

    def build_request(self, text: str) -> dict:
        return {
            "document": {"type": "PLAIN_TEXT", "content": text},
            "features": {
                "extractDocumentSentiment": True,
                "classifyText": True,
                "moderateText": True,
            },
            "encodingType": "UTF8",
        }

    def headers(self, api_key: str) -> dict:
        return {}

    def params(self, api_key: str) -> dict:
        return {"key": api_key} if api_key else {}

    def normalize(self, payload: dict) -> ClassificationResult:
        document_sentiment = payload.get("documentSentiment") or {}
        categories = _categories_from_list(payload.get("categories"))
        categories += _categories_from_list(payload.get("moderationCategories"))
        return ClassificationResult(
            sentiment_score=_sentiment(document_sentiment.get("score")),
            categories=tuple(categories),
        )


class PerspectiveProvider(ClassifierProvider):
    """Google Perspective `comments:analyze`.

    Perspective reports no sentiment, so sentiment is neutral (0.0).
    Attribute keys such as SEVERE_TOXICITY become "Severe Toxicity".
    """

    provider_name = "perspective"

    ATTRIBUTES = (
        "TOXICITY",
        "SEVERE_TOXICITY",
        "IDENTITY_ATTACK",
        "INSULT",
        "PROFANITY",
        "THREAT",
    )

    def build_request(self, text: str) -> dict:
        return {
            "comment": {"text": text},
            "requestedAttributes": {attr: {} for attr in self.ATTRIBUTES},
            "doNotStore": True,
        }

    def headers(self, api_key: str) -> dict:
        return {}

    def params(self, api_key: str) -> dict:
        return {"key": api_key} if api_key else {}

    def normalize(self, payload: dict) -> ClassificationResult:
        categories = []
        for attribute, data in (payload.get("attributeScores") or {}).items():
            if not isinstance(data, dict):
                continue
            summary = data.get("summaryScore") or {}
            category = _category(
                attribute.replace("_", " ").title(),
                summary.get("value"),
            )
            if category:
                categories.append(category)
        return ClassificationResult(sentiment_score=0.0, categories=tuple(categories))


PROVIDERS: dict[str, type[ClassifierProvider]] = {
    NativeProvider.provider_name: NativeProvider,
    GoogleNaturalLanguageProvider.provider_name: GoogleNaturalLanguageProvider,
    PerspectiveProvider.provider_name: PerspectiveProvider,
}


def get_provider(name: str) -> ClassifierProvider:
    """Look up a provider adapter by its configured name."""
    try:
        return PROVIDERS[name]()
    except KeyError:
        raise ValueError(f"Unknown classifier provider: {name}") from None
