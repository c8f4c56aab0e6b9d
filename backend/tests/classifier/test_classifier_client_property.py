"""Property-based tests for the classifier adapter.

**Feature: content-screener, Property 3: Classifier Normalization**
**Feature: content-screener, Property 4: Classifier Failure Mapping**
"""

import asyncio
import json

import httpx
import pytest
from hypothesis import given, settings, strategies as st

from screener.core.exceptions import ServiceUnavailable, ValidationError
from screener.modules.classifier.client import ClassifierClient, validate_text
from screener.modules.classifier.providers import (
    GoogleNaturalLanguageProvider,
    NativeProvider,
    PerspectiveProvider,
    get_provider,
)

URL = "http://classifier.test/v1/analyze"


def _client(handler, provider=None, timeout: float = 2.0) -> ClassifierClient:
    return ClassifierClient(
        provider=provider or NativeProvider(),
        url=URL,
        api_key="secret",
        timeout_seconds=timeout,
        max_text_length=10000,
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )


class TestInputValidation:
    @pytest.mark.parametrize("text", ["", "   ", "\n\t"])
    def test_blank_text_rejected(self, text: str) -> None:
        with pytest.raises(ValidationError):
            validate_text(text, 10000)

    def test_oversized_text_rejected(self) -> None:
        with pytest.raises(ValidationError):
            validate_text("x" * 10001, 10000)

    def test_text_at_limit_accepted(self) -> None:
        assert validate_text("x" * 10000, 10000) == "x" * 10000

    @pytest.mark.asyncio
    async def test_invalid_text_never_reaches_classifier(self) -> None:
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200, json={})

        with pytest.raises(ValidationError):
            await _client(handler).analyze("   ")
        assert calls == []


class TestNormalization:
    """**Feature: content-screener, Property 3: Classifier Normalization**"""

    @given(
        sentiment=st.floats(min_value=-10.0, max_value=10.0, allow_nan=False),
        confidences=st.lists(st.floats(min_value=-5.0, max_value=5.0, allow_nan=False), max_size=5),
    )
    @settings(max_examples=100)
    def test_native_values_clamped_to_range(self, sentiment: float, confidences: list[float]) -> None:
        payload = {
            "sentimentScore": sentiment,
            "categories": [{"name": f"cat{i}", "confidence": c} for i, c in enumerate(confidences)],
        }
        result = NativeProvider().normalize(payload)
        assert -1.0 <= result.sentiment_score <= 1.0
        assert len(result.categories) == len(confidences)
        assert all(0.0 <= c.confidence <= 1.0 for c in result.categories)

    def test_native_accepts_snake_case(self) -> None:
        result = NativeProvider().normalize(
            {"sentiment_score": -0.4, "categories": [{"name": "Insult", "confidence": 0.8}]}
        )
        assert result.sentiment_score == -0.4
        assert result.categories[0].name == "Insult"

    def test_malformed_entries_dropped(self) -> None:
        result = NativeProvider().normalize(
            {
                "sentimentScore": "bad",
                "categories": [
                    {"name": "", "confidence": 0.9},
                    {"name": "Toxic", "confidence": None},
                    {"name": "Insult", "confidence": True},
                    "nonsense",
                    {"name": "Threat", "confidence": "0.75"},
                ],
            }
        )
        assert result.sentiment_score == 0.0
        assert [c.name for c in result.categories] == ["Threat"]
        assert result.categories[0].confidence == 0.75

    def test_empty_response_is_neutral(self) -> None:
        result = NativeProvider().normalize({})
        assert result.sentiment_score == 0.0
        assert result.categories == ()

    def test_google_merges_category_lists(self) -> None:
        result = GoogleNaturalLanguageProvider().normalize(
            {
                "documentSentiment": {"score": -0.7, "magnitude": 1.2},
                "categories": [{"name": "/People & Society", "confidence": 0.5}],
                "moderationCategories": [{"name": "Toxic", "confidence": 0.9}],
            }
        )
        assert result.sentiment_score == -0.7
        assert [c.name for c in result.categories] == ["/People & Society", "Toxic"]

    def test_perspective_attribute_names(self) -> None:
        result = PerspectiveProvider().normalize(
            {"attributeScores": {"SEVERE_TOXICITY": {"summaryScore": {"value": 0.93}}}}
        )
        assert result.sentiment_score == 0.0
        assert result.categories[0].name == "Severe Toxicity"
        assert result.categories[0].confidence == 0.93

    def test_unknown_provider(self) -> None:
        with pytest.raises(ValueError):
            get_provider("nope")


class TestClientCalls:
    """**Feature: content-screener, Property 4: Classifier Failure Mapping**"""

    @pytest.mark.asyncio
    async def test_successful_call(self) -> None:
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["body"] = json.loads(request.content)
            seen["auth"] = request.headers.get("Authorization")
            return httpx.Response(
                200,
                json={"sentimentScore": -0.2, "categories": [{"name": "Insult", "confidence": 0.82}]},
            )

        result = await _client(handler).analyze("you are awful")

        assert seen["body"] == {"text": "you are awful"}
        assert seen["auth"] == "Bearer secret"
        assert result.categories[0].name == "Insult"

    @pytest.mark.asyncio
    async def test_google_key_sent_as_query_param(self) -> None:
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["key"] = request.url.params.get("key")
            return httpx.Response(200, json={"documentSentiment": {"score": 0.1}})

        await _client(handler, provider=GoogleNaturalLanguageProvider()).analyze("hello")
        assert seen["key"] == "secret"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status_code", [400, 429, 500, 503])
    async def test_http_errors_map_to_service_unavailable(self, status_code: int) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(status_code, json={"error": "boom"})

        with pytest.raises(ServiceUnavailable):
            await _client(handler).analyze("hello")

    @pytest.mark.asyncio
    async def test_network_error_maps_to_service_unavailable(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(ServiceUnavailable):
            await _client(handler).analyze("hello")

    @pytest.mark.asyncio
    async def test_transport_timeout_maps_to_service_unavailable(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(ServiceUnavailable):
            await _client(handler).analyze("hello")

    @pytest.mark.asyncio
    async def test_slow_classifier_bounded_by_timeout(self) -> None:
        async def handler(request: httpx.Request) -> httpx.Response:
            await asyncio.sleep(5)
            return httpx.Response(200, json={})

        with pytest.raises(ServiceUnavailable):
            await _client(handler, timeout=0.05).analyze("hello")

    @pytest.mark.asyncio
    async def test_non_object_response_is_unavailable(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=[1, 2, 3])

        with pytest.raises(ServiceUnavailable):
            await _client(handler).analyze("hello")

    @pytest.mark.asyncio
    async def test_invalid_json_is_unavailable(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=b"<html>oops</html>")

        with pytest.raises(ServiceUnavailable):
            await _client(handler).analyze("hello")
