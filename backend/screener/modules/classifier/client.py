"""Classifier adapter.

Calls the external text-classification service with a bounded timeout and
returns a normalized ClassificationResult.
"""

import asyncio
import logging
import time
from typing import Optional

import httpx

from screener.core.config import settings
from screener.core.exceptions import ServiceUnavailable, ValidationError
from screener.core.metrics import CLASSIFIER_DURATION_SECONDS, CLASSIFIER_ERRORS_TOTAL
from screener.core.tracing import create_span, record_exception
from screener.modules.classifier.providers import ClassifierProvider, get_provider
from screener.modules.classifier.schemas import ClassificationResult

logger = logging.getLogger(__name__)


def validate_text(text: str, max_length: Optional[int] = None) -> str:
    """Reject empty or oversized text before it reaches the classifier.

    Raises:
        ValidationError: If text is blank or longer than the limit
    """
    max_length = max_length or settings.MODERATION_MAX_TEXT_LENGTH
    if text is None or not text.strip():
        raise ValidationError("Content cannot be empty or just whitespace.")
    if len(text) > max_length:
        raise ValidationError(f"Content exceeds the maximum length of {max_length} characters.")
    return text


class ClassifierClient:
    """Adapter around the external classifier HTTP API."""

    def __init__(
        self,
        provider: Optional[ClassifierProvider] = None,
        url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
        max_text_length: Optional[int] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """Initialize the classifier client.

        Args:
            provider: Vendor adapter. Uses CLASSIFIER_PROVIDER if not provided.
            url: Analysis endpoint. Uses CLASSIFIER_URL if not provided.
            api_key: Vendor API key. Uses CLASSIFIER_API_KEY if not provided.
            timeout_seconds: Upper bound for one analysis call.
            max_text_length: Longest accepted input.
            http_client: Shared httpx client (tests inject a mock transport).
        """
        self.provider = provider or get_provider(settings.CLASSIFIER_PROVIDER)
        self.url = url or settings.CLASSIFIER_URL
        self.api_key = api_key if api_key is not None else settings.CLASSIFIER_API_KEY
        self.timeout_seconds = timeout_seconds or settings.MODERATION_ANALYSIS_TIMEOUT_SECONDS
        self.max_text_length = max_text_length or settings.MODERATION_MAX_TEXT_LENGTH
        self._client = http_client or httpx.AsyncClient(timeout=self.timeout_seconds)
        self._owns_client = http_client is None

    async def analyze(self, text: str) -> ClassificationResult:
        """Analyze text and return the normalized classification.

        Raises:
            ValidationError: On empty or oversized text
            ServiceUnavailable: On network failure, timeout, HTTP error or
                an unparseable response
        """
        validate_text(text, self.max_text_length)

        start = time.perf_counter()
        with create_span(
            "classifier.analyze",
            attributes={"classifier.provider": self.provider.provider_name, "text.length": len(text)},
        ):
            try:
                payload = await asyncio.wait_for(self._request(text), timeout=self.timeout_seconds)
                result = self.provider.normalize(payload)
            except asyncio.TimeoutError as e:
                self._record_failure("timeout", e)
                raise ServiceUnavailable(
                    f"Classifier timed out after {self.timeout_seconds}s"
                ) from e
            except httpx.TimeoutException as e:
                self._record_failure("timeout", e)
                raise ServiceUnavailable(f"Classifier timed out: {e}") from e
            except httpx.HTTPStatusError as e:
                self._record_failure(f"http_{e.response.status_code}", e)
                raise ServiceUnavailable(
                    f"Classifier returned HTTP {e.response.status_code}"
                ) from e
            except httpx.HTTPError as e:
                self._record_failure("network", e)
                raise ServiceUnavailable(f"Classifier unreachable: {e}") from e
            except (ValueError, TypeError, AttributeError) as e:
                self._record_failure("malformed_response", e)
                raise ServiceUnavailable(f"Classifier returned a malformed response: {e}") from e
            finally:
                CLASSIFIER_DURATION_SECONDS.labels(provider=self.provider.provider_name).observe(
                    time.perf_counter() - start
                )

        logger.debug(
            "Text classified",
            extra={
                "provider": self.provider.provider_name,
                "sentiment_score": result.sentiment_score,
                "category_count": len(result.categories),
            },
        )
        return result

    async def _request(self, text: str) -> dict:
        response = await self._client.post(
            self.url,
            json=self.provider.build_request(text),
            headers=self.provider.headers(self.api_key),
            params=self.provider.params(self.api_key),
        )
        response.raise_for_status()
        payload = response.json()
        if not isinstance(payload, dict):
            raise ValueError("expected a JSON object")
        return payload

    def _record_failure(self, error: str, exc: Exception) -> None:
        CLASSIFIER_ERRORS_TOTAL.labels(error=error).inc()
        record_exception(exc)
        logger.warning(
            "Classifier call failed",
            extra={"provider": self.provider.provider_name, "error_kind": error, "error": str(exc)},
        )

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()


_client: Optional[ClassifierClient] = None


def get_classifier_client() -> ClassifierClient:
    """Get or create the classifier client singleton."""
    global _client
    if _client is None:
        _client = ClassifierClient()
    return _client
