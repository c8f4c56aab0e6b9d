"""Classifier adapter module.

Wraps the external text-classification service and normalizes its output.
"""

from screener.modules.classifier.client import ClassifierClient, get_classifier_client, validate_text
from screener.modules.classifier.providers import (
    ClassifierProvider,
    GoogleNaturalLanguageProvider,
    NativeProvider,
    PerspectiveProvider,
    get_provider,
)
from screener.modules.classifier.schemas import CategoryScore, ClassificationResult

__all__ = [
    "ClassifierClient",
    "get_classifier_client",
    "validate_text",
    "ClassifierProvider",
    "GoogleNaturalLanguageProvider",
    "NativeProvider",
    "PerspectiveProvider",
    "get_provider",
    "CategoryScore",
    "ClassificationResult",
]
