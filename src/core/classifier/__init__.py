"""Intent classification for relay events."""

from src.core.classifier.intent import (
    SLASH_CONFIDENCE,
    Classification,
    IntentClassifier,
    Outcome,
    classify_slash,
    keyword_fallback,
)
from src.core.classifier.llm import LiteLLMClient, LLMClient
from src.core.classifier.parsing import extract_json_object

__all__ = [
    "SLASH_CONFIDENCE",
    "Classification",
    "IntentClassifier",
    "LiteLLMClient",
    "LLMClient",
    "Outcome",
    "classify_slash",
    "extract_json_object",
    "keyword_fallback",
]
