"""Classification package: pattern rules and batched model classification."""

from .patterns import PatternClassifier, CLICKBAIT_PATTERNS
from .parsing import ResponseParseError, parse_classification_payload, strip_code_fence
from .batch import AIBatchClassifier, FALLBACK_CONFIDENCE, partition

__all__ = [
    'PatternClassifier',
    'CLICKBAIT_PATTERNS',
    'ResponseParseError',
    'parse_classification_payload',
    'strip_code_fence',
    'AIBatchClassifier',
    'FALLBACK_CONFIDENCE',
    'partition'
]
