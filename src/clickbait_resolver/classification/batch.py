"""Batched headline classification through an external model."""

import json
import random
from typing import List, Optional, Sequence, TypeVar

from ..logger import get_logger
from ..models import ClassificationResult
from ..providers import AIProvider, ProviderAPIError
from .parsing import ResponseParseError, parse_classification_payload
from .patterns import PatternClassifier

T = TypeVar("T")

FALLBACK_CONFIDENCE = 0.7
SIMULATION_FLIP_PROBABILITY = 0.3

SYSTEM_PROMPT = """You are a news editor who detects clickbait headlines.
A headline is clickbait when it withholds information the reader needs in order to make the reader click.
For every headline you are given, decide whether it is clickbait, estimate your confidence between 0 and 1,
give a one-sentence reason, and when it is clickbait write a one or two sentence summary of what the
article most likely says, so the reader no longer needs to click.

Reply with ONLY a JSON array, one object per headline, in the same order as the input:
[{"isClickbait": true, "confidence": 0.9, "reason": "...", "summary": "..."}]
Use "summary": null for headlines that are not clickbait."""


def partition(items: Sequence[T], size: int) -> List[List[T]]:
    """
    Split items into consecutive batches of at most `size` elements.

    Args:
        items: Ordered items to split
        size: Maximum batch size (must be positive)

    Returns:
        List of batches, preserving input order
    """
    if size <= 0:
        raise ValueError(f"Batch size must be positive, got {size}")
    return [list(items[i:i + size]) for i in range(0, len(items), size)]


def build_prompt(headlines: Sequence[str]) -> str:
    """Format the headlines of one batch as a numbered list."""
    lines = [f"{i}. {json.dumps(text, ensure_ascii=False)}" for i, text in enumerate(headlines, start=1)]
    return (
        f"Classify these {len(headlines)} headlines:\n"
        + "\n".join(lines)
        + f"\n\nReturn a JSON array with exactly {len(headlines)} objects."
    )


class AIBatchClassifier:
    """Classifies headlines in batches, one model request per batch.

    Any failure of a request (transport error, non-success status or an
    unparsable reply) degrades that batch to pattern matching. Without a
    provider no request is ever made and a simulation mode is used instead.
    """

    def __init__(
        self,
        provider: Optional[AIProvider],
        pattern_classifier: Optional[PatternClassifier] = None,
        rng: Optional[random.Random] = None
    ):
        """
        Initialize batch classifier.

        Args:
            provider: Model provider, or None to run in simulation mode
            pattern_classifier: Classifier used for fallback and simulation
            rng: Random source for simulation mode
        """
        self.provider = provider
        self.pattern_classifier = pattern_classifier or PatternClassifier()
        self.rng = rng or random.Random()
        self.logger = get_logger()

    @property
    def simulated(self) -> bool:
        """True when no provider is configured."""
        return self.provider is None

    async def classify_batch(
        self,
        headlines: Sequence[str],
        batch_index: int = 0
    ) -> List[ClassificationResult]:
        """
        Classify one batch of headlines.

        Args:
            headlines: Headline texts in page order
            batch_index: Position of the batch within the current pass, for logging

        Returns:
            One ClassificationResult per headline, in input order
        """
        if not headlines:
            return []

        if self.provider is None:
            return self._simulate(headlines)

        prompt = build_prompt(headlines)

        try:
            text, usage = await self.provider.complete_async(SYSTEM_PROMPT, prompt)
        except ProviderAPIError as e:
            self.logger.warning(
                f"Batch {batch_index} ({len(headlines)} headlines, first: '{headlines[0]}') "
                f"failed, falling back to pattern matching: {e}"
            )
            return [self._fallback(headline) for headline in headlines]
        except Exception as e:
            self.logger.error(
                f"Unexpected error in batch {batch_index} ({len(headlines)} headlines), "
                f"falling back to pattern matching: {e}",
                exc_info=True
            )
            return [self._fallback(headline) for headline in headlines]

        self.logger.debug(
            f"Batch {batch_index}: {usage.get('input_tokens', 0)} input tokens, "
            f"{usage.get('output_tokens', 0)} output tokens"
        )

        try:
            parsed = parse_classification_payload(text)
        except ResponseParseError as e:
            self.logger.warning(
                f"Batch {batch_index} returned an unusable response, "
                f"falling back to pattern matching: {e}"
            )
            self.logger.debug(f"Unparsed response for batch {batch_index}: {text[:500]}")
            return [self._fallback(headline) for headline in headlines]

        if len(parsed) != len(headlines):
            self.logger.warning(
                f"Batch {batch_index} returned {len(parsed)} results for "
                f"{len(headlines)} headlines; matching by position"
            )

        results = []
        for position, headline in enumerate(headlines):
            result = parsed[position] if position < len(parsed) else None
            if result is None:
                self.logger.warning(
                    f"Batch {batch_index} has no usable result for '{headline}', using fallback"
                )
                result = self._fallback(headline)
            results.append(result)

        return results

    def _fallback(self, headline: str) -> ClassificationResult:
        matched = self.pattern_classifier.match(headline)
        reason = "Fallback to pattern matching (AI classification unavailable)"
        if matched:
            reason += f"; matched '{matched}'"
        return ClassificationResult(
            is_clickbait=matched is not None,
            confidence=FALLBACK_CONFIDENCE,
            reason=reason,
            source="fallback"
        )

    def _simulate(self, headlines: Sequence[str]) -> List[ClassificationResult]:
        self.logger.debug(f"Simulating classification for {len(headlines)} headlines")

        results = []
        for headline in headlines:
            is_clickbait = self.pattern_classifier.classify(headline)
            if self.rng.random() < SIMULATION_FLIP_PROBABILITY:
                is_clickbait = not is_clickbait

            summary = None
            if is_clickbait:
                summary = (
                    f"[Simulated summary] No model was consulted for \"{headline}\". "
                    f"Configure an API key to get a real summary."
                )

            results.append(ClassificationResult(
                is_clickbait=is_clickbait,
                confidence=self.rng.uniform(0.5, 1.0),
                reason="[Simulated] No API key configured; result is random around pattern matching",
                summary=summary,
                source="simulation"
            ))

        return results
