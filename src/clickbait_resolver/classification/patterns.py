"""Rule-based clickbait detection."""

import re
from typing import List, Optional, Pattern, Tuple

from ..logger import get_logger

# Straight and typographic apostrophes
_APOS = "['’]"

CLICKBAIT_PATTERNS: List[Tuple[str, Pattern]] = [
    # Headlines ending with questions
    ("question", re.compile(r"\?$")),

    # "Here's why/how" explainers
    ("heres_why", re.compile(rf"here{_APOS}s\s+why", re.IGNORECASE)),
    ("heres_how", re.compile(rf"here{_APOS}s\s+how", re.IGNORECASE)),
    ("this_is_how", re.compile(r"this\s+is\s+how", re.IGNORECASE)),
    ("the_reason_is", re.compile(r"the\s+reason\s+is", re.IGNORECASE)),

    # Promising information without delivering it
    ("reveals_shocking", re.compile(r"reveals\s+(shocking|surprising)", re.IGNORECASE)),
    ("wont_believe", re.compile(rf"you\s+won{_APOS}t\s+believe", re.IGNORECASE)),
    ("what_happens_next", re.compile(r"what\s+happens\s+next", re.IGNORECASE)),

    # Vague pronouns at the start
    ("vague_this_is", re.compile(r"^this\s+is\s+\w+", re.IGNORECASE)),
    ("vague_its", re.compile(rf"^it{_APOS}s\s+\w+", re.IGNORECASE)),
    ("vague_they", re.compile(r"^they\s+\w+", re.IGNORECASE)),

    # Teasers
    ("find_out", re.compile(r"find\s+out", re.IGNORECASE)),
    ("wait_until_you_see", re.compile(r"wait\s+until\s+you\s+see", re.IGNORECASE)),
    ("leave_you_speechless", re.compile(r"will\s+leave\s+you\s+speechless", re.IGNORECASE)),
]


class PatternClassifier:
    """Flags headlines that match any of a fixed set of teaser patterns."""

    def __init__(self, patterns: Optional[List[Tuple[str, Pattern]]] = None):
        self.patterns = patterns if patterns is not None else CLICKBAIT_PATTERNS
        self.logger = get_logger()

    def match(self, text: str) -> Optional[str]:
        """
        Find the first pattern the headline matches.

        Args:
            text: Headline text

        Returns:
            Name of the matching pattern, or None
        """
        if not text:
            return None

        for name, pattern in self.patterns:
            if pattern.search(text):
                self.logger.debug(f"Headline matched pattern '{name}': {text}")
                return name

        return None

    def classify(self, text: str) -> bool:
        """Return True if the headline looks like clickbait."""
        return self.match(text) is not None
