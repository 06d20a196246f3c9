"""Headline element discovery and article link resolution."""

from typing import List, Optional, Tuple
from urllib.parse import urljoin

from bs4 import Comment, Tag

from ..config import DEFAULT_SELECTORS
from ..logger import get_logger, log_timing
from .document import PageDocument

# Classes of nodes added by HeadlineRenderer; their text is not headline text
INJECTED_CLASSES = frozenset({"clickbait-indicator", "clickbait-summary"})


def _is_injected(node, root: Tag) -> bool:
    parent = node.parent
    while parent is not None and parent is not root:
        if INJECTED_CLASSES.intersection(parent.get("class") or []):
            return True
        parent = parent.parent
    return False


def headline_text(element: Tag) -> str:
    """Text content of a headline element, ignoring injected annotations."""
    parts = [
        str(node) for node in element.find_all(string=True)
        if not isinstance(node, Comment) and not _is_injected(node, element)
    ]
    return "".join(parts)


class ElementDiscovery:
    """Finds headline candidates in a page using a fixed list of selectors."""

    def __init__(self, document: PageDocument, selectors: Optional[List[str]] = None):
        """
        Initialize element discovery.

        Args:
            document: Page to search
            selectors: Ordered CSS selectors for headline elements
        """
        self.document = document
        self.selectors = list(selectors or DEFAULT_SELECTORS)
        self.logger = get_logger()

    def find_candidates(self) -> List[Tuple[Tag, str]]:
        """
        Find headline elements in document order.

        Returns:
            List of (element, raw_text) tuples
        """
        with log_timing("find_candidates"):
            elements = self.document.select(self.selectors)

        self.logger.debug(f"Selectors {self.selectors} matched {len(elements)} elements")
        return [(element, headline_text(element)) for element in elements]

    def find_article_link(self, element: Tag) -> Optional[str]:
        """
        Find the article URL for a headline.

        Looks for a link inside the headline first, then walks up the
        ancestor chain until the body.

        Args:
            element: Headline element

        Returns:
            Absolute URL when a base URL is known, otherwise the raw href; None if absent
        """
        link = element.find("a", href=True)

        if link is None:
            current = element
            while current is not None and current.name not in ("body", "[document]"):
                if current.name == "a" and current.get("href"):
                    link = current
                    break
                current = current.parent

        if link is None:
            return None

        href = (link.get("href") or "").strip()
        if not href:
            return None

        if self.document.base_url:
            return urljoin(self.document.base_url, href)
        return href
