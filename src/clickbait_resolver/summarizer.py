"""Article fetching and extractive summarization."""

import re
from typing import List, Optional

import httpx
from bs4 import BeautifulSoup

from .config import SummarizerConfig
from .logger import get_logger
from .models import ArticleSummary

CONTENT_SELECTORS = [
    "article",
    ".article-body",
    ".article-content",
    '[itemprop="articleBody"]',
    ".story-body",
]

_SENTENCE_SPLIT = re.compile(r"[.!?]\s+")


class SummarizationError(Exception):
    """Raised when an article cannot be fetched or summarized."""
    pass


def extract_article_content(soup: BeautifulSoup) -> str:
    """
    Pull the main body text out of an article page.

    Args:
        soup: Parsed article page

    Returns:
        Body text with whitespace collapsed
    """
    for selector in CONTENT_SELECTORS:
        element = soup.select_one(selector)
        if element is not None:
            return " ".join(element.get_text(" ").split())

    paragraphs = [p.get_text(" ") for p in soup.find_all("p")]
    return " ".join(" ".join(paragraphs).split())


def summarize_text(content: str, max_sentences: int = 2, min_words: int = 5) -> Optional[str]:
    """
    Compress text to its first few substantive sentences.

    Args:
        content: Plain article text
        max_sentences: Maximum number of sentences to keep
        min_words: Minimum word count for a sentence to count as substantive

    Returns:
        Summary text, or None if no sentence qualifies
    """
    sentences = [s.strip() for s in _SENTENCE_SPLIT.split(content or "")]
    substantive: List[str] = [s for s in sentences if len(s.split()) >= min_words]
    if not substantive:
        return None

    summary = ". ".join(substantive[:max_sentences])
    if not summary.endswith((".", "!", "?")):
        summary += "."
    return summary


class ArticleSummarizer:
    """Fetches an article and returns a short extractive summary."""

    def __init__(
        self,
        config: Optional[SummarizerConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """
        Initialize article summarizer.

        Args:
            config: Fetch and compression settings
            transport: Optional httpx transport (used by tests)
        """
        self.config = config or SummarizerConfig()
        self.transport = transport
        self.logger = get_logger()

    async def summarize(self, url: str) -> ArticleSummary:
        """
        Fetch and summarize an article.

        Args:
            url: Article URL

        Returns:
            ArticleSummary for the URL

        Raises:
            SummarizationError: If the fetch fails or no summary can be built
        """
        html = await self._fetch_html(url)

        soup = BeautifulSoup(html, 'html.parser')
        content = extract_article_content(soup)
        summary = summarize_text(
            content,
            max_sentences=self.config.max_sentences,
            min_words=self.config.min_sentence_words
        )

        if summary is None:
            raise SummarizationError(f"No substantive content found at {url}")

        self.logger.debug(f"Summarized {url}: {summary}")
        return ArticleSummary(url=url, summary=summary)

    async def _fetch_html(self, url: str) -> str:
        client_kwargs = {
            "timeout": self.config.timeout,
            "follow_redirects": True,
            "headers": {"User-Agent": self.config.user_agent}
        }
        if self.transport is not None:
            client_kwargs["transport"] = self.transport

        try:
            async with httpx.AsyncClient(**client_kwargs) as client:
                response = await client.get(url)
                response.raise_for_status()
                return response.text
        except httpx.HTTPStatusError as e:
            raise SummarizationError(f"HTTP {e.response.status_code} fetching {url}")
        except httpx.HTTPError as e:
            raise SummarizationError(f"Failed to fetch {url}: {e}")
