"""HTML page loading and the parsed document wrapper."""

from pathlib import Path
from typing import List, Optional

import httpx
from bs4 import BeautifulSoup

from ..logger import get_logger


class PageLoadError(Exception):
    """Raised when a page cannot be read or fetched."""
    pass


class PageDocument:
    """Parsed HTML page plus the URL used to resolve relative links."""

    def __init__(self, soup: BeautifulSoup, base_url: Optional[str] = None):
        self.soup = soup
        self.base_url = base_url

    @classmethod
    def from_html(cls, html: str, base_url: Optional[str] = None) -> 'PageDocument':
        """Parse an HTML string."""
        return cls(BeautifulSoup(html, 'html.parser'), base_url=base_url)

    def select(self, selectors: List[str]) -> list:
        """
        Find elements matching any of the selectors, in document order.

        Args:
            selectors: CSS selectors

        Returns:
            Matching elements; an element matching several selectors appears once
        """
        return self.soup.select(", ".join(selectors))

    def to_html(self) -> str:
        """Serialize the (possibly annotated) document."""
        return str(self.soup)


def _is_url(source: str) -> bool:
    return source.startswith("http://") or source.startswith("https://")


async def load_page(
    source: str,
    base_url: Optional[str] = None,
    timeout: float = 10.0,
    user_agent: Optional[str] = None
) -> PageDocument:
    """
    Load a page from a local file or an http(s) URL.

    Args:
        source: File path or URL
        base_url: Override for relative link resolution (defaults to the URL for remote pages)
        timeout: Request timeout in seconds
        user_agent: Optional User-Agent header

    Returns:
        Parsed PageDocument

    Raises:
        PageLoadError: If the page cannot be read
    """
    logger = get_logger()

    if _is_url(source):
        headers = {"User-Agent": user_agent} if user_agent else {}
        try:
            async with httpx.AsyncClient(timeout=timeout, follow_redirects=True, headers=headers) as client:
                response = await client.get(source)
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise PageLoadError(f"HTTP {e.response.status_code} fetching {source}")
        except httpx.HTTPError as e:
            raise PageLoadError(f"Failed to fetch {source}: {e}")

        logger.info(f"Fetched page {source} ({len(response.text)} chars)")
        return PageDocument.from_html(response.text, base_url=base_url or str(response.url))

    path = Path(source)
    try:
        html = path.read_text(encoding='utf-8')
    except OSError as e:
        raise PageLoadError(f"Failed to read {source}: {e}")

    logger.info(f"Loaded page from {path} ({len(html)} chars)")
    return PageDocument.from_html(html, base_url=base_url)
