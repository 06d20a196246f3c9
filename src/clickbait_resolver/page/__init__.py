"""Page package: document loading, headline discovery and rendering."""

from .document import PageDocument, PageLoadError, load_page
from .discovery import ElementDiscovery, headline_text
from .renderer import HeadlineRenderer

__all__ = [
    'PageDocument',
    'PageLoadError',
    'load_page',
    'ElementDiscovery',
    'headline_text',
    'HeadlineRenderer'
]
