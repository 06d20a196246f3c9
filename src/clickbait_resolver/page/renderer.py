"""Annotation of flagged headlines inside the page."""

from typing import Optional

from bs4 import Tag

from ..config import DISPLAY_STYLES
from ..logger import get_logger
from .document import PageDocument

STYLE_ID = "clickbait-resolver-styles"
INDICATOR_ICON = "\U0001F50D"  # magnifying glass

STYLESHEET = """
.clickbait-headline { position: relative; }
.clickbait-indicator {
  display: inline-block;
  margin-left: 8px;
  font-size: 14px;
  color: #1a73e8;
  cursor: help;
}
.clickbait-summary {
  font-size: 12px;
  line-height: 1.4;
  color: #555;
  background-color: #f8f9fa;
  border-radius: 4px;
  padding: 8px;
  margin-top: 5px;
  border-left: 3px solid #1a73e8;
}
.tooltip-summary {
  display: none;
  position: absolute;
  z-index: 100;
  width: 250px;
  box-shadow: 0 2px 5px rgba(0,0,0,0.2);
  background-color: white;
}
.clickbait-headline:hover .tooltip-summary { display: block; }
"""


def _has_class(element, name: str) -> bool:
    return isinstance(element, Tag) and name in (element.get("class") or [])


class HeadlineRenderer:
    """Adds indicators and summary blocks to headline elements."""

    def __init__(self, document: PageDocument):
        self.document = document
        self.logger = get_logger()

    def apply_styles(self) -> None:
        """Insert the stylesheet once."""
        soup = self.document.soup
        if soup.find("style", id=STYLE_ID) is not None:
            return

        style = soup.new_tag("style", id=STYLE_ID)
        style.string = STYLESHEET

        head = soup.head
        if head is None:
            head = soup.new_tag("head")
            if soup.html is not None:
                soup.html.insert(0, head)
            else:
                soup.insert(0, head)
        head.append(style)

    def mark_clickbait(self, element: Tag, reason: Optional[str] = None) -> None:
        """
        Mark a headline as clickbait.

        Args:
            element: Headline element
            reason: Optional explanation shown as the indicator's tooltip
        """
        classes = list(element.get("class") or [])
        if "clickbait-headline" not in classes:
            element["class"] = classes + ["clickbait-headline"]

        if any(_has_class(child, "clickbait-indicator") for child in element.children):
            return

        indicator = self.document.soup.new_tag(
            "span",
            attrs={"class": ["clickbait-indicator"], "title": reason or "Clickbait headline detected"}
        )
        indicator.string = INDICATOR_ICON
        element.append(indicator)

    def add_summary(self, element: Tag, summary: str, display_style: str) -> None:
        """
        Attach a summary block to a headline.

        Args:
            element: Headline element
            summary: Summary text
            display_style: "inline", "below" or "tooltip"
        """
        if display_style not in DISPLAY_STYLES:
            self.logger.warning(f"Unknown display style '{display_style}', using inline")
            display_style = "inline"

        existing = self._existing_summary(element)
        if existing is not None:
            existing.decompose()

        block = self.document.soup.new_tag(
            "div",
            attrs={"class": ["clickbait-summary", f"{display_style}-summary"]}
        )
        block.string = summary

        if display_style == "below" and element.parent is not None:
            element.insert_after(block)
        else:
            element.append(block)

    def remove_summaries(self) -> int:
        """
        Remove every rendered summary block.

        Returns:
            Number of blocks removed
        """
        blocks = self.document.soup.select(".clickbait-summary")
        for block in blocks:
            block.decompose()
        return len(blocks)

    def _existing_summary(self, element: Tag) -> Optional[Tag]:
        for child in element.children:
            if _has_class(child, "clickbait-summary"):
                return child

        sibling = element.find_next_sibling()
        if _has_class(sibling, "below-summary"):
            return sibling
        return None
