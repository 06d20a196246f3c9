"""Unit tests for page loading, headline discovery and rendering."""

import pytest

from clickbait_resolver.page import (
    ElementDiscovery,
    HeadlineRenderer,
    PageDocument,
    PageLoadError,
    headline_text,
    load_page,
)
from clickbait_resolver.page.renderer import INDICATOR_ICON, STYLE_ID

PAGE_HTML = """
<html>
  <head><title>News</title></head>
  <body>
    <article><a href="/story/banks"><h3>Here's why everyone is switching banks</h3></a></article>
    <article><h4><a href="https://other.example.org/park">Local council approves new park budget</a></h4></article>
    <div class="ipQwMb">Storm closes schools across three counties</div>
    <article><h3>Headline without any link at all here</h3></article>
    <p>Not a headline</p>
  </body>
</html>
"""


@pytest.fixture
def document():
    return PageDocument.from_html(PAGE_HTML, base_url="https://news.example.com/front")


class TestElementDiscovery:
    """Test headline discovery."""

    def test_finds_candidates_in_document_order(self, document):
        """Test that all selectors match and order follows the page."""
        discovery = ElementDiscovery(document, ["h3", "h4", ".ipQwMb"])

        candidates = discovery.find_candidates()

        texts = [text for _, text in candidates]
        assert texts == [
            "Here's why everyone is switching banks",
            "Local council approves new park budget",
            "Storm closes schools across three counties",
            "Headline without any link at all here",
        ]

    def test_element_matching_several_selectors_appears_once(self):
        """Test that overlapping selectors do not duplicate elements."""
        document = PageDocument.from_html('<body><h3 class="ipQwMb">Overlapping selector headline</h3></body>')
        discovery = ElementDiscovery(document, ["h3", ".ipQwMb"])

        assert len(discovery.find_candidates()) == 1

    def test_link_inside_headline(self, document):
        """Test link lookup inside the headline element."""
        discovery = ElementDiscovery(document, ["h4"])
        element, _ = discovery.find_candidates()[0]

        assert discovery.find_article_link(element) == "https://other.example.org/park"

    def test_link_on_ancestor_resolved_against_base(self, document):
        """Test link lookup through ancestors with relative href."""
        discovery = ElementDiscovery(document, ["h3"])
        element, _ = discovery.find_candidates()[0]

        assert discovery.find_article_link(element) == "https://news.example.com/story/banks"

    def test_no_link(self, document):
        """Test a headline with no link anywhere."""
        discovery = ElementDiscovery(document, ["h3"])
        element, _ = discovery.find_candidates()[1]

        assert discovery.find_article_link(element) is None

    def test_relative_link_without_base_url(self):
        """Test that the raw href is returned when no base URL is known."""
        document = PageDocument.from_html('<body><a href="/story/1"><h3>Some headline text here</h3></a></body>')
        discovery = ElementDiscovery(document, ["h3"])
        element, _ = discovery.find_candidates()[0]

        assert discovery.find_article_link(element) == "/story/1"

    def test_headline_text_ignores_annotations(self, document):
        """Test that injected indicator and summary text is not headline text."""
        discovery = ElementDiscovery(document, ["h3"])
        element, original = discovery.find_candidates()[0]
        renderer = HeadlineRenderer(document)

        renderer.mark_clickbait(element, "Teaser")
        renderer.add_summary(element, "Fees went up at the big banks.", "inline")

        assert headline_text(element) == original


class TestHeadlineRenderer:
    """Test headline annotation."""

    @pytest.fixture
    def headline(self, document):
        return document.soup.find("h3")

    def test_apply_styles_once(self, document):
        """Test that the stylesheet is inserted a single time."""
        renderer = HeadlineRenderer(document)
        renderer.apply_styles()
        renderer.apply_styles()

        assert len(document.soup.find_all("style", id=STYLE_ID)) == 1

    def test_apply_styles_without_head(self):
        """Test stylesheet insertion into a fragment without <head>."""
        document = PageDocument.from_html("<h3>Fragment headline for styling</h3>")
        HeadlineRenderer(document).apply_styles()

        assert document.soup.find("style", id=STYLE_ID) is not None

    def test_mark_clickbait_is_idempotent(self, document, headline):
        """Test that marking twice adds one indicator."""
        renderer = HeadlineRenderer(document)
        renderer.mark_clickbait(headline, "Withholds the reason")
        renderer.mark_clickbait(headline, "Withholds the reason")

        indicators = headline.select(".clickbait-indicator")
        assert len(indicators) == 1
        assert indicators[0].string == INDICATOR_ICON
        assert indicators[0]["title"] == "Withholds the reason"
        assert headline["class"].count("clickbait-headline") == 1

    def test_inline_summary_appended(self, document, headline):
        """Test inline summaries go inside the headline."""
        HeadlineRenderer(document).add_summary(headline, "Fees went up.", "inline")

        block = headline.find("div", class_="clickbait-summary")
        assert block is not None
        assert "inline-summary" in block["class"]
        assert block.string == "Fees went up."

    def test_below_summary_after_headline(self, document, headline):
        """Test below summaries follow the headline element."""
        HeadlineRenderer(document).add_summary(headline, "Fees went up.", "below")

        assert headline.find("div", class_="clickbait-summary") is None
        sibling = headline.find_next_sibling()
        assert "below-summary" in sibling["class"]

    def test_tooltip_summary(self, document, headline):
        """Test tooltip summaries are hidden until hover."""
        HeadlineRenderer(document).add_summary(headline, "Fees went up.", "tooltip")

        block = headline.find("div", class_="tooltip-summary")
        assert block is not None

    def test_summary_replaced_not_duplicated(self, document, headline):
        """Test that adding a second summary replaces the first."""
        renderer = HeadlineRenderer(document)
        renderer.add_summary(headline, "First.", "inline")
        renderer.add_summary(headline, "Second.", "inline")

        blocks = headline.select(".clickbait-summary")
        assert [b.string for b in blocks] == ["Second."]

    def test_remove_summaries(self, document, headline):
        """Test that all summaries are removed while indicators stay."""
        renderer = HeadlineRenderer(document)
        renderer.mark_clickbait(headline)
        renderer.add_summary(headline, "Inline.", "inline")
        other = document.soup.find("h4")
        renderer.add_summary(other, "Below.", "below")

        removed = renderer.remove_summaries()

        assert removed == 2
        assert document.soup.select(".clickbait-summary") == []
        assert headline.select(".clickbait-indicator")


class TestLoadPage:
    """Test page loading."""

    @pytest.mark.asyncio
    async def test_load_from_file(self, tmp_path):
        """Test loading a local HTML file."""
        page = tmp_path / "page.html"
        page.write_text(PAGE_HTML, encoding="utf-8")

        document = await load_page(str(page), base_url="https://news.example.com/")

        assert document.base_url == "https://news.example.com/"
        assert document.soup.find("h3") is not None

    @pytest.mark.asyncio
    async def test_missing_file_raises(self, tmp_path):
        """Test that an unreadable source raises PageLoadError."""
        with pytest.raises(PageLoadError):
            await load_page(str(tmp_path / "missing.html"))
