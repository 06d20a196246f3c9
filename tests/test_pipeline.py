"""Integration tests for the headline pipeline."""

import asyncio
import json
import re
from unittest.mock import AsyncMock, Mock

import pytest

from clickbait_resolver.cache import SummaryCache
from clickbait_resolver.classification import AIBatchClassifier
from clickbait_resolver.config import ProviderConfig, ResolverConfig
from clickbait_resolver.models import ArticleSummary
from clickbait_resolver.page import PageDocument
from clickbait_resolver.pipeline import HeadlinePipeline
from clickbait_resolver.providers import AIProvider, ProviderAPIError
from clickbait_resolver.summarizer import ArticleSummarizer, SummarizationError

BASE_URL = "https://news.example.com/"
SUMMARY = "Banks cut fees for customers who switch accounts."


def build_document(headlines, href=None):
    """Build a page with one linked <h3> per headline."""
    items = []
    for i, headline in enumerate(headlines):
        link = href or f"/article/{i}"
        items.append(f'<div class="item"><a href="{link}"><h3>{headline}</h3></a></div>')
    html = f"<html><head></head><body>{''.join(items)}</body></html>"
    return PageDocument.from_html(html, base_url=BASE_URL)


def append_headline(document, text, href):
    """Add a linked headline to the end of the page."""
    soup = document.soup
    link = soup.new_tag("a", href=href)
    heading = soup.new_tag("h3")
    heading.string = text
    link.append(heading)
    soup.body.append(link)
    return heading


def make_config(tmp_path, **overrides):
    settings = dict(
        use_ai=False,
        max_headlines=0,
        reprocess_debounce_seconds=0.01,
        cache_file=tmp_path / "cache.json",
        issue_report_file=tmp_path / "issues.jsonl",
        log_file=tmp_path / "resolver.log"
    )
    settings.update(overrides)
    return ResolverConfig(**settings)


def make_summarizer(summary=SUMMARY):
    summarizer = Mock(spec=ArticleSummarizer)
    summarizer.summarize = AsyncMock(side_effect=lambda url: ArticleSummary(url=url, summary=summary))
    return summarizer


def make_pipeline(document, config, summarizer=None, batch_classifier=None, cache=None):
    return HeadlinePipeline(
        document,
        config,
        cache=cache if cache is not None else SummaryCache(None),
        summarizer=summarizer if summarizer is not None else make_summarizer(),
        batch_classifier=batch_classifier
    )


def flagged_texts(document):
    return [h.find(string=True) for h in document.soup.select("h3.clickbait-headline")]


class FakeProvider(AIProvider):
    """Provider that answers every headline as clickbait, optionally failing some batches."""

    def __init__(self, fail_marker=None, gate=None):
        super().__init__("fake", ProviderConfig(api_key="test-key"))
        self.fail_marker = fail_marker
        self.gate = gate
        self.prompts = []

    async def complete_async(self, system_prompt, prompt):
        self.prompts.append(prompt)
        if self.gate is not None:
            await self.gate.wait()
        await asyncio.sleep(0)

        if self.fail_marker and self.fail_marker in prompt:
            self.metrics.record_failure("HTTP 503 Service Unavailable")
            raise ProviderAPIError("HTTP 503 Service Unavailable")

        count = int(re.search(r"Classify these (\d+) headlines", prompt).group(1))
        reply = [
            {"isClickbait": True, "confidence": 0.95, "reason": "service verdict", "summary": "Service summary."}
            for _ in range(count)
        ]
        self.metrics.record_success(0.01, 100, 50)
        return json.dumps(reply), {"input_tokens": 100, "output_tokens": 50}


class TestScenarios:
    """End-to-end scenarios."""

    @pytest.mark.asyncio
    async def test_pattern_flag_and_cached_summary(self, tmp_path):
        """Test that a teaser headline is flagged and its summary is cached."""
        document = build_document(["Here's why everyone is switching banks"])
        summarizer = make_summarizer()
        cache = SummaryCache(None)
        pipeline = make_pipeline(document, make_config(tmp_path), summarizer, cache=cache)

        report = await pipeline.process_page()
        await pipeline.wait_for_summaries()

        heading = document.soup.find("h3")
        assert report.mode == "pattern"
        assert report.flagged == 1
        assert len(heading.select(".clickbait-indicator")) == 1
        assert heading.find("div", class_="clickbait-summary").string == SUMMARY
        assert cache.get("https://news.example.com/article/0") == SUMMARY
        summarizer.summarize.assert_awaited_once_with("https://news.example.com/article/0")

        # A later headline for the same article is served from the cache
        second = append_headline(document, "Here's why banks keep raising their fees", "/article/0")
        report = await pipeline.process_page()
        await pipeline.wait_for_summaries()

        assert report.classified == 1
        assert report.skipped_processed == 1
        assert second.find("div", class_="clickbait-summary").string == SUMMARY
        assert summarizer.summarize.await_count == 1

    @pytest.mark.asyncio
    async def test_neutral_headline_untouched(self, tmp_path):
        """Test that a factual headline is neither flagged nor summarized."""
        document = build_document(["Local council approves new park budget"])
        summarizer = make_summarizer()
        pipeline = make_pipeline(document, make_config(tmp_path), summarizer)

        report = await pipeline.process_page()
        await pipeline.wait_for_summaries()

        assert report.classified == 1
        assert report.flagged == 0
        assert document.soup.select(".clickbait-indicator") == []
        assert document.soup.select(".clickbait-summary") == []
        summarizer.summarize.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_23_candidates_with_failing_second_batch(self, tmp_path):
        """Test three batches where only the second degrades to fallback."""
        headlines = [f"Council publishes budget report number {i:02d}" for i in range(23)]
        document = build_document(headlines)
        provider = FakeProvider(fail_marker="number 10")
        summarizer = make_summarizer()
        pipeline = make_pipeline(
            document,
            make_config(tmp_path, use_ai=True, batch_size=10),
            summarizer,
            batch_classifier=AIBatchClassifier(provider)
        )

        report = await pipeline.process_page()
        await pipeline.wait_for_summaries()

        sizes = [int(re.search(r"Classify these (\d+)", p).group(1)) for p in provider.prompts]
        assert sizes == [10, 10, 3]
        assert report.mode == "ai"
        assert report.batches == 3
        assert report.classified == 23
        assert report.fallback_results == 10
        assert report.flagged == 13
        assert report.provider_usage["requests"] == 3
        assert report.provider_usage["failures"] == 1
        assert report.provider_usage["last_error"] == "HTTP 503 Service Unavailable"

        flagged = flagged_texts(document)
        assert flagged == headlines[:10] + headlines[20:]

        # Service summaries are rendered without fetching the article
        summaries = document.soup.select(".clickbait-summary")
        assert len(summaries) == 13
        assert all(block.string == "Service summary." for block in summaries)
        summarizer.summarize.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_simulation_mode_without_credential(self, tmp_path):
        """Test that AI mode without a key still classifies every headline."""
        headlines = ["Here's why everyone is switching banks", "Local council approves new park budget"]
        document = build_document(headlines)
        pipeline = make_pipeline(document, make_config(tmp_path, use_ai=True))

        assert pipeline.batch_classifier.simulated

        report = await pipeline.process_page()
        await pipeline.wait_for_summaries()

        assert report.classified == 2
        assert report.batches == 1


class TestCandidateSelection:
    """Test filtering, idempotence and the headline limit."""

    @pytest.mark.asyncio
    async def test_length_bounds(self, tmp_path):
        """Test the [15, 500) length rule on trimmed text."""
        headlines = ["a" * 14, "   " + "b" * 14 + "   ", "c" * 15, "d" * 499, "e" * 500]
        document = build_document(headlines)
        pipeline = make_pipeline(document, make_config(tmp_path))

        report = await pipeline.process_page()

        assert report.discovered == 5
        assert report.eligible == 2

    def test_filter_trims_text(self, tmp_path):
        """Test that candidates carry trimmed text."""
        document = build_document([])
        pipeline = make_pipeline(document, make_config(tmp_path))

        candidates = pipeline.filter_candidates([("el", "  Local council approves new park budget \n")])

        assert candidates[0].text == "Local council approves new park budget"

    @pytest.mark.asyncio
    async def test_second_pass_is_noop(self, tmp_path):
        """Test that processing the same page twice changes nothing."""
        document = build_document([
            "Here's why everyone is switching banks",
            "Local council approves new park budget",
            "You won't believe what this dog did at the park",
        ])
        summarizer = make_summarizer()
        pipeline = make_pipeline(document, make_config(tmp_path), summarizer)

        await pipeline.process_page()
        await pipeline.wait_for_summaries()
        html_after_first = document.to_html()

        report = await pipeline.process_page()
        await pipeline.wait_for_summaries()

        assert report.classified == 0
        assert report.skipped_processed == 3
        assert document.to_html() == html_after_first
        assert summarizer.summarize.await_count == 2

    @pytest.mark.asyncio
    async def test_second_pass_is_noop_in_simulation(self, tmp_path):
        """Test idempotence when results are random."""
        document = build_document([f"Council publishes budget report number {i:02d}" for i in range(6)])
        pipeline = make_pipeline(document, make_config(tmp_path, use_ai=True))

        first = await pipeline.process_page()
        second = await pipeline.process_page()
        await pipeline.wait_for_summaries()

        assert first.classified == 6
        assert second.classified == 0
        assert len(pipeline.processed) == 6

    @pytest.mark.asyncio
    async def test_cap_takes_first_in_discovery_order(self, tmp_path):
        """Test that 5 of 12 candidates are processed, in page order."""
        headlines = [f"Here's why story {i:02d} matters today" for i in range(12)]
        document = build_document(headlines)
        pipeline = make_pipeline(document, make_config(tmp_path, max_headlines=5))

        report = await pipeline.process_page()
        await pipeline.wait_for_summaries()

        assert report.classified == 5
        assert report.skipped_by_cap == 7
        assert flagged_texts(document) == headlines[:5]

        report = await pipeline.process_page()
        await pipeline.wait_for_summaries()

        assert report.classified == 5
        assert flagged_texts(document) == headlines[:10]

    @pytest.mark.asyncio
    async def test_zero_cap_means_unlimited(self, tmp_path):
        """Test that max_headlines 0 disables the limit."""
        document = build_document([f"Here's why story {i:02d} matters today" for i in range(30)])
        pipeline = make_pipeline(document, make_config(tmp_path, max_headlines=0))

        report = await pipeline.process_page()
        await pipeline.wait_for_summaries()

        assert report.classified == 30

    @pytest.mark.asyncio
    async def test_in_flight_headlines_skipped(self, tmp_path):
        """Test that a re-run during classification skips pending headlines."""
        document = build_document([f"Council publishes budget report number {i:02d}" for i in range(3)])
        gate = asyncio.Event()
        provider = FakeProvider(gate=gate)
        pipeline = make_pipeline(
            document,
            make_config(tmp_path, use_ai=True),
            batch_classifier=AIBatchClassifier(provider)
        )

        first = asyncio.create_task(pipeline.process_page())
        await asyncio.sleep(0.01)

        second = await pipeline.process_page()
        assert second.classified == 0
        assert second.skipped_processed == 3

        gate.set()
        first_report = await first
        await pipeline.wait_for_summaries()

        assert first_report.classified == 3
        assert len(provider.prompts) == 1
        assert len(pipeline.in_flight) == 0

    @pytest.mark.asyncio
    async def test_mode_switch_during_pending_batch_reevaluates(self, tmp_path):
        """Test that switching mode mid-batch re-evaluates under the new mode."""
        headlines = [f"Council publishes budget report number {i:02d}" for i in range(3)]
        document = build_document(headlines)
        gate = asyncio.Event()
        provider = FakeProvider(gate=gate)
        pipeline = make_pipeline(
            document,
            make_config(tmp_path, use_ai=True),
            batch_classifier=AIBatchClassifier(provider)
        )

        first = asyncio.create_task(pipeline.process_page())
        await asyncio.sleep(0.01)

        report = await pipeline.handle_command("update_use_ai", False)

        assert report.mode == "pattern"
        assert report.classified == 3
        assert report.skipped_processed == 0

        # The old batch answers "clickbait" for everything once released
        gate.set()
        stale = await first
        await pipeline.wait_for_summaries()

        assert stale.classified == 0
        assert flagged_texts(document) == []
        assert len(pipeline.in_flight) == 0
        assert len(pipeline.processed) == 3

    @pytest.mark.asyncio
    async def test_inactive_pipeline_does_nothing(self, tmp_path):
        """Test that a disabled resolver leaves the page alone."""
        document = build_document(["Here's why everyone is switching banks"])
        pipeline = make_pipeline(document, make_config(tmp_path, active=False))

        report = await pipeline.process_page()

        assert report.discovered == 0
        assert document.soup.select(".clickbait-indicator") == []


class TestSummaries:
    """Test summary resolution."""

    @pytest.mark.asyncio
    async def test_same_url_fetched_once_within_a_pass(self, tmp_path):
        """Test that concurrent requests for one article share a fetch."""
        document = build_document(
            ["Here's why everyone is switching banks", "You won't believe how much banks charge"],
            href="/article/shared"
        )
        summarizer = make_summarizer()
        pipeline = make_pipeline(document, make_config(tmp_path), summarizer)

        await pipeline.process_page()
        await pipeline.wait_for_summaries()

        assert summarizer.summarize.await_count == 1
        assert len(document.soup.select(".clickbait-summary")) == 2

    @pytest.mark.asyncio
    async def test_missing_link_skips_summary(self, tmp_path):
        """Test that a flagged headline without a link keeps only its indicator."""
        document = PageDocument.from_html(
            "<body><h3>Here's why everyone is switching banks</h3></body>", base_url=BASE_URL
        )
        summarizer = make_summarizer()
        pipeline = make_pipeline(document, make_config(tmp_path), summarizer)

        report = await pipeline.process_page()
        await pipeline.wait_for_summaries()

        assert report.flagged == 1
        assert document.soup.select(".clickbait-indicator")
        assert document.soup.select(".clickbait-summary") == []
        summarizer.summarize.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_summarizer_failure_keeps_indicator(self, tmp_path):
        """Test that a failed summary is logged and nothing is cached."""
        document = build_document(["Here's why everyone is switching banks"])
        summarizer = Mock(spec=ArticleSummarizer)
        summarizer.summarize = AsyncMock(side_effect=SummarizationError("HTTP 500"))
        cache = SummaryCache(None)
        pipeline = make_pipeline(document, make_config(tmp_path), summarizer, cache=cache)

        await pipeline.process_page()
        await pipeline.wait_for_summaries()

        assert document.soup.select(".clickbait-indicator")
        assert document.soup.select(".clickbait-summary") == []
        assert len(cache) == 0

    @pytest.mark.asyncio
    async def test_summary_after_reset_is_cached_not_rendered(self, tmp_path):
        """Test that a summary arriving after a reset is not shown."""
        document = build_document(["Here's why everyone is switching banks"])
        gate = asyncio.Event()

        async def slow_summary(url):
            await gate.wait()
            return ArticleSummary(url=url, summary="Late summary text.")

        summarizer = Mock(spec=ArticleSummarizer)
        summarizer.summarize = AsyncMock(side_effect=slow_summary)
        cache = SummaryCache(None)
        pipeline = make_pipeline(document, make_config(tmp_path), summarizer, cache=cache)

        await pipeline.process_page()
        pipeline.reset()
        gate.set()
        await pipeline.wait_for_summaries()

        assert document.soup.select(".clickbait-summary") == []
        assert cache.get("https://news.example.com/article/0") == "Late summary text."
        assert len(pipeline.processed) == 0


class TestCommands:
    """Test the command channel."""

    @pytest.fixture
    def document(self):
        return build_document(["Here's why everyone is switching banks", "Local council approves new park budget"])

    @pytest.fixture
    def pipeline(self, document, tmp_path):
        return make_pipeline(document, make_config(tmp_path))

    @pytest.mark.asyncio
    async def test_display_style_change_rerenders(self, pipeline, document):
        """Test that a style change resets and reprocesses the page."""
        await pipeline.process_page()
        await pipeline.wait_for_summaries()
        heading = document.soup.find("h3")
        assert heading.find("div", class_="inline-summary") is not None

        report = await pipeline.handle_command("update_display_style", "below")
        await pipeline.wait_for_summaries()

        assert pipeline.config.display_style == "below"
        assert report.classified == 2
        assert heading.find("div", class_="clickbait-summary") is None
        assert "below-summary" in heading.find_next_sibling()["class"]
        assert len(heading.select(".clickbait-indicator")) == 1
        assert pipeline.summarizer.summarize.await_count == 1

    @pytest.mark.asyncio
    async def test_invalid_display_style_ignored(self, pipeline):
        """Test that unknown styles leave the configuration unchanged."""
        result = await pipeline.handle_command("update_display_style", "sideways")

        assert result is None
        assert pipeline.config.display_style == "inline"

    @pytest.mark.asyncio
    async def test_toggle_active(self, pipeline, document):
        """Test disabling and re-enabling the resolver."""
        assert await pipeline.handle_command("toggle_active", False) is None
        assert pipeline.config.active is False
        assert (await pipeline.process_page()).classified == 0

        report = await pipeline.handle_command("toggle_active", True)
        await pipeline.wait_for_summaries()

        assert pipeline.config.active is True
        assert report.classified == 2

    @pytest.mark.asyncio
    async def test_update_use_ai(self, pipeline):
        """Test switching classification mode."""
        await pipeline.process_page()

        report = await pipeline.handle_command("update_use_ai", "true")
        await pipeline.wait_for_summaries()

        assert pipeline.config.use_ai is True
        assert report.mode == "ai"
        assert report.classified == 2

    @pytest.mark.asyncio
    async def test_update_ai_key_rebuilds_classifier(self, pipeline):
        """Test that the credential decides between model and simulation mode."""
        assert pipeline.batch_classifier.simulated

        await pipeline.handle_command("update_ai_key", "sk-test-key")
        assert pipeline.config.provider.api_key == "sk-test-key"
        assert not pipeline.batch_classifier.simulated

        await pipeline.handle_command("update_ai_key", "   ")
        assert pipeline.config.provider.api_key is None
        assert pipeline.batch_classifier.simulated

    @pytest.mark.asyncio
    @pytest.mark.parametrize("value,expected", [(5, 5), ("25", 25), (0, 10), ("abc", 10), (-3, 10)])
    async def test_update_batch_size(self, pipeline, value, expected):
        """Test that only positive batch sizes are accepted."""
        await pipeline.handle_command("update_batch_size", value)
        assert pipeline.config.batch_size == expected

    @pytest.mark.asyncio
    @pytest.mark.parametrize("value,expected", [(0, 0), ("12", 12), (-1, 0), (None, 0)])
    async def test_update_max_headlines(self, pipeline, value, expected):
        """Test that the headline limit accepts 0 and positive values."""
        await pipeline.handle_command("update_max_headlines", value)
        assert pipeline.config.max_headlines == expected

    @pytest.mark.asyncio
    async def test_update_debug_mode(self, pipeline):
        """Test toggling debug output."""
        await pipeline.handle_command("update_debug_mode", "false")
        assert pipeline.config.debug_mode is False

        await pipeline.handle_command("update_debug_mode", True)
        assert pipeline.config.debug_mode is True

    @pytest.mark.asyncio
    async def test_report_issue(self, pipeline, tmp_path):
        """Test that an issue report is stored with the page URL."""
        report = await pipeline.handle_command("report_issue", {
            "description": "This headline is not clickbait",
            "headline": "Local council approves new park budget"
        })

        assert report.page_url == BASE_URL
        stored = pipeline.issue_reporter.load_all()
        assert len(stored) == 1
        assert stored[0].description == "This headline is not clickbait"
        assert stored[0].headline == "Local council approves new park budget"

    @pytest.mark.asyncio
    async def test_empty_issue_ignored(self, pipeline):
        """Test that blank reports are not stored."""
        assert await pipeline.handle_command("report_issue", "   ") is None
        assert pipeline.issue_reporter.load_all() == []

    @pytest.mark.asyncio
    async def test_unknown_command_ignored(self, pipeline):
        """Test that unknown commands are ignored."""
        before = pipeline.config

        assert await pipeline.handle_command("launch_rockets", 1) is None
        assert pipeline.config == before


class TestReprocessing:
    """Test re-invocation after page changes."""

    @pytest.mark.asyncio
    async def test_burst_of_changes_coalesced(self, tmp_path):
        """Test that several change signals lead to one extra pass."""
        document = build_document(["Local council approves new park budget"])
        pipeline = make_pipeline(document, make_config(tmp_path))
        await pipeline.process_page()

        pipeline.process_page = AsyncMock(wraps=pipeline.process_page)
        heading = append_headline(document, "Here's why everyone is switching banks", "/article/9")

        pipeline.notify_mutation(1)
        pipeline.notify_mutation(4)
        pipeline.notify_mutation(2)
        await pipeline.wait_until_idle()

        assert pipeline.process_page.await_count == 1
        assert heading.select(".clickbait-indicator")

    @pytest.mark.asyncio
    async def test_no_added_nodes_ignored(self, tmp_path):
        """Test that signals without added nodes do not reprocess."""
        pipeline = make_pipeline(build_document([]), make_config(tmp_path))
        pipeline.process_page = AsyncMock()

        pipeline.notify_mutation(0)
        await pipeline.wait_until_idle()

        pipeline.process_page.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_inactive_ignores_changes(self, tmp_path):
        """Test that a disabled resolver does not react to changes."""
        pipeline = make_pipeline(build_document([]), make_config(tmp_path, active=False))
        pipeline.process_page = AsyncMock()

        pipeline.notify_mutation(3)
        await pipeline.wait_until_idle()

        pipeline.process_page.assert_not_awaited()
