"""Headline pipeline orchestrator: discover, classify, annotate, summarize."""

import asyncio
import time
from dataclasses import replace
from typing import Any, Dict, List, Optional, Set, Tuple

from .cache import SummaryCache
from .classification import AIBatchClassifier, PatternClassifier, partition
from .commands import Command, IssueReporter
from .config import DISPLAY_STYLES, ResolverConfig, parse_bool
from .logger import get_logger, log_timing, set_debug_mode
from .models import ClassificationResult, HeadlineCandidate, ProcessingReport
from .page import ElementDiscovery, HeadlineRenderer, PageDocument
from .providers import create_provider
from .summarizer import ArticleSummarizer, SummarizationError
from .tracking import ProcessedSet


def _parse_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


class HeadlinePipeline:
    """Runs clickbait detection over a page, idempotently across repeated calls.

    Every classified headline element is recorded in ``processed`` and is not
    looked at again until ``reset()``. Headlines whose batch is still waiting
    on the classifier are tracked in ``in_flight`` so that a re-invocation in
    the meantime skips them too.

    All state is owned by the event loop the pipeline runs on; batches and
    summary lookups are independent tasks on that loop.
    """

    def __init__(
        self,
        document: PageDocument,
        config: ResolverConfig,
        cache: Optional[SummaryCache] = None,
        summarizer: Optional[ArticleSummarizer] = None,
        discovery: Optional[ElementDiscovery] = None,
        renderer: Optional[HeadlineRenderer] = None,
        pattern_classifier: Optional[PatternClassifier] = None,
        batch_classifier: Optional[AIBatchClassifier] = None,
        issue_reporter: Optional[IssueReporter] = None
    ):
        """
        Initialize the pipeline.

        Args:
            document: Page to process
            config: Resolver configuration; replaced only through handle_command
            cache: Summary cache (defaults to one persisted at config.cache_file)
            summarizer: Article summarizer
            discovery: Headline discovery for the document
            renderer: Renderer for the document
            pattern_classifier: Rule-based classifier
            batch_classifier: Model-backed batch classifier
            issue_reporter: Sink for user issue reports
        """
        self.document = document
        self.config = config
        self.logger = get_logger()

        self.cache = cache if cache is not None else SummaryCache(config.cache_file)
        self.summarizer = summarizer if summarizer is not None else ArticleSummarizer(config.summarizer)
        self.discovery = discovery if discovery is not None else ElementDiscovery(
            document, config.headline_selectors
        )
        self.renderer = renderer if renderer is not None else HeadlineRenderer(document)
        self.pattern_classifier = pattern_classifier if pattern_classifier is not None else PatternClassifier()
        self.batch_classifier = batch_classifier if batch_classifier is not None else self._build_batch_classifier()
        self.issue_reporter = issue_reporter if issue_reporter is not None else IssueReporter(
            config.issue_report_file
        )

        self.processed = ProcessedSet()
        self.in_flight = ProcessedSet()

        self._summary_tasks: Set[asyncio.Task] = set()
        self._summary_requests: Dict[str, asyncio.Task] = {}
        self._generation = 0
        self._reprocess_task: Optional[asyncio.Task] = None
        self._reprocess_requested = False

        self.renderer.apply_styles()

    def _build_batch_classifier(self) -> AIBatchClassifier:
        provider = create_provider(self.config.provider)
        return AIBatchClassifier(provider, self.pattern_classifier)

    # ------------------------------------------------------------------
    # Processing
    # ------------------------------------------------------------------

    async def process_page(self) -> ProcessingReport:
        """
        Run one pass over the page.

        Returns:
            ProcessingReport describing the pass
        """
        start_time = time.time()
        report = ProcessingReport(mode="ai" if self.config.use_ai else "pattern")

        if not self.config.active:
            self.logger.info("Resolver is disabled, skipping page")
            return report

        with log_timing("process_page"):
            try:
                raw_candidates = self.discovery.find_candidates()
            except Exception as e:
                error_msg = f"Headline discovery failed: {e}"
                self.logger.error(error_msg, exc_info=True)
                report.errors.append(error_msg)
                report.execution_time = time.time() - start_time
                return report

            report.discovered = len(raw_candidates)
            candidates = self.filter_candidates(raw_candidates)
            report.eligible = len(candidates)

            pending = self.select_pending(candidates, report)

            if pending:
                if self.config.use_ai:
                    await self._classify_with_ai(pending, report)
                else:
                    self._classify_with_patterns(pending, report)

        report.execution_time = time.time() - start_time
        self.logger.info(
            f"Found {report.flagged} clickbait headlines out of {report.classified} classified "
            f"({report.discovered} discovered, {report.skipped_processed} already processed, "
            f"{report.skipped_by_cap} over limit)"
        )
        return report

    def filter_candidates(self, raw_candidates: List[Tuple[Any, str]]) -> List[HeadlineCandidate]:
        """
        Trim headline text and drop candidates outside the length bounds.

        Args:
            raw_candidates: (element, raw_text) tuples from discovery

        Returns:
            Candidates whose trimmed text length is within [min, max)
        """
        candidates = []
        for element, raw_text in raw_candidates:
            text = (raw_text or "").strip()
            if self.config.min_headline_length <= len(text) < self.config.max_headline_length:
                candidates.append(HeadlineCandidate(element=element, text=text))
            else:
                self.logger.debug(f"Skipping candidate with {len(text)} chars: '{text[:60]}'")
        return candidates

    def select_pending(
        self,
        candidates: List[HeadlineCandidate],
        report: Optional[ProcessingReport] = None
    ) -> List[HeadlineCandidate]:
        """
        Remove already handled candidates and apply the headline limit.

        Args:
            candidates: Filtered candidates in discovery order
            report: Report to update with skip counts

        Returns:
            Candidates to classify in this pass, in discovery order
        """
        fresh = [
            candidate for candidate in candidates
            if candidate.element not in self.processed and candidate.element not in self.in_flight
        ]
        skipped_processed = len(candidates) - len(fresh)
        skipped_by_cap = 0

        limit = self.config.max_headlines
        if limit and len(fresh) > limit:
            skipped_by_cap = len(fresh) - limit
            fresh = fresh[:limit]
            self.logger.debug(f"Limiting pass to the first {limit} headlines")

        if report is not None:
            report.skipped_processed = skipped_processed
            report.skipped_by_cap = skipped_by_cap

        return fresh

    def _classify_with_patterns(self, pending: List[HeadlineCandidate], report: ProcessingReport) -> None:
        for candidate in pending:
            matched = self.pattern_classifier.match(candidate.text)
            result = ClassificationResult(
                is_clickbait=matched is not None,
                reason=f"Matched pattern '{matched}'" if matched else "",
                source="pattern"
            )
            self._apply_result(candidate, result, report)

    async def _classify_with_ai(self, pending: List[HeadlineCandidate], report: ProcessingReport) -> None:
        batches = partition(pending, self.config.batch_size)
        report.batches = len(batches)

        for candidate in pending:
            self.in_flight.add(candidate.element)

        self.logger.info(
            f"Classifying {len(pending)} headlines in {len(batches)} batches "
            f"({'simulation' if self.batch_classifier.simulated else 'model'} mode)"
        )

        generation = self._generation
        tasks = [
            asyncio.create_task(self._run_batch(index, batch, report, generation))
            for index, batch in enumerate(batches, start=1)
        ]
        outcomes = await asyncio.gather(*tasks, return_exceptions=True)

        for index, outcome in enumerate(outcomes, start=1):
            if isinstance(outcome, Exception):
                error_msg = f"Batch {index} could not be applied: {outcome}"
                self.logger.error(error_msg)
                report.errors.append(error_msg)

        provider = self.batch_classifier.provider
        if provider is not None:
            report.provider_usage = provider.get_usage_stats()
            self.logger.debug(f"Provider usage: {report.provider_usage}")

    async def _run_batch(
        self,
        index: int,
        batch: List[HeadlineCandidate],
        report: ProcessingReport,
        generation: int
    ) -> None:
        try:
            results = await self.batch_classifier.classify_batch(
                [candidate.text for candidate in batch],
                batch_index=index
            )
        finally:
            # After a reset these elements may belong to a newer batch
            if generation == self._generation:
                for candidate in batch:
                    self.in_flight.discard(candidate.element)

        if generation != self._generation:
            self.logger.debug(f"Dropping results of batch {index} started before reset")
            return

        for candidate, result in zip(batch, results):
            if result.source == "fallback":
                report.fallback_results += 1
            self._apply_result(candidate, result, report)

    def _apply_result(
        self,
        candidate: HeadlineCandidate,
        result: ClassificationResult,
        report: ProcessingReport
    ) -> None:
        # Recorded before any summary work starts so a re-invocation skips it
        self.processed.add(candidate.element)
        report.classified += 1

        if not result.is_clickbait:
            self.logger.debug(f"Not clickbait: '{candidate.text}'")
            return

        report.flagged += 1
        self.logger.info(
            f"Detected clickbait headline: '{candidate.text}' "
            f"(source: {result.source}, reason: {result.reason or 'n/a'})"
        )
        self.renderer.mark_clickbait(candidate.element, result.reason or None)
        self._schedule_summary(candidate, result)

    # ------------------------------------------------------------------
    # Summaries
    # ------------------------------------------------------------------

    def _schedule_summary(self, candidate: HeadlineCandidate, result: ClassificationResult) -> None:
        task = asyncio.create_task(self._resolve_summary(candidate, result, self._generation))
        self._summary_tasks.add(task)
        task.add_done_callback(self._summary_tasks.discard)

    async def _resolve_summary(
        self,
        candidate: HeadlineCandidate,
        result: ClassificationResult,
        generation: int
    ) -> Optional[str]:
        try:
            if result.summary:
                summary = result.summary
            else:
                url = self.discovery.find_article_link(candidate.element)
                if url is None:
                    self.logger.warning(f"No article link found for headline: '{candidate.text}'")
                    return None

                summary = self.cache.get(url)
                if summary is not None:
                    self.logger.debug(f"Cache hit for {url}")
                else:
                    summary = await self._fetch_summary(url)

            if summary is None:
                self.logger.warning(f"Failed to get summary for: '{candidate.text}'")
                return None

            if generation != self._generation:
                self.logger.debug(f"Dropping summary resolved before reset: '{candidate.text}'")
                return summary

            self.renderer.add_summary(candidate.element, summary, self.config.display_style)
            self.logger.info(f"Added summary to headline: '{candidate.text}'")
            return summary

        except Exception as e:
            self.logger.error(f"Summary resolution failed for '{candidate.text}': {e}", exc_info=True)
            return None

    async def _fetch_summary(self, url: str) -> Optional[str]:
        # Concurrent requests for one URL share a single summarizer call
        task = self._summary_requests.get(url)
        if task is None:
            task = asyncio.create_task(self._summarize_and_cache(url))
            self._summary_requests[url] = task
            task.add_done_callback(lambda _done, key=url: self._summary_requests.pop(key, None))
        return await task

    async def _summarize_and_cache(self, url: str) -> Optional[str]:
        try:
            article = await self.summarizer.summarize(url)
        except SummarizationError as e:
            self.logger.warning(f"Summarization failed for {url}: {e}")
            return None
        except Exception as e:
            self.logger.error(f"Unexpected error summarizing {url}: {e}", exc_info=True)
            return None

        self.cache.put(url, article.summary)
        return article.summary

    async def wait_for_summaries(self) -> None:
        """Wait until every outstanding summary task has finished."""
        while self._summary_tasks:
            await asyncio.gather(*list(self._summary_tasks), return_exceptions=True)

    async def wait_until_idle(self) -> None:
        """Wait for pending re-invocations and summaries."""
        while self._reprocess_task is not None and not self._reprocess_task.done():
            await asyncio.gather(self._reprocess_task, return_exceptions=True)
        await self.wait_for_summaries()

    # ------------------------------------------------------------------
    # Reset and re-invocation
    # ------------------------------------------------------------------

    def reset(self) -> None:
        """Forget processed and pending headlines and remove rendered summaries."""
        cleared = len(self.processed)
        self.processed.clear()
        self.in_flight.clear()
        removed = self.renderer.remove_summaries()
        self._generation += 1
        self.logger.info(f"Reset: cleared {cleared} processed headlines, removed {removed} summaries")

    def notify_mutation(self, added_nodes: int = 1) -> None:
        """
        Signal that the page changed.

        Signals are level-triggered: any number of them arriving before the
        debounce delay expires (or while a pass is running) lead to one more
        pass. Must be called from within the running event loop.

        Args:
            added_nodes: Number of nodes added by the change
        """
        if added_nodes <= 0 or not self.config.active:
            return

        self.logger.debug(f"Detected {added_nodes} new nodes, scheduling reprocess")
        self._reprocess_requested = True

        if self._reprocess_task is None or self._reprocess_task.done():
            self._reprocess_task = asyncio.get_running_loop().create_task(self._reprocess_loop())

    async def _reprocess_loop(self) -> None:
        while self._reprocess_requested:
            await asyncio.sleep(self.config.reprocess_debounce_seconds)
            self._reprocess_requested = False
            try:
                await self.process_page()
            except Exception as e:
                self.logger.error(f"Reprocessing after page change failed: {e}", exc_info=True)

    # ------------------------------------------------------------------
    # Command channel
    # ------------------------------------------------------------------

    async def handle_command(self, command: Any, value: Any = None) -> Any:
        """
        Apply a command from the settings surface.

        Args:
            command: Command or its string value
            value: Command argument

        Returns:
            ProcessingReport when the command triggered a pass, IssueReport for
            report_issue, otherwise None
        """
        try:
            command = Command(command)
        except ValueError:
            self.logger.warning(f"Ignoring unknown command: {command}")
            return None

        self.logger.debug(f"Handling command {command.value} with value {value!r}")

        if command is Command.TOGGLE_ACTIVE:
            active = parse_bool(value)
            if active is None:
                self.logger.warning(f"Invalid value for {command.value}: {value!r}")
                return None
            self.config = replace(self.config, active=active)
            self.logger.info(f"Resolver {'enabled' if active else 'disabled'}")
            if active:
                return await self.process_page()
            return None

        if command is Command.UPDATE_DISPLAY_STYLE:
            if value not in DISPLAY_STYLES:
                self.logger.warning(f"Invalid display style: {value!r}")
                return None
            self.config = replace(self.config, display_style=value)
            return await self._reset_and_reprocess()

        if command is Command.UPDATE_USE_AI:
            use_ai = parse_bool(value)
            if use_ai is None:
                self.logger.warning(f"Invalid value for {command.value}: {value!r}")
                return None
            self.config = replace(self.config, use_ai=use_ai)
            return await self._reset_and_reprocess()

        if command is Command.UPDATE_AI_KEY:
            api_key = value.strip() if isinstance(value, str) and value.strip() else None
            self.config = replace(self.config, provider=replace(self.config.provider, api_key=api_key))
            self.batch_classifier = self._build_batch_classifier()
            return None

        if command is Command.UPDATE_BATCH_SIZE:
            batch_size = _parse_int(value)
            if batch_size is None or batch_size <= 0:
                self.logger.warning(f"Invalid batch size: {value!r}")
                return None
            self.config = replace(self.config, batch_size=batch_size)
            return None

        if command is Command.UPDATE_MAX_HEADLINES:
            max_headlines = _parse_int(value)
            if max_headlines is None or max_headlines < 0:
                self.logger.warning(f"Invalid headline limit: {value!r}")
                return None
            self.config = replace(self.config, max_headlines=max_headlines)
            return None

        if command is Command.UPDATE_DEBUG_MODE:
            debug_mode = parse_bool(value)
            if debug_mode is None:
                self.logger.warning(f"Invalid value for {command.value}: {value!r}")
                return None
            self.config = replace(self.config, debug_mode=debug_mode)
            set_debug_mode(debug_mode)
            return None

        # Command.REPORT_ISSUE
        if isinstance(value, dict):
            description = str(value.get("description") or "")
            headline = value.get("headline")
        else:
            description = str(value or "")
            headline = None

        if not description.strip():
            self.logger.warning("Ignoring empty issue report")
            return None

        return self.issue_reporter.submit(description, headline=headline, page_url=self.document.base_url)

    async def _reset_and_reprocess(self) -> Optional[ProcessingReport]:
        self.reset()
        if self.config.active:
            return await self.process_page()
        return None
