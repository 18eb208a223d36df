"""
Aggregate orchestrator for CFR Agency Metrics.

Fans out the top-level eCFR fetches and the per-agency word-count and
complexity work across thread pools, merges the results into one summary,
and substitutes synthetic data at the finest granularity that failed.
"""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from datetime import date
from typing import Callable, Dict, List, Optional, Tuple

from .api_client import ECFRClient
from .complexity_analyzer import ComplexityAnalyzer
from .config import Config
from .error_handler import (
    CFRMetricsError, ErrorCollector, RequestCancelled, SampleExhausted,
    log_execution_time
)
from .historical import HistoricalSeriesBuilder, default_window
from .models import (
    Agency, AgencyWordCount, AggregateSummary, ComplexityScore,
    HistoricalDataPoint, Title
)
from .synthetic import SyntheticDataGenerator
from .word_counter import WordCountAggregator, check_cancelled


logger = logging.getLogger(__name__)


class AggregateOrchestrator:
    """Builds the aggregate summary consumed by the presentation layer."""

    def __init__(self, client: Optional[ECFRClient] = None,
                 synthetic: Optional[SyntheticDataGenerator] = None,
                 history_builder: Optional[HistoricalSeriesBuilder] = None,
                 max_workers: int = None, as_of: Optional[date] = None):
        """
        Initialize the orchestrator.

        Args:
            client: eCFR client; one is created (and owned) if omitted
            synthetic: Fallback data generator
            history_builder: Historical series builder
            max_workers: Ceiling on concurrent per-agency tasks
            as_of: Date used for structure and text fetches (default today)
        """
        self._owns_client = client is None
        self.client = client or ECFRClient()
        self.synthetic = synthetic or SyntheticDataGenerator()
        self.history_builder = history_builder or HistoricalSeriesBuilder()
        self.max_workers = max_workers or Config.MAX_CONCURRENT_REQUESTS
        self.as_of = as_of

        logger.info(f"Orchestrator initialized with {self.max_workers} workers")

    @log_execution_time
    def build_summary(self, start_date: Optional[date] = None,
                      end_date: Optional[date] = None,
                      cancel_event: Optional[threading.Event] = None) -> AggregateSummary:
        """
        Build the aggregate summary.

        Args:
            start_date: First month of the historical series (default 10 years ago)
            end_date: Last month of the historical series (default today)
            cancel_event: Set by the caller to abandon the run

        Returns:
            A well-formed summary, synthetic wherever live data was unavailable

        Raises:
            RequestCancelled: If cancel_event was set before the run finished
        """
        collector = ErrorCollector()
        start, end = self._resolve_window(start_date, end_date, collector)

        try:
            agencies, titles, history = self._fetch_sources(start, end, collector, cancel_event)
        except RequestCancelled:
            raise
        except CFRMetricsError as e:
            logger.error(f"Error in parallel fetching: {e.message}")
            return self.synthetic.summary(start, end)
        except Exception as e:
            logger.exception(f"Unexpected error in parallel fetching: {e}")
            return self.synthetic.summary(start, end)

        check_cancelled(cancel_event)
        if not agencies:
            logger.warning("No agencies available from upstream, using synthetic summary")
            return self.synthetic.summary(start, end)

        as_of = self.as_of or date.today()
        word_counts, scores = self._aggregate_agencies(
            agencies, titles, as_of, collector, cancel_event
        )
        # Tasks without an upstream call never observe the event
        check_cancelled(cancel_event)

        summary = AggregateSummary.from_collections(
            word_counts, scores, history, degraded=collector.has_errors()
        )

        if collector.has_errors() or collector.has_warnings():
            logger.warning(f"Summary built with notes:\n{collector.get_error_summary()}")
        logger.info(f"Aggregate summary completed: {summary.get_summary()}")
        return summary

    def _resolve_window(self, start_date: Optional[date], end_date: Optional[date],
                        collector: ErrorCollector) -> Tuple[date, date]:
        default_start, default_end = default_window()
        start = start_date or default_start
        end = end_date or default_end
        if end < start:
            logger.warning(f"Historical range {start} to {end} is reversed, swapping")
            collector.add_warning(f"Reversed range {start} to {end} was swapped", "history")
            start, end = end, start
        return start, end

    def _fetch_sources(self, start: date, end: date, collector: ErrorCollector,
                       cancel_event: Optional[threading.Event]
                       ) -> Tuple[List[Agency], List[Title], List[HistoricalDataPoint]]:
        """Fetch agencies, titles and the historical series concurrently."""
        check_cancelled(cancel_event)

        with ThreadPoolExecutor(max_workers=3) as executor:
            agencies_future = executor.submit(self.client.list_agencies)
            titles_future = executor.submit(self.client.list_titles)
            history_future = executor.submit(self._fetch_history, start, end, collector)

            agencies = agencies_future.result()
            titles = titles_future.result()
            history = history_future.result()

        logger.info(
            f"Fetched {len(agencies)} agencies, {len(titles)} titles, "
            f"{len(history)} historical points"
        )
        return agencies, titles, history

    def _fetch_history(self, start: date, end: date,
                       collector: ErrorCollector) -> List[HistoricalDataPoint]:
        titles = self.client.list_titles()
        if not titles:
            collector.add_error(SampleExhausted("No titles available for historical series"))
            return self.synthetic.historical_series(start, end)
        return self.history_builder.build(titles, start, end)

    def _aggregate_agencies(self, agencies: List[Agency], titles: List[Title], as_of: date,
                            collector: ErrorCollector,
                            cancel_event: Optional[threading.Event]
                            ) -> Tuple[List[AgencyWordCount], List[ComplexityScore]]:
        """Run per-agency word-count and complexity tasks on a bounded pool."""
        word_counter = WordCountAggregator(
            self.client, self.synthetic, collector=collector,
            max_depth=self.client.max_tree_depth
        )
        analyzer = ComplexityAnalyzer(self.client, self.synthetic, collector=collector)

        logger.info(f"Aggregating metrics for {len(agencies)} agencies")

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            word_futures = {
                executor.submit(
                    self._run_isolated, word_counter.aggregate_agency,
                    self.synthetic.agency_word_count, agency, titles, as_of,
                    collector, cancel_event
                ): index
                for index, agency in enumerate(agencies)
            }
            score_futures = {
                executor.submit(
                    self._run_isolated, analyzer.aggregate_agency,
                    self.synthetic.complexity_score, agency, titles, as_of,
                    collector, cancel_event
                ): index
                for index, agency in enumerate(agencies)
            }

            try:
                word_counts = self._collect(word_futures)
                scores = self._collect(score_futures)
            except RequestCancelled:
                for future in list(word_futures) + list(score_futures):
                    future.cancel()
                logger.info("Orchestration cancelled, discarding partial results")
                raise

        return word_counts, scores

    @staticmethod
    def _collect(futures: Dict[Future, int]) -> list:
        """Gather task results back into agency order."""
        results = [None] * len(futures)
        for future in as_completed(futures):
            results[futures[future]] = future.result()
        return results

    @staticmethod
    def _run_isolated(task: Callable, fallback: Callable[[str], object], agency: Agency,
                      titles: List[Title], as_of: date, collector: ErrorCollector,
                      cancel_event: Optional[threading.Event]):
        """Run one agency task so that no failure can escape into the batch."""
        try:
            return task(agency, titles, as_of, cancel_event)
        except RequestCancelled:
            raise
        except Exception as e:
            logger.error(f"Unexpected error processing agency {agency.name}: {e}")
            collector.add_error(e, context=agency.name)
            return fallback(agency.name)

    def close(self) -> None:
        """Close the eCFR client if this orchestrator created it."""
        if self._owns_client:
            self.client.close()

    def __enter__(self) -> 'AggregateOrchestrator':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
