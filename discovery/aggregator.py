"""Merge events from several discovery sources into one deduplicated list."""
import logging
from concurrent.futures import ThreadPoolExecutor, wait
from datetime import date
from typing import Dict, Iterable, List, Optional, Sequence

from discovery.models import AggregationResult, DiscoveredEvent, SearchCriteria
from sources.base import EventSource, SourceUnavailable

logger = logging.getLogger(__name__)


class EventAggregator:
    """Queries sources concurrently and dedups their combined output."""

    def __init__(self, max_workers: int = 4, source_timeout: Optional[float] = None):
        """
        Initialize the aggregator.

        Args:
            max_workers: Thread pool size for concurrent source queries
            source_timeout: Seconds to wait for all sources; sources still
                running afterwards count as failed. None waits indefinitely.
        """
        self.max_workers = max_workers
        self.source_timeout = source_timeout

    def merge(self, event_lists: Iterable[Optional[List[DiscoveredEvent]]]) -> List[DiscoveredEvent]:
        """
        Deduplicate events by (name, start date, location).

        Args:
            event_lists: Per-source lists in priority order; None or empty
                lists contribute nothing

        Returns:
            Events in first-seen order, first instance of each key retained
        """
        seen = set()
        merged = []
        total = 0

        for events in event_lists:
            for event in events or []:
                total += 1
                key = event.dedup_key()
                if key in seen:
                    continue
                seen.add(key)
                merged.append(event)

        if total != len(merged):
            logger.info(f"Removed {total - len(merged)} duplicate events")
        return merged

    def collect(self, sources: Sequence[EventSource], criteria: SearchCriteria,
                today: Optional[date] = None) -> AggregationResult:
        """
        Query every source concurrently and merge the results.

        Args:
            sources: Source collaborators in priority order
            criteria: Search parameters forwarded to each source
            today: Reference date for historical tagging

        Returns:
            AggregationResult with merged events and failed source names
        """
        today = today or date.today()
        names = [self._source_name(source, i) for i, source in enumerate(sources)]
        contributions: List[List[DiscoveredEvent]] = [[] for _ in sources]
        failures: Dict[str, SourceUnavailable] = {}

        if not sources:
            return AggregationResult(events=[], failed_sources=[], queried_sources=[])

        executor = ThreadPoolExecutor(
            max_workers=max(1, min(self.max_workers, len(sources))),
            thread_name_prefix='source'
        )
        try:
            futures = [executor.submit(source.search, criteria) for source in sources]
            done, _ = wait(futures, timeout=self.source_timeout)

            for index, future in enumerate(futures):
                name = names[index]
                if future not in done:
                    self._record_failure(failures, name, TimeoutError('search timed out'))
                    continue

                try:
                    events = future.result() or []
                except Exception as e:
                    self._record_failure(failures, name, e)
                    continue

                contributions[index] = [
                    self._tag(event, name, today) for event in events
                ]
                logger.info(f"Source '{name}' returned {len(events)} events")
        finally:
            executor.shutdown(wait=False)

        merged = self.merge(contributions)
        logger.info(
            f"Aggregated {len(merged)} events from "
            f"{len(sources) - len(failures)}/{len(sources)} sources"
        )
        return AggregationResult(
            events=merged,
            failed_sources=list(failures),
            queried_sources=names,
            failures=failures
        )

    def _source_name(self, source, index: int) -> str:
        return getattr(source, 'name', None) or f"source-{index}"

    def _tag(self, event: DiscoveredEvent, source_name: str,
             today: date) -> DiscoveredEvent:
        if not event.source:
            event.source = source_name
        if not event.is_historical and event.starts_before(today):
            event.is_historical = True
        return event

    def _record_failure(self, failures: Dict[str, SourceUnavailable], name: str,
                        cause: BaseException) -> None:
        error = SourceUnavailable(name, cause)
        failures[name] = error
        logger.warning(
            str(error),
            extra={'source': name, 'error_type': type(cause).__name__}
        )
