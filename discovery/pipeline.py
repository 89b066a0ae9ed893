"""Search orchestration: resolve origin, aggregate sources, annotate, sort.

Each call to ``DiscoverySession.search`` starts a new generation. Distance and
display-name annotation tasks carry the generation they were started for and
only write into the result set while that generation is still current, so a
batch that finishes after a newer search never touches the newer results.
"""
import logging
import re
from concurrent.futures import ThreadPoolExecutor, wait
from typing import Dict, List, Optional, Sequence

from discovery.aggregator import EventAggregator
from discovery.bookmarks import BookmarkStore
from discovery.models import (
    BulkCommitResult,
    DiscoveredEvent,
    SearchCriteria,
    SearchOutcome,
)
from discovery.selection import SelectionSet
from discovery.sorting import sort_events
from discovery.tracking import TrackingStore
from geo.distance import DistanceEngine
from geo.models import ResolvedLocation
from geo.resolver import GeoResolver, LocationNotFound, is_coordinate_pair, parse_coordinates
from sources.base import EventSource
from storage.dynamodb_store import KeyValueStore
from storage.events_collection import EventsCollection

logger = logging.getLogger(__name__)

USER_LOCATION_KEY = 'userLocation'
TRAILING_ZIP = re.compile(r'\s+\d{5}(-\d{4})?$')


def format_location_name(location: Optional[str]) -> str:
    """Shorten an address to "City, State" for display."""
    if not location:
        return ''
    parts = location.split(',')
    if len(parts) > 1 and not is_coordinate_pair(location):
        city_state = ','.join(parts[:2]).strip()
        return TRAILING_ZIP.sub('', city_state).strip()
    return location


class DiscoverySession:
    """State of one vendor's discovery session."""

    def __init__(
        self,
        resolver: GeoResolver,
        distance_engine: DistanceEngine,
        sources: Sequence[EventSource],
        store: KeyValueStore,
        aggregator: Optional[EventAggregator] = None,
        tracking: Optional[TrackingStore] = None,
        bookmarks: Optional[BookmarkStore] = None,
        events_collection: Optional[EventsCollection] = None,
        max_workers: int = 8
    ):
        """
        Initialize the session.

        Args:
            resolver: Location resolver (shared geocode cache)
            distance_engine: Distance engine (shared distance cache)
            sources: Source collaborators in priority order
            store: Persistent key-value store
            aggregator: Event aggregator, created if omitted
            tracking: Status store, created over store if omitted
            bookmarks: Bookmark store, created over store if omitted
            events_collection: Shared events collection, created if omitted
            max_workers: Thread pool size for annotation batches
        """
        self.resolver = resolver
        self.distance_engine = distance_engine
        self.sources = list(sources)
        self.store = store
        self.aggregator = aggregator or EventAggregator(max_workers=max_workers)
        self.tracking = tracking or TrackingStore(store)
        self.bookmarks = bookmarks or BookmarkStore(store)
        self.events_collection = events_collection or EventsCollection(store)
        self.max_workers = max_workers

        self.selection = SelectionSet()
        self.generation = 0
        self.results: List[DiscoveredEvent] = []
        self.origin: Optional[ResolvedLocation] = None
        self._by_id: Dict[str, DiscoveredEvent] = {}
        self._display_names: Dict[str, str] = {}
        self.user_location = self._load_user_location()

    def search(self, criteria: SearchCriteria, sort_by: str = 'date') -> SearchOutcome:
        """
        Run a full search.

        The deduplicated result list is complete before annotation starts;
        annotation finishes (all tasks joined) before the list is sorted.

        Args:
            criteria: Search parameters
            sort_by: Sort key for the returned list

        Returns:
            SearchOutcome with status "ok", "empty" or "error"
        """
        self.generation += 1
        generation = self.generation
        self.selection.clear()
        self._display_names = {}
        logger.info(
            f"Search {generation} started for '{criteria.location}'",
            extra={'event_type': criteria.event_type, 'radius': criteria.radius}
        )

        origin = self._resolve_origin(criteria.location)
        aggregation = self.aggregator.collect(self.sources, criteria)

        if aggregation.all_failed:
            logger.error(
                f"Search {generation} failed: all sources unavailable",
                extra={'failed_sources': aggregation.failed_sources}
            )
            self._publish(generation, [], origin)
            return SearchOutcome(
                status='error',
                events=[],
                origin=origin,
                failed_sources=aggregation.failed_sources,
                generation=generation
            )

        self._publish(generation, aggregation.events, origin)

        if origin is not None and self.results:
            self.annotate(generation, origin)

        status = 'ok' if self.results else 'empty'
        logger.info(f"Search {generation} finished with {len(self.results)} events")
        return SearchOutcome(
            status=status,
            events=sort_events(self.results, sort_by),
            origin=origin,
            failed_sources=aggregation.failed_sources,
            generation=generation
        )

    def annotate(self, generation: int, origin: ResolvedLocation) -> int:
        """
        Annotate the current results in parallel and wait for every task.

        Args:
            generation: Search generation the batch belongs to
            origin: Search origin to measure from

        Returns:
            Number of events that received a distance
        """
        events = list(self.results)
        if not events:
            return 0

        with ThreadPoolExecutor(max_workers=self.max_workers,
                                thread_name_prefix='annotate') as executor:
            futures = [
                executor.submit(self._annotate_one, generation, event, origin)
                for event in events
            ]
            done, _ = wait(futures)

        annotated = 0
        for future in done:
            if future.exception() is not None:
                logger.warning(f"Annotation task failed: {future.exception()}")
            elif future.result():
                annotated += 1

        logger.info(f"Annotated {annotated}/{len(events)} events with distance")
        return annotated

    def resort(self, sort_by: str) -> List[DiscoveredEvent]:
        return sort_events(self.results, sort_by)

    def is_current(self, generation: int, event_id: str) -> bool:
        return generation == self.generation and event_id in self._by_id

    # Pure queries for any presentation layer

    def status(self, event_id: str) -> dict:
        return self.tracking.status(event_id)

    def distance_of(self, event_id: str) -> Optional[float]:
        event = self._by_id.get(event_id)
        return event.distance if event else None

    def display_location(self, event_id: str) -> str:
        if event_id in self._display_names:
            return self._display_names[event_id]
        event = self._by_id.get(event_id)
        return format_location_name(event.location) if event else ''

    def get_event(self, event_id: str) -> DiscoveredEvent:
        """
        Raises:
            KeyError: If the id is not in the current results
        """
        return self._by_id[event_id]

    # Actions

    def toggle_selection(self, event_id: str) -> bool:
        """Toggle selection of a displayed event. Unknown ids are ignored."""
        if event_id not in self._by_id:
            logger.warning(f"Cannot select {event_id}: not in current results")
            return False
        return self.selection.toggle(event_id)

    def select_all(self) -> int:
        """Select every displayed event not already applied to."""
        return self.selection.select_all(
            self.results,
            lambda event: not self.tracking.is_tracked(event.id, 'applied')
        )

    def bulk_apply(self) -> BulkCommitResult:
        return self.selection.bulk_commit(
            self.results, self.events_collection, self.tracking
        )

    def quick_apply(self, event_id: str) -> bool:
        """
        Commit one event and mark it applied.

        Returns:
            True if it was added, False if it already existed

        Raises:
            KeyError: If the id is not in the current results
        """
        event = self.get_event(event_id)
        added = self.events_collection.add_if_absent(event)
        self.tracking.mark_applied(event_id)
        return added

    def mark_interested(self, event_id: str) -> dict:
        return self.tracking.mark_interested(event_id)

    def bookmark(self, event_id: str, notes: str = '') -> bool:
        return self.bookmarks.bookmark(self.get_event(event_id), notes=notes)

    def _publish(self, generation: int, events: List[DiscoveredEvent],
                 origin: Optional[ResolvedLocation]) -> None:
        if generation != self.generation:
            logger.info(f"Discarding results of superseded search {generation}")
            return
        self.results = list(events)
        self._by_id = {event.id: event for event in self.results}
        self.origin = origin

    def _annotate_one(self, generation: int, event: DiscoveredEvent,
                      origin: ResolvedLocation) -> bool:
        if is_coordinate_pair(event.location):
            lat, lon = parse_coordinates(event.location)
            name = self.resolver.place_name(lat, lon)
            if name and self.is_current(generation, event.id):
                self._display_names[event.id] = name

        distance = self.distance_engine.distance_for(event, origin)
        if distance is None:
            return False
        if not self.is_current(generation, event.id):
            logger.debug(f"Ignoring stale distance for event {event.id}")
            return False

        event.distance = distance
        return True

    def _resolve_origin(self, location: str) -> Optional[ResolvedLocation]:
        try:
            origin = self.resolver.resolve(location)
        except LocationNotFound as e:
            logger.warning(f"Proceeding without distances: {e}")
            return None

        self.user_location = origin
        self.store.put(USER_LOCATION_KEY, origin.to_dict())
        return origin

    def _load_user_location(self) -> Optional[ResolvedLocation]:
        data = self.store.get(USER_LOCATION_KEY)
        if not data:
            return None
        try:
            return ResolvedLocation.from_dict(data)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Ignoring unreadable saved location: {e}")
            return None
