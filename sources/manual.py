"""Manually entered events saved by the vendor."""
import logging
from typing import List, Optional

from discovery.dates import normalize_date
from discovery.models import DiscoveredEvent, SearchCriteria
from geo.resolver import GeoResolver, LocationNotFound, is_zip_code
from storage.dynamodb_store import KeyValueStore
from storage.events_collection import EventsCollection

logger = logging.getLogger(__name__)

DISCOVERED_EVENTS_KEY = 'discoveredEvents'


class ManualEventSource:
    """Source backed by the vendor's saved manual entries."""

    name = 'manual'

    def __init__(self, store: KeyValueStore,
                 events_collection: Optional[EventsCollection] = None,
                 resolver: Optional[GeoResolver] = None):
        """
        Initialize the manual source.

        Args:
            store: Key-value store holding saved discoveries
            events_collection: Collection new entries are also committed to
            resolver: Used to expand a ZIP location into "City, ST ZIP"
        """
        self.store = store
        self.events_collection = events_collection
        self.resolver = resolver

    def saved_events(self) -> List[DiscoveredEvent]:
        events = []
        for item in self.store.get(DISCOVERED_EVENTS_KEY, []) or []:
            try:
                events.append(DiscoveredEvent.from_dict(item))
            except KeyError as e:
                logger.warning(f"Skipping saved event missing field {e}")
        return events

    def search(self, criteria: SearchCriteria) -> List[DiscoveredEvent]:
        """Saved manual events matching the type and date range."""
        matches = [
            event for event in self.saved_events()
            if criteria.matches_type(event.event_type) and
            criteria.in_date_range(event.start_date)
        ]
        logger.info(f"Manual source matched {len(matches)} saved events")
        return matches

    def add_event(
        self,
        name: str,
        start_date: str,
        location: str,
        end_date: Optional[str] = None,
        table_cost: float = 0,
        event_type: str = '',
        url: str = '',
        description: str = ''
    ) -> DiscoveredEvent:
        """
        Save a manually entered event.

        Raises:
            ValueError: If name, start date or location is missing or the
                start date cannot be parsed
        """
        name = (name or '').strip()
        location = (location or '').strip()
        if not name or not start_date or not location:
            raise ValueError("Name, start date and location are required")

        normalized_start = normalize_date(start_date)
        if not normalized_start:
            raise ValueError(f"Invalid start date: {start_date}")
        normalized_end = normalize_date(end_date) if end_date else None

        location = self._enhance_location(location)

        event = DiscoveredEvent(
            name=name,
            start_date=normalized_start,
            end_date=normalized_end or normalized_start,
            location=location,
            event_type=event_type,
            table_cost=table_cost or 0,
            url=url or None,
            description=description,
            source=self.name
        )

        saved = list(self.store.get(DISCOVERED_EVENTS_KEY, []) or [])
        saved.append(event.to_dict())
        self.store.put(DISCOVERED_EVENTS_KEY, saved)

        if self.events_collection is not None:
            self.events_collection.add(event)

        logger.info(f"Saved manual event '{event.name}'")
        return event

    def remove(self, event_id: str) -> bool:
        saved = list(self.store.get(DISCOVERED_EVENTS_KEY, []) or [])
        remaining = [item for item in saved if item.get('id') != event_id]
        if len(remaining) == len(saved):
            return False
        self.store.put(DISCOVERED_EVENTS_KEY, remaining)
        return True

    def _enhance_location(self, location: str) -> str:
        if self.resolver is None or not is_zip_code(location):
            return location
        try:
            return self.resolver.resolve(location).address
        except LocationNotFound as e:
            logger.warning(f"Keeping ZIP location as typed: {e}")
            return location
