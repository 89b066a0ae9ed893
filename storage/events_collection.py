"""Shared events collection that discoveries are committed into."""
import logging
from typing import List

from discovery.dates import calculate_days
from discovery.models import DiscoveredEvent, generate_id, utc_now_iso
from storage.dynamodb_store import KeyValueStore

logger = logging.getLogger(__name__)

EVENTS_KEY = 'events'


class EventsCollection:
    """The vendor's committed events, kept as a list under one store key."""

    def __init__(self, store: KeyValueStore):
        self.store = store

    def all(self) -> List[dict]:
        return list(self.store.get(EVENTS_KEY, []) or [])

    def exists(self, name: str, start_date: str) -> bool:
        """Check for a committed event with the same name and start date."""
        return any(
            record.get('name') == name and record.get('startDate') == start_date
            for record in self.all()
        )

    def add(self, event: DiscoveredEvent) -> dict:
        """
        Append a committed copy of a discovered event.

        The record gets a fresh id; the discovery keeps its own.
        """
        records = self.all()
        record = self._to_record(event)
        records.append(record)
        self.store.put(EVENTS_KEY, records)
        logger.info(f"Committed event '{event.name}' ({event.start_date})")
        return record

    def add_if_absent(self, event: DiscoveredEvent) -> bool:
        """
        Commit the event unless its (name, start date) is already present.

        Returns:
            True if a record was added
        """
        if self.exists(event.name, event.start_date):
            logger.info(
                f"Event '{event.name}' ({event.start_date}) already committed"
            )
            return False
        self.add(event)
        return True

    def _to_record(self, event: DiscoveredEvent) -> dict:
        end_date = event.end_date or event.start_date
        now = utc_now_iso()
        return {
            'id': generate_id(),
            'name': event.name,
            'startDate': event.start_date,
            'endDate': end_date,
            'days': calculate_days(event.start_date, end_date),
            'location': event.location,
            'eventType': event.event_type,
            'tableCost': event.table_cost or 0,
            'otherCosts': 0,
            'url': event.url or '',
            'description': event.description or '',
            'createdAt': now,
            'updatedAt': now
        }
