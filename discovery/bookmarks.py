"""Bookmarked copies of discovered events."""
import logging
from datetime import date
from typing import List, Optional

from discovery.dates import parse_date
from discovery.models import DiscoveredEvent, utc_now_iso
from storage.dynamodb_store import KeyValueStore

logger = logging.getLogger(__name__)

BOOKMARKED_EVENTS_KEY = 'bookmarkedEvents'


class BookmarkStore:
    """Persisted bookmarks, decoupled from the lifecycle of the original event."""

    def __init__(self, store: KeyValueStore):
        self.store = store

    def list(self) -> List[dict]:
        """Bookmarks ordered by original date, most recent first."""
        bookmarks = list(self.store.get(BOOKMARKED_EVENTS_KEY, []) or [])
        return sorted(
            bookmarks,
            key=lambda b: parse_date(b.get('originalDate') or b.get('startDate')) or date.min,
            reverse=True
        )

    def is_bookmarked(self, event_id: str) -> bool:
        return any(b.get('id') == event_id for b in self._load())

    def bookmark(self, event: DiscoveredEvent, notes: str = '',
                 today: Optional[date] = None) -> bool:
        """
        Store a copy of the event.

        Args:
            event: Event to bookmark
            notes: Free-form vendor notes
            today: Reference date for historical tagging

        Returns:
            False if the event was already bookmarked
        """
        if self.is_bookmarked(event.id):
            logger.info(f"Event {event.id} is already bookmarked")
            return False

        today = today or date.today()
        record = event.to_dict()
        record.update({
            'bookmarkedAt': utc_now_iso(),
            'originalDate': event.start_date,
            'notes': notes,
            'isHistorical': event.is_historical or event.starts_before(today)
        })
        bookmarks = self._load()
        bookmarks.append(record)
        self.store.put(BOOKMARKED_EVENTS_KEY, bookmarks)
        logger.info(f"Bookmarked event '{event.name}'")
        return True

    def remove(self, event_id: str) -> bool:
        bookmarks = self._load()
        remaining = [b for b in bookmarks if b.get('id') != event_id]
        if len(remaining) == len(bookmarks):
            return False
        self.store.put(BOOKMARKED_EVENTS_KEY, remaining)
        return True

    def _load(self) -> List[dict]:
        return list(self.store.get(BOOKMARKED_EVENTS_KEY, []) or [])
