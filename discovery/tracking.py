"""Per-event applied/interested status, persisted in the key-value store."""
import logging
from typing import Dict

from discovery.models import utc_now_iso
from storage.dynamodb_store import KeyValueStore

logger = logging.getLogger(__name__)

TRACKED_EVENTS_KEY = 'trackedEvents'
STATUSES = ('applied', 'interested')


class TrackingStore:
    """
    Status map of the form {event_id: {applied?, interested?, trackedAt}}.

    A record exists only while at least one flag is set.
    """

    def __init__(self, store: KeyValueStore):
        self.store = store
        self._tracked: Dict[str, dict] = dict(store.get(TRACKED_EVENTS_KEY, {}) or {})

    def track(self, event_id: str, status: str) -> dict:
        """Set a status flag and stamp trackedAt."""
        self._check_status(status)
        record = self._tracked.setdefault(event_id, {})
        record[status] = True
        record['trackedAt'] = utc_now_iso()
        self._save()
        logger.info(f"Tracked event {event_id} as {status}")
        return dict(record)

    def untrack(self, event_id: str, status: str) -> dict:
        """Clear a status flag, dropping the record when no flag remains."""
        self._check_status(status)
        record = self._tracked.get(event_id)
        if record is None or status not in record:
            return self.status(event_id)

        del record[status]
        if not any(record.get(s) for s in STATUSES):
            del self._tracked[event_id]
        self._save()
        logger.info(f"Cleared {status} for event {event_id}")
        return self.status(event_id)

    def status(self, event_id: str) -> dict:
        """Return a copy of the event's record, or {} if untracked."""
        return dict(self._tracked.get(event_id, {}))

    def is_tracked(self, event_id: str, status: str) -> bool:
        return bool(self._tracked.get(event_id, {}).get(status, False))

    def mark_interested(self, event_id: str) -> dict:
        """Toggle the interested flag."""
        if self.is_tracked(event_id, 'interested'):
            return self.untrack(event_id, 'interested')
        return self.track(event_id, 'interested')

    def mark_applied(self, event_id: str) -> dict:
        return self.track(event_id, 'applied')

    def all(self) -> Dict[str, dict]:
        return {event_id: dict(record) for event_id, record in self._tracked.items()}

    def _check_status(self, status: str) -> None:
        if status not in STATUSES:
            raise ValueError(f"Unknown tracking status '{status}', expected one of {STATUSES}")

    def _save(self) -> None:
        self.store.put(TRACKED_EVENTS_KEY, self._tracked)
