"""Multi-select state over the displayed result list."""
import logging
from typing import Callable, Iterable, List, Optional, Set

from discovery.models import BulkCommitResult, DiscoveredEvent
from discovery.tracking import TrackingStore
from storage.events_collection import EventsCollection

logger = logging.getLogger(__name__)


class SelectionSet:
    """In-memory set of selected event ids. Never persisted."""

    def __init__(self):
        self._ids: Set[str] = set()

    def toggle(self, event_id: str) -> bool:
        """Flip selection of an id. Returns True if it is now selected."""
        if event_id in self._ids:
            self._ids.discard(event_id)
            return False
        self._ids.add(event_id)
        return True

    def select_all(self, events: Iterable[DiscoveredEvent],
                   predicate: Optional[Callable[[DiscoveredEvent], bool]] = None) -> int:
        """
        Add every visible event matching predicate.

        Returns:
            Number of ids newly selected
        """
        before = len(self._ids)
        for event in events:
            if predicate is None or predicate(event):
                self._ids.add(event.id)
        return len(self._ids) - before

    def clear(self) -> None:
        self._ids.clear()

    def size(self) -> int:
        return len(self._ids)

    def ids(self) -> List[str]:
        return sorted(self._ids)

    def __contains__(self, event_id: str) -> bool:
        return event_id in self._ids

    def bulk_commit(self, events: Iterable[DiscoveredEvent],
                    events_collection: EventsCollection,
                    tracking: TrackingStore) -> BulkCommitResult:
        """
        Commit the selected events into the shared events collection, in the
        order they appear in the result list.

        Ids whose (name, start date) already exist are skipped but every
        attempted id is marked applied. The selection is cleared afterwards.

        Args:
            events: Current result list the selection refers to
            events_collection: Shared events collection
            tracking: Status store to mark applied events in

        Returns:
            BulkCommitResult with added and already-existed counts
        """
        events = list(events)
        listed = {event.id for event in events}
        for event_id in self._ids - listed:
            logger.warning(f"Selected event {event_id} is not in the result list")

        added = 0
        already_existed = 0

        for event in events:
            if event.id not in self._ids:
                continue

            if events_collection.add_if_absent(event):
                added += 1
            else:
                already_existed += 1
            tracking.mark_applied(event.id)

        self.clear()
        logger.info(
            f"Bulk commit complete: {added} added, {already_existed} already existed"
        )
        return BulkCommitResult(added=added, already_existed=already_existed)
