"""Contract shared by discovery source collaborators."""
from typing import List, Protocol

from discovery.models import DiscoveredEvent, SearchCriteria


class SourceUnavailable(RuntimeError):
    """A discovery source failed to produce results."""

    def __init__(self, source_name: str, cause: BaseException = None):
        message = f"Source '{source_name}' unavailable"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)
        self.source_name = source_name
        self.cause = cause


class EventSource(Protocol):
    """Producer of candidate events for a search."""

    name: str

    def search(self, criteria: SearchCriteria) -> List[DiscoveredEvent]:
        """
        Return candidate events matching the criteria.

        Sources filter by event type and date range themselves. They may raise;
        the aggregator isolates failures per source.
        """
        ...
