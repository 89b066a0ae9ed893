"""Data models for event discovery."""
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Dict, List, Optional

from discovery.dates import parse_date
from geo.models import ResolvedLocation


def generate_id() -> str:
    """Generate a unique, never reused event identifier."""
    return uuid.uuid4().hex


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class OpportunityLinks:
    """Search links pointing at real listings for an opportunity."""
    google: str
    eventbrite: str
    facebook: str

    def to_dict(self) -> dict:
        return {
            'google': self.google,
            'eventbrite': self.eventbrite,
            'facebook': self.facebook
        }


@dataclass
class DiscoveredEvent:
    """Candidate sales opportunity produced by a source."""
    name: str
    start_date: str
    end_date: str
    location: str
    event_type: str
    table_cost: Optional[float] = 0
    id: str = field(default_factory=generate_id)
    distance: Optional[float] = None
    is_historical: bool = False
    source: Optional[str] = None
    opportunity_links: Optional[OpportunityLinks] = None
    url: Optional[str] = None
    description: str = ''
    discovered_at: str = field(default_factory=utc_now_iso)
    recurring: bool = False

    def dedup_key(self) -> tuple:
        return (self.name, self.start_date, self.location)

    def starts_before(self, day: date) -> bool:
        start = parse_date(self.start_date)
        return start is not None and start < day

    def to_dict(self) -> dict:
        """Serialize to the camelCase shape stored in the key-value store."""
        item = {
            'id': self.id,
            'name': self.name,
            'startDate': self.start_date,
            'endDate': self.end_date,
            'location': self.location,
            'eventType': self.event_type,
            'tableCost': self.table_cost,
            'isHistorical': self.is_historical,
            'description': self.description,
            'discoveredAt': self.discovered_at,
            'isDiscovered': True
        }

        # Optional fields only when present
        if self.distance is not None:
            item['distance'] = self.distance
        if self.source:
            item['source'] = self.source
        if self.opportunity_links:
            item['opportunityLinks'] = self.opportunity_links.to_dict()
        if self.url:
            item['url'] = self.url
        if self.recurring:
            item['recurring'] = True

        return item

    @classmethod
    def from_dict(cls, item: dict) -> 'DiscoveredEvent':
        """
        Build an event from its stored shape.

        Raises:
            KeyError: If name, startDate or location is missing
        """
        links = item.get('opportunityLinks')
        return cls(
            id=item.get('id') or generate_id(),
            name=item['name'],
            start_date=item['startDate'],
            end_date=item.get('endDate') or item['startDate'],
            location=item['location'],
            event_type=item.get('eventType', ''),
            table_cost=item.get('tableCost', 0),
            distance=item.get('distance'),
            is_historical=bool(item.get('isHistorical', False)),
            source=item.get('source'),
            opportunity_links=OpportunityLinks(
                google=links.get('google', ''),
                eventbrite=links.get('eventbrite', ''),
                facebook=links.get('facebook', '')
            ) if links else None,
            url=item.get('url'),
            description=item.get('description', ''),
            discovered_at=item.get('discoveredAt') or utc_now_iso(),
            recurring=bool(item.get('recurring', False))
        )


@dataclass
class SearchCriteria:
    """Parameters passed to every source collaborator."""
    location: str
    radius: int = 25
    event_type: Optional[str] = None
    date_from: Optional[str] = None
    date_to: Optional[str] = None
    include_historical: bool = False

    def matches_type(self, event_type: str) -> bool:
        return not self.event_type or self.event_type == event_type

    def in_date_range(self, start_date: str) -> bool:
        """
        Check a start date against the criteria's range.

        Unparseable dates and open-ended bounds pass.
        """
        start = parse_date(start_date)
        if start is None:
            return True
        lower = parse_date(self.date_from) if self.date_from else None
        upper = parse_date(self.date_to) if self.date_to else None
        if lower and start < lower:
            return False
        if upper and start > upper:
            return False
        return True


@dataclass
class AggregationResult:
    """Merged events plus the sources that failed, with their SourceUnavailable errors."""
    events: List[DiscoveredEvent]
    failed_sources: List[str]
    queried_sources: List[str]
    failures: Dict[str, Exception] = field(default_factory=dict)

    @property
    def all_failed(self) -> bool:
        return bool(self.queried_sources) and (
            len(self.failed_sources) == len(self.queried_sources)
        )


@dataclass
class BulkCommitResult:
    """Counts reported by a bulk commit into the events collection."""
    added: int
    already_existed: int

    def to_dict(self) -> dict:
        return {'added': self.added, 'alreadyExisted': self.already_existed}


@dataclass
class SearchOutcome:
    """Result of one search invocation."""
    status: str  # "ok" | "empty" | "error"
    events: List[DiscoveredEvent]
    origin: Optional[ResolvedLocation]
    failed_sources: List[str]
    generation: int
