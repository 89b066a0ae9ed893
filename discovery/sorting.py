"""Ordering of discovered events for display."""
import math
import unicodedata
from typing import List, Sequence

from discovery.dates import parse_date
from discovery.models import DiscoveredEvent

SORT_KEYS = ('date', 'date-desc', 'distance', 'cost', 'name')


def _cost(event: DiscoveredEvent) -> float:
    cost = event.table_cost
    if cost is None:
        return 0.0
    try:
        cost = float(cost)
    except (TypeError, ValueError):
        return 0.0
    return 0.0 if math.isnan(cost) else cost


def _distance(event: DiscoveredEvent) -> float:
    return math.inf if event.distance is None else event.distance


def _fold(text: str) -> str:
    """Strip accents and case so 'Éclair' sorts beside 'eclair'."""
    decomposed = unicodedata.normalize('NFKD', text)
    return ''.join(c for c in decomposed if not unicodedata.combining(c)).casefold()


def _name(event: DiscoveredEvent):
    name = event.name or ''
    return (_fold(name), name.casefold(), name)


def _by_date(events: Sequence[DiscoveredEvent], descending: bool) -> List[DiscoveredEvent]:
    # Unparseable dates always go last, in input order
    dated = []
    undated = []
    for event in events:
        start = parse_date(event.start_date)
        if start is None:
            undated.append(event)
        else:
            dated.append((start, event))

    # sorted() with reverse=True keeps ties in input order
    dated = sorted(dated, key=lambda pair: pair[0], reverse=descending)
    return [event for _, event in dated] + undated


def sort_events(events: Sequence[DiscoveredEvent], key: str = 'date') -> List[DiscoveredEvent]:
    """
    Return a new list of events ordered by key.

    Args:
        events: Events to order (not modified)
        key: One of 'date', 'date-desc', 'distance', 'cost', 'name'

    Returns:
        Newly ordered list

    Raises:
        ValueError: If key is not a supported sort key
    """
    if key == 'date':
        return _by_date(events, descending=False)
    if key == 'date-desc':
        return _by_date(events, descending=True)
    if key == 'distance':
        return sorted(events, key=_distance)
    if key == 'cost':
        return sorted(events, key=_cost)
    if key == 'name':
        return sorted(events, key=_name)

    raise ValueError(f"Unsupported sort key '{key}', expected one of {SORT_KEYS}")
