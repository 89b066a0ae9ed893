"""Search links and display helpers for discovered opportunities."""
from datetime import date
from typing import Optional
from urllib.parse import quote

from discovery.dates import parse_date
from discovery.models import OpportunityLinks

EVENT_TYPE_LABELS = {
    'craft-fair': 'Craft Fair',
    'farmers-market': 'Farmers Market',
    'art-show': 'Art Show',
    'convention': 'Convention',
    'festival': 'Festival',
    'market': 'Market',
    'expo': 'Expo',
}


def format_event_type(event_type: Optional[str]) -> str:
    if not event_type:
        return ''
    return EVENT_TYPE_LABELS.get(event_type, event_type)


def _year_of(date_str: Optional[str], fallback: int) -> int:
    parsed = parse_date(date_str)
    return parsed.year if parsed else fallback


def build_opportunity_links(
    event_type: Optional[str],
    location: Optional[str],
    date_from: Optional[str] = None,
    date_to: Optional[str] = None,
    event_name: str = ''
) -> OpportunityLinks:
    """
    Build Google, Eventbrite and Facebook search links for an opportunity.

    With an event name the Google/Facebook query targets that event;
    otherwise it searches the event type in the location over the year range.
    """
    type_label = format_event_type(event_type or 'craft-fair')
    location_clean = (location or '').strip()
    year_from = _year_of(date_from, date.today().year)
    year_to = _year_of(date_to, year_from)
    year_range = str(year_from) if year_from == year_to else f"{year_from}-{year_to}"

    if event_name:
        query = f"{event_name} {location_clean}"
    else:
        query = f"{type_label} {location_clean} {year_range}"

    query_enc = quote(query, safe='')
    eventbrite_query = quote(f"{type_label} {location_clean}", safe='')

    return OpportunityLinks(
        google=f"https://www.google.com/search?q={query_enc}",
        eventbrite=f"https://www.eventbrite.com/search/?q={eventbrite_query}",
        facebook=f"https://www.facebook.com/events/search/?q={query_enc}"
    )


def estimate_profitability(table_cost: Optional[float]) -> str:
    """Rough profitability band from the table cost."""
    cost = table_cost or 0
    if cost < 100:
        return 'High'
    if cost < 300:
        return 'Medium'
    return 'Low'
