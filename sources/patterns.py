"""Pattern-based sources that suggest typical recurring vendor opportunities.

These sources do not scrape anything. They derive plausible opportunities
(markets, fairs, conventions) from the searched city and attach search links
so the vendor can find the real listing.
"""
import logging
import random
import re
from datetime import date, timedelta
from typing import List, Optional

from discovery.dates import parse_date
from discovery.links import build_opportunity_links
from discovery.models import DiscoveredEvent, SearchCriteria

logger = logging.getLogger(__name__)

LISTING_TEMPLATES = {
    'craft-fair': ['{city} Craft Fair', '{city} Artisan Market',
                   '{city} Handmade Market', "{city} Maker's Fair"],
    'farmers-market': ['{city} Farmers Market', '{city} Weekend Market',
                       '{city} Community Market'],
    'art-show': ['{city} Art Show', '{city} Artisan Showcase',
                 '{city} Local Artists Market'],
    'convention': ['{city} Convention', '{city} Expo', '{city} Trade Show'],
    'festival': ['{city} Festival', '{city} Street Fair',
                 '{city} Community Festival'],
}


def split_city_state(location: str):
    """Extract (city, two-letter state) from "City, ST ..." text."""
    parts = location.split(',')
    city = parts[0].strip() or location.strip()
    state = ''
    if len(parts) > 1:
        match = re.search(r'\b[A-Z]{2}\b', parts[1])
        state = match.group(0) if match else ''
    return city, state


def add_months(day: date, months: int) -> date:
    month_index = day.month - 1 + months
    year = day.year + month_index // 12
    month = month_index % 12 + 1
    for candidate in (day.day, 30, 29, 28):
        try:
            return day.replace(year=year, month=month, day=candidate)
        except ValueError:
            continue
    raise ValueError(f"Cannot shift {day} by {months} months")


def one_year_earlier(day: date) -> date:
    try:
        return day.replace(year=day.year - 1)
    except ValueError:
        # Feb 29
        return day.replace(year=day.year - 1, day=28)


class ListingPatternSource:
    """Weekly listing-style suggestions, optionally with last year's editions."""

    name = 'listings'
    MIN_EVENTS = 3
    MAX_EVENTS = 5

    def __init__(self, rng: Optional[random.Random] = None,
                 today: Optional[date] = None):
        """
        Initialize the source.

        Args:
            rng: Random generator for names, costs and historical picks
            today: Reference date, defaults to the current date
        """
        self.rng = rng or random.Random()
        self.today = today

    def search(self, criteria: SearchCriteria) -> List[DiscoveredEvent]:
        today = self.today or date.today()
        event_type = criteria.event_type or 'craft-fair'
        city, _ = split_city_state(criteria.location)
        templates = LISTING_TEMPLATES.get(event_type, LISTING_TEMPLATES['craft-fair'])
        base_date = parse_date(criteria.date_from) or today

        events = []
        count = self.rng.randint(self.MIN_EVENTS, self.MAX_EVENTS)
        for i in range(count):
            event_date = base_date + timedelta(days=7 * i)
            if criteria.include_historical and self.rng.random() > 0.5:
                event_date = one_year_earlier(event_date)

            is_historical = event_date < today
            if not is_historical and not criteria.in_date_range(event_date.isoformat()):
                continue

            full_name = f"{self.rng.choice(templates).format(city=city)} {event_date.year}"
            links = build_opportunity_links(
                event_type, criteria.location,
                criteria.date_from, criteria.date_to, full_name
            )
            if is_historical:
                description = ('Search for real events like this in your area. '
                               'Past event, may recur annually.')
            else:
                description = ('Search for real events like this in your area. '
                               'Use the links below to find and apply.')

            events.append(DiscoveredEvent(
                name=full_name,
                start_date=event_date.isoformat(),
                end_date=event_date.isoformat(),
                location=criteria.location,
                event_type=event_type,
                table_cost=self.rng.randint(50, 249),
                is_historical=is_historical,
                source=self.name,
                opportunity_links=links,
                url=links.google,
                description=description
            ))

        logger.info(f"Generated {len(events)} listing suggestions for {city}")
        return events


class WebPatternSource:
    """Recurring markets, craft fairs and conventions named after the city."""

    name = 'web-search'

    def __init__(self, rng: Optional[random.Random] = None,
                 today: Optional[date] = None):
        self.rng = rng or random.Random()
        self.today = today

    def search(self, criteria: SearchCriteria) -> List[DiscoveredEvent]:
        today = self.today or date.today()
        events = []

        if criteria.matches_type('farmers-market'):
            events.extend(self.find_farmers_markets(criteria.location, today))
        if criteria.matches_type('craft-fair'):
            events.extend(self.find_craft_fairs(criteria.location, today))
        if not criteria.event_type or criteria.event_type in ('convention', 'expo', 'festival'):
            events.extend(self.find_conventions(criteria.location, today))

        events = [e for e in events if criteria.in_date_range(e.start_date)]
        logger.info(f"Web patterns produced {len(events)} suggestions")
        return events

    def find_farmers_markets(self, location: str, today: date) -> List[DiscoveredEvent]:
        city, _ = split_city_state(location)
        start = today + timedelta(days=7)
        names = [f"{city} Farmers Market", f"{city} Weekend Market",
                 f"{city} Community Market"]
        return self._series(
            names, location, 'farmers-market', start, add_months(start, 3),
            spacing_days=7, cost_range=(25, 124), length_days=0,
            description='Use the links below to find real farmers markets and vendor info.',
            recurring=True
        )

    def find_craft_fairs(self, location: str, today: date) -> List[DiscoveredEvent]:
        city, _ = split_city_state(location)
        start = add_months(today, 1)
        names = [f"{city} Craft Fair", f"{city} Artisan Market",
                 f"{city} Handmade Market"]
        return self._series(
            names, location, 'craft-fair', start, add_months(start, 3),
            spacing_days=14, cost_range=(75, 224), length_days=0,
            description='Use the links below to find real craft fairs and apply to vend.'
        )

    def find_conventions(self, location: str, today: date) -> List[DiscoveredEvent]:
        city, state = split_city_state(location)
        start = add_months(today, 2)
        convention = f"{city} {state} Convention" if state else f"{city} Convention"
        names = [convention, f"{city} Expo", f"{city} Trade Show"]
        return self._series(
            names, location, 'convention', start, add_months(start, 4),
            spacing_days=30, cost_range=(200, 699), length_days=2,
            description='Use the links below to find real conventions and vendor applications.'
        )

    def _series(self, names, location, event_type, start, window_end,
                spacing_days, cost_range, length_days, description,
                recurring=False) -> List[DiscoveredEvent]:
        links = build_opportunity_links(
            event_type, location, start.isoformat(), window_end.isoformat()
        )
        events = []
        for index, name in enumerate(names):
            event_date = start + timedelta(days=index * spacing_days)
            events.append(DiscoveredEvent(
                name=name,
                start_date=event_date.isoformat(),
                end_date=(event_date + timedelta(days=length_days)).isoformat(),
                location=location,
                event_type=event_type,
                table_cost=self.rng.randint(*cost_range),
                source=self.name,
                opportunity_links=links,
                url=links.google,
                description=description,
                recurring=recurring
            ))
        return events
