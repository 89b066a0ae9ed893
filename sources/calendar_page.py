"""Source that scrapes an HTML event calendar listing."""
import logging
import re
import time
from datetime import date, timedelta
from typing import List, Optional
from urllib.parse import urljoin

import requests
from bs4 import BeautifulSoup

from discovery.dates import normalize_date
from discovery.links import build_opportunity_links
from discovery.models import DiscoveredEvent, SearchCriteria

logger = logging.getLogger(__name__)


def slugify_event_type(text: str) -> str:
    """'Craft Fair' -> 'craft-fair'"""
    return re.sub(r'[^a-z0-9]+', '-', text.strip().lower()).strip('-')


def parse_cost(text: str) -> float:
    """Extract the first number from text such as '$75 per table'."""
    match = re.search(r'\d+(?:\.\d+)?', text.replace(',', ''))
    return float(match.group(0)) if match else 0


class CalendarPageSource:
    """Scraper for calendar pages that list events as ``div.event-item`` blocks."""

    name = 'calendar-page'
    MAX_RETRIES = 3
    DAYS_AHEAD = 90

    def __init__(self, url: str, timeout: int = 30, base_delay: float = 1.0,
                 today: Optional[date] = None):
        """
        Initialize the calendar scraper.

        Args:
            url: Calendar page URL
            timeout: HTTP request timeout in seconds
            base_delay: Initial retry delay in seconds, doubled per attempt
            today: Reference date for the default date window
        """
        self.url = url
        self.timeout = timeout
        self.base_delay = base_delay
        self.today = today

    def search(self, criteria: SearchCriteria) -> List[DiscoveredEvent]:
        """
        Fetch the calendar for the criteria's date window and parse it.

        Raises:
            requests.RequestException: If all retry attempts fail
        """
        today = self.today or date.today()
        start = criteria.date_from or today.isoformat()
        end = criteria.date_to or (today + timedelta(days=self.DAYS_AHEAD)).isoformat()

        html_content = self._fetch_calendar_html(start, end)
        events = [
            event for event in self._parse_events(html_content, criteria)
            if criteria.matches_type(event.event_type) and
            criteria.in_date_range(event.start_date)
        ]

        logger.info(f"Calendar page yielded {len(events)} matching events")
        return events

    def _fetch_calendar_html(self, start: str, end: str) -> str:
        """
        Fetch calendar HTML with retry logic.

        Raises:
            requests.RequestException: If all retry attempts fail
        """
        params = {'start': start, 'end': end}

        for attempt in range(self.MAX_RETRIES):
            try:
                logger.info(
                    f"Fetching calendar HTML (attempt {attempt + 1}/{self.MAX_RETRIES})"
                )
                response = requests.get(self.url, params=params, timeout=self.timeout)
                response.raise_for_status()
                return response.text

            except requests.RequestException as e:
                if attempt < self.MAX_RETRIES - 1:
                    delay = self.base_delay * (2 ** attempt)
                    logger.warning(
                        f"Request failed (attempt {attempt + 1}/{self.MAX_RETRIES}): {e}. "
                        f"Retrying in {delay} seconds..."
                    )
                    time.sleep(delay)
                else:
                    logger.error(
                        f"All {self.MAX_RETRIES} retry attempts failed. Last error: {e}"
                    )
                    raise

    def _parse_events(self, html_content: str,
                      criteria: SearchCriteria) -> List[DiscoveredEvent]:
        soup = BeautifulSoup(html_content, 'html.parser')
        events = []

        for element in soup.find_all('div', class_='event-item'):
            try:
                event = self._parse_event_element(element, criteria)
                if event:
                    events.append(event)
            except Exception as e:
                logger.warning(f"Failed to parse event element: {e}")
                continue

        return events

    def _parse_event_element(self, element,
                             criteria: SearchCriteria) -> Optional[DiscoveredEvent]:
        """
        Parse a single event element.

        Returns:
            DiscoveredEvent or None if title or date is missing or unparseable
        """
        title_elem = element.find('h3', class_='event-title')
        date_elem = element.find('span', class_='event-date')
        end_date_elem = element.find('span', class_='event-end-date')
        location_elem = element.find('span', class_='event-location')
        category_elem = element.find('span', class_='event-category')
        cost_elem = element.find('span', class_='event-cost')
        description_elem = element.find('div', class_='event-description')
        url_elem = element.find('a', class_='event-link')

        if not title_elem or not date_elem:
            return None

        title = title_elem.get_text(strip=True)
        start_date = normalize_date(date_elem.get_text(strip=True))
        if not title or not start_date:
            logger.warning(f"Skipping calendar entry with invalid title or date: {title!r}")
            return None

        end_date = None
        if end_date_elem:
            end_date = normalize_date(end_date_elem.get_text(strip=True))

        location = location_elem.get_text(strip=True) if location_elem else ''
        event_type = slugify_event_type(category_elem.get_text()) if category_elem else ''
        url = urljoin(self.url, url_elem.get('href')) if url_elem and url_elem.get('href') else None

        return DiscoveredEvent(
            name=title,
            start_date=start_date,
            end_date=end_date or start_date,
            location=location or criteria.location,
            event_type=event_type,
            table_cost=parse_cost(cost_elem.get_text()) if cost_elem else 0,
            source=self.name,
            opportunity_links=build_opportunity_links(
                event_type, location or criteria.location,
                start_date, end_date or start_date, title
            ),
            url=url,
            description=description_elem.get_text(strip=True) if description_elem else ''
        )
