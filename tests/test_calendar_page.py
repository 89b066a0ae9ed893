"""Unit tests for CalendarPageSource."""
from datetime import date

import pytest
import responses
from requests.exceptions import RequestException

from discovery.models import SearchCriteria
from sources.calendar_page import CalendarPageSource, parse_cost, slugify_event_type

CALENDAR_URL = "https://calendar.example.com/vendors"

MOCK_HTML = """
<html>
    <body>
        <div class="event-item">
            <h3 class="event-title">Downtown Craft Fair</h3>
            <span class="event-date">May 10, 2025</span>
            <span class="event-end-date">05/11/2025</span>
            <span class="event-location">Civic Center, Boise, ID</span>
            <span class="event-category">Craft Fair</span>
            <span class="event-cost">$85 per table</span>
            <div class="event-description">Indoor, 120 booths</div>
            <a class="event-link" href="/events/123">Details</a>
        </div>
        <div class="event-item">
            <h3 class="event-title">Riverside Farmers Market</h3>
            <span class="event-date">2025-05-17</span>
            <span class="event-category">Farmers Market</span>
        </div>
        <div class="event-item">
            <h3 class="event-title">Broken Entry</h3>
            <span class="event-date">sometime soon</span>
        </div>
        <div class="event-item">
            <span class="event-date">2025-05-20</span>
        </div>
    </body>
</html>
"""


@pytest.fixture
def source():
    return CalendarPageSource(CALENDAR_URL, timeout=5, base_delay=0, today=date(2025, 4, 1))


class TestCalendarPageSource:
    """Test cases for CalendarPageSource."""

    @responses.activate
    def test_search_parses_events(self, source):
        responses.add(responses.GET, CALENDAR_URL, body=MOCK_HTML, status=200)

        events = source.search(SearchCriteria(location='Boise, ID'))

        assert len(events) == 2

        fair = events[0]
        assert fair.name == 'Downtown Craft Fair'
        assert fair.start_date == '2025-05-10'
        assert fair.end_date == '2025-05-11'
        assert fair.location == 'Civic Center, Boise, ID'
        assert fair.event_type == 'craft-fair'
        assert fair.table_cost == 85
        assert fair.url == 'https://calendar.example.com/events/123'
        assert fair.source == 'calendar-page'

        market = events[1]
        assert market.location == 'Boise, ID'
        assert market.end_date == '2025-05-17'
        assert market.table_cost == 0

        request_url = responses.calls[0].request.url
        assert 'start=2025-04-01' in request_url
        assert 'end=2025-06-30' in request_url

    @responses.activate
    def test_search_applies_type_and_range(self, source):
        responses.add(responses.GET, CALENDAR_URL, body=MOCK_HTML, status=200)

        by_type = source.search(SearchCriteria(location='Boise', event_type='farmers-market'))
        by_range = source.search(SearchCriteria(
            location='Boise', date_from='2025-05-12', date_to='2025-05-31'
        ))

        assert [e.name for e in by_type] == ['Riverside Farmers Market']
        assert [e.name for e in by_range] == ['Riverside Farmers Market']

    @responses.activate
    def test_retry_then_success(self, source):
        responses.add(responses.GET, CALENDAR_URL, body='Server Error', status=500)
        responses.add(responses.GET, CALENDAR_URL, body=MOCK_HTML, status=200)

        events = source.search(SearchCriteria(location='Boise'))

        assert len(events) == 2
        assert len(responses.calls) == 2

    @responses.activate
    def test_all_retries_fail(self, source):
        for _ in range(3):
            responses.add(responses.GET, CALENDAR_URL, body='Server Error', status=500)

        with pytest.raises(RequestException):
            source.search(SearchCriteria(location='Boise'))

        assert len(responses.calls) == 3

    @responses.activate
    def test_empty_page(self, source):
        responses.add(responses.GET, CALENDAR_URL, body='<html><body></body></html>', status=200)
        assert source.search(SearchCriteria(location='Boise')) == []


def test_slugify_event_type():
    assert slugify_event_type(' Farmers Market ') == 'farmers-market'
    assert slugify_event_type('Art & Craft Show') == 'art-craft-show'


def test_parse_cost():
    assert parse_cost('$1,250.50 / booth') == 1250.5
    assert parse_cost('Free') == 0
