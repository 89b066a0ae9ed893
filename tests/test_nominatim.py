"""Unit tests for NominatimGeocoder."""
import pytest
import responses
from requests.exceptions import RequestException

from geo.nominatim import GeocoderUnavailable, NominatimGeocoder

SEARCH_URL = "https://nominatim.openstreetmap.org/search"
REVERSE_URL = "https://nominatim.openstreetmap.org/reverse"


@pytest.fixture
def geocoder():
    return NominatimGeocoder(timeout=5, min_interval=0, base_delay=0)


class TestNominatimGeocoder:
    """Test cases for the Nominatim adapter."""

    @responses.activate
    def test_forward_geocode_success(self, geocoder):
        responses.add(
            responses.GET,
            SEARCH_URL,
            json=[{
                'lat': '37.8044',
                'lon': '-122.2712',
                'display_name': 'Oakland, Alameda County, California, United States',
                'address': {'city': 'Oakland', 'state': 'California'}
            }],
            status=200
        )

        match = geocoder.forward_geocode('Oakland, CA')

        assert match.lat == 37.8044
        assert match.lon == -122.2712
        assert match.city == 'Oakland'
        assert match.state == 'California'
        assert match.display_name.startswith('Oakland')

        request = responses.calls[0].request
        assert 'q=Oakland' in request.url
        assert 'countrycodes=us' in request.url
        assert request.headers['User-Agent'] == NominatimGeocoder.USER_AGENT

    @responses.activate
    def test_forward_geocode_no_match(self, geocoder):
        responses.add(responses.GET, SEARCH_URL, json=[], status=200)
        assert geocoder.forward_geocode('Atlantis') is None

    @responses.activate
    def test_postal_code_lookup_strips_dash(self, geocoder):
        responses.add(
            responses.GET,
            SEARCH_URL,
            json=[{
                'lat': '37.7726',
                'lon': '-122.4099',
                'display_name': 'San Francisco, California, 94103, United States',
                'address': {
                    'town': 'San Francisco',
                    'state': 'California',
                    'postcode': '94103'
                }
            }],
            status=200
        )

        match = geocoder.postal_code_lookup('94103-1234')

        assert 'postalcode=941031234' in responses.calls[0].request.url
        assert match.city == 'San Francisco'
        assert match.zip == '94103'

    @responses.activate
    def test_reverse_geocode_detail_levels(self, geocoder):
        responses.add(
            responses.GET,
            REVERSE_URL,
            json={'address': {'village': 'Smallville', 'state': 'Kansas', 'postcode': '66002'}},
            status=200
        )

        details = geocoder.reverse_geocode(39.0, -95.0, detail='city')

        assert details.city == 'Smallville'
        assert details.state == 'Kansas'
        assert details.zip == '66002'
        assert 'zoom=10' in responses.calls[0].request.url

    @responses.activate
    def test_reverse_geocode_unable(self, geocoder):
        responses.add(
            responses.GET, REVERSE_URL, json={'error': 'Unable to geocode'}, status=200
        )
        assert geocoder.reverse_geocode(0.0, 0.0) is None

    def test_reverse_geocode_rejects_unknown_detail(self, geocoder):
        with pytest.raises(ValueError):
            geocoder.reverse_geocode(0.0, 0.0, detail='planet')

    @responses.activate
    def test_retry_then_success(self, geocoder):
        responses.add(responses.GET, SEARCH_URL, body='Server Error', status=500)
        responses.add(
            responses.GET,
            SEARCH_URL,
            json=[{'lat': '1.5', 'lon': '2.5', 'display_name': 'Somewhere'}],
            status=200
        )

        match = geocoder.forward_geocode('Somewhere')

        assert match.lat == 1.5
        assert match.city is None
        assert len(responses.calls) == 2

    @responses.activate
    def test_all_retries_fail(self, geocoder):
        for _ in range(3):
            responses.add(responses.GET, SEARCH_URL, body='Server Error', status=500)

        with pytest.raises(GeocoderUnavailable) as exc_info:
            geocoder.forward_geocode('Somewhere')
        assert isinstance(exc_info.value.__cause__, RequestException)

        assert len(responses.calls) == 3

    @responses.activate
    def test_malformed_result(self, geocoder):
        responses.add(
            responses.GET, SEARCH_URL, json=[{'display_name': 'No coords'}], status=200
        )
        assert geocoder.forward_geocode('No coords') is None
