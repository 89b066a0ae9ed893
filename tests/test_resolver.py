"""Unit tests for GeoResolver."""
import pytest

from geo.cache import MemoryCache
from geo.models import GeocodeMatch, PlaceDetails, ResolvedLocation
from geo.resolver import (
    GeoResolver,
    LocationNotFound,
    format_place,
    is_coordinate_pair,
    is_zip_code,
)
from fakes import FakeGeocoder, SAN_FRANCISCO


class TestPatterns:
    """Tests for query classification helpers."""

    def test_zip_codes(self):
        assert is_zip_code('94103') is True
        assert is_zip_code('94103-1234') is True
        assert is_zip_code(' 94103 ') is True
        assert is_zip_code('9410') is False
        assert is_zip_code('94103-12') is False
        assert is_zip_code('Oakland, CA') is False

    def test_coordinate_pairs(self):
        assert is_coordinate_pair('37.7749,-122.4194') is True
        assert is_coordinate_pair('37.7749, -122.4194') is True
        assert is_coordinate_pair('-33,151') is True
        assert is_coordinate_pair('Oakland, CA') is False
        assert is_coordinate_pair('94103') is False

    def test_format_place(self):
        assert format_place('Austin', 'Texas', '78701') == 'Austin, TX 78701'
        assert format_place('Austin', 'TX') == 'Austin, TX'
        assert format_place('Austin', None) == 'Austin'
        assert format_place(None, None) is None


class TestResolve:
    """Tests for resolve()."""

    def test_zip_resolves_to_city_and_state(self, resolver, geocoder):
        location = resolver.resolve('94103')

        assert location.lat is not None
        assert location.lon is not None
        assert 'San Francisco' in location.address
        assert 'CA' in location.address
        assert location.address == 'San Francisco, CA 94103'
        assert location.zip == '94103'
        assert geocoder.calls == [('postal', '94103')]

    def test_second_call_is_cache_hit(self, resolver, geocoder):
        first = resolver.resolve('94103')
        second = resolver.resolve('94103')

        assert len(geocoder.calls) == 1
        assert (first.lat, first.lon) == (second.lat, second.lon)
        assert first is second

    def test_cache_key_is_exact_input(self, resolver, geocoder):
        geocoder.forward['oakland, ca'] = geocoder.forward['Oakland, CA']

        resolver.resolve('Oakland, CA')
        resolver.resolve('oakland, ca')

        assert len(geocoder.calls) == 2

    def test_zip_falls_back_to_text_geocoding(self):
        geocoder = FakeGeocoder(forward={'10001': GeocodeMatch(
            lat=40.75, lon=-73.99,
            display_name='New York, New York, 10001, United States',
            city='New York', state='New York'
        )})
        resolver = GeoResolver(geocoder)

        location = resolver.resolve('10001')

        assert geocoder.calls == [('postal', '10001'), ('forward', '10001')]
        assert location.address == 'New York, NY 10001'

    def test_zip_without_components_uses_display_name(self):
        geocoder = FakeGeocoder(postal={'99999': GeocodeMatch(
            lat=1.0, lon=2.0, display_name='Somewhere, United States'
        )})
        location = GeoResolver(geocoder).resolve('99999')
        assert location.address == 'Somewhere, United States'

    def test_free_text_forward_geocodes(self, resolver, geocoder):
        location = resolver.resolve('Oakland, CA')

        assert geocoder.calls == [('forward', 'Oakland, CA')]
        assert location.lat == pytest.approx(37.8044)
        assert location.address.startswith('Oakland')

    def test_unknown_location_raises(self, resolver):
        with pytest.raises(LocationNotFound) as exc_info:
            resolver.resolve('Atlantis')
        assert exc_info.value.query == 'Atlantis'

    def test_failures_are_not_cached(self, resolver, geocoder):
        with pytest.raises(LocationNotFound):
            resolver.resolve('Atlantis')
        geocoder.forward['Atlantis'] = SAN_FRANCISCO

        assert resolver.resolve('Atlantis').lat == SAN_FRANCISCO.lat

    def test_network_failure_is_typed(self):
        resolver = GeoResolver(FakeGeocoder(fail=True))

        with pytest.raises(LocationNotFound):
            resolver.resolve('Oakland, CA')
        with pytest.raises(LocationNotFound):
            resolver.resolve('94103')

    def test_socket_failure_from_any_adapter_is_typed(self):
        resolver = GeoResolver(FakeGeocoder(fail=True, error=TimeoutError('socket timed out')))

        with pytest.raises(LocationNotFound) as exc_info:
            resolver.resolve('Somewhere, CA')
        assert isinstance(exc_info.value.__cause__, TimeoutError)

    def test_empty_query(self, resolver):
        with pytest.raises(LocationNotFound):
            resolver.resolve('   ')

    def test_preseeded_cache_skips_geocoder(self):
        seeded = ResolvedLocation(lat=1.0, lon=2.0, address='Seeded')
        geocoder = FakeGeocoder()
        resolver = GeoResolver(geocoder, cache=MemoryCache(seed={'home': seeded}))

        assert resolver.resolve('home') is seeded
        assert geocoder.calls == []


class TestReverse:
    """Tests for coordinate queries."""

    def test_full_address(self, resolver):
        location = resolver.resolve('37.7749,-122.4194')

        assert location.lat == 37.7749
        assert location.lon == -122.4194
        assert location.address == 'San Francisco, CA 94102'

    def test_falls_back_to_city(self):
        geocoder = FakeGeocoder(reverse={
            (40.0, -75.0, 'city'): PlaceDetails(city='Springfield')
        })
        location = GeoResolver(geocoder).resolve('40.0,-75.0')

        assert location.address == 'Springfield'
        assert [c[3] for c in geocoder.calls] == ['street', 'city']

    def test_street_city_without_state_skips_city_lookup(self):
        geocoder = FakeGeocoder(reverse={
            (40.0, -75.0, 'street'): PlaceDetails(city='Springfield', zip='19064')
        })
        location = GeoResolver(geocoder).resolve('40.0,-75.0')

        assert location.address == 'Springfield'
        assert [c[3] for c in geocoder.calls] == ['street']

    def test_falls_back_to_raw_coordinates(self):
        location = GeoResolver(FakeGeocoder(fail=True)).resolve('40.123456, -75.5')
        assert location.address == '40.1235, -75.5000'

    def test_place_name(self, resolver):
        assert resolver.place_name(37.7749, -122.4194) == 'San Francisco'
        assert resolver.place_name(0.0, 0.0) is None

    def test_place_name_is_cached(self, resolver, geocoder):
        resolver.place_name(37.7749, -122.4194)
        resolver.place_name(37.7749, -122.4194)
        assert len(geocoder.calls) == 1
