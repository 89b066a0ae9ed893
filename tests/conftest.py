"""Shared fixtures."""
from datetime import date

import pytest

from fakes import FakeGeocoder, InMemoryStore, OAKLAND, SAN_FRANCISCO, SAN_JOSE
from geo.cache import MemoryCache
from geo.distance import DistanceEngine
from geo.models import PlaceDetails
from geo.resolver import GeoResolver


@pytest.fixture
def today():
    return date(2025, 4, 1)


@pytest.fixture
def geocoder():
    return FakeGeocoder(
        forward={
            'Oakland, CA': OAKLAND,
            'San Jose, CA': SAN_JOSE,
            'San Francisco, CA': SAN_FRANCISCO,
        },
        postal={'94103': SAN_FRANCISCO},
        reverse={
            (37.7749, -122.4194, 'street'): PlaceDetails(
                city='San Francisco', state='California', zip='94102'
            ),
            (37.7749, -122.4194, 'city'): PlaceDetails(city='San Francisco'),
        }
    )


@pytest.fixture
def resolver(geocoder):
    return GeoResolver(geocoder, cache=MemoryCache('test-geocode'))


@pytest.fixture
def distance_engine(resolver):
    return DistanceEngine(resolver, cache=MemoryCache('test-distance'))


@pytest.fixture
def store():
    return InMemoryStore()
