"""Great-circle distance calculation with a location-keyed result cache."""
import logging
from typing import Optional

from haversine import Unit, haversine

from geo.cache import MemoryCache
from geo.models import ResolvedLocation
from geo.resolver import GeoResolver, LocationNotFound

logger = logging.getLogger(__name__)

EARTH_RADIUS_MILES = 3959


def haversine_miles(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Calculate the great-circle distance between two points.

    Args:
        lat1: Origin latitude in degrees
        lon1: Origin longitude in degrees
        lat2: Target latitude in degrees
        lon2: Target longitude in degrees

    Returns:
        Distance in miles on a sphere of radius EARTH_RADIUS_MILES
    """
    # Central angle in radians, scaled to our radius
    angle = haversine((lat1, lon1), (lat2, lon2), unit=Unit.RADIANS)
    return angle * EARTH_RADIUS_MILES


class DistanceEngine:
    """Annotates events with their distance from a search origin."""

    def __init__(self, resolver: GeoResolver, cache: Optional[MemoryCache] = None):
        """
        Initialize the distance engine.

        Args:
            resolver: Resolver used to geocode event locations
            cache: Distance cache keyed by (location, origin lat, origin lon)
        """
        self.resolver = resolver
        self.cache = cache if cache is not None else MemoryCache('distance-cache')

    def distance(self, origin_lat: float, origin_lon: float,
                 target_lat: float, target_lon: float) -> float:
        return haversine_miles(origin_lat, origin_lon, target_lat, target_lon)

    def distance_for(self, event, origin: ResolvedLocation) -> Optional[float]:
        """
        Distance in miles from origin to the event's location.

        Args:
            event: Object with a ``location`` string
            origin: Resolved search origin

        Returns:
            Distance rounded to one decimal, or None if the event location
            cannot be geocoded
        """
        if not event.location:
            return None

        cache_key = (event.location, origin.lat, origin.lon)
        cached = self.cache.get(cache_key)
        if cached is not None:
            return cached

        try:
            target = self.resolver.resolve(event.location)
        except LocationNotFound as e:
            logger.warning(f"No distance for '{event.location}': {e}")
            return None

        distance = round(
            self.distance(origin.lat, origin.lon, target.lat, target.lon), 1
        )
        self.cache.set(cache_key, distance)
        return distance

    def annotate(self, event, origin: ResolvedLocation):
        """Set ``event.distance`` when it can be computed and return the event."""
        distance = self.distance_for(event, origin)
        if distance is not None:
            event.distance = distance
        return event
