"""Resolve free-form location strings to coordinates and a display address."""
import logging
import re
from typing import Optional, Tuple

from geo.cache import MemoryCache
from geo.models import GeocodeMatch, ResolvedLocation
from geo.nominatim import GEOCODER_ERRORS, Geocoder
from geo.us_states import abbreviate_state

logger = logging.getLogger(__name__)

ZIP_PATTERN = re.compile(r'^\d{5}(-\d{4})?$')
COORDINATE_PATTERN = re.compile(r'^-?\d+\.?\d*,\s*-?\d+\.?\d*$')


class LocationNotFound(LookupError):
    """Raised when a location query cannot be resolved to coordinates."""

    def __init__(self, query: str, reason: str = 'no match'):
        super().__init__(f"Could not resolve location '{query}': {reason}")
        self.query = query
        self.reason = reason


def is_zip_code(text: str) -> bool:
    """Check for a US ZIP code (5 digits or ZIP+4)."""
    return bool(ZIP_PATTERN.match(text.strip()))


def is_coordinate_pair(text: str) -> bool:
    """Check for a "lat,lon" pair."""
    return bool(COORDINATE_PATTERN.match(text.strip()))


def parse_coordinates(text: str) -> Tuple[float, float]:
    lat_text, lon_text = text.split(',')
    return float(lat_text), float(lon_text)


def format_place(city: Optional[str], state: Optional[str],
                 zip_code: Optional[str] = None) -> Optional[str]:
    """
    Build a "City, ST ZIP" string from whatever components are known.

    Returns None when neither city nor state is available.
    """
    state = abbreviate_state(state)
    if city and state:
        place = f"{city}, {state}"
        if zip_code:
            place = f"{place} {zip_code}"
        return place
    return city or state or None


class GeoResolver:
    """Resolver with a per-query memo in front of a geocoding collaborator."""

    def __init__(self, geocoder: Geocoder, cache: Optional[MemoryCache] = None):
        """
        Initialize the resolver.

        Args:
            geocoder: Object implementing the Geocoder protocol
            cache: Geocode cache keyed by the exact query string
        """
        self.geocoder = geocoder
        self.cache = cache if cache is not None else MemoryCache('geocode-cache')

    def resolve(self, query: str) -> ResolvedLocation:
        """
        Resolve a location query.

        Args:
            query: ZIP code, "lat,lon" pair, city/state or street address

        Returns:
            ResolvedLocation for the query

        Raises:
            LocationNotFound: If the query cannot be geocoded
        """
        cached = self.cache.get(query)
        if cached is not None:
            return cached

        text = query.strip()
        if not text:
            raise LocationNotFound(query, 'empty query')

        if is_coordinate_pair(text):
            location = self._resolve_coordinates(text)
        elif is_zip_code(text):
            location = self._resolve_zip(query, text)
        else:
            location = self._resolve_text(query, text)

        self.cache.set(query, location)
        logger.info(
            f"Resolved location '{query}' to ({location.lat}, {location.lon})",
            extra={'address': location.address}
        )
        return location

    def place_name(self, lat: float, lon: float) -> Optional[str]:
        """Return the city name for a coordinate pair, or None."""
        cache_key = ('city', lat, lon)
        cached = self.cache.get(cache_key)
        if cached is not None:
            return cached

        try:
            details = self.geocoder.reverse_geocode(lat, lon, detail='city')
        except GEOCODER_ERRORS as e:
            logger.warning(f"City lookup failed for ({lat}, {lon}): {e}")
            return None

        city = details.city if details else None
        if city:
            self.cache.set(cache_key, city)
        return city

    def _resolve_coordinates(self, text: str) -> ResolvedLocation:
        lat, lon = parse_coordinates(text)

        try:
            details = self.geocoder.reverse_geocode(lat, lon, detail='street')
        except GEOCODER_ERRORS as e:
            logger.warning(f"Reverse geocoding failed for ({lat}, {lon}): {e}")
            details = None

        address = None
        zip_code = None
        if details and details.city and details.state:
            address = format_place(details.city, details.state, details.zip)
            zip_code = details.zip
        elif details and details.city:
            address = details.city
        if not address:
            address = self.place_name(lat, lon)
        if not address:
            address = f"{lat:.4f}, {lon:.4f}"

        return ResolvedLocation(lat=lat, lon=lon, address=address, zip=zip_code)

    def _resolve_zip(self, query: str, zip_code: str) -> ResolvedLocation:
        try:
            match = self.geocoder.postal_code_lookup(zip_code)
        except GEOCODER_ERRORS as e:
            logger.warning(f"ZIP lookup failed for {zip_code}: {e}")
            match = None

        if match is None:
            logger.info(f"Falling back to text geocoding for ZIP {zip_code}")
            match = self._forward(query, zip_code)

        address = format_place(match.city, match.state, zip_code) or match.display_name
        return ResolvedLocation(
            lat=match.lat,
            lon=match.lon,
            address=address,
            zip=zip_code
        )

    def _resolve_text(self, query: str, text: str) -> ResolvedLocation:
        match = self._forward(query, text)
        return ResolvedLocation(
            lat=match.lat,
            lon=match.lon,
            address=match.display_name or text,
            zip=match.zip
        )

    def _forward(self, query: str, text: str) -> GeocodeMatch:
        try:
            match = self.geocoder.forward_geocode(text)
        except GEOCODER_ERRORS as e:
            raise LocationNotFound(query, f"geocoder unavailable ({e})") from e

        if match is None:
            raise LocationNotFound(query)
        return match
