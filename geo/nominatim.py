"""Geocoder adapter for the OpenStreetMap Nominatim API."""
import logging
import threading
import time
from typing import Optional, Protocol

import requests

from geo.models import GeocodeMatch, PlaceDetails

logger = logging.getLogger(__name__)

# Nominatim zoom levels for reverse lookups
DETAIL_ZOOM = {
    'street': 18,
    'city': 10,
}


class GeocoderUnavailable(RuntimeError):
    """A geocoding provider could not be reached or kept failing."""


# Provider-unreachable errors; OSError covers unwrapped socket failures
GEOCODER_ERRORS = (GeocoderUnavailable, OSError)


class Geocoder(Protocol):
    """
    Contract the resolver requires from a geocoding provider.

    Methods return None when the provider has no match and raise
    GeocoderUnavailable when the provider cannot be reached.
    """

    def forward_geocode(self, text: str) -> Optional[GeocodeMatch]:
        ...

    def postal_code_lookup(self, zip_code: str) -> Optional[GeocodeMatch]:
        ...

    def reverse_geocode(self, lat: float, lon: float,
                        detail: str = 'street') -> Optional[PlaceDetails]:
        ...


def _city_from_address(address: dict) -> Optional[str]:
    return (
        address.get('city') or address.get('town') or
        address.get('village') or address.get('municipality') or None
    )


class NominatimGeocoder:
    """Nominatim client with retry, backoff and request spacing."""

    BASE_URL = "https://nominatim.openstreetmap.org"
    USER_AGENT = "vendor-event-finder/1.0"
    MAX_RETRIES = 3

    def __init__(
        self,
        base_url: str = BASE_URL,
        timeout: int = 10,
        user_agent: str = USER_AGENT,
        country_codes: str = 'us',
        min_interval: float = 1.0,
        base_delay: float = 1.0
    ):
        """
        Initialize the geocoder.

        Args:
            base_url: Nominatim server root
            timeout: HTTP request timeout in seconds
            user_agent: User-Agent header required by the Nominatim usage policy
            country_codes: Restrict forward lookups to these countries
            min_interval: Minimum seconds between requests (provider rate limit)
            base_delay: Initial retry delay in seconds, doubled per attempt
        """
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.user_agent = user_agent
        self.country_codes = country_codes
        self.min_interval = min_interval
        self.base_delay = base_delay
        self._lock = threading.Lock()
        self._last_request = 0.0

    def forward_geocode(self, text: str) -> Optional[GeocodeMatch]:
        """
        Geocode free text to the best matching place.

        Args:
            text: Address, city/state or any place description

        Returns:
            GeocodeMatch or None if nothing matched

        Raises:
            GeocoderUnavailable: If all retry attempts fail
        """
        data = self._get('/search', {
            'format': 'json',
            'q': text,
            'countrycodes': self.country_codes,
            'addressdetails': 1,
            'limit': 1
        })
        return self._first_match(data)

    def postal_code_lookup(self, zip_code: str) -> Optional[GeocodeMatch]:
        """
        Look up a US postal code.

        Args:
            zip_code: 5-digit or ZIP+4 code

        Returns:
            GeocodeMatch or None if the code is unknown

        Raises:
            GeocoderUnavailable: If all retry attempts fail
        """
        clean_zip = zip_code.replace('-', '')
        data = self._get('/search', {
            'format': 'json',
            'postalcode': clean_zip,
            'countrycodes': self.country_codes,
            'addressdetails': 1,
            'limit': 1
        })
        return self._first_match(data)

    def reverse_geocode(self, lat: float, lon: float,
                        detail: str = 'street') -> Optional[PlaceDetails]:
        """
        Convert coordinates to place components.

        Args:
            lat: Latitude
            lon: Longitude
            detail: 'street' for full address detail, 'city' for town level

        Returns:
            PlaceDetails or None if the point could not be described

        Raises:
            ValueError: If detail is not a known level
            GeocoderUnavailable: If all retry attempts fail
        """
        if detail not in DETAIL_ZOOM:
            raise ValueError(f"Unknown reverse geocode detail level: {detail}")

        data = self._get('/reverse', {
            'format': 'json',
            'lat': lat,
            'lon': lon,
            'zoom': DETAIL_ZOOM[detail],
            'addressdetails': 1
        })
        if not isinstance(data, dict) or not data.get('address'):
            return None

        address = data['address']
        return PlaceDetails(
            city=_city_from_address(address),
            state=address.get('state') or None,
            zip=address.get('postcode') or None
        )

    def _first_match(self, data) -> Optional[GeocodeMatch]:
        if not data:
            return None

        result = data[0]
        address = result.get('address') or {}
        try:
            return GeocodeMatch(
                lat=float(result['lat']),
                lon=float(result['lon']),
                display_name=result.get('display_name', ''),
                city=_city_from_address(address),
                state=address.get('state') or None,
                zip=address.get('postcode') or None
            )
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Malformed geocoder result: {e}")
            return None

    def _throttle(self) -> None:
        with self._lock:
            elapsed = time.time() - self._last_request
            if elapsed < self.min_interval:
                time.sleep(self.min_interval - elapsed)
            self._last_request = time.time()

    def _get(self, path: str, params: dict):
        """
        Issue a GET request with retry logic and return the decoded JSON.

        Raises:
            GeocoderUnavailable: If all retry attempts fail
        """
        url = f"{self.base_url}{path}"
        headers = {'User-Agent': self.user_agent}

        for attempt in range(self.MAX_RETRIES):
            try:
                self._throttle()
                response = requests.get(
                    url,
                    params=params,
                    headers=headers,
                    timeout=self.timeout
                )
                response.raise_for_status()
                return response.json()

            except requests.RequestException as e:
                if attempt < self.MAX_RETRIES - 1:
                    delay = self.base_delay * (2 ** attempt)
                    logger.warning(
                        f"Geocoder request failed (attempt {attempt + 1}/"
                        f"{self.MAX_RETRIES}): {e}. Retrying in {delay} seconds..."
                    )
                    time.sleep(delay)
                else:
                    logger.error(
                        f"All {self.MAX_RETRIES} geocoder attempts failed. "
                        f"Last error: {e}"
                    )
                    raise GeocoderUnavailable(
                        f"Geocoder unavailable after {self.MAX_RETRIES} attempts: {e}"
                    ) from e
