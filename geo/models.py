"""Data models for geocoding and location resolution."""
from dataclasses import dataclass, asdict
from typing import Optional


@dataclass
class GeocodeMatch:
    """Forward geocoding hit returned by a geocoder."""
    lat: float
    lon: float
    display_name: str
    city: Optional[str] = None
    state: Optional[str] = None
    zip: Optional[str] = None


@dataclass
class PlaceDetails:
    """Reverse geocoding result. Any component may be missing."""
    city: Optional[str] = None
    state: Optional[str] = None
    zip: Optional[str] = None


@dataclass(frozen=True)
class ResolvedLocation:
    """Coordinates plus a canonical display address for a location query."""
    lat: float
    lon: float
    address: str
    zip: Optional[str] = None

    def to_dict(self) -> dict:
        data = asdict(self)
        if data['zip'] is None:
            del data['zip']
        return data

    @classmethod
    def from_dict(cls, data: dict) -> 'ResolvedLocation':
        return cls(
            lat=float(data['lat']),
            lon=float(data['lon']),
            address=data.get('address', ''),
            zip=data.get('zip')
        )
