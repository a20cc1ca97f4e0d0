"""Geographic sources: place bounds, address geocoding, Overpass venue queries."""

from lib.geo.geocoding import BoundingBox, geocode_address, resolve_bounds
from lib.geo.overpass import (
    DEFAULT_SPORTS_PATTERN,
    OverpassError,
    VenueCandidate,
    query_area_elements,
    query_elements,
)

__all__ = [
    "BoundingBox",
    "geocode_address",
    "resolve_bounds",
    "DEFAULT_SPORTS_PATTERN",
    "OverpassError",
    "VenueCandidate",
    "query_area_elements",
    "query_elements",
]
