"""Geocoding helper - place bounds and address coordinates from external APIs.

HERE is used when an API key is configured, otherwise OpenStreetMap Nominatim.
This module does NOT access the store; callers decide what to do on a miss.
"""

from typing import Optional, Tuple

import httpx
from loguru import logger
from pydantic import BaseModel


HERE_GEOCODE_URL = "https://geocode.search.hereapi.com/v1/geocode"
NOMINATIM_SEARCH_URL = "https://nominatim.openstreetmap.org/search"
USER_AGENT = "venue-pipeline/1.0"


class BoundingBox(BaseModel):
    """Geographic box in Overpass order (south, west, north, east)."""
    south: float
    west: float
    north: float
    east: float

    def as_overpass(self) -> str:
        return f"{self.south},{self.west},{self.north},{self.east}"


async def resolve_bounds(
    place_name: str,
    client: httpx.AsyncClient,
    here_api_key: Optional[str] = None,
    country: Optional[str] = None,
) -> BoundingBox:
    """
    Resolve a place name to its bounding box.

    Args:
        place_name: City or region name (e.g., "Wellington")
        client: Shared HTTP client
        here_api_key: Use HERE geocoding (mapView) when set
        country: Appended to the query to disambiguate

    Returns:
        BoundingBox for the best match

    Raises:
        ValueError: If the place is not found
        httpx.HTTPError: On API errors
    """
    query = f"{place_name}, {country}" if country else place_name

    if here_api_key:
        resp = await client.get(
            HERE_GEOCODE_URL,
            params={"q": query, "apiKey": here_api_key, "limit": 1},
            timeout=15.0,
        )
        resp.raise_for_status()
        items = resp.json().get("items") or []
        view = items[0].get("mapView") if items else None
        if not view:
            raise ValueError(f"Place not found: {query}")
        return BoundingBox(
            south=float(view["south"]),
            west=float(view["west"]),
            north=float(view["north"]),
            east=float(view["east"]),
        )

    resp = await client.get(
        NOMINATIM_SEARCH_URL,
        params={"q": query, "format": "json", "limit": 1},
        headers={"User-Agent": USER_AGENT},
        timeout=15.0,
    )
    resp.raise_for_status()
    data = resp.json()
    if not data or not data[0].get("boundingbox"):
        raise ValueError(f"Place not found: {query}")

    # Nominatim order is [south, north, west, east]
    south, north, west, east = (float(v) for v in data[0]["boundingbox"])
    return BoundingBox(south=south, west=west, north=north, east=east)


async def geocode_address(
    query: str,
    client: httpx.AsyncClient,
    here_api_key: Optional[str] = None,
) -> Optional[Tuple[float, float]]:
    """Coordinates for a free-text address, or None when nothing matches or the API fails."""
    if not query or not query.strip():
        return None

    try:
        if here_api_key:
            resp = await client.get(
                HERE_GEOCODE_URL,
                params={"q": query, "apiKey": here_api_key, "limit": 1},
                timeout=15.0,
            )
            resp.raise_for_status()
            items = resp.json().get("items") or []
            position = items[0].get("position") if items else None
            if not position:
                return None
            return (float(position["lat"]), float(position["lng"]))

        resp = await client.get(
            NOMINATIM_SEARCH_URL,
            params={"q": query, "format": "json", "limit": 1},
            headers={"User-Agent": USER_AGENT},
            timeout=15.0,
        )
        resp.raise_for_status()
        data = resp.json()
        if not data:
            return None
        return (float(data[0]["lat"]), float(data[0]["lon"]))

    except httpx.HTTPError as e:
        logger.warning(f"Geocoding failed for '{query}': {e}")
        return None
    except (KeyError, ValueError, TypeError) as e:
        logger.warning(f"Unexpected geocoding response for '{query}': {e}")
        return None
