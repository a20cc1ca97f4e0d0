"""OpenStreetMap Overpass queries for sports venues."""

import re
from typing import Any, Dict, List, Optional

import httpx
from loguru import logger
from pydantic import BaseModel, Field

from lib.geo.geocoding import BoundingBox
from lib.sports import parse_sports


OVERPASS_API_URL = "https://overpass-api.de/api/interpreter"

DEFAULT_SPORTS_PATTERN = (
    "tennis|basketball|netball|badminton|table_tennis|volleyball|futsal|pickleball|squash"
)


class OverpassError(RuntimeError):
    """Overpass returned a non-success status."""


class VenueCandidate(BaseModel):
    """One Overpass element, reduced to what venue assembly needs."""
    name: Optional[str] = None
    raw_tags: Dict[str, str] = Field(default_factory=dict)
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    address: Optional[str] = None
    city: Optional[str] = None
    sports: List[str] = Field(default_factory=list)
    website: Optional[str] = None
    osm_type: str = ""
    osm_id: Optional[int] = None

    @classmethod
    def from_element(cls, element: Dict[str, Any]) -> "VenueCandidate":
        tags = element.get("tags") or {}
        center = element.get("center") or {}
        lat = element.get("lat", center.get("lat"))
        lon = element.get("lon", center.get("lon"))

        street = " ".join(p for p in (tags.get("addr:housenumber"), tags.get("addr:street")) if p)
        parts = [p for p in (street, tags.get("addr:suburb"), tags.get("addr:city"), tags.get("addr:postcode")) if p]

        return cls(
            name=(tags.get("name") or tags.get("operator") or "").strip() or None,
            raw_tags=tags,
            latitude=float(lat) if lat is not None else None,
            longitude=float(lon) if lon is not None else None,
            address=", ".join(parts) or None,
            city=tags.get("addr:city") or tags.get("addr:suburb") or None,
            sports=parse_sports(re.split(r"[;,/]", tags.get("sport", ""))),
            website=tags.get("website") or tags.get("contact:website") or tags.get("url") or None,
            osm_type=element.get("type", ""),
            osm_id=element.get("id"),
        )


def build_bbox_query(bbox: BoundingBox, sports_pattern: str = DEFAULT_SPORTS_PATTERN) -> str:
    b = bbox.as_overpass()
    return f"""
[out:json][timeout:60];
(
  nwr["leisure"="sports_centre"]({b});
  nwr["leisure"="pitch"]["sport"~"{sports_pattern}"]({b});
  nwr["leisure"="court"]({b});
  nwr["sport"~"{sports_pattern}"]({b});
);
out center tags;"""


def build_area_query(area_name: str, sport: str, admin_level: int = 4) -> str:
    return f"""
[out:json][timeout:60];
area["name"="{area_name}"]["admin_level"="{admin_level}"]->.a;
(
  nwr["leisure"="sports_centre"]["sport"="{sport}"](area.a);
  nwr["leisure"="court"]["sport"="{sport}"](area.a);
  nwr["leisure"="pitch"]["sport"="{sport}"](area.a);
  nwr["sport"="{sport}"](area.a);
);
out center tags;"""


async def _run_query(query: str, client: httpx.AsyncClient) -> List[VenueCandidate]:
    resp = await client.post(OVERPASS_API_URL, data={"data": query}, timeout=90.0)
    if resp.status_code != 200:
        raise OverpassError(f"Overpass error: {resp.status_code} {resp.text[:200]}")

    elements = resp.json().get("elements")
    if not isinstance(elements, list):
        return []
    logger.debug(f"Overpass returned {len(elements)} elements")
    return [VenueCandidate.from_element(el) for el in elements]


async def query_elements(
    bbox: BoundingBox,
    client: httpx.AsyncClient,
    sports_pattern: str = DEFAULT_SPORTS_PATTERN,
) -> List[VenueCandidate]:
    """Sports venues inside a bounding box. Single attempt, raises OverpassError on failure."""
    return await _run_query(build_bbox_query(bbox, sports_pattern), client)


async def query_area_elements(
    area_name: str,
    sport: str,
    client: httpx.AsyncClient,
    admin_level: int = 4,
) -> List[VenueCandidate]:
    """Single-sport venues inside a named administrative area (e.g. a state)."""
    return await _run_query(build_area_query(area_name, sport, admin_level), client)
