"""Repository for venue store operations."""

import asyncio
from typing import List, Optional, Sequence

from loguru import logger

from db.client import StoreError, get_store
from db.models.venue import Venue, VenueRecord

VENUES_TABLE = "venues"
SPORTS_TABLE = "sports"
VENUE_COLUMNS = "id,name,address,city,booking_url,sports,notes,amenities,latitude,longitude,is_public,place_id"
CONFLICT_TARGET = "name,address"
UPSERT_CHUNK_SIZE = 75


async def fetch_catalog(order: Optional[str] = "city.asc.nullsfirst,name.asc") -> List[Venue]:
    """All stored venues."""
    rows = await get_store().select(VENUES_TABLE, VENUE_COLUMNS, order=order)
    return [Venue.model_validate(row) for row in rows]


async def fetch_sport_slugs() -> List[str]:
    """Known sport slugs (read only)."""
    rows = await get_store().select(SPORTS_TABLE, "slug")
    return sorted({row["slug"] for row in rows if row.get("slug")})


async def upsert_venues(
    records: Sequence[VenueRecord],
    chunk_size: int = UPSERT_CHUNK_SIZE,
    pause: float = 0.2,
) -> int:
    """
    Upsert records in chunks keyed on (name, address). Returns rows written.

    A chunk the store rejects is logged and skipped; later chunks still run.
    """
    store = get_store()
    written = 0
    for i in range(0, len(records), chunk_size):
        if i and pause:
            await asyncio.sleep(pause)
        chunk = records[i:i + chunk_size]
        try:
            await store.upsert(VENUES_TABLE, [r.to_row() for r in chunk], on_conflict=CONFLICT_TARGET)
        except StoreError as e:
            logger.warning(f"Upsert of rows {i + 1}-{i + len(chunk)} failed: {e}")
            continue
        written += len(chunk)
        logger.info(f"Upserted {written}/{len(records)}")
    return written


async def update_coordinates(venue_id: str, latitude: float, longitude: float) -> int:
    return await get_store().update(
        VENUES_TABLE, {"latitude": latitude, "longitude": longitude}, {"id": venue_id},
    )


async def update_booking_url(venue_id: str, booking_url: str) -> int:
    return await get_store().update(VENUES_TABLE, {"booking_url": booking_url}, {"id": venue_id})


async def update_sports(venue_id: str, sports: List[str]) -> int:
    return await get_store().update(VENUES_TABLE, {"sports": sports}, {"id": venue_id})


async def update_notes(venue_id: str, notes: str) -> int:
    return await get_store().update(VENUES_TABLE, {"notes": notes}, {"id": venue_id})


async def delete_venue(venue_id: str) -> int:
    return await get_store().delete(VENUES_TABLE, {"id": venue_id})
