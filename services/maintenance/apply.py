"""Apply reviewed booking URL corrections to the store.

Correction rows are matched to stored venues by name+city, then by their
current booking URL. Row position is never used for matching.
"""

import asyncio
from typing import List, Mapping, Sequence, Set, Tuple

from loguru import logger

from db.client import StoreError
from lib.urls import canonicalize, normalize_booking_url
from services.maintenance.models import ApplySummary, PlannedUpdate
from services.venues import repo
from services.venues.assembler import CatalogSnapshot, name_city_key
from services.venues.rows import ADDRESS_COLUMNS, BOOKING_COLUMNS, CITY_COLUMNS, NAME_COLUMNS, pick

CORRECTED_COLUMNS = (
    "Correct Booking URL",
    "Updated Booking URL",
    "New Booking URL",
    "Fixed Booking URL",
    "Correct Link",
    "Correct URL",
)


def plan_corrections(
    snapshot: CatalogSnapshot,
    rows: Sequence[Mapping[str, str]],
) -> Tuple[List[PlannedUpdate], ApplySummary]:
    """Decide which stored venues get a new booking URL. Pure."""
    summary = ApplySummary()
    updates: List[PlannedUpdate] = []
    seen: Set[str] = set()

    for row in rows:
        corrected = normalize_booking_url(pick(row, CORRECTED_COLUMNS))
        if not corrected:
            continue
        summary.with_corrected += 1

        name = pick(row, NAME_COLUMNS)
        current = pick(row, BOOKING_COLUMNS)
        venue = None
        if name:
            venue_id = snapshot.by_name_city.get(name_city_key(name, pick(row, CITY_COLUMNS), pick(row, ADDRESS_COLUMNS)))
            venue = snapshot.venues.get(venue_id) if venue_id else None
        if venue is None and current:
            venue_id = snapshot.by_url.get(canonicalize(current))
            venue = snapshot.venues.get(venue_id) if venue_id else None
        if venue is None:
            summary.not_found += 1
            logger.debug(f"No stored venue for {name or current}")
            continue

        target = canonicalize(corrected)
        if target in (canonicalize(current), canonicalize(venue.booking_url)) or venue.id in seen:
            summary.skipped += 1
            continue

        seen.add(venue.id)
        updates.append(PlannedUpdate(venue_id=venue.id, venue=venue.name, old=venue.booking_url, new=corrected))

    summary.prepared = len(updates)
    return updates, summary


async def apply_corrections(
    updates: Sequence[PlannedUpdate],
    summary: ApplySummary,
    pause: float = 0.025,
    dry_run: bool = False,
) -> ApplySummary:
    """Write planned updates one by one. A failed write is counted and skipped."""
    if dry_run:
        for u in updates:
            logger.info(f"[dry-run] {u.venue}: {u.old} -> {u.new}")
        return summary

    for i, u in enumerate(updates):
        if i and pause:
            await asyncio.sleep(pause)
        try:
            count = await repo.update_booking_url(u.venue_id, u.new)
        except StoreError as e:
            summary.failed += 1
            logger.warning(f"Update failed for {u.venue} ({u.venue_id}): {e}")
            continue
        if count:
            summary.applied += 1
            logger.info(f"Updated {u.venue}: {u.old} -> {u.new}")
        else:
            summary.not_found += 1
            logger.warning(f"Venue {u.venue_id} ({u.venue}) no longer exists")
    return summary
