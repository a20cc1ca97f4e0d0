"""Repair pass over a validation run's failures.

For each failed row, the failed URL's site is searched again for a booking
page (site crawl, then web search). A different URL found this way replaces
the row's booking URL and is recorded as a correction.
"""

import asyncio
from typing import Dict, List, Optional, Tuple
from urllib.parse import urlsplit

from loguru import logger

from lib.booking.finder import BookingLinkFinder
from lib.booking.providers import match_provider
from lib.booking.search import VenueContext, search_booking_url
from lib.tabular.codec import Table
from lib.urls import canonicalize, normalize_booking_url
from services.maintenance.models import RepairReport, RepairUpdate, ValidationOutcome, ValidationReport
from services.maintenance.validation import CHANGED_COLUMN, booking_index
from services.venues.rows import CITY_COLUMNS, NAME_COLUMNS, find_column

CORRECTIONS_HEADER = ["Venue Name", "Suburb/City", "Booking URL", "Correct Booking URL"]


def site_root(url: str) -> Optional[str]:
    """scheme://host/ of a URL, None when it has no host."""
    try:
        parts = urlsplit(normalize_booking_url(url))
    except ValueError:
        return None
    if not parts.netloc:
        return None
    return f"{parts.scheme or 'https'}://{parts.netloc}/"


def locate_row(table: Table, failure: ValidationOutcome, name_idx: int, booking_idx: int) -> int:
    """
    Row position for a failure: the reported index when the venue name still
    matches, else the first row with the same name and the failed URL. -1 if none.
    """
    def name_at(i: int) -> str:
        row = table.rows[i]
        return row[name_idx].strip() if 0 <= name_idx < len(row) else ""

    venue = failure.venue.strip()
    i = failure.index - 1
    if 0 <= i < len(table.rows) and (name_idx < 0 or name_at(i) == venue):
        return i

    urls = {u for u in (failure.original_url, failure.normalized_url, failure.resolved_url) if u}
    for j, row in enumerate(table.rows):
        current = row[booking_idx] if booking_idx < len(row) else ""
        if name_at(j) == venue and current in urls:
            return j
    return -1


async def _search(finder: BookingLinkFinder, venue: VenueContext) -> Tuple[Optional[str], Optional[str]]:
    if finder.search_backend is None:
        return None, None
    found = await search_booking_url(finder.search_backend, venue, pause=finder.config.search_pause)
    return found, "search" if found else None


async def find_replacement(
    finder: BookingLinkFinder,
    failure: ValidationOutcome,
    search_only: bool = False,
) -> Tuple[Optional[str], Optional[str]]:
    """(url, method) of a replacement booking page for a failed row.

    Provider-hosted URLs go straight to web search, since the provider's
    homepage says nothing about the venue. A crawl that only leads back to
    the failed URL or the site root also falls through to search.
    """
    venue = VenueContext(
        name=failure.venue,
        city=failure.city,
        state=failure.state,
        original_url=failure.normalized_url or failure.original_url,
    )
    failed = venue.original_url
    if search_only or match_provider(failed):
        return await _search(finder, venue)

    root = site_root(failed)
    if not root:
        return await _search(finder, venue)
    attempt = await finder.discover(root, venue=venue)
    if not attempt.booking_url:
        return None, None
    if canonicalize(attempt.booking_url) in (canonicalize(failed), canonicalize(root)):
        if attempt.method == "search":
            return None, None
        logger.debug(f"Crawl of {root} led back to {attempt.booking_url}, trying search")
        return await _search(finder, venue)
    return attempt.booking_url, attempt.method


async def repair_failures(
    table: Table,
    report: ValidationReport,
    finder: BookingLinkFinder,
    pause: float = 0.25,
    search_only: bool = False,
) -> Tuple[Table, RepairReport, List[Dict[str, str]]]:
    """Returns the fixed table, the repair report and the corrections rows."""
    booking_idx = booking_index(table)
    header = list(table.header)
    if CHANGED_COLUMN not in header:
        header.append(CHANGED_COLUMN)
    changed_idx = header.index(CHANGED_COLUMN)
    name_column = find_column(header, NAME_COLUMNS)
    name_idx = header.index(name_column) if name_column else -1
    city_column = find_column(header, CITY_COLUMNS)
    city_idx = header.index(city_column) if city_column else -1

    fixed = Table(header=header, rows=[list(r) + [""] * (len(header) - len(r)) for r in table.rows])
    repair = RepairReport()
    corrections: List[Dict[str, str]] = []

    logger.info(f"Repairing {len(report.failures)} failed rows")
    for n, failure in enumerate(report.failures):
        if n and pause:
            await asyncio.sleep(pause)

        i = locate_row(fixed, failure, name_idx, booking_idx)
        if i < 0:
            logger.warning(f"Row {failure.index} ({failure.venue}) not found in table, skipping")
            continue
        repair.attempted += 1

        row = fixed.rows[i]
        old = row[booking_idx]
        try:
            new, method = await find_replacement(finder, failure, search_only)
        except Exception as e:
            logger.warning(f"Repair lookup failed for {failure.venue}: {type(e).__name__}: {e}")
            continue
        if not new or canonicalize(new) == canonicalize(old):
            logger.debug(f"No replacement for {failure.venue} ({old})")
            continue

        row[booking_idx] = new
        row[changed_idx] = "TRUE"
        city = row[city_idx] if city_idx >= 0 else failure.city
        repair.updated.append(RepairUpdate(index=failure.index, venue=failure.venue, city=city, old=old, new=new, method=method))
        corrections.append({
            "Venue Name": failure.venue,
            "Suburb/City": city,
            "Booking URL": old,
            "Correct Booking URL": new,
        })
        logger.info(f"Fixed {failure.venue}: {old} -> {new} ({method})")

    repair.fixed_count = len(repair.updated)
    logger.info(f"Repaired {repair.fixed_count}/{repair.attempted} rows")
    return fixed, repair, corrections
