"""Venues Service - discovery, import, export and catalog reports."""

import asyncio
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

import httpx
from loguru import logger
from pydantic import BaseModel, Field

from db.client import StoreError
from db.models.venue import Venue, VenueRecord
from lib.booking.finder import BookingLinkFinder, extract_search_text
from lib.crawl.executor import BoundedExecutor
from lib.geo.geocoding import geocode_address, resolve_bounds
from lib.geo.overpass import (
    DEFAULT_SPORTS_PATTERN,
    OverpassError,
    VenueCandidate,
    query_area_elements,
    query_elements,
)
from lib.settings import Settings
from lib.sports import detect_sports
from services.venues import repo
from services.venues.assembler import AssemblyResult, CatalogSnapshot, assemble
from services.venues.rows import find_duplicate_groups, row_to_record, venue_to_export_row


class DiscoveryOptions(BaseModel):
    """What to sweep and how."""
    places: List[str] = Field(default_factory=list)
    country: str = "Australia"
    sports_pattern: str = DEFAULT_SPORTS_PATTERN
    area: Optional[str] = None          # named admin area, used instead of places
    sport: str = "tennis"               # single sport for area sweeps
    admin_level: int = 4
    concurrency: int = 5
    guess_play_tennis: bool = False
    with_notes: bool = True
    place_pause: float = 0.8
    venue_pause: float = 0.12


class RunSummary(BaseModel):
    """Counters reported at the end of a discovery or import run."""
    places: int = 0
    places_skipped: int = 0
    elements: int = 0
    candidates: int = 0
    found: int = 0
    accepted: int = 0
    skipped: Dict[str, int] = Field(default_factory=dict)
    backfills: int = 0
    written: int = 0
    failed_writes: int = 0

    def line(self) -> str:
        skipped = ", ".join(f"{k}={v}" for k, v in sorted(self.skipped.items())) or "none"
        return (
            f"places={self.places} (skipped {self.places_skipped}), elements={self.elements}, "
            f"candidates={self.candidates}, found={self.found}, accepted={self.accepted}, "
            f"skipped: {skipped}, backfills={self.backfills}, written={self.written}, "
            f"failed_writes={self.failed_writes}"
        )


class BackfillSummary(BaseModel):
    """Counters for a job that fills one missing column on stored venues."""
    scanned: int = 0
    found: int = 0
    updated: int = 0
    failed_writes: int = 0

    def line(self) -> str:
        return (
            f"scanned={self.scanned}, found={self.found}, "
            f"updated={self.updated}, failed_writes={self.failed_writes}"
        )


def candidate_to_record(
    candidate: VenueCandidate,
    place_label: str,
    country: str,
    booking_url: str,
    notes: Optional[str] = None,
) -> VenueRecord:
    """Venue record from an Overpass candidate, falling back to '<place>, <country>' for the address."""
    return VenueRecord(
        name=candidate.name or "",
        address=candidate.address or ", ".join(p for p in (place_label, country) if p),
        city=candidate.city or place_label or None,
        booking_url=booking_url,
        sports=candidate.sports,
        latitude=candidate.latitude,
        longitude=candidate.longitude,
        notes=notes,
        is_public=True,
    )


def _tally(summary: RunSummary, result: AssemblyResult) -> None:
    summary.accepted = len(result.accepted)
    summary.backfills = len(result.backfills)
    for s in result.skipped:
        summary.skipped[s.reason] = summary.skipped.get(s.reason, 0) + 1


class IService(ABC):
    """Venues Service - catalog growth and catalog I/O."""

    @abstractmethod
    async def discover_venues(self, options: DiscoveryOptions, dry_run: bool = False) -> Tuple[AssemblyResult, RunSummary]:
        """
        Sweep places (or a named area) for sports venues, find booking links,
        dedup against the catalog and upsert new venues unless dry_run.
        """
        pass

    @abstractmethod
    async def import_rows(
        self,
        rows: Sequence[Mapping[str, str]],
        geocode: bool = True,
        with_notes: bool = True,
        dry_run: bool = False,
    ) -> Tuple[AssemblyResult, RunSummary]:
        """Import venue rows, geocoding and backfilling coordinates on matches."""
        pass

    @abstractmethod
    async def backfill_coordinates(self, dry_run: bool = False, pause: float = 0.2) -> BackfillSummary:
        """Geocode stored venues missing latitude or longitude."""
        pass

    @abstractmethod
    async def backfill_descriptions(
        self, dry_run: bool = False, concurrency: int = 5, pause: float = 0.12,
    ) -> BackfillSummary:
        """Fill empty notes from booking page descriptions."""
        pass

    @abstractmethod
    async def guess_missing_sports(self, dry_run: bool = False, concurrency: int = 5) -> BackfillSummary:
        """Detect and store sports for venues that have none."""
        pass

    @abstractmethod
    async def find_venues_named(self, name: str) -> List[Venue]:
        pass

    @abstractmethod
    async def delete_venues(self, venues: Sequence[Venue]) -> int:
        """Delete the given venues by id. Returns rows deleted."""
        pass

    @abstractmethod
    async def export_rows(self) -> List[Dict[str, str]]:
        """All stored venues in the standard export layout."""
        pass

    @abstractmethod
    async def duplicate_groups(self) -> Dict[str, List[List[Venue]]]:
        """Stored venues grouped by shared booking URL / name+address."""
        pass


class Service(IService):
    def __init__(
        self,
        client: httpx.AsyncClient,
        settings: Optional[Settings] = None,
        finder: Optional[BookingLinkFinder] = None,
    ) -> None:
        self.client = client
        self.settings = settings or Settings.from_env()
        self.finder = finder or BookingLinkFinder(client)

    async def load_snapshot(self) -> CatalogSnapshot:
        venues = await repo.fetch_catalog()
        logger.info(f"Loaded {len(venues)} venues from catalog")
        return CatalogSnapshot.from_venues(venues)

    # -------------------------------------------------------------------------
    # Discovery
    # -------------------------------------------------------------------------

    async def _place_candidates(self, options: DiscoveryOptions, summary: RunSummary) -> List[Tuple[str, VenueCandidate]]:
        found: List[Tuple[str, VenueCandidate]] = []

        if options.area:
            summary.places = 1
            try:
                elements = await query_area_elements(options.area, options.sport, self.client, options.admin_level)
            except (OverpassError, httpx.HTTPError) as e:
                logger.warning(f"Overpass failed for {options.area}: {e}")
                summary.places_skipped = 1
                return []
            logger.info(f"Found {len(elements)} elements in {options.area}")
            return [(options.area, el) for el in elements]

        for i, place in enumerate(options.places):
            if i and options.place_pause:
                await asyncio.sleep(options.place_pause)
            summary.places += 1
            logger.info(f"Place: {place} -> fetching bounds")
            try:
                bbox = await resolve_bounds(place, self.client, self.settings.here_api_key, options.country)
            except (ValueError, httpx.HTTPError) as e:
                logger.warning(f"No bounds for {place}: {e}")
                summary.places_skipped += 1
                continue
            try:
                elements = await query_elements(bbox, self.client, options.sports_pattern)
            except (OverpassError, httpx.HTTPError) as e:
                logger.warning(f"Overpass failed for {place}: {e}")
                summary.places_skipped += 1
                continue
            logger.info(f"Found {len(elements)} elements in {place}")
            found.extend((place, el) for el in elements)
        return found

    async def _discover_one(self, item: Tuple[str, VenueCandidate], options: DiscoveryOptions) -> Optional[VenueRecord]:
        place, candidate = item
        booking_url = None

        if candidate.website:
            attempt = await self.finder.discover(candidate.website)
            booking_url = attempt.booking_url
        if not booking_url and options.guess_play_tennis:
            booking_url = await self.finder.guess_play_tennis_booking(candidate.name)
        if not booking_url:
            logger.debug(f"No booking link for {candidate.name} ({place})")
            return None

        notes = await self.finder.fetch_description(booking_url) if options.with_notes else None
        if options.venue_pause:
            await asyncio.sleep(options.venue_pause)
        return candidate_to_record(candidate, place, options.country, booking_url, notes)

    async def discover_venues(self, options: DiscoveryOptions, dry_run: bool = False) -> Tuple[AssemblyResult, RunSummary]:
        summary = RunSummary()
        snapshot = await self.load_snapshot()

        pairs = await self._place_candidates(options, summary)
        summary.elements = len(pairs)
        eligible = [
            (place, c) for place, c in pairs
            if c.name and (c.website or options.guess_play_tennis)
        ]
        summary.candidates = len(eligible)
        logger.info(f"{len(eligible)}/{len(pairs)} elements have a name and a site to check")

        executor = BoundedExecutor(options.concurrency, progress_every=25, label="venues")
        results = await executor.map(
            lambda item: self._discover_one(item, options),
            eligible,
            key=lambda item: f"{item[1].name} ({item[0]})",
        )
        records = [r.value for r in results if r.ok and r.value is not None]
        summary.found = len(records)

        result = assemble(snapshot, records)
        _tally(summary, result)
        for s in result.skipped:
            logger.debug(f"Skipped {s.record.name} ({s.record.city}): {s.reason} {s.detail}")

        if not dry_run:
            await self.persist(result, summary)
        return result, summary

    # -------------------------------------------------------------------------
    # Import
    # -------------------------------------------------------------------------

    async def import_rows(
        self,
        rows: Sequence[Mapping[str, str]],
        geocode: bool = True,
        with_notes: bool = True,
        dry_run: bool = False,
        concurrency: int = 5,
    ) -> Tuple[AssemblyResult, RunSummary]:
        summary = RunSummary(elements=len(rows))
        snapshot = await self.load_snapshot()
        known_sports = await repo.fetch_sport_slugs()

        records = [row_to_record(row) for row in rows]
        if known_sports:
            known = set(known_sports)
            for record in records:
                unknown = [s for s in record.sports if s not in known]
                if unknown:
                    logger.debug(f"{record.name}: dropping unknown sports {unknown}")
                    record.sports = [s for s in record.sports if s in known]
        summary.candidates = sum(1 for r in records if not r.missing_fields())

        if geocode:
            async def locate(record: VenueRecord) -> None:
                coords = await geocode_address(
                    f"{record.address}, {self.settings.geo_country}",
                    self.client,
                    self.settings.here_api_key,
                )
                if coords:
                    record.latitude, record.longitude = coords
                else:
                    logger.debug(f"No coordinates for {record.name} ({record.address})")

            complete = [r for r in records if not r.missing_fields()]
            await BoundedExecutor(concurrency, progress_every=50, label="geocodes").map(
                locate, complete, key=lambda r: r.name,
            )

        result = assemble(snapshot, records)

        if with_notes:
            async def describe(record: VenueRecord) -> None:
                if not record.notes:
                    record.notes = await self.finder.fetch_description(record.booking_url)

            await BoundedExecutor(concurrency, label="descriptions").map(
                describe, result.accepted, key=lambda r: r.name,
            )

        _tally(summary, result)
        summary.found = summary.candidates
        if not dry_run:
            await self.persist(result, summary, chunk_size=100)
        return result, summary

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    async def persist(self, result: AssemblyResult, summary: RunSummary, chunk_size: int = repo.UPSERT_CHUNK_SIZE) -> None:
        """Apply coordinate backfills one by one, then upsert accepted records."""
        for backfill in result.backfills:
            try:
                await repo.update_coordinates(backfill.venue_id, backfill.latitude, backfill.longitude)
            except StoreError as e:
                summary.failed_writes += 1
                logger.warning(f"Coordinate backfill failed for {backfill.venue_id}: {e}")

        if result.accepted:
            summary.written = await repo.upsert_venues(result.accepted, chunk_size=chunk_size)
            summary.failed_writes += len(result.accepted) - summary.written
        else:
            logger.info("Nothing to insert.")

    # -------------------------------------------------------------------------
    # Backfills
    # -------------------------------------------------------------------------

    async def _apply_updates(
        self,
        updates: List[Tuple[Venue, Any]],
        write: Callable[[str, Any], Awaitable[int]],
        summary: BackfillSummary,
        dry_run: bool = False,
        pause: float = 0.0,
    ) -> None:
        for i, (venue, value) in enumerate(updates):
            if dry_run:
                logger.info(f"[dry-run] {venue.name} ({venue.id}): {value}")
                continue
            if i and pause:
                await asyncio.sleep(pause)
            try:
                summary.updated += await write(venue.id, value)
            except StoreError as e:
                summary.failed_writes += 1
                logger.warning(f"Update failed for {venue.name} ({venue.id}): {e}")

    async def backfill_coordinates(self, dry_run: bool = False, pause: float = 0.2) -> BackfillSummary:
        """Geocode stored venues that have no latitude or longitude."""
        summary = BackfillSummary()
        venues = [v for v in await repo.fetch_catalog() if v.latitude is None or v.longitude is None]
        summary.scanned = len(venues)
        logger.info(f"{len(venues)} venues missing coordinates")

        updates: List[Tuple[Venue, Any]] = []
        for i, venue in enumerate(venues):
            if i and pause:
                await asyncio.sleep(pause)
            query = ", ".join(p for p in (venue.address, venue.city, self.settings.geo_country) if p)
            coords = await geocode_address(query, self.client, self.settings.here_api_key)
            if coords:
                updates.append((venue, coords))
            else:
                logger.debug(f"No coordinates for {venue.name} ({query})")
        summary.found = len(updates)

        async def write(venue_id: str, coords: Tuple[float, float]) -> int:
            return await repo.update_coordinates(venue_id, coords[0], coords[1])

        await self._apply_updates(updates, write, summary, dry_run)
        return summary

    async def backfill_descriptions(
        self, dry_run: bool = False, concurrency: int = 5, pause: float = 0.12,
    ) -> BackfillSummary:
        """Fill empty notes from each venue's booking page description."""
        summary = BackfillSummary()
        venues = [v for v in await repo.fetch_catalog() if not (v.notes or "").strip() and v.booking_url]
        summary.scanned = len(venues)
        logger.info(f"{len(venues)} venues without notes")

        results = await BoundedExecutor(concurrency, progress_every=25, label="descriptions").map(
            lambda v: self.finder.fetch_description(v.booking_url), venues, key=lambda v: v.name,
        )
        updates = [(v, r.value) for v, r in zip(venues, results) if r.ok and r.value]
        summary.found = len(updates)
        await self._apply_updates(updates, repo.update_notes, summary, dry_run, pause=pause)
        return summary

    async def guess_missing_sports(self, dry_run: bool = False, concurrency: int = 5) -> BackfillSummary:
        """Detect sports for venues with none, from the name and the booking page text."""
        summary = BackfillSummary()
        venues = [v for v in await repo.fetch_catalog() if not v.sports]
        summary.scanned = len(venues)
        known = set(await repo.fetch_sport_slugs())
        logger.info(f"{len(venues)} venues without sports")

        async def guess(venue: Venue) -> List[str]:
            text = " ".join(p for p in (venue.name, venue.notes) if p)
            page = await self.finder.fetch_html(venue.booking_url) if venue.booking_url else None
            if page:
                text += " " + extract_search_text(page[1])
            sports = detect_sports(text)
            if known:
                sports = [s for s in sports if s in known]
            return sports

        results = await BoundedExecutor(concurrency, progress_every=25, label="sports").map(
            guess, venues, key=lambda v: v.name,
        )
        updates = [(v, r.value) for v, r in zip(venues, results) if r.ok and r.value]
        summary.found = len(updates)
        await self._apply_updates(updates, repo.update_sports, summary, dry_run)
        return summary

    async def find_venues_named(self, name: str) -> List[Venue]:
        """Stored venues whose name matches exactly, ignoring case and outer spaces."""
        target = (name or "").strip().lower()
        if not target:
            return []
        return [v for v in await repo.fetch_catalog() if v.name.strip().lower() == target]

    async def delete_venues(self, venues: Sequence[Venue]) -> int:
        deleted = 0
        for venue in venues:
            deleted += await repo.delete_venue(venue.id)
            logger.info(f"Deleted {venue.name} ({venue.id})")
        return deleted

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    async def export_rows(self) -> List[Dict[str, str]]:
        venues = await repo.fetch_catalog()
        return [venue_to_export_row(v) for v in venues]

    async def duplicate_groups(self) -> Dict[str, List[List[Venue]]]:
        return find_duplicate_groups(await repo.fetch_catalog())
