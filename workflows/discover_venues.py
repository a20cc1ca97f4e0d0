#!/usr/bin/env python3
"""
Workflow: Discover Venues
=========================
Sweeps places for sports venues on OpenStreetMap, finds their booking pages
and adds the new ones to the catalog.

Usage:
    # Sweep cities
    python -m workflows.discover_venues --places Hobart Launceston

    # Single-sport sweep of a state
    python -m workflows.discover_venues --area Tasmania --sport tennis --guess-play-tennis

    # Preview into a CSV without writing
    python -m workflows.discover_venues --places Hobart --dry-run --output hobart.csv
"""

import argparse
import sys
from typing import List, Optional

from lib.booking.finder import BookingLinkFinder
from lib.geo.overpass import DEFAULT_SPORTS_PATTERN
from lib.settings import InputError, Settings
from lib.tabular.codec import write_table
from services.venues.rows import EXPORT_HEADER, venue_to_export_row
from services.venues.service import DiscoveryOptions, Service
from workflows.common import make_client, parse, run_job


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Discover sports venues and their booking links")
    parser.add_argument("--places", nargs="+", default=[], help="Place names to sweep")
    parser.add_argument("--country", default=None, help="Country for place lookups (default GEO_COUNTRY)")
    parser.add_argument("--sports-pattern", default=DEFAULT_SPORTS_PATTERN, help="Overpass sport regex")
    parser.add_argument("--area", help="Named admin area to sweep instead of places")
    parser.add_argument("--sport", default="tennis", help="Sport for --area sweeps")
    parser.add_argument("--admin-level", type=int, default=4)
    parser.add_argument("--concurrency", type=int, default=5)
    parser.add_argument("--output", help="Also write accepted venues to this CSV")
    parser.add_argument("--guess-play-tennis", action="store_true", help="Guess Tennis Australia booking pages")
    parser.add_argument("--no-notes", action="store_true", help="Skip fetching page descriptions")
    parser.add_argument("--dry-run", action="store_true", help="Do not write to the store")
    args = parse(parser, argv)

    async def body(settings: Settings) -> str:
        if not args.places and not args.area:
            raise InputError("Give --places or --area")
        options = DiscoveryOptions(
            places=args.places,
            country=args.country or settings.geo_country,
            sports_pattern=args.sports_pattern,
            area=args.area,
            sport=args.sport,
            admin_level=args.admin_level,
            concurrency=args.concurrency,
            guess_play_tennis=args.guess_play_tennis,
            with_notes=not args.no_notes,
        )
        async with make_client() as client:
            service = Service(client, settings, BookingLinkFinder(client))
            result, summary = await service.discover_venues(options, dry_run=args.dry_run)

        if args.output:
            write_table(args.output, [venue_to_export_row(r) for r in result.accepted], EXPORT_HEADER)
        return ("[dry-run] " if args.dry_run else "") + summary.line()

    return run_job("discover_venues", args, body, needs_store=True)


if __name__ == "__main__":
    sys.exit(main())
