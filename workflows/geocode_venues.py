#!/usr/bin/env python3
"""
Workflow: Geocode Venues
========================
Fills latitude/longitude for stored venues that have none, geocoding
"<address>, <city>, <country>" with HERE (when HERE_API_KEY is set) or
Nominatim.

Usage:
    python -m workflows.geocode_venues
    python -m workflows.geocode_venues --dry-run --pause 1.0
"""

import argparse
import sys
from typing import List, Optional

from lib.settings import Settings
from services.venues.service import Service
from workflows.common import make_client, parse, run_job


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Backfill coordinates for stored venues")
    parser.add_argument("--dry-run", action="store_true", help="Geocode without writing")
    parser.add_argument("--pause", type=float, default=0.2, help="Seconds between geocode requests")
    args = parse(parser, argv)

    async def body(settings: Settings) -> str:
        async with make_client() as client:
            summary = await Service(client, settings).backfill_coordinates(dry_run=args.dry_run, pause=args.pause)
        return ("[dry-run] " if args.dry_run else "") + summary.line()

    return run_job("geocode_venues", args, body, needs_store=True)


if __name__ == "__main__":
    sys.exit(main())
