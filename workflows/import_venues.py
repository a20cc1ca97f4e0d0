#!/usr/bin/env python3
"""
Workflow: Import Venues
=======================
Imports a venue CSV: geocodes addresses, drops rows already in the catalog
(backfilling their coordinates) and upserts the rest.

Usage:
    python -m workflows.import_venues venues.csv
    python -m workflows.import_venues venues.csv --no-geocode --dry-run
"""

import argparse
import sys
from typing import List, Optional

from loguru import logger

from lib.settings import Settings
from services.venues.service import Service
from workflows.common import load_table, make_client, parse, run_job


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Import venues from a CSV")
    parser.add_argument("csv", help="Venue CSV")
    parser.add_argument("--no-geocode", action="store_true", help="Skip geocoding")
    parser.add_argument("--no-notes", action="store_true", help="Skip fetching page descriptions")
    parser.add_argument("--concurrency", type=int, default=5)
    parser.add_argument("--dry-run", action="store_true", help="Do not write to the store")
    args = parse(parser, argv)

    async def body(settings: Settings) -> str:
        rows = load_table(args.csv).records()
        logger.info(f"Read {len(rows)} rows from {args.csv}")
        async with make_client() as client:
            service = Service(client, settings)
            _, summary = await service.import_rows(
                rows,
                geocode=not args.no_geocode,
                with_notes=not args.no_notes,
                dry_run=args.dry_run,
                concurrency=args.concurrency,
            )
        return ("[dry-run] " if args.dry_run else "") + summary.line()

    return run_job("import_venues", args, body, needs_store=True)


if __name__ == "__main__":
    sys.exit(main())
