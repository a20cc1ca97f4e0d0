#!/usr/bin/env python3
"""
Workflow: Delete Venues
=======================
Deletes stored venues by exact name (case-insensitive). Matching rows are
written to a backup CSV before anything is deleted.

Usage:
    python -m workflows.delete_venues "Old Court" --dry-run
    python -m workflows.delete_venues "Old Court" --backup backups/old-court.csv
"""

import argparse
import sys
from typing import List, Optional

from loguru import logger

from lib.settings import Settings
from lib.tabular.codec import write_table
from services.maintenance.reports import run_id
from services.venues.repo import VENUE_COLUMNS
from services.venues.service import Service
from workflows.common import make_client, parse, run_job


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Delete stored venues by exact name")
    parser.add_argument("name", help="Venue name to match")
    parser.add_argument("--backup", help="Backup CSV path (default: deleted-venues-<run>.csv)")
    parser.add_argument("--dry-run", action="store_true", help="List matches without deleting")
    args = parse(parser, argv)

    async def body(settings: Settings) -> str:
        async with make_client() as client:
            service = Service(client, settings)
            matches = await service.find_venues_named(args.name)
            if not matches:
                return f"matched=0 for '{args.name}'"
            for venue in matches:
                logger.info(f"Match: {venue.name} ({venue.id}) {venue.address} {venue.booking_url}")
            if args.dry_run:
                return f"[dry-run] matched={len(matches)}"

            backup = write_table(
                args.backup or f"deleted-venues-{run_id()}.csv",
                [v.model_dump() for v in matches],
                VENUE_COLUMNS.split(","),
            )
            logger.info(f"Backed up {len(matches)} venues to {backup}")
            deleted = await service.delete_venues(matches)
        return f"matched={len(matches)}, deleted={deleted}, backup={backup}"

    return run_job("delete_venues", args, body, needs_store=True)


if __name__ == "__main__":
    sys.exit(main())
