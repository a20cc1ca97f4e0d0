#!/usr/bin/env python3
"""
Workflow: Apply Booking Fixes
=============================
Writes reviewed booking URL corrections to the store. The only job that
changes existing venues.

Usage:
    python -m workflows.apply_booking_fixes venues-validated-corrections.csv
    python -m workflows.apply_booking_fixes corrections.csv --dry-run
"""

import argparse
import sys
from typing import List, Optional

from loguru import logger

from lib.settings import Settings
from services.maintenance.apply import apply_corrections, plan_corrections
from services.venues import repo
from services.venues.assembler import CatalogSnapshot
from workflows.common import load_table, parse, run_job


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Apply booking URL corrections to the store")
    parser.add_argument("corrections", help="Corrections CSV")
    parser.add_argument("--dry-run", action="store_true", help="Plan updates without writing")
    args = parse(parser, argv)

    async def body(settings: Settings) -> str:
        rows = load_table(args.corrections).records()
        snapshot = CatalogSnapshot.from_venues(await repo.fetch_catalog())
        logger.info(f"Loaded {len(rows)} correction rows, {len(snapshot)} stored venues")

        updates, summary = plan_corrections(snapshot, rows)
        summary = await apply_corrections(updates, summary, dry_run=args.dry_run)
        return ("[dry-run] " if args.dry_run else "") + summary.line()

    return run_job("apply_booking_fixes", args, body, needs_store=True)


if __name__ == "__main__":
    sys.exit(main())
