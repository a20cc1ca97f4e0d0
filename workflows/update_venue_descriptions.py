#!/usr/bin/env python3
"""
Workflow: Update Venue Descriptions
===================================
Fills empty venue notes from each booking page's meta description (or its
first paragraph).

Usage:
    python -m workflows.update_venue_descriptions
    python -m workflows.update_venue_descriptions --dry-run --concurrency 3
"""

import argparse
import sys
from typing import List, Optional

from lib.settings import Settings
from services.venues.service import Service
from workflows.common import make_client, parse, run_job


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Backfill venue notes from booking pages")
    parser.add_argument("--dry-run", action="store_true", help="Fetch descriptions without writing")
    parser.add_argument("--concurrency", type=int, default=5)
    args = parse(parser, argv)

    async def body(settings: Settings) -> str:
        async with make_client() as client:
            summary = await Service(client, settings).backfill_descriptions(
                dry_run=args.dry_run, concurrency=args.concurrency,
            )
        return ("[dry-run] " if args.dry_run else "") + summary.line()

    return run_job("update_venue_descriptions", args, body, needs_store=True)


if __name__ == "__main__":
    sys.exit(main())
