#!/usr/bin/env python3
"""
Workflow: Guess Missing Sports
==============================
For stored venues with an empty sports list, detects sports from the venue
name and the booking page (title, meta description, body text) and stores
the known ones.

Usage:
    python -m workflows.guess_missing_sports --dry-run
    python -m workflows.guess_missing_sports --concurrency 3
"""

import argparse
import sys
from typing import List, Optional

from lib.settings import Settings
from services.venues.service import Service
from workflows.common import make_client, parse, run_job


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Detect sports for venues that have none")
    parser.add_argument("--dry-run", action="store_true", help="Log guesses without writing")
    parser.add_argument("--concurrency", type=int, default=5)
    args = parse(parser, argv)

    async def body(settings: Settings) -> str:
        async with make_client() as client:
            summary = await Service(client, settings).guess_missing_sports(
                dry_run=args.dry_run, concurrency=args.concurrency,
            )
        return ("[dry-run] " if args.dry_run else "") + summary.line()

    return run_job("guess_missing_sports", args, body, needs_store=True)


if __name__ == "__main__":
    sys.exit(main())
