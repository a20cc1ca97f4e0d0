#!/usr/bin/env python3
"""
Workflow: Export Venues
=======================
Dumps the stored catalog to a CSV in the standard export layout.

Usage:
    python -m workflows.export_venues
    python -m workflows.export_venues out/venues.csv
"""

import argparse
import sys
from typing import List, Optional

from lib.settings import Settings
from lib.tabular.codec import write_table
from services.venues.rows import EXPORT_HEADER
from services.venues.service import Service
from workflows.common import make_client, parse, run_job


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Export stored venues to CSV")
    parser.add_argument("output", nargs="?", default="venues-export.csv")
    args = parse(parser, argv)

    async def body(settings: Settings) -> str:
        async with make_client() as client:
            rows = await Service(client, settings).export_rows()
        path = write_table(args.output, rows, EXPORT_HEADER)
        return f"exported={len(rows)}, output={path}"

    return run_job("export_venues", args, body, needs_store=True)


if __name__ == "__main__":
    sys.exit(main())
