#!/usr/bin/env python3
"""
Workflow: Combine CSVs
======================
Merges venue CSVs into the standard export layout, one row per canonical
booking URL, sorted by city then name.

Usage:
    python -m workflows.combine_csvs combined.csv a.csv b.csv c.csv
"""

import argparse
import sys
from typing import List, Optional

from loguru import logger

from lib.settings import Settings
from lib.tabular.codec import write_table
from services.venues.rows import EXPORT_HEADER, combine_rows
from workflows.common import load_table, parse, run_job


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Merge venue CSVs")
    parser.add_argument("output", help="Combined CSV")
    parser.add_argument("inputs", nargs="+", help="Input CSVs")
    args = parse(parser, argv)

    async def body(settings: Settings) -> str:
        tables = []
        for path in args.inputs:
            records = load_table(path).records()
            logger.info(f"{path}: {len(records)} rows")
            tables.append(records)
        combined = combine_rows(tables)
        out = write_table(args.output, combined, EXPORT_HEADER)
        return f"inputs={len(args.inputs)}, read={sum(len(t) for t in tables)}, written={len(combined)}, output={out}"

    return run_job("combine_csvs", args, body)


if __name__ == "__main__":
    sys.exit(main())
