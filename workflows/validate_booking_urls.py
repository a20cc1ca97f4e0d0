#!/usr/bin/env python3
"""
Workflow: Validate Booking URLs
===============================
Resolves every booking URL in a venue CSV (or in the store) and writes a
validated CSV plus a JSON failure report for the repair job.

Usage:
    # Validate a CSV, default outputs next to it
    python -m workflows.validate_booking_urls venues.csv

    # Explicit output and report paths
    python -m workflows.validate_booking_urls venues.csv out.csv out-report

    # Validate what is currently stored
    python -m workflows.validate_booking_urls --from-store
"""

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from loguru import logger

from lib.settings import InputError, Settings
from lib.tabular.codec import Table, serialize_table, write_text_atomic
from services.maintenance.reports import validation_paths, write_report
from services.maintenance.validation import build_report, validate_table
from services.venues import repo
from services.venues.rows import EXPORT_HEADER, venue_to_export_row
from workflows.common import load_table, make_client, parse, run_job

STORE_INPUT = "venues-store.csv"


async def store_table():
    """Stored venues as an export-layout table, plus their ids."""
    venues = await repo.fetch_catalog()
    rows = [venue_to_export_row(v) for v in venues]
    table = Table(header=list(EXPORT_HEADER), rows=[[r[h] for h in EXPORT_HEADER] for r in rows])
    return table, [v.id for v in venues]


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Validate venue booking URLs")
    parser.add_argument("input", nargs="?", help="Venue CSV with a Booking URL column")
    parser.add_argument("output", nargs="?", help="Validated CSV (default <input>-validated.csv)")
    parser.add_argument("report", nargs="?", help="Report path stem (default <input>-validate-report)")
    parser.add_argument("--from-store", action="store_true", help="Validate stored venues instead of a CSV")
    parser.add_argument("--concurrency", type=int, default=10)
    args = parse(parser, argv)

    async def body(settings: Settings) -> str:
        if args.from_store:
            table, record_ids = await store_table()
            source = args.input or STORE_INPUT
        elif args.input:
            table, record_ids = load_table(args.input), None
            source = args.input
        else:
            raise InputError("No input CSV given (or use --from-store)")

        default_output, default_report = validation_paths(source)
        output_path = Path(args.output) if args.output else default_output
        report_stem = Path(args.report) if args.report else default_report

        logger.info(f"Validating {len(table.rows)} rows from {'store' if args.from_store else source}")
        async with make_client() as client:
            output, outcomes = await validate_table(client, table, args.concurrency, record_ids=record_ids)

        write_text_atomic(output_path, serialize_table(output))
        report = build_report(outcomes, "store" if args.from_store else source, str(output_path))
        report_path = write_report(report_stem, report)

        changed = sum(1 for o in outcomes if o.changed)
        return (
            f"total={report.total}, failed={report.failed_count}, changed={changed}, "
            f"output={output_path}, report={report_path}"
        )

    return run_job("validate_booking_urls", args, body, needs_store=args.from_store)


if __name__ == "__main__":
    sys.exit(main())
