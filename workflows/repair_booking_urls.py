#!/usr/bin/env python3
"""
Workflow: Repair Booking URLs
=============================
Re-runs booking page discovery for every failure in a validation report and
writes a fixed CSV, a repair report and a corrections CSV for review.

Usage:
    python -m workflows.repair_booking_urls venues-validated.csv venues-validate-report-<run>.json

    # Web search only, custom output
    python -m workflows.repair_booking_urls in.csv report.json --search-only --output fixed.csv
"""

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from lib.booking.finder import BookingLinkFinder
from lib.booking.search import make_backend
from lib.settings import Settings
from lib.tabular.codec import serialize_table, write_table, write_text_atomic
from services.maintenance.models import ValidationReport
from services.maintenance.repair import CORRECTIONS_HEADER, repair_failures
from services.maintenance.reports import read_report, repair_paths, write_report
from workflows.common import load_table, make_client, parse, run_job


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Repair failed booking URLs")
    parser.add_argument("validated", help="Validated CSV")
    parser.add_argument("report", help="Validation report JSON")
    parser.add_argument("--output", help="Fixed CSV (default <validated>-fixed.csv)")
    parser.add_argument("--search-only", action="store_true", help="Skip the site crawl, use web search only")
    parser.add_argument("--pause", type=float, default=0.25, help="Seconds between lookups")
    args = parse(parser, argv)

    async def body(settings: Settings) -> str:
        table = load_table(args.validated)
        report = read_report(args.report, ValidationReport)

        default_output, report_stem, corrections_path = repair_paths(args.validated)
        output_path = Path(args.output) if args.output else default_output

        async with make_client() as client:
            finder = BookingLinkFinder(client, search_backend=make_backend(client, settings.serper_api_key))
            fixed, repair, corrections = await repair_failures(
                table, report, finder, pause=args.pause, search_only=args.search_only,
            )

        write_text_atomic(output_path, serialize_table(fixed))
        write_table(corrections_path, corrections, CORRECTIONS_HEADER)
        report_path = write_report(report_stem, repair)
        return (
            f"failures={len(report.failures)}, attempted={repair.attempted}, fixed={repair.fixed_count}, "
            f"output={output_path}, corrections={corrections_path}, report={report_path}"
        )

    return run_job("repair_booking_urls", args, body)


if __name__ == "__main__":
    sys.exit(main())
