#!/usr/bin/env python3
"""
Workflow: Report Duplicates
===========================
Lists stored venues that share a canonical booking URL or a name+address.
Read only; nothing is merged or deleted.

Usage:
    python -m workflows.report_duplicates
"""

import argparse
import sys
from typing import List, Optional

from loguru import logger

from lib.settings import Settings
from services.venues.service import Service
from workflows.common import make_client, parse, run_job


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Report duplicate venues in the store")
    args = parse(parser, argv)

    async def body(settings: Settings) -> str:
        async with make_client() as client:
            groups = await Service(client, settings).duplicate_groups()

        for kind, kind_groups in groups.items():
            logger.info("=" * 50)
            logger.info(f"Duplicates by {kind}: {len(kind_groups)} groups")
            for group in kind_groups:
                logger.info(" | ".join(f"{v.id}: {v.name} ({v.address}) {v.booking_url}" for v in group))

        return ", ".join(f"{kind}={len(g)} groups" for kind, g in groups.items())

    return run_job("report_duplicates", args, body, needs_store=True)


if __name__ == "__main__":
    sys.exit(main())
