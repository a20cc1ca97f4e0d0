"""Shared plumbing for the batch job entry points.

Every job parses its own arguments, then hands an async body to run_job,
which sets up logging, the optional run log, the store connection and the
Slack notification, and turns batch-fatal errors into exit code 1.
"""

import argparse
import asyncio
import sys
from typing import Awaitable, Callable, List, Optional

import httpx
from loguru import logger

from db.client import StoreError, close_db, init_db
from infra.slack import send_run_summary
from lib.crawl.resolver import DEFAULT_HEADERS
from lib.run_log import capture_run_log
from lib.settings import ConfigError, InputError, Settings
from lib.tabular.codec import Table, read_table


def setup_logging(verbose: bool = False) -> None:
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else "INFO", format="<level>{level: <8}</level> | {message}")


def add_common_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    parser.add_argument("--log-dir", help="Save a gzipped run log to this directory")
    parser.add_argument("--notify", action="store_true", help="Send the run summary to Slack")


def make_client(timeout: float = 30.0, max_connections: int = 20) -> httpx.AsyncClient:
    """Shared HTTP client for one job run."""
    return httpx.AsyncClient(
        headers=DEFAULT_HEADERS,
        timeout=timeout,
        limits=httpx.Limits(max_connections=max_connections),
    )


def run_job(
    job_name: str,
    args: argparse.Namespace,
    body: Callable[[Settings], Awaitable[str]],
    needs_store: bool = False,
) -> int:
    """Run a job body and return the process exit code.

    The body returns its one-line summary, which is logged and optionally
    sent to Slack.
    """
    setup_logging(getattr(args, "verbose", False))
    notify = getattr(args, "notify", False)

    async def runner() -> str:
        settings = Settings.from_env()
        if needs_store:
            await init_db(settings)
        try:
            return await body(settings)
        finally:
            if needs_store:
                await close_db()

    with capture_run_log(job_name, getattr(args, "log_dir", None)):
        try:
            summary = asyncio.run(runner())
        except (ConfigError, InputError, StoreError) as e:
            logger.error(f"{job_name}: {e}")
            if notify:
                send_run_summary(job_name, str(e), failed=True)
            return 1
        logger.success(f"{job_name}: {summary}")

    if notify:
        send_run_summary(job_name, summary)
    return 0


def parse(parser: argparse.ArgumentParser, argv: Optional[List[str]] = None) -> argparse.Namespace:
    add_common_args(parser)
    return parser.parse_args(argv)


def load_table(path: str) -> Table:
    """Read an input CSV. A missing file is fatal for the batch."""
    try:
        return read_table(path)
    except FileNotFoundError:
        raise InputError(f"Input file not found: {path}")
    except UnicodeDecodeError as e:
        raise InputError(f"Input file is not utf-8: {path} ({e.reason})")
