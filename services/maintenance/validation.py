"""Booking URL validation against the live web.

Each row's booking URL is cleaned, then resolved with HEAD/GET. The output
table keeps every input column, swaps in the resolved URL, and adds a
"Booking URL Changed" flag. Failures are collected for the repair pass.
"""

from typing import List, Optional, Sequence, Tuple

import httpx
from loguru import logger

from lib.crawl.executor import BoundedExecutor
from lib.crawl.resolver import ResolverConfig, resolve_url
from lib.settings import InputError
from lib.tabular.codec import Table
from lib.urls import normalize_booking_url
from services.maintenance.models import ValidationOutcome, ValidationReport
from services.venues.rows import (
    BOOKING_COLUMNS,
    CITY_COLUMNS,
    NAME_COLUMNS,
    SPORTS_COLUMNS,
    STATE_COLUMNS,
    find_column,
)

CHANGED_COLUMN = "Booking URL Changed"


def _cell(row: Sequence[str], index: int) -> str:
    return row[index] if 0 <= index < len(row) else ""


def _index(table: Table, candidates: Sequence[str]) -> int:
    column = find_column(table.header, candidates)
    return table.header.index(column) if column is not None else -1


def booking_index(table: Table) -> int:
    """Position of the booking URL column. Missing column is fatal for the batch."""
    idx = _index(table, BOOKING_COLUMNS)
    if idx < 0:
        raise InputError('Missing "Booking URL" column')
    return idx


async def validate_row(
    client: httpx.AsyncClient,
    table: Table,
    i: int,
    booking_idx: int,
    config: Optional[ResolverConfig] = None,
) -> ValidationOutcome:
    row = table.rows[i]
    original = _cell(row, booking_idx)
    normalized = normalize_booking_url(original)
    outcome = ValidationOutcome(
        index=i + 1,
        venue=_cell(row, _index(table, NAME_COLUMNS)),
        city=_cell(row, _index(table, CITY_COLUMNS)),
        state=_cell(row, _index(table, STATE_COLUMNS)),
        sports=_cell(row, _index(table, SPORTS_COLUMNS)),
        original_url=original,
        normalized_url=normalized,
    )
    if not normalized:
        outcome.error = "Missing booking URL"
        return outcome

    res = await resolve_url(client, normalized, config)
    outcome.http_status = res.status
    if not res.ok:
        outcome.error = res.error or "Network error"
        return outcome

    resolved = res.final_url or normalized
    outcome.resolved_url = resolved
    outcome.changed = (resolved != original and resolved != normalized) or normalized != original
    return outcome


def apply_outcomes(table: Table, outcomes: Sequence[ValidationOutcome], booking_idx: int) -> Table:
    """Output table: original columns, booking URL replaced, changed flag set."""
    header = list(table.header)
    if CHANGED_COLUMN in header:
        changed_idx = header.index(CHANGED_COLUMN)
    else:
        header.append(CHANGED_COLUMN)
        changed_idx = len(header) - 1

    rows: List[List[str]] = []
    for row, outcome in zip(table.rows, outcomes):
        out = list(row[:len(header)]) + [""] * (len(header) - len(row))
        out[booking_idx] = outcome.resolved_url or outcome.normalized_url or outcome.original_url
        out[changed_idx] = "TRUE" if outcome.changed else "FALSE"
        rows.append(out)
    return Table(header=header, rows=rows)


async def validate_table(
    client: httpx.AsyncClient,
    table: Table,
    concurrency: int = 10,
    config: Optional[ResolverConfig] = None,
    record_ids: Optional[Sequence[str]] = None,
) -> Tuple[Table, List[ValidationOutcome]]:
    """Resolve every row's booking URL with bounded concurrency."""
    booking_idx = booking_index(table)

    executor = BoundedExecutor(concurrency, progress_every=25, label="rows")
    results = await executor.map(
        lambda i: validate_row(client, table, i, booking_idx, config),
        list(range(len(table.rows))),
    )

    outcomes: List[ValidationOutcome] = []
    for r in results:
        if r.ok:
            outcome = r.value
        else:
            row = table.rows[r.index]
            original = _cell(row, booking_idx)
            outcome = ValidationOutcome(
                index=r.index + 1,
                venue=_cell(row, _index(table, NAME_COLUMNS)),
                original_url=original,
                normalized_url=normalize_booking_url(original),
                error=r.error,
            )
        if record_ids is not None and r.index < len(record_ids):
            outcome.record_id = record_ids[r.index]
        outcomes.append(outcome)

    failed = sum(1 for o in outcomes if not o.ok)
    logger.info(f"Validated {len(outcomes)} rows, {failed} failed")
    return apply_outcomes(table, outcomes, booking_idx), outcomes


def build_report(
    outcomes: Sequence[ValidationOutcome],
    input_path: str = "",
    output_path: str = "",
) -> ValidationReport:
    failures = [o for o in outcomes if not o.ok]
    return ValidationReport(
        input_path=input_path,
        output_path=output_path,
        total=len(outcomes),
        failed_count=len(failures),
        failures=failures,
    )
