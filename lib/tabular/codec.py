"""Delimited-text codec used by every import/export/report job.

Thin layer over the stdlib csv module with the tolerance rules the batch
jobs rely on:

- quoted fields may contain the delimiter, CR/LF and doubled quotes
- CRLF and LF record separators are both accepted
- blank lines are dropped, leading blank lines before the header are skipped
- rows are mapped positionally onto the header, missing fields become ""
- malformed trailing content never raises, the rows read so far are returned

parse/serialize are pure. read_table/write_table are the only file helpers.
"""

import csv
import io
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Sequence

from loguru import logger
from pydantic import BaseModel, Field


class Table(BaseModel):
    """Header plus positional rows, for jobs that rewrite a file column-for-column."""
    header: List[str] = Field(default_factory=list)
    rows: List[List[str]] = Field(default_factory=list)

    def index(self, column: str) -> int:
        """Position of a column, -1 if absent."""
        try:
            return self.header.index(column)
        except ValueError:
            return -1

    def records(self) -> List[Dict[str, str]]:
        """Rows as header-keyed dicts."""
        return [_to_record(self.header, row) for row in self.rows]


def _read_rows(text: str, delimiter: str) -> List[List[str]]:
    rows: List[List[str]] = []
    reader = csv.reader(io.StringIO(text or "", newline=""), delimiter=delimiter, strict=False)
    try:
        for row in reader:
            rows.append(row)
    except csv.Error as e:
        # Best effort: keep whatever parsed cleanly before the bad line
        logger.debug(f"Stopped parsing at line {reader.line_num}: {e}")
    return rows


def _is_blank(row: Sequence[str]) -> bool:
    return all(cell == "" for cell in row)


def _to_record(header: Sequence[str], row: Sequence[str]) -> Dict[str, str]:
    return {name: (row[i] if i < len(row) else "") for i, name in enumerate(header)}


def parse_table(text: str, delimiter: str = ",") -> Table:
    """Parse delimited text into a header and positional rows."""
    rows = [row for row in _read_rows(text, delimiter) if row]

    while rows and _is_blank(rows[-1]):
        rows.pop()

    start = 0
    while start < len(rows) and all(not cell.strip() for cell in rows[start]):
        start += 1
    if start >= len(rows):
        return Table()

    header = [name.strip() for name in rows[start]]
    return Table(header=header, rows=rows[start + 1:])


def parse(text: str, delimiter: str = ",") -> List[Dict[str, str]]:
    """Parse delimited text into a list of header-keyed rows."""
    return parse_table(text, delimiter).records()


def _cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (list, tuple, set, frozenset)):
        items = sorted(value) if isinstance(value, (set, frozenset)) else value
        return ", ".join(str(v) for v in items if v is not None)
    return str(value)


def serialize(
    rows: Iterable[Mapping[str, Any]],
    header: Sequence[str],
    delimiter: str = ",",
) -> str:
    """Serialize rows under a fixed header. Keys not in the header are ignored."""
    buf = io.StringIO()
    writer = csv.writer(buf, delimiter=delimiter, lineterminator="\n")
    writer.writerow(list(header))
    for row in rows:
        writer.writerow([_cell(row.get(name)) for name in header])
    return buf.getvalue()


def serialize_table(table: Table, delimiter: str = ",") -> str:
    """Serialize a positional table, padding or truncating rows to the header."""
    width = len(table.header)
    padded = [
        dict(zip(table.header, list(row[:width]) + [""] * (width - len(row))))
        for row in table.rows
    ]
    return serialize(padded, table.header, delimiter)


# =============================================================================
# FILE HELPERS
# =============================================================================

def read_table(path: str | Path, delimiter: str = ",") -> Table:
    """Read a delimited file (utf-8, BOM tolerated)."""
    text = Path(path).read_text(encoding="utf-8-sig")
    return parse_table(text, delimiter)


def write_text_atomic(path: str | Path, content: str) -> Path:
    """Write a file via temp file + rename so a killed run never leaves half a file."""
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(dir=target.parent, prefix=f".{target.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
            f.write(content)
        os.replace(tmp, target)
    except BaseException:
        if os.path.exists(tmp):
            os.unlink(tmp)
        raise
    return target


def write_table(
    path: str | Path,
    rows: Iterable[Mapping[str, Any]],
    header: Sequence[str],
    delimiter: str = ",",
) -> Path:
    """Serialize rows and write them atomically."""
    return write_text_atomic(path, serialize(rows, header, delimiter))
