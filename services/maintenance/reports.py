"""Report files and default output paths for the maintenance jobs.

Reports are additive: every run creates a new `<stem>-<run id>.json` and
never replaces an earlier one.
"""

from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Type, TypeVar

from loguru import logger
from pydantic import BaseModel, ValidationError

from lib.settings import InputError

M = TypeVar("M", bound=BaseModel)


def run_id(now: Optional[datetime] = None) -> str:
    """UTC timestamp used to name one run's files (20260101T120000Z)."""
    return (now or datetime.now(timezone.utc)).strftime("%Y%m%dT%H%M%SZ")


def stem_of(path: str | Path) -> Path:
    """Path without its extension ('data/venues.csv' -> 'data/venues')."""
    p = Path(path)
    return p.with_name(p.stem) if p.suffix else p


def validation_paths(input_path: str | Path):
    """Default (output csv, report stem) for a validation run."""
    stem = stem_of(input_path)
    return Path(f"{stem}-validated.csv"), Path(f"{stem}-validate-report")


def repair_paths(input_path: str | Path):
    """Default (fixed csv, report stem, corrections csv) for a repair run."""
    stem = stem_of(input_path)
    return Path(f"{stem}-fixed.csv"), Path(f"{stem}-fixed-report"), Path(f"{stem}-corrections.csv")


def write_report(stem: str | Path, report: BaseModel, run: Optional[str] = None) -> Path:
    """Create `<stem>-<run id>.json` exclusively. Collisions get a numeric suffix."""
    stem = stem_of(stem)
    stem.parent.mkdir(parents=True, exist_ok=True)
    run = run or run_id()
    content = report.to_json() if hasattr(report, "to_json") else report.model_dump_json(indent=2) + "\n"

    n = 0
    while True:
        suffix = f"-{n}" if n else ""
        path = Path(f"{stem}-{run}{suffix}.json")
        try:
            with open(path, "x", encoding="utf-8") as f:
                f.write(content)
        except FileExistsError:
            n += 1
            continue
        logger.info(f"Report written to {path}")
        return path


def read_report(path: str | Path, model: Type[M]) -> M:
    """Load a report written by write_report."""
    try:
        return model.model_validate_json(Path(path).read_text(encoding="utf-8"))
    except FileNotFoundError:
        raise InputError(f"Report not found: {path}")
    except ValidationError as e:
        raise InputError(f"Malformed report {path}: {e.error_count()} errors")
