"""
Run logging - Capture and compress a batch job's log to a local directory.
"""

import gzip
import io
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from loguru import logger


class RunLog:
    """
    Captures logs during a job run and saves them gzipped.

    Usage:
        with RunLog("validate_booking_urls", "logs/") as log:
            logger.info("Processing...")
        # Log is compressed to logs/validate_booking_urls_<date>_<time>.log.gz
    """

    def __init__(self, job_name: str, log_dir: Optional[str] = None):
        self.job_name = job_name
        self.log_dir = log_dir
        self.saved_path: Optional[Path] = None

        self._log_buffer = io.StringIO()
        self._handler_id: Optional[int] = None
        self._start_time: Optional[datetime] = None

    def __enter__(self) -> "RunLog":
        self._start_time = datetime.now(timezone.utc)
        self._handler_id = logger.add(
            self._log_buffer,
            format="{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {message}",
            level="DEBUG",
        )
        logger.info(f"=== Run started: {self.job_name} ===")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        end_time = datetime.now(timezone.utc)
        if exc_type:
            logger.error(f"Run failed with error: {exc_val}")
        logger.info(f"Duration: {end_time - self._start_time}")
        logger.info(f"=== Run completed: {self.job_name} ===")

        if self._handler_id is not None:
            logger.remove(self._handler_id)

        if self.log_dir:
            try:
                self.saved_path = self._save_local(self._log_buffer.getvalue(), end_time)
                logger.info(f"Run log saved: {self.saved_path}")
            except OSError as e:
                logger.error(f"Failed to save run log: {e}")

        return False

    def _save_local(self, content: str, timestamp: datetime) -> Path:
        filename = f"{self.job_name}_{timestamp.strftime('%Y-%m-%d_%H%M%S')}.log.gz"
        log_dir = Path(self.log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        path = log_dir / filename
        path.write_bytes(gzip.compress(content.encode("utf-8")))
        return path

    def getvalue(self) -> str:
        return self._log_buffer.getvalue()


@contextmanager
def capture_run_log(job_name: str, log_dir: Optional[str] = None):
    """Context manager form of RunLog."""
    with RunLog(job_name, log_dir) as log:
        yield log
