"""Report and summary models for booking link maintenance.

Reports serialize with camelCase keys (inputPath, failedCount, ...), the
layout downstream review sheets already consume.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, indent=2) + "\n"


class ValidationOutcome(_CamelModel):
    """Per-row validation result (also the failure entry shape)."""
    index: int                      # 1-based data row number
    record_id: Optional[str] = None
    venue: str = ""
    city: str = ""
    state: str = ""
    sports: str = ""
    original_url: str = ""
    normalized_url: str = ""
    resolved_url: Optional[str] = None
    http_status: Optional[int] = None
    error: Optional[str] = None
    changed: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None


class ValidationReport(_CamelModel):
    input_path: str = ""
    output_path: str = ""
    total: int = 0
    failed_count: int = 0
    failures: List[ValidationOutcome] = Field(default_factory=list)


class RepairUpdate(_CamelModel):
    index: int
    venue: str = ""
    city: str = ""
    old: str = ""
    new: str = ""
    method: Optional[str] = None


class RepairReport(_CamelModel):
    fixed_count: int = 0
    attempted: int = 0
    updated: List[RepairUpdate] = Field(default_factory=list)


class PlannedUpdate(BaseModel):
    venue_id: str
    venue: str
    old: str
    new: str


class ApplySummary(_CamelModel):
    with_corrected: int = 0
    prepared: int = 0
    applied: int = 0
    skipped: int = 0
    not_found: int = 0
    failed: int = 0

    def line(self) -> str:
        return (
            f"withCorrected={self.with_corrected}, prepared={self.prepared}, applied={self.applied}, "
            f"skipped={self.skipped}, notFound={self.not_found}, failed={self.failed}"
        )
