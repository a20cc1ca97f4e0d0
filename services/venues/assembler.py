"""Record assembly and deduplication against the venue catalog.

assemble() is pure: it takes a catalog snapshot and candidate records and
decides which records are new. Nothing here talks to the store.
"""

from typing import Dict, List, Literal, Optional, Sequence, Set

from pydantic import BaseModel, ConfigDict, Field

from db.models.venue import Venue, VenueRecord
from lib.urls import canonicalize


SkipReason = Literal["missing_field", "duplicate_existing", "duplicate_in_batch"]


def city_of(city: Optional[str], address: Optional[str]) -> str:
    """City, falling back to the second-last comma part of the address."""
    if city and city.strip():
        return city.strip()
    parts = [p.strip() for p in (address or "").split(",") if p.strip()]
    return parts[-2] if len(parts) >= 2 else ""


def name_city_key(name: Optional[str], city: Optional[str], address: Optional[str] = None) -> str:
    return f"{(name or '').strip().lower()}|{city_of(city, address).lower()}"


def name_address_key(name: Optional[str], address: Optional[str]) -> str:
    return f"{(name or '').strip().lower()}|{(address or '').strip().lower()}"


class CatalogSnapshot(BaseModel):
    """Read-once view of the stored catalog, indexed for matching."""
    model_config = ConfigDict(frozen=True)

    venues: Dict[str, Venue] = Field(default_factory=dict)
    by_url: Dict[str, str] = Field(default_factory=dict)
    by_name_city: Dict[str, str] = Field(default_factory=dict)

    @classmethod
    def from_venues(cls, venues: Sequence[Venue]) -> "CatalogSnapshot":
        by_id: Dict[str, Venue] = {}
        by_url: Dict[str, str] = {}
        by_name_city: Dict[str, str] = {}
        for v in venues:
            by_id[v.id] = v
            key = canonicalize(v.booking_url)
            if key:
                by_url.setdefault(key, v.id)
            if v.name:
                by_name_city.setdefault(name_city_key(v.name, v.city, v.address), v.id)
        return cls(venues=by_id, by_url=by_url, by_name_city=by_name_city)

    def match(self, name: Optional[str], city: Optional[str], address: Optional[str], url: Optional[str]) -> Optional[Venue]:
        """Existing venue by canonical booking URL, then by name+city."""
        key = canonicalize(url)
        if key and key in self.by_url:
            return self.venues[self.by_url[key]]
        if name:
            venue_id = self.by_name_city.get(name_city_key(name, city, address))
            if venue_id:
                return self.venues[venue_id]
        return None

    def match_record(self, record: VenueRecord) -> Optional[Venue]:
        return self.match(record.name, record.city, record.address, record.booking_url)

    def __len__(self) -> int:
        return len(self.venues)


class SkippedRecord(BaseModel):
    record: VenueRecord
    reason: SkipReason
    detail: str = ""
    matched_id: Optional[str] = None


class CoordinateBackfill(BaseModel):
    venue_id: str
    latitude: float
    longitude: float


class AssemblyResult(BaseModel):
    accepted: List[VenueRecord] = Field(default_factory=list)
    skipped: List[SkippedRecord] = Field(default_factory=list)
    backfills: List[CoordinateBackfill] = Field(default_factory=list)

    def count(self, reason: SkipReason) -> int:
        return sum(1 for s in self.skipped if s.reason == reason)


def assemble(snapshot: CatalogSnapshot, records: Sequence[VenueRecord]) -> AssemblyResult:
    """Split candidate records into accepted / skipped, collecting coordinate backfills."""
    result = AssemblyResult()
    seen_name_address: Set[str] = set()
    seen_urls: Set[str] = set()
    backfilled: Set[str] = set()

    for record in records:
        missing = record.missing_fields()
        if missing:
            result.skipped.append(SkippedRecord(
                record=record, reason="missing_field", detail=", ".join(missing),
            ))
            continue

        existing = snapshot.match_record(record)
        if existing is not None:
            result.skipped.append(SkippedRecord(
                record=record, reason="duplicate_existing", matched_id=existing.id,
            ))
            if (
                record.latitude is not None
                and record.longitude is not None
                and (existing.latitude is None or existing.longitude is None)
                and existing.id not in backfilled
            ):
                backfilled.add(existing.id)
                result.backfills.append(CoordinateBackfill(
                    venue_id=existing.id, latitude=record.latitude, longitude=record.longitude,
                ))
            continue

        na_key = name_address_key(record.name, record.address)
        url_key = canonicalize(record.booking_url)
        if na_key in seen_name_address or url_key in seen_urls:
            result.skipped.append(SkippedRecord(
                record=record, reason="duplicate_in_batch",
                detail="name+address" if na_key in seen_name_address else "booking url",
            ))
            continue

        seen_name_address.add(na_key)
        seen_urls.add(url_key)
        result.accepted.append(record)

    return result
