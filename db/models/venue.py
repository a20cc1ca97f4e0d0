from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

from lib.sports import parse_sports


class VenueRecord(BaseModel):
    """A venue ready for insertion (no id yet)."""

    name: str = ""
    address: str = ""
    city: Optional[str] = None
    booking_url: str = ""
    sports: List[str] = Field(default_factory=list)  # canonical slugs, sorted
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    notes: Optional[str] = None
    amenities: List[str] = Field(default_factory=list)
    is_public: bool = True
    place_id: Optional[str] = None

    @field_validator("name", "address", "booking_url", mode="before")
    @classmethod
    def none_to_empty(cls, v):
        """Handle NULL from the store / blank CSV cells."""
        return (v or "").strip() if isinstance(v, str) or v is None else v

    @field_validator("sports", mode="before")
    @classmethod
    def normalize_sports(cls, v):
        return parse_sports(v)

    @field_validator("amenities", mode="before")
    @classmethod
    def amenities_list(cls, v):
        if v is None:
            return []
        if isinstance(v, str):
            return [a.strip() for a in v.split(",") if a.strip()]
        return v

    def missing_fields(self) -> List[str]:
        """Required fields that are empty."""
        return [f for f in ("name", "address", "booking_url") if not getattr(self, f)]

    def to_row(self) -> dict:
        """Payload for the venues table."""
        return self.model_dump(exclude_none=True)


class Venue(VenueRecord):
    """A stored venue row."""

    id: str

    @field_validator("id", mode="before")
    @classmethod
    def id_to_str(cls, v):
        return str(v)

    model_config = ConfigDict(from_attributes=True)
