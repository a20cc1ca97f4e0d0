"""Mapping between tabular venue rows and venue models.

Venue files come from many hands, so column lookup is tolerant: several
header spellings are accepted and matching ignores case and spacing.
"""

import re
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from db.models.venue import Venue, VenueRecord
from lib.sports import parse_sports
from lib.urls import canonicalize
from services.venues.assembler import city_of

EXPORT_HEADER = [
    "Venue Name",
    "Sport(s)",
    "Address",
    "Suburb/City",
    "State",
    "Postcode",
    "Booking URL",
    "Description",
    "Amenities",
]

NAME_COLUMNS = ("Venue Name", "Name", "venue_name")
ADDRESS_COLUMNS = ("Address", "address")
CITY_COLUMNS = ("Suburb/City", "City", "city")
STATE_COLUMNS = ("State", "state")
POSTCODE_COLUMNS = ("Postcode", "Postal Code", "postcode")
BOOKING_COLUMNS = ("Booking URL", "Booking Link", "booking_url")
SPORTS_COLUMNS = ("Sport(s)", "Sport", "sports")
NOTES_COLUMNS = ("Description", "Amenities/Notes", "notes")
AMENITIES_COLUMNS = ("Amenities", "amenities")


def header_key(name: str) -> str:
    """Case/spacing-insensitive header key ('Booking  url ' -> 'booking url')."""
    return re.sub(r"\s+", " ", (name or "").strip().lower())


def find_column(header: Sequence[str], candidates: Iterable[str]) -> Optional[str]:
    """First header entry matching any candidate spelling."""
    keyed = {header_key(h): h for h in header}
    for candidate in candidates:
        hit = keyed.get(header_key(candidate))
        if hit is not None:
            return hit
    return None


def pick(row: Mapping[str, str], candidates: Iterable[str]) -> str:
    """Value of the first non-empty matching column, trimmed."""
    keyed = {header_key(k): v for k, v in row.items()}
    for candidate in candidates:
        value = keyed.get(header_key(candidate))
        if value is not None and str(value).strip():
            return str(value).strip()
    return ""


def compose_address(street: str, city: str, state: str, postcode: str) -> str:
    """'12 Court Rd, Hobart TAS 7000' from its parts."""
    region = " ".join(p for p in (state, postcode) if p)
    tail = " ".join(p for p in (city, region) if p)
    return ", ".join(p for p in (street, tail) if p)


def row_to_record(row: Mapping[str, str]) -> VenueRecord:
    """Build a VenueRecord from an import row. Missing fields are left empty."""
    street = pick(row, ADDRESS_COLUMNS)
    suburb = pick(row, CITY_COLUMNS)
    state = pick(row, STATE_COLUMNS)
    postcode = pick(row, POSTCODE_COLUMNS)

    return VenueRecord(
        name=pick(row, NAME_COLUMNS),
        address=compose_address(street, suburb, state, postcode),
        city=city_of(suburb, street) or None,
        booking_url=pick(row, BOOKING_COLUMNS),
        sports=parse_sports(pick(row, SPORTS_COLUMNS)),
        notes=pick(row, NOTES_COLUMNS) or None,
        amenities=pick(row, AMENITIES_COLUMNS),
    )


def venue_to_export_row(venue: VenueRecord) -> Dict[str, str]:
    return {
        "Venue Name": venue.name,
        "Sport(s)": ", ".join(venue.sports),
        "Address": venue.address,
        "Suburb/City": venue.city or "",
        "State": "",
        "Postcode": "",
        "Booking URL": venue.booking_url,
        "Description": venue.notes or "",
        "Amenities": ", ".join(venue.amenities),
    }


def normalize_export_row(row: Mapping[str, str]) -> Optional[Dict[str, str]]:
    """Map any venue row onto EXPORT_HEADER. None when name/address/booking URL is missing."""
    out = {
        "Venue Name": pick(row, NAME_COLUMNS),
        "Sport(s)": pick(row, SPORTS_COLUMNS),
        "Address": pick(row, ADDRESS_COLUMNS),
        "Suburb/City": pick(row, CITY_COLUMNS),
        "State": pick(row, STATE_COLUMNS),
        "Postcode": pick(row, POSTCODE_COLUMNS),
        "Booking URL": pick(row, BOOKING_COLUMNS),
        "Description": pick(row, NOTES_COLUMNS),
        "Amenities": pick(row, AMENITIES_COLUMNS),
    }
    if not out["Venue Name"] or not out["Address"] or not out["Booking URL"]:
        return None
    return out


def combine_rows(tables: Iterable[Iterable[Mapping[str, str]]]) -> List[Dict[str, str]]:
    """Merge venue rows, first occurrence per canonical booking URL wins, sorted by city then name."""
    seen = set()
    combined: List[Dict[str, str]] = []
    for rows in tables:
        for row in rows:
            norm = normalize_export_row(row)
            if norm is None:
                continue
            key = canonicalize(norm["Booking URL"])
            if key in seen:
                continue
            seen.add(key)
            combined.append(norm)
    combined.sort(key=lambda r: (r["Suburb/City"].lower(), r["Venue Name"].lower()))
    return combined


def find_duplicate_groups(venues: Sequence[Venue]) -> Dict[str, List[List[Venue]]]:
    """Groups of stored venues sharing a canonical booking URL or a name+address."""
    by_url: Dict[str, List[Venue]] = {}
    by_name_address: Dict[str, List[Venue]] = {}
    for v in venues:
        url_key = canonicalize(v.booking_url)
        if url_key:
            by_url.setdefault(url_key, []).append(v)
        na_key = f"{v.name.strip().lower()}|{v.address.strip().lower()}"
        by_name_address.setdefault(na_key, []).append(v)
    return {
        "booking_url": [g for g in by_url.values() if len(g) > 1],
        "name_address": [g for g in by_name_address.values() if len(g) > 1],
    }
