"""Known third-party booking platforms and booking-page heuristics."""

import re
from typing import Optional
from urllib.parse import urlsplit

# Patterns ending in "." match a leading host label ("clubspark." matches
# clubspark.net.au and nz.clubspark.com); the rest match a domain suffix.
PROVIDER_HOSTS = [
    "clubspark.",
    "courtreserve.",
    "skedda.",
    "ezfacility.",
    "bookeo.",
    "mindbodyonline.",
    "enrolmy.",
    "eventbrite.",
    "friendlymanager.",
    "sportsground.",
    "perfectmind.",
    "activecarrot.",
    "activenetwork.",
    "legendonlineservices.",
    "sporty.co.nz",
    "aucklandleisure.co.nz",
    "gymmasteronline.com",
    "posse.nz",
    "play.tennis.com.au",
    "bookable.net",
    "playspots.",
]

# Substrings that make a URL look like a booking page
BOOKING_URL_HINTS = [
    "book",
    "court",
    "venue-hire",
    "facility-hire",
    "perfectmind",
    "playspots",
    "clubspark",
    "play.tennis.com.au",
    "tennisworld",
    "skedda",
    "bookable.net",
]


def _host(url_or_host: str) -> str:
    value = (url_or_host or "").strip().lower()
    if "://" in value:
        try:
            value = urlsplit(value).hostname or ""
        except ValueError:
            return ""
    return value.split("/")[0].split(":")[0]


def match_provider(url_or_host: Optional[str]) -> Optional[str]:
    """Return the matching provider pattern for a URL or host, else None."""
    host = _host(url_or_host or "")
    if not host:
        return None
    dotted = "." + host
    for pattern in PROVIDER_HOSTS:
        if pattern.endswith("."):
            if "." + pattern in dotted + ".":
                return pattern
        elif host == pattern or host.endswith("." + pattern):
            return pattern
    return None


def mentions_provider(text: Optional[str]) -> bool:
    """True if any provider host appears anywhere in text (page body or URL)."""
    lowered = (text or "").lower()
    return any(pattern in lowered for pattern in PROVIDER_HOSTS)


def is_likely_booking_url(url: Optional[str]) -> bool:
    lowered = (url or "").lower()
    return any(hint in lowered for hint in BOOKING_URL_HINTS)


KEYWORD_PATTERN = re.compile(
    r"book|booking|bookings|book\s*now|reserve|hire|court|facility|venue|enrol|register",
    re.IGNORECASE,
)
STRONG_KEYWORD_PATTERN = re.compile(r"court|hire|reserve", re.IGNORECASE)
