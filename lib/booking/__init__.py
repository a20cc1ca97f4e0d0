"""Booking page discovery: provider allowlist, site crawl heuristics, search fallback."""

from lib.booking.finder import (
    BookingLinkFinder,
    DiscoveryAttempt,
    FinderConfig,
    ScoredLink,
    play_tennis_candidates,
)
from lib.booking.providers import is_likely_booking_url, match_provider
from lib.booking.search import (
    DuckDuckGoSearch,
    SerperSearch,
    VenueContext,
    make_backend,
    rank_results,
)

__all__ = [
    "BookingLinkFinder",
    "DiscoveryAttempt",
    "FinderConfig",
    "ScoredLink",
    "play_tennis_candidates",
    "is_likely_booking_url",
    "match_provider",
    "DuckDuckGoSearch",
    "SerperSearch",
    "VenueContext",
    "make_backend",
    "rank_results",
]
