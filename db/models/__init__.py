from db.models.venue import Venue, VenueRecord

__all__ = [
    "Venue",
    "VenueRecord",
]
