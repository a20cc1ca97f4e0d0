"""Tests for the venues service.

Store calls are patched on services.venues.service.repo; HTTP goes through
httpx.MockTransport or a stub finder.
"""

from unittest.mock import AsyncMock, patch

import httpx
import pytest

from db.client import StoreError
from db.models.venue import Venue
from lib.booking.finder import DiscoveryAttempt
from lib.geo.overpass import OverpassError, VenueCandidate
from lib.settings import Settings
from services.venues.service import DiscoveryOptions, Service, candidate_to_record


SETTINGS = Settings(geo_country="Australia")


class StubFinder:
    def __init__(self, links=None, descriptions=None, tennis=None, pages=None):
        self.links = links or {}
        self.descriptions = descriptions or {}
        self.tennis = tennis or {}
        self.pages = pages or {}

    async def discover(self, website, venue=None):
        url = self.links.get(website)
        return DiscoveryAttempt(website=website, outcome="found" if url else "not_found", booking_url=url)

    async def guess_play_tennis_booking(self, name):
        return self.tennis.get(name)

    async def fetch_description(self, url):
        return self.descriptions.get(url)

    async def fetch_html(self, url):
        html = self.pages.get(url)
        return (url, html) if html is not None else None


def candidate(name, website, **kw):
    return VenueCandidate(name=name, website=website, **kw)


def fast_options(**kw):
    return DiscoveryOptions(place_pause=0, venue_pause=0, **kw)


class TestCandidateToRecord:

    def test_address_fallback(self):
        record = candidate_to_record(candidate("A", None), "Hobart", "Australia", "https://a.example")
        assert record.address == "Hobart, Australia"
        assert record.city == "Hobart"

    def test_tags_win(self):
        c = candidate("A", None, address="1 St, Sandy Bay", city="Sandy Bay", sports=["tennis"], latitude=1.0, longitude=2.0)
        record = candidate_to_record(c, "Hobart", "Australia", "https://a.example", "notes")
        assert record.address == "1 St, Sandy Bay"
        assert record.city == "Sandy Bay"
        assert record.sports == ["tennis"]
        assert record.notes == "notes"


@pytest.mark.asyncio
class TestDiscoverVenues:

    async def test_discovers_dedups_and_upserts(self):
        finder = StubFinder(
            links={
                "https://a.example": "https://clubspark.example/A",
                "https://b.example": "https://b.example/book",
                "https://dup.example": "https://existing.example/book",
            },
            descriptions={"https://clubspark.example/A": "Six courts"},
        )
        elements = [
            candidate("Court A", "https://a.example"),
            candidate("Court B", "https://b.example"),
            candidate("No Site", None),
            candidate(None, "https://anon.example"),
            candidate("Dup", "https://dup.example"),
            candidate("Nothing", "https://none.example"),
        ]
        existing = [Venue(id="9", name="Old", address="x", booking_url="https://existing.example/book")]

        with patch("services.venues.service.repo") as mock_repo, \
             patch("services.venues.service.resolve_bounds", new_callable=AsyncMock) as mock_bounds, \
             patch("services.venues.service.query_elements", new_callable=AsyncMock) as mock_query:
            mock_repo.fetch_catalog = AsyncMock(return_value=existing)
            mock_repo.upsert_venues = AsyncMock(return_value=2)
            mock_repo.UPSERT_CHUNK_SIZE = 75
            mock_query.return_value = elements

            async with httpx.AsyncClient() as client:
                service = Service(client, SETTINGS, finder=finder)
                result, summary = await service.discover_venues(fast_options(places=["Hobart"]))

        assert [r.name for r in result.accepted] == ["Court A", "Court B"]
        assert result.accepted[0].notes == "Six courts"
        assert result.accepted[0].address == "Hobart, Australia"
        assert summary.candidates == 4
        assert summary.found == 3
        assert summary.skipped == {"duplicate_existing": 1}
        assert summary.written == 2
        mock_repo.upsert_venues.assert_awaited_once()

    async def test_failed_place_is_skipped(self):
        with patch("services.venues.service.repo") as mock_repo, \
             patch("services.venues.service.resolve_bounds", new_callable=AsyncMock) as mock_bounds, \
             patch("services.venues.service.query_elements", new_callable=AsyncMock) as mock_query:
            mock_repo.fetch_catalog = AsyncMock(return_value=[])
            mock_repo.upsert_venues = AsyncMock(return_value=0)
            mock_bounds.side_effect = [ValueError("Place not found"), object()]
            mock_query.side_effect = OverpassError("Overpass error: 504")

            async with httpx.AsyncClient() as client:
                service = Service(client, SETTINGS, finder=StubFinder())
                result, summary = await service.discover_venues(fast_options(places=["Atlantis", "Hobart"]))

        assert summary.places == 2
        assert summary.places_skipped == 2
        assert result.accepted == []
        mock_repo.upsert_venues.assert_not_awaited()

    async def test_dry_run_does_not_write(self):
        finder = StubFinder(links={"https://a.example": "https://a.example/book"})
        with patch("services.venues.service.repo") as mock_repo, \
             patch("services.venues.service.query_area_elements", new_callable=AsyncMock) as mock_area:
            mock_repo.fetch_catalog = AsyncMock(return_value=[])
            mock_repo.upsert_venues = AsyncMock()
            mock_area.return_value = [candidate("Court A", "https://a.example")]

            async with httpx.AsyncClient() as client:
                service = Service(client, SETTINGS, finder=finder)
                result, _ = await service.discover_venues(fast_options(area="Tasmania", sport="tennis"), dry_run=True)

        assert len(result.accepted) == 1
        assert result.accepted[0].city == "Tasmania"
        mock_repo.upsert_venues.assert_not_awaited()

    async def test_play_tennis_guess_without_website(self):
        finder = StubFinder(tennis={"Hobart Tennis Club": "https://play.tennis.com.au/HobartTennisClub/Booking"})
        with patch("services.venues.service.repo") as mock_repo, \
             patch("services.venues.service.query_area_elements", new_callable=AsyncMock) as mock_area:
            mock_repo.fetch_catalog = AsyncMock(return_value=[])
            mock_area.return_value = [candidate("Hobart Tennis Club", None)]

            async with httpx.AsyncClient() as client:
                service = Service(client, SETTINGS, finder=finder)
                result, _ = await service.discover_venues(
                    fast_options(area="Tasmania", guess_play_tennis=True, with_notes=False), dry_run=True,
                )

        assert result.accepted[0].booking_url.endswith("/HobartTennisClub/Booking")


@pytest.mark.asyncio
class TestImportRows:

    async def test_import_geocodes_backfills_and_inserts(self):
        rows = [
            {"Venue Name": "New Court", "Address": "1 St", "Suburb/City": "Hobart", "Booking URL": "https://new.example", "Sport(s)": "tennis, curling"},
            {"Venue Name": "Old Court", "Address": "2 St", "Suburb/City": "Hobart", "Booking URL": "https://old.example"},
            {"Venue Name": "Broken", "Address": "", "Booking URL": "https://x.example"},
        ]
        existing = [Venue(id="5", name="Old Court", address="2 St, Hobart", booking_url="https://old.example")]

        with patch("services.venues.service.repo") as mock_repo, \
             patch("services.venues.service.geocode_address", new_callable=AsyncMock) as mock_geo:
            mock_repo.fetch_catalog = AsyncMock(return_value=existing)
            mock_repo.fetch_sport_slugs = AsyncMock(return_value=["tennis", "squash"])
            mock_repo.update_coordinates = AsyncMock(return_value=1)
            mock_repo.upsert_venues = AsyncMock(return_value=1)
            mock_geo.return_value = (-42.9, 147.3)

            async with httpx.AsyncClient() as client:
                service = Service(client, SETTINGS, finder=StubFinder(descriptions={"https://new.example": "Nice"}))
                result, summary = await service.import_rows(rows)

        assert [r.name for r in result.accepted] == ["New Court"]
        assert result.accepted[0].sports == ["tennis"]
        assert result.accepted[0].notes == "Nice"
        assert result.accepted[0].latitude == -42.9
        mock_repo.update_coordinates.assert_awaited_once_with("5", -42.9, 147.3)
        assert mock_geo.await_count == 2
        assert summary.skipped == {"duplicate_existing": 1, "missing_field": 1}

    async def test_backfill_failure_is_counted(self):
        rows = [{"Venue Name": "Old Court", "Address": "2 St", "Booking URL": "https://old.example"}]
        existing = [Venue(id="5", name="Old Court", address="2 St", booking_url="https://old.example")]

        with patch("services.venues.service.repo") as mock_repo, \
             patch("services.venues.service.geocode_address", new_callable=AsyncMock) as mock_geo:
            mock_repo.fetch_catalog = AsyncMock(return_value=existing)
            mock_repo.fetch_sport_slugs = AsyncMock(return_value=[])
            mock_repo.update_coordinates = AsyncMock(side_effect=StoreError("update failed"))
            mock_repo.upsert_venues = AsyncMock()
            mock_geo.return_value = (1.0, 2.0)

            async with httpx.AsyncClient() as client:
                service = Service(client, SETTINGS, finder=StubFinder())
                _, summary = await service.import_rows(rows)

        assert summary.failed_writes == 1
        mock_repo.upsert_venues.assert_not_awaited()

    async def test_rejected_upsert_chunk_counts_as_failed_writes(self):
        rows = [
            {"Venue Name": f"Court {i}", "Address": f"{i} St", "Booking URL": f"https://c{i}.example"}
            for i in range(3)
        ]
        with patch("services.venues.service.repo") as mock_repo:
            mock_repo.fetch_catalog = AsyncMock(return_value=[])
            mock_repo.fetch_sport_slugs = AsyncMock(return_value=[])
            mock_repo.upsert_venues = AsyncMock(return_value=1)

            async with httpx.AsyncClient() as client:
                service = Service(client, SETTINGS, finder=StubFinder())
                result, summary = await service.import_rows(rows, geocode=False, with_notes=False)

        assert len(result.accepted) == 3
        assert summary.written == 1
        assert summary.failed_writes == 2


@pytest.mark.asyncio
async def test_export_rows():
    venues = [Venue(id="1", name="A", address="B", city="C", booking_url="https://a.example", sports=["tennis"])]
    with patch("services.venues.service.repo") as mock_repo:
        mock_repo.fetch_catalog = AsyncMock(return_value=venues)
        async with httpx.AsyncClient() as client:
            rows = await Service(client, SETTINGS, finder=StubFinder()).export_rows()
    assert rows[0]["Venue Name"] == "A"
    assert rows[0]["Sport(s)"] == "tennis"


@pytest.mark.asyncio
class TestBackfills:

    async def test_backfill_coordinates(self):
        venues = [
            Venue(id="1", name="A", address="1 St", city="Hobart", booking_url="https://a.example"),
            Venue(id="2", name="B", address="2 St", booking_url="https://b.example", latitude=1.0, longitude=2.0),
            Venue(id="3", name="C", address="Nowhere", booking_url="https://c.example", latitude=1.0),
        ]
        with patch("services.venues.service.repo") as mock_repo, \
             patch("services.venues.service.geocode_address", new_callable=AsyncMock) as mock_geo:
            mock_repo.fetch_catalog = AsyncMock(return_value=venues)
            mock_repo.update_coordinates = AsyncMock(return_value=1)
            mock_geo.side_effect = [(-42.9, 147.3), None]

            async with httpx.AsyncClient() as client:
                summary = await Service(client, SETTINGS, finder=StubFinder()).backfill_coordinates(pause=0)

        assert mock_geo.await_args_list[0].args[0] == "1 St, Hobart, Australia"
        mock_repo.update_coordinates.assert_awaited_once_with("1", -42.9, 147.3)
        assert summary.line() == "scanned=2, found=1, updated=1, failed_writes=0"

    async def test_backfill_coordinates_dry_run(self):
        venues = [Venue(id="1", name="A", address="1 St", booking_url="https://a.example")]
        with patch("services.venues.service.repo") as mock_repo, \
             patch("services.venues.service.geocode_address", new_callable=AsyncMock) as mock_geo:
            mock_repo.fetch_catalog = AsyncMock(return_value=venues)
            mock_repo.update_coordinates = AsyncMock()
            mock_geo.return_value = (1.0, 2.0)

            async with httpx.AsyncClient() as client:
                summary = await Service(client, SETTINGS, finder=StubFinder()).backfill_coordinates(dry_run=True, pause=0)

        assert summary.found == 1
        assert summary.updated == 0
        mock_repo.update_coordinates.assert_not_awaited()

    async def test_backfill_descriptions(self):
        venues = [
            Venue(id="1", name="A", address="x", booking_url="https://a.example/book"),
            Venue(id="2", name="B", address="x", booking_url="https://b.example/book", notes="Already set"),
            Venue(id="3", name="C", address="x", booking_url="https://c.example/book"),
            Venue(id="4", name="D", address="x", booking_url="https://d.example/book"),
        ]
        finder = StubFinder(descriptions={
            "https://a.example/book": "Four courts",
            "https://d.example/book": "Indoor hall",
        })
        with patch("services.venues.service.repo") as mock_repo:
            mock_repo.fetch_catalog = AsyncMock(return_value=venues)
            mock_repo.update_notes = AsyncMock(side_effect=[1, StoreError("update failed")])

            async with httpx.AsyncClient() as client:
                summary = await Service(client, SETTINGS, finder=finder).backfill_descriptions(pause=0)

        assert mock_repo.update_notes.await_args_list[0].args == ("1", "Four courts")
        assert summary.scanned == 3
        assert summary.found == 2
        assert summary.updated == 1
        assert summary.failed_writes == 1

    async def test_guess_missing_sports(self):
        venues = [
            Venue(id="1", name="Riverside Courts", address="x", booking_url="https://a.example/book"),
            Venue(id="2", name="Tennis Club", address="x", booking_url="https://b.example", sports=["tennis"]),
            Venue(id="3", name="Hall", address="x", booking_url="https://c.example/book"),
            Venue(id="4", name="Pickleball Barn", address="x", booking_url="https://gone.example"),
        ]
        finder = StubFinder(pages={
            "https://a.example/book": "<title>Riverside</title><body><p>Tennis and padel court hire</p></body>",
            "https://c.example/book": "<body><p>Community hall hire</p></body>",
        })
        with patch("services.venues.service.repo") as mock_repo:
            mock_repo.fetch_catalog = AsyncMock(return_value=venues)
            mock_repo.fetch_sport_slugs = AsyncMock(return_value=["tennis", "squash"])
            mock_repo.update_sports = AsyncMock(return_value=1)

            async with httpx.AsyncClient() as client:
                summary = await Service(client, SETTINGS, finder=finder).guess_missing_sports()

        mock_repo.update_sports.assert_awaited_once_with("1", ["tennis"])
        assert summary.line() == "scanned=3, found=1, updated=1, failed_writes=0"

    async def test_guess_missing_sports_from_name_without_known_list(self):
        venues = [Venue(id="4", name="Pickleball Barn", address="x", booking_url="https://gone.example")]
        with patch("services.venues.service.repo") as mock_repo:
            mock_repo.fetch_catalog = AsyncMock(return_value=venues)
            mock_repo.fetch_sport_slugs = AsyncMock(return_value=[])
            mock_repo.update_sports = AsyncMock()

            async with httpx.AsyncClient() as client:
                summary = await Service(client, SETTINGS, finder=StubFinder()).guess_missing_sports(dry_run=True)

        assert summary.found == 1
        mock_repo.update_sports.assert_not_awaited()


@pytest.mark.asyncio
class TestDeleteByName:

    async def test_exact_case_insensitive_match(self):
        venues = [
            Venue(id="1", name="Old Court", address="1 St", booking_url="https://a.example"),
            Venue(id="2", name=" old court ", address="2 St", booking_url="https://b.example"),
            Venue(id="3", name="Old Court Annex", address="3 St", booking_url="https://c.example"),
        ]
        with patch("services.venues.service.repo") as mock_repo:
            mock_repo.fetch_catalog = AsyncMock(return_value=venues)
            mock_repo.delete_venue = AsyncMock(return_value=1)

            async with httpx.AsyncClient() as client:
                service = Service(client, SETTINGS, finder=StubFinder())
                matches = await service.find_venues_named("OLD COURT")
                assert await service.find_venues_named("  ") == []
                deleted = await service.delete_venues(matches)

        assert [v.id for v in matches] == ["1", "2"]
        assert deleted == 2
        assert [c.args[0] for c in mock_repo.delete_venue.await_args_list] == ["1", "2"]
