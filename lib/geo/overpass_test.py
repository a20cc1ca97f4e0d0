"""Tests for Overpass venue queries."""

from urllib.parse import parse_qs

import httpx
import pytest

from lib.geo.geocoding import BoundingBox
from lib.geo.overpass import (
    OverpassError,
    VenueCandidate,
    build_area_query,
    build_bbox_query,
    query_area_elements,
    query_elements,
)


NODE = {
    "type": "node",
    "id": 101,
    "lat": -41.29,
    "lon": 174.77,
    "tags": {
        "name": "Renouf Tennis Centre",
        "sport": "tennis;Table_Tennis",
        "addr:housenumber": "1",
        "addr:street": "Brooklyn Road",
        "addr:suburb": "Mount Cook",
        "addr:city": "Wellington",
        "addr:postcode": "6021",
        "contact:website": "https://renouf.example",
    },
}

WAY = {
    "type": "way",
    "id": 202,
    "center": {"lat": -36.85, "lon": 174.76},
    "tags": {"operator": "City Council", "leisure": "pitch", "sport": "basketball/netball"},
}


class TestVenueCandidate:

    def test_node(self):
        c = VenueCandidate.from_element(NODE)
        assert c.name == "Renouf Tennis Centre"
        assert c.address == "1 Brooklyn Road, Mount Cook, Wellington, 6021"
        assert c.city == "Wellington"
        assert c.sports == ["table_tennis", "tennis"]
        assert c.website == "https://renouf.example"
        assert (c.latitude, c.longitude) == (-41.29, 174.77)

    def test_way_center_and_operator(self):
        c = VenueCandidate.from_element(WAY)
        assert c.name == "City Council"
        assert (c.latitude, c.longitude) == (-36.85, 174.76)
        assert c.address is None
        assert c.website is None
        assert c.sports == ["basketball", "netball"]

    def test_no_tags(self):
        c = VenueCandidate.from_element({"type": "node", "id": 1})
        assert c.name is None


class TestQueries:

    def test_bbox_query(self):
        q = build_bbox_query(BoundingBox(south=1, west=2, north=3, east=4), "tennis|squash")
        assert 'nwr["leisure"="sports_centre"](1.0,2.0,3.0,4.0);' in q
        assert 'nwr["sport"~"tennis|squash"]' in q
        assert "out center tags;" in q

    def test_area_query(self):
        q = build_area_query("Tasmania", "tennis")
        assert 'area["name"="Tasmania"]["admin_level"="4"]->.a;' in q
        assert 'nwr["sport"="tennis"](area.a);' in q

    @pytest.mark.asyncio
    async def test_query_elements(self):
        def handler(request):
            body = parse_qs(request.content.decode())
            assert "out center tags" in body["data"][0]
            return httpx.Response(200, json={"elements": [NODE, WAY]})

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            found = await query_elements(BoundingBox(south=1, west=2, north=3, east=4), client)
        assert [c.osm_id for c in found] == [101, 202]

    @pytest.mark.asyncio
    async def test_non_success_raises(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(429, text="rate limited"))
        async with httpx.AsyncClient(transport=transport) as client:
            with pytest.raises(OverpassError):
                await query_area_elements("Tasmania", "tennis", client)
