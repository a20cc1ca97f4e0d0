"""Web-search fallback for locating a venue's booking page.

Used only when the venue's own site gave nothing. Results are best effort:
a search backend may return nothing, and markup changes on the results page
yield an empty list rather than an error.
"""

import asyncio
from typing import List, Optional, Protocol
from urllib.parse import parse_qs, urljoin, urlsplit

import httpx
from bs4 import BeautifulSoup
from loguru import logger
from pydantic import BaseModel

from lib.booking.providers import is_likely_booking_url
from lib.urls import registrable_domain


DUCKDUCKGO_HTML_URL = "https://duckduckgo.com/html/"
SERPER_SEARCH_URL = "https://google.serper.dev/search"
SEARCH_USER_AGENT = "Mozilla/5.0 (compatible; VenueLinkFinder/1.0)"


class VenueContext(BaseModel):
    """What we know about a venue when searching for its booking page."""
    name: str
    city: str = ""
    state: str = ""
    original_url: str = ""


class SearchBackend(Protocol):
    async def search(self, query: str) -> List[str]:
        ...


def decode_duckduckgo_link(href: str) -> str:
    """Unwrap DuckDuckGo redirect links (/l/?uddg=<target>)."""
    try:
        absolute = urljoin("https://duckduckgo.com", href)
        parts = urlsplit(absolute)
    except ValueError:
        return href
    if parts.hostname and parts.hostname.endswith("duckduckgo.com"):
        target = parse_qs(parts.query).get("uddg")
        if target:
            return target[0]
    return href


class DuckDuckGoSearch:
    """Scrapes the DuckDuckGo HTML results page."""

    def __init__(self, client: httpx.AsyncClient, timeout: float = 15.0):
        self.client = client
        self.timeout = timeout

    async def search(self, query: str) -> List[str]:
        try:
            resp = await self.client.get(
                DUCKDUCKGO_HTML_URL,
                params={"q": query},
                headers={"User-Agent": SEARCH_USER_AGENT},
                timeout=self.timeout,
                follow_redirects=True,
            )
        except httpx.HTTPError as e:
            logger.debug(f"DuckDuckGo search failed for '{query}': {e}")
            return []
        if resp.status_code != 200:
            logger.debug(f"DuckDuckGo HTTP {resp.status_code} for '{query}'")
            return []

        soup = BeautifulSoup(resp.text, "html.parser")
        links = []
        for a in soup.select("a.result__a"):
            href = a.get("href")
            if href:
                links.append(decode_duckduckgo_link(href))
        return links


class SerperSearch:
    """Google results via the Serper API."""

    def __init__(self, client: httpx.AsyncClient, api_key: str, timeout: float = 30.0):
        self.client = client
        self.api_key = api_key
        self.timeout = timeout

    async def search(self, query: str) -> List[str]:
        try:
            resp = await self.client.post(
                SERPER_SEARCH_URL,
                headers={
                    "X-API-KEY": self.api_key,
                    "Content-Type": "application/json",
                },
                json={"q": query, "num": 10},
                timeout=self.timeout,
            )
        except httpx.HTTPError as e:
            logger.debug(f"Serper search failed for '{query}': {e}")
            return []
        if resp.status_code != 200:
            logger.debug(f"Serper HTTP {resp.status_code} for '{query}'")
            return []
        return [item.get("link", "") for item in resp.json().get("organic", []) if item.get("link")]


def make_backend(client: httpx.AsyncClient, serper_api_key: Optional[str] = None) -> SearchBackend:
    if serper_api_key:
        return SerperSearch(client, serper_api_key)
    return DuckDuckGoSearch(client)


def build_queries(venue: VenueContext) -> List[str]:
    parts = " ".join(p for p in (venue.name, venue.city, venue.state) if p)
    return [
        f"{parts} booking",
        f"{parts} book court",
        f"{venue.name} official booking",
    ]


def rank_results(links: List[str], original_url: str = "") -> Optional[str]:
    """Pick the best replacement URL from search results.

    Order: same site and booking-like, any booking-like, same site, first result.
    """
    candidates = [link for link in links if link.lower().startswith("http")]
    if not candidates:
        return None

    original_domain = registrable_domain(original_url) if original_url else ""
    same_site = [
        link for link in candidates
        if original_domain and registrable_domain(link) == original_domain
    ]

    for link in same_site:
        if is_likely_booking_url(link):
            return link
    for link in candidates:
        if is_likely_booking_url(link):
            return link
    if same_site:
        return same_site[0]
    return candidates[0]


async def search_booking_url(
    backend: SearchBackend,
    venue: VenueContext,
    pause: float = 0.5,
) -> Optional[str]:
    """Run the query ladder, returning the first ranked hit."""
    for i, query in enumerate(build_queries(venue)):
        if i and pause:
            await asyncio.sleep(pause)
        try:
            links = await backend.search(query)
        except Exception as e:
            logger.debug(f"Search backend error for '{query}': {e}")
            continue
        best = rank_results(links, venue.original_url)
        if best:
            logger.debug(f"Search '{query}' -> {best}")
            return best
    return None
