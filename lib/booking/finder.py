"""Booking link finder - locates a venue's online booking page from its website.

Strategies, in priority order (first hit wins):
1. Provider fast path: any homepage link pointing at a known booking platform
2. Keyword-scored anchors on the homepage (accepted at score >= 2)
3. Probing common booking paths (/book, /court-hire, ...)
4. Web search, only when venue context is given (repair mode)

Every fetch failure (network, status, timeout, non-HTML) just ends that step.
discover() never raises.
"""

import asyncio
import re
from typing import List, Literal, Optional, Tuple
from urllib.parse import urljoin

import httpx
from bs4 import BeautifulSoup
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field

from lib.booking.providers import (
    KEYWORD_PATTERN,
    STRONG_KEYWORD_PATTERN,
    match_provider,
    mentions_provider,
)
from lib.booking.search import SearchBackend, VenueContext, search_booking_url
from lib.crawl.resolver import DEFAULT_HEADERS
from lib.urls import absolutize, ensure_scheme


# =============================================================================
# CONFIGURATION
# =============================================================================

COMMON_BOOKING_PATHS = [
    "/book",
    "/booking",
    "/bookings",
    "/book-now",
    "/bookonline",
    "/book-online",
    "/court-hire",
    "/court-bookings",
    "/venue-hire",
    "/facility-hire",
    "/hire",
]

PLAY_TENNIS_BASE = "https://play.tennis.com.au"


class FinderConfig(BaseModel):
    """Configuration for the booking link finder."""
    model_config = ConfigDict(frozen=True)

    fetch_timeout: float = 12.0     # per page fetch, seconds
    probe_pause: float = 0.15       # between common-path probes
    search_pause: float = 0.5       # between search queries
    min_keyword_score: int = 2
    description_max_chars: int = 280


# =============================================================================
# DATA MODELS
# =============================================================================

class ScoredLink(BaseModel):
    url: str
    score: int = 0
    label: str = ""


class DiscoveryAttempt(BaseModel):
    """Outcome of one discovery run. Never persisted."""
    website: str
    candidates: List[ScoredLink] = Field(default_factory=list)
    outcome: Literal["found", "not_found"] = "not_found"
    booking_url: Optional[str] = None
    method: Optional[str] = None

    @property
    def found(self) -> bool:
        return self.outcome == "found"


# =============================================================================
# HTML HELPERS
# =============================================================================

def extract_links(html: str, base_url: str) -> List[Tuple[str, str]]:
    """All (absolute_url, label) pairs for <a href> on a page, in document order."""
    soup = BeautifulSoup(html or "", "html.parser")
    links = []
    for a in soup.find_all("a", href=True):
        url = absolutize(a.get("href"), base_url)
        if not url:
            continue
        text = a.get_text(" ", strip=True)
        title = a.get("title") or ""
        label = re.sub(r"\s+", " ", f"{text} {title}").strip()
        links.append((url, label))
    return links


def score_link(url: str, label: str) -> int:
    score = 0
    if KEYWORD_PATTERN.search(label):
        score += 2
    if STRONG_KEYWORD_PATTERN.search(label):
        score += 1
    if match_provider(url):
        score += 3
    return score


def extract_description(html: str, max_chars: int = 280) -> Optional[str]:
    """Meta description / og:description, else the first paragraph."""
    soup = BeautifulSoup(html or "", "html.parser")
    for attrs in ({"name": "description"}, {"property": "og:description"}):
        tag = soup.find("meta", attrs=attrs)
        content = (tag.get("content") or "").strip() if tag else ""
        if content:
            return content[:max_chars]

    p = soup.find("p")
    if p:
        text = re.sub(r"\s+", " ", p.get_text(" ")).strip()
        if text:
            return text[:max_chars]
    return None


def extract_search_text(html: str) -> str:
    """Title, meta descriptions and visible body text, whitespace-collapsed."""
    soup = BeautifulSoup(html or "", "html.parser")
    parts = []
    if soup.title and soup.title.string:
        parts.append(soup.title.string)
    for attrs in ({"name": "description"}, {"property": "og:description"}):
        tag = soup.find("meta", attrs=attrs)
        if tag and tag.get("content"):
            parts.append(tag.get("content"))

    for tag in soup(["script", "style", "noscript"]):
        tag.decompose()
    body = soup.body or soup
    parts.append(body.get_text(" "))
    return re.sub(r"\s+", " ", " ".join(parts)).strip()


def _title_case_parts(name: str) -> List[str]:
    cleaned = re.sub(r"\(.*?\)", " ", name or "")
    cleaned = re.sub(r"[^a-z0-9\s-]", " ", cleaned, flags=re.IGNORECASE)
    words = [w for w in cleaned.split() if w]
    return [w[0].upper() + w[1:].lower() for w in words]


def play_tennis_candidates(name: str) -> List[str]:
    """Candidate club URLs on the Tennis Australia booking platform."""
    if not name or not name.strip():
        return []
    raw = name.strip()
    simplified = re.sub(r"tennis\s*(club|centre|courts)?", "", raw, count=1, flags=re.IGNORECASE).strip()

    urls: List[str] = []
    for candidate in (raw, simplified):
        parts = _title_case_parts(candidate)
        if not parts:
            continue
        pascal = "".join(parts)
        segments = dict.fromkeys([pascal, "-".join(parts), re.sub(r"[^a-z0-9]", "", pascal, flags=re.IGNORECASE)])
        for seg in segments:
            for url in (
                f"{PLAY_TENNIS_BASE}/{seg}",
                f"{PLAY_TENNIS_BASE}/{seg}/Booking",
                f"{PLAY_TENNIS_BASE}/{seg}/Booking/BookByDate",
            ):
                if url not in urls:
                    urls.append(url)
    return urls


# =============================================================================
# FINDER
# =============================================================================

class BookingLinkFinder:
    """Finds booking pages for venue websites."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        config: Optional[FinderConfig] = None,
        search_backend: Optional[SearchBackend] = None,
    ):
        self.client = client
        self.config = config or FinderConfig()
        self.search_backend = search_backend

    async def fetch_html(self, url: str) -> Optional[Tuple[str, str]]:
        """GET a page. Returns (final_url, html) or None on any failure."""
        timeout = self.config.fetch_timeout
        try:
            resp = await asyncio.wait_for(
                self.client.get(url, headers=DEFAULT_HEADERS, follow_redirects=True, timeout=timeout),
                timeout=timeout,
            )
        except Exception as e:
            logger.debug(f"Fetch failed {url}: {type(e).__name__}: {e}")
            return None

        if not (200 <= resp.status_code < 300):
            logger.debug(f"Fetch {url} -> HTTP {resp.status_code}")
            return None
        content_type = resp.headers.get("content-type", "").lower()
        if content_type and "html" not in content_type and "text/plain" not in content_type:
            logger.debug(f"Fetch {url} -> non-HTML ({content_type})")
            return None
        try:
            return (str(resp.url), resp.text)
        except UnicodeDecodeError:
            return None

    async def discover(self, website: str, venue: Optional[VenueContext] = None) -> DiscoveryAttempt:
        """Find the booking page for a website. Never raises."""
        attempt = DiscoveryAttempt(website=website or "")
        homepage = ensure_scheme(website)
        if not homepage:
            return attempt

        try:
            await self._discover(homepage, venue, attempt)
        except Exception as e:
            logger.warning(f"Discovery aborted for {homepage}: {type(e).__name__}: {e}")
        return attempt

    async def _discover(self, homepage: str, venue: Optional[VenueContext], attempt: DiscoveryAttempt) -> None:
        base = homepage
        page = await self.fetch_html(homepage)

        if page:
            base, html = page
            links = extract_links(html, base)

            # 1) Provider fast path
            for url, label in links:
                if match_provider(url):
                    self._accept(attempt, url, "provider")
                    attempt.candidates.append(ScoredLink(url=url, score=score_link(url, label), label=label))
                    return

            # 2) Keyword-scored anchors
            best: Optional[ScoredLink] = None
            for url, label in links:
                scored = ScoredLink(url=url, score=score_link(url, label), label=label[:120])
                if scored.score > 0:
                    attempt.candidates.append(scored)
                if best is None or scored.score > best.score:
                    best = scored
            if best and best.score >= self.config.min_keyword_score:
                self._accept(attempt, best.url, "keyword")
                return

        # 3) Common booking paths
        for i, path in enumerate(COMMON_BOOKING_PATHS):
            if i and self.config.probe_pause:
                await asyncio.sleep(self.config.probe_pause)
            url = urljoin(base, path)
            probed = await self.fetch_html(url)
            if not probed:
                continue
            final_url, body = probed
            if KEYWORD_PATTERN.search(body) or mentions_provider(final_url + body):
                self._accept(attempt, url, "path")
                return

        # 4) Search fallback (repair mode only)
        if venue is not None and self.search_backend is not None:
            found = await search_booking_url(self.search_backend, venue, pause=self.config.search_pause)
            if found:
                self._accept(attempt, found, "search")

    @staticmethod
    def _accept(attempt: DiscoveryAttempt, url: str, method: str) -> None:
        attempt.outcome = "found"
        attempt.booking_url = url
        attempt.method = method
        logger.debug(f"Booking link via {method}: {url}")

    async def fetch_description(self, url: str) -> Optional[str]:
        """Short description of a page for venue notes."""
        page = await self.fetch_html(url)
        if not page:
            return None
        return extract_description(page[1], self.config.description_max_chars)

    async def guess_play_tennis_booking(self, name: str) -> Optional[str]:
        """Probe likely club pages on the Tennis Australia booking platform."""
        for url in play_tennis_candidates(name):
            page = await self.fetch_html(url)
            if not page:
                continue
            _, html = page
            if "/Booking" not in url and not re.search(r"Book\s?Now|Book\s?Court|Booking", html, re.IGNORECASE):
                continue
            # Prefer the deeper BookByDate page when linked
            if not url.endswith("/BookByDate"):
                m = re.search(r"""href=["']([^"']*BookByDate[^"']*)["']""", html, re.IGNORECASE)
                if m:
                    return urljoin(url, m.group(1))
            return url
        return None
