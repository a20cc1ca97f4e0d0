"""Live URL resolution: HEAD first, one GET fallback.

Some servers reject HEAD (403/405/501) or answer it wrongly, so anything that
is not a 2xx/3xx after redirects gets a single GET before the URL is declared
broken. Each request is capped by asyncio.wait_for on top of the httpx timeout.
"""

import asyncio
from typing import Optional

import httpx
from loguru import logger
from pydantic import BaseModel, ConfigDict


DEFAULT_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/124.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
}


class ResolverConfig(BaseModel):
    """Timeouts for URL resolution (seconds)."""
    model_config = ConfigDict(frozen=True)

    head_timeout: float = 12.0
    get_timeout: float = 15.0


class Resolution(BaseModel):
    """Result of resolving one URL."""

    url: str
    final_url: Optional[str] = None
    status: Optional[int] = None
    method: str = ""
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.status is not None and 200 <= self.status < 400


def is_ok_status(status: Optional[int]) -> bool:
    return status is not None and 200 <= status < 400


def describe_error(e: BaseException) -> str:
    """Short readable message for a request failure."""
    if isinstance(e, (asyncio.TimeoutError, TimeoutError, httpx.TimeoutException)):
        return "timeout"
    if isinstance(e, httpx.ConnectError):
        return f"connection error: {e}" if str(e) else "connection error"
    if isinstance(e, httpx.TooManyRedirects):
        return "too many redirects"
    if isinstance(e, httpx.InvalidURL) or isinstance(e, httpx.UnsupportedProtocol):
        return f"invalid url: {e}"
    message = str(e) or type(e).__name__
    return message[:200]


async def _request(client: httpx.AsyncClient, method: str, url: str, timeout: float) -> httpx.Response:
    return await asyncio.wait_for(
        client.request(method, url, headers=DEFAULT_HEADERS, follow_redirects=True, timeout=timeout),
        timeout=timeout,
    )


async def resolve_url(
    client: httpx.AsyncClient,
    url: str,
    config: Optional[ResolverConfig] = None,
) -> Resolution:
    """Resolve a URL to its final location. Never raises."""
    config = config or ResolverConfig()

    try:
        resp = await _request(client, "HEAD", url, config.head_timeout)
        if is_ok_status(resp.status_code):
            return Resolution(url=url, final_url=str(resp.url), status=resp.status_code, method="HEAD")
        logger.debug(f"HEAD {url} -> {resp.status_code}, retrying with GET")
    except Exception as e:
        logger.debug(f"HEAD {url} failed ({describe_error(e)}), retrying with GET")

    try:
        resp = await _request(client, "GET", url, config.get_timeout)
    except Exception as e:
        return Resolution(url=url, method="GET", error=describe_error(e))

    if is_ok_status(resp.status_code):
        return Resolution(url=url, final_url=str(resp.url), status=resp.status_code, method="GET")
    return Resolution(
        url=url,
        final_url=str(resp.url),
        status=resp.status_code,
        method="GET",
        error=f"HTTP {resp.status_code}",
    )
