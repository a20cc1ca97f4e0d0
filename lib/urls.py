"""URL helpers shared by discovery, dedup and validation.

canonicalize() produces the dedup key for a booking URL. It treats http and
https as the same target and never raises: a malformed value degrades to a
lower-cased string instead of aborting a batch.
"""

import re
from typing import Any, Optional
from urllib.parse import parse_qsl, urlencode, urljoin, urlsplit


# Scheme-less values that still start with a hostname ("example.com/book")
_HOST_LIKE = re.compile(r"^[a-z0-9][a-z0-9.-]*\.[a-z]{2,}(:\d+)?([/?#]|$)", re.IGNORECASE)
_SCHEME = re.compile(r"^[a-z][a-z0-9+.-]*://", re.IGNORECASE)
_HTTP_SCHEME = re.compile(r"^https?://", re.IGNORECASE)

# Two-level public suffixes common in the venue catalog
TWO_LEVEL_SUFFIXES = {
    "com.au", "net.au", "org.au", "edu.au", "gov.au", "asn.au", "id.au",
    "co.nz", "org.nz", "net.nz", "govt.nz", "school.nz", "ac.nz",
    "co.uk", "org.uk", "ac.uk", "gov.uk",
    "co.za", "com.sg", "com.my", "co.jp", "com.hk",
}


def _fallback_key(raw: str) -> str:
    return raw.strip().lower().rstrip("/")


def canonicalize(raw: Any) -> str:
    """Canonical dedup key: host + lower-case path + sorted query, scheme dropped.

    canonicalize("HTTP://Example.com/Foo/") == canonicalize("https://example.com/foo")
    """
    if raw is None:
        return ""
    text = str(raw).strip()
    if not text:
        return ""

    candidate = text
    if not _SCHEME.match(candidate):
        if not _HOST_LIKE.match(candidate):
            return _fallback_key(text)
        candidate = "http://" + candidate

    try:
        parts = urlsplit(candidate)
        host = (parts.hostname or "").lower()
        port = parts.port
    except ValueError:
        return _fallback_key(text)

    if not host:
        return _fallback_key(text)

    netloc = f"{host}:{port}" if port else host
    path = parts.path.lower().rstrip("/")
    query = urlencode(sorted(parse_qsl(parts.query, keep_blank_values=True)))
    return f"{netloc}{path}{'?' + query if query else ''}"


def normalize_booking_url(raw: Any) -> str:
    """Clean a stored booking URL before live resolution.

    Strips CSV artifacts (wrapping quotes, NBSP, runs of whitespace, trailing
    commas/semicolons) and adds https:// when no http(s) scheme is present.
    """
    if raw is None:
        return ""
    url = str(raw).strip()
    if not url:
        return ""

    url = url.strip('"').replace("\u00a0", " ")
    url = re.sub(r"\s+", " ", url).strip()
    if not url:
        return ""

    if not _HTTP_SCHEME.match(url):
        url = "https://" + url.lstrip("/")

    return re.sub(r"[\s,;]+$", "", url)


def ensure_scheme(url: Optional[str]) -> str:
    """Ensure URL has an http(s) scheme, defaulting to https://."""
    url = (url or "").strip()
    if not url:
        return ""
    if not _HTTP_SCHEME.match(url):
        return "https://" + url.lstrip("/")
    return url


def extract_domain(url: Optional[str]) -> str:
    """Extract domain from URL, stripping www. prefix."""
    if not url:
        return ""
    try:
        host = (urlsplit(ensure_scheme(url)).hostname or "").lower()
    except ValueError:
        return ""
    return host[4:] if host.startswith("www.") else host


def registrable_domain(host_or_url: Optional[str]) -> str:
    """Best-effort registrable domain (example.com.au for bookings.example.com.au)."""
    if not host_or_url:
        return ""
    host = extract_domain(host_or_url) if "/" in host_or_url or ":" in host_or_url else host_or_url.lower()
    labels = [label for label in host.strip(".").split(".") if label]
    if len(labels) <= 2:
        return ".".join(labels)
    if ".".join(labels[-2:]) in TWO_LEVEL_SUFFIXES:
        return ".".join(labels[-3:])
    return ".".join(labels[-2:])


def absolutize(href: Optional[str], base: str) -> Optional[str]:
    """Resolve an href against a base URL. Only http(s) results are kept."""
    if not href:
        return None
    href = href.strip()
    if not href or href.startswith("#"):
        return None
    try:
        resolved = urljoin(base, href)
        parts = urlsplit(resolved)
    except ValueError:
        return None
    if parts.scheme not in ("http", "https") or not parts.netloc:
        return None
    return resolved
