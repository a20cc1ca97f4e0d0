"""Sport token parsing and synonym normalization."""

import json
import re
from typing import Any, Dict, Iterable, List, Optional, Pattern, Set


# Synonym -> canonical slug
SYNONYMS: Dict[str, str] = {
    "football": "soccer",
    "association football": "soccer",
    "5-a-side": "soccer",
    "5 a side": "soccer",
    "five a side": "soccer",
    "table-tennis": "table_tennis",
    "table tennis": "table_tennis",
    "ping pong": "table_tennis",
    "swim": "swimming",
    "pool": "swimming",
    "fitness": "gym",
    "basket": "basketball",
}

# Free-text detection, futsal checked before the broader soccer terms
DETECT: Dict[str, List[Pattern]] = {
    "tennis": [re.compile(r"\btennis\b", re.I)],
    "pickleball": [re.compile(r"\bpickleball\b", re.I)],
    "futsal": [re.compile(r"\bfutsal\b", re.I)],
    "soccer": [
        re.compile(r"\bsoccer\b", re.I),
        re.compile(r"\bfootball\b", re.I),
        re.compile(r"5\s*-?\s*a\s*-?\s*side", re.I),
        re.compile(r"five\s*a\s*side", re.I),
    ],
    "badminton": [re.compile(r"\bbadminton\b", re.I)],
    "squash": [re.compile(r"\bsquash\b", re.I)],
    "netball": [re.compile(r"\bnetball\b", re.I)],
    "swimming": [re.compile(r"\bswim(ing)?\b", re.I), re.compile(r"\bpool\b", re.I)],
    "basketball": [re.compile(r"\bbasketball\b", re.I)],
    "volleyball": [re.compile(r"\bvolleyball\b", re.I)],
    "cricket": [re.compile(r"\bcricket\b", re.I)],
    "golf": [re.compile(r"\bgolf\b", re.I)],
    "gym": [re.compile(r"\bgym\b", re.I), re.compile(r"fitness\b", re.I), re.compile(r"strength\b", re.I)],
}

_SPLIT = re.compile(r"[;,/]|\band\b", re.I)


def normalize_sport(token: str) -> str:
    """Lower-case, trim and map a single token to its canonical slug."""
    key = re.sub(r"\s+", " ", (token or "").strip().lower().replace("_", " "))
    if not key:
        return ""
    if key in SYNONYMS:
        return SYNONYMS[key]
    return key.replace(" ", "_")


def _split_tokens(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, (list, tuple, set, frozenset)):
        return [str(v) for v in value if v]
    raw = str(value).strip()
    if not raw:
        return []
    # Array-ish cell: ["tennis", 'squash']
    if raw.startswith("[") and raw.endswith("]"):
        try:
            parsed = json.loads(re.sub(r"'([^']*)'", r'"\1"', raw))
            if isinstance(parsed, list):
                return [str(v) for v in parsed if v]
        except ValueError:
            raw = raw[1:-1]
        return [part.strip().strip("\"'") for part in raw.split(",") if part.strip()]
    return _SPLIT.split(raw)


def parse_sports(value: Any, known: Optional[Iterable[str]] = None) -> List[str]:
    """Parse a sports cell or tag into sorted canonical slugs.

    Accepts "tennis; squash", "Tennis, Football", JSON-ish arrays or lists.
    When `known` is given, unknown slugs are dropped.
    """
    allowed = set(known) if known is not None else None
    result: Set[str] = set()
    for token in _split_tokens(value):
        slug = normalize_sport(token)
        if not slug:
            continue
        if allowed is not None and slug not in allowed:
            continue
        result.add(slug)
    return sorted(result)


def detect_sports(text: str) -> List[str]:
    """Guess sports from free text (venue name, description, page meta)."""
    found: Set[str] = set()
    for sport, patterns in DETECT.items():
        if any(p.search(text or "") for p in patterns):
            found.add(sport)
    return sorted(found)
