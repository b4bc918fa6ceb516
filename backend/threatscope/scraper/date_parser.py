"""Share-date extraction - find when a page says its content was published."""

import re
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

from bs4 import BeautifulSoup

from threatscope.clock import to_naive_utc, utcnow

MIN_YEAR = 2000
MAX_YEAR = 2100

# Unix timestamps accepted between 2000-01-01 and 2100-01-01
MIN_TIMESTAMP = 946684800
MAX_TIMESTAMP = 4102444800

META_KEYS = (
    "article:published_time",
    "og:published_time",
    "datepublished",
    "date",
    "publishdate",
    "pubdate",
    "publish-date",
    "dc.date",
)

_MONTH = r"(?:Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Sept|Oct|Nov|Dec)[a-z]*\.?"

DATE_PATTERNS: list[re.Pattern[str]] = [
    # 2026-01-20, 2026-01-20T10:30:00Z
    re.compile(
        r"\b(\d{4}-\d{2}-\d{2}(?:[T ]\d{2}:\d{2}(?::\d{2})?(?:\.\d+)?(?:Z|[+-]\d{2}:?\d{2})?)?)"
    ),
    # Jan 20, 2026 / January 20th 2026
    re.compile(rf"\b({_MONTH}\s+\d{{1,2}}(?:st|nd|rd|th)?,?\s+\d{{4}})\b", re.IGNORECASE),
    # 20 January 2026
    re.compile(rf"\b(\d{{1,2}}(?:st|nd|rd|th)?\s+{_MONTH},?\s+\d{{4}})\b", re.IGNORECASE),
    # 20/01/2026
    re.compile(r"\b(\d{1,2}/\d{1,2}/\d{4})\b"),
]

PREFIX_PATTERN = re.compile(
    r"\b(?:published|posted|updated|date)(?:\s+(?:on|at))?\s*:?\s*", re.IGNORECASE
)
UNIX_PATTERN = re.compile(r"\b(1\d{9,12})\b")
RELATIVE_PATTERN = re.compile(
    r"\b(\d{1,4})\s+(minute|hour|day|week|month|year)s?\s+ago\b", re.IGNORECASE
)

RELATIVE_UNITS: dict[str, timedelta] = {
    "minute": timedelta(minutes=1),
    "hour": timedelta(hours=1),
    "day": timedelta(days=1),
    "week": timedelta(weeks=1),
    "month": timedelta(days=30),
    "year": timedelta(days=365),
}

DATE_FORMATS = [
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%Y-%m-%d",
    "%Y/%m/%d",
    "%d/%m/%Y",
    "%d-%m-%Y",
    "%d.%m.%Y",
    "%b %d %Y",
    "%B %d %Y",
    "%d %b %Y",
    "%d %B %Y",
    "%b %d %Y %H:%M",
    "%B %d %Y %H:%M",
    "%d %b %Y %H:%M",
    "%a %d %b %Y %H:%M:%S %z",
    "%a %d %b %Y %H:%M:%S %Z",
    "%d %b %Y %H:%M:%S %z",
]


def normalize_date(value: str) -> datetime | None:
    """Parse a date string in any supported format into naive UTC."""
    value = value.strip()
    if not value:
        return None

    parsed: datetime | None = None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        cleaned = re.sub(r"(\d)(st|nd|rd|th)\b", r"\1", value, flags=re.IGNORECASE)
        cleaned = re.sub(r"\b(Sept)\b", "Sep", cleaned, flags=re.IGNORECASE)
        cleaned = re.sub(r"([A-Za-z])\.", r"\1", cleaned).replace(",", " ")
        cleaned = " ".join(cleaned.split())
        for fmt in DATE_FORMATS:
            try:
                parsed = datetime.strptime(cleaned, fmt)
                break
            except ValueError:
                continue

    if parsed is None or not MIN_YEAR <= parsed.year <= MAX_YEAR:
        return None
    return to_naive_utc(parsed)


def _from_meta(soup: BeautifulSoup) -> datetime | None:
    found: dict[str, str] = {}
    for meta in soup.find_all("meta"):
        key = meta.get("property") or meta.get("name") or meta.get("itemprop") or ""
        content = meta.get("content")
        if content and key.lower() in META_KEYS:
            found.setdefault(key.lower(), content)
    for key in META_KEYS:
        if key in found and (parsed := normalize_date(found[key])):
            return parsed
    return None


def _from_time_tags(soup: BeautifulSoup) -> datetime | None:
    tags = soup.find_all("time")
    for tag in tags:
        if (value := tag.get("datetime")) and (parsed := normalize_date(value)):
            return parsed
    for tag in tags:
        if parsed := _from_patterns(tag.get_text(" ", strip=True)):
            return parsed
    return None


def _from_patterns(text: str) -> datetime | None:
    for pattern in DATE_PATTERNS:
        for match in pattern.finditer(text):
            if parsed := normalize_date(match.group(1)):
                return parsed
    return None


def _from_prefixes(text: str) -> datetime | None:
    for match in PREFIX_PATTERN.finditer(text):
        window = text[match.end() : match.end() + 40]
        if parsed := _from_patterns(window):
            return parsed
    return None


def _from_unix_timestamp(raw: str) -> datetime | None:
    for match in UNIX_PATTERN.finditer(raw):
        timestamp = int(match.group(1))
        if timestamp > 10**11:
            timestamp //= 1000  # milliseconds
        if MIN_TIMESTAMP < timestamp < MAX_TIMESTAMP:
            return datetime.fromtimestamp(timestamp, tz=UTC).replace(tzinfo=None)
    return None


def _from_relative(text: str, now: datetime) -> datetime | None:
    match = RELATIVE_PATTERN.search(text)
    if not match:
        return None
    amount, unit = int(match.group(1)), match.group(2).lower()
    try:
        parsed = now - amount * RELATIVE_UNITS[unit]
    except OverflowError:
        return None
    if not MIN_YEAR <= parsed.year <= MAX_YEAR:
        return None
    return parsed


def parse_share_date(
    soup: BeautifulSoup,
    raw_html: str,
    text: str,
    now: datetime | None = None,
) -> datetime | None:
    """
    Find the publish date of a page.

    Strategies are tried from most to least reliable: publish meta tags,
    ``<time>`` elements, dates following a "published/posted/updated"
    label, any recognizable date in the text, unix timestamps in the raw
    markup, and finally relative phrases such as "3 days ago".

    Args:
        soup: Parsed document
        raw_html: Original markup, used for timestamp scanning
        text: Visible page text
        now: Reference time for relative phrases (defaults to current UTC)

    Returns:
        Naive UTC datetime, or None when no plausible date was found
    """
    strategies: list[Callable[[], datetime | None]] = [
        lambda: _from_meta(soup),
        lambda: _from_time_tags(soup),
        lambda: _from_prefixes(text),
        lambda: _from_patterns(text),
        lambda: _from_unix_timestamp(raw_html),
        lambda: _from_relative(text, now or utcnow()),
    ]
    for strategy in strategies:
        if parsed := strategy():
            return parsed
    return None
