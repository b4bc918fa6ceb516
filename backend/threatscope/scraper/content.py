"""Page content processing - cleaning, titles and fingerprints."""

import hashlib
import re
from dataclasses import dataclass
from datetime import datetime

from bs4 import BeautifulSoup, Comment

from threatscope.scraper.date_parser import parse_share_date

MIN_CONTENT_BYTES = 100
MAX_CONTENT_CHARS = 5000
MAX_TITLE_CHARS = 200
EXCERPT_TITLE_CHARS = 100
FALLBACK_TITLE = "Content from Source"

_NON_CONTENT_TAGS = ["script", "style", "noscript", "template", "svg"]
_WHITESPACE = re.compile(r"\s+")


@dataclass
class ParsedPage:
    """Content extracted from a fetched page."""
    title: str
    cleaned_content: str
    share_date: datetime | None = None


def _truncate_on_word(text: str, limit: int, min_cut: int) -> str:
    """Cut ``text`` at ``limit`` chars, backing up to a space past ``min_cut``."""
    if len(text) <= limit:
        return text
    cut = text[:limit]
    last_space = cut.rfind(" ")
    if last_space > min_cut:
        cut = cut[:last_space]
    return cut + "..."


def normalize_text(text: str) -> str:
    """Collapse whitespace and drop non-printable characters."""
    text = _WHITESPACE.sub(" ", text)
    return "".join(ch for ch in text if ch.isprintable()).strip()


def _strip_non_content(soup: BeautifulSoup) -> None:
    for tag in soup(_NON_CONTENT_TAGS):
        tag.decompose()
    for comment in soup.find_all(string=lambda s: isinstance(s, Comment)):
        comment.extract()


def _clean_soup(soup: BeautifulSoup) -> str:
    text = normalize_text(soup.get_text(" "))
    return _truncate_on_word(text, MAX_CONTENT_CHARS, MAX_CONTENT_CHARS - 500)


def extract_title(soup: BeautifulSoup, cleaned_content: str) -> str:
    """Pick a title: <title>, then the first <h1>, then an excerpt of the text."""
    for tag in (soup.title, soup.find("h1")):
        if tag is None:
            continue
        title = normalize_text(tag.get_text(" "))
        if 0 < len(title) <= MAX_TITLE_CHARS:
            return title

    if not cleaned_content:
        return FALLBACK_TITLE
    return _truncate_on_word(cleaned_content, EXCERPT_TITLE_CHARS, EXCERPT_TITLE_CHARS // 2)


def parse_page(raw: str, now: datetime | None = None) -> ParsedPage | None:
    """
    Turn a fetched document into an entry candidate.

    Args:
        raw: Page body as fetched (HTML or plain text)
        now: Reference time for relative publish dates

    Returns:
        ParsedPage, or None when the document is too small to be worth storing
    """
    if len(raw.encode("utf-8")) <= MIN_CONTENT_BYTES:
        return None

    soup = BeautifulSoup(raw, "lxml")
    _strip_non_content(soup)
    cleaned = _clean_soup(soup)
    if not cleaned:
        return None

    return ParsedPage(
        title=extract_title(soup, cleaned),
        cleaned_content=cleaned,
        share_date=parse_share_date(soup, raw, cleaned, now=now),
    )


def fingerprint(source_id: int, cleaned_content: str) -> str:
    """Dedup key for an entry: hash of the source id and normalized content."""
    normalized = " ".join(cleaned_content.lower().split())
    return hashlib.sha256(f"{source_id}:{normalized}".encode()).hexdigest()
