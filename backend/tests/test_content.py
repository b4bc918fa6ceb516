"""Tests for page cleaning, titles, fingerprints and share-date extraction."""

from datetime import datetime

from bs4 import BeautifulSoup

from conftest import html_page
from threatscope.scraper.content import (
    FALLBACK_TITLE,
    MAX_CONTENT_CHARS,
    extract_title,
    fingerprint,
    parse_page,
)
from threatscope.scraper.date_parser import normalize_date, parse_share_date

FILLER = "Security teams are reviewing the report and coordinating a response. " * 3


def share_date_of(html: str, now: datetime | None = None) -> datetime | None:
    soup = BeautifulSoup(html, "lxml")
    return parse_share_date(soup, html, soup.get_text(" "), now=now)


class TestParsePage:
    """HTML is reduced to a title and readable text."""

    def test_small_documents_are_skipped(self) -> None:
        assert parse_page("<html><body>tiny</body></html>") is None

    def test_title_tag_is_preferred(self) -> None:
        page = parse_page(html_page("Leak site update", FILLER))
        assert page is not None
        assert page.title == "Leak site update"

    def test_h1_used_when_no_title(self) -> None:
        page = parse_page(f"<html><body><h1>Forum dump</h1><p>{FILLER}</p></body></html>")
        assert page is not None
        assert page.title == "Forum dump"

    def test_excerpt_title_for_plain_text(self) -> None:
        page = parse_page(FILLER)
        assert page is not None
        assert page.title.endswith("...")
        assert len(page.title) <= 103
        assert page.title.startswith("Security teams are reviewing")

    def test_fallback_title_when_nothing_usable(self) -> None:
        assert extract_title(BeautifulSoup("", "lxml"), "") == FALLBACK_TITLE

    def test_scripts_styles_and_comments_are_removed(self) -> None:
        html = (
            "<html><head><title>Post</title><style>body { color: red }</style></head>"
            f"<body><script>var secret = 1;</script><!-- hidden note --><p>{FILLER}</p></body></html>"
        )
        page = parse_page(html)
        assert page is not None
        assert "secret" not in page.cleaned_content
        assert "color" not in page.cleaned_content
        assert "hidden note" not in page.cleaned_content
        assert "Security teams" in page.cleaned_content

    def test_whitespace_is_collapsed(self) -> None:
        page = parse_page(f"<html><body><p>alpha\n\n\t  beta</p><p>{FILLER}</p></body></html>")
        assert page is not None
        assert "alpha beta" in page.cleaned_content

    def test_long_content_is_truncated_on_a_word(self) -> None:
        page = parse_page("<html><body><p>" + "word " * 3000 + "</p></body></html>")
        assert page is not None
        assert page.cleaned_content.endswith("word...")
        assert len(page.cleaned_content) <= MAX_CONTENT_CHARS + 3


class TestFingerprint:
    """Fingerprints identify content within a source."""

    def test_ignores_case_and_whitespace(self) -> None:
        assert fingerprint(1, "Data  Leak\nfound") == fingerprint(1, "data leak found")

    def test_depends_on_source(self) -> None:
        assert fingerprint(1, "same text") != fingerprint(2, "same text")

    def test_depends_on_content(self) -> None:
        assert fingerprint(1, "one text") != fingerprint(1, "another text")


class TestShareDate:
    """Publish dates are found with decreasing reliability."""

    def test_published_meta_tag(self) -> None:
        html = html_page(
            "Post",
            FILLER,
            head='<meta property="article:published_time" content="2026-01-20T10:30:00Z">',
        )
        assert share_date_of(html) == datetime(2026, 1, 20, 10, 30)

    def test_meta_offset_is_converted_to_utc(self) -> None:
        html = html_page(
            "Post", FILLER, head='<meta name="pubdate" content="2026-01-20T12:00:00+02:00">'
        )
        assert share_date_of(html) == datetime(2026, 1, 20, 10, 0)

    def test_time_tag_datetime_attribute(self) -> None:
        html = html_page("Post", f'<time datetime="2025-11-03">3 Nov</time> {FILLER}')
        assert share_date_of(html) == datetime(2025, 11, 3)

    def test_published_prefix_with_month_name(self) -> None:
        html = html_page("Post", f"Published: March 5, 2025. {FILLER}")
        assert share_date_of(html) == datetime(2025, 3, 5)

    def test_day_first_slash_date(self) -> None:
        html = html_page("Post", f"Seen on 20/01/2026 in the wild. {FILLER}")
        assert share_date_of(html) == datetime(2026, 1, 20)

    def test_day_month_name_year(self) -> None:
        html = html_page("Post", f"Archived 7th February 2024. {FILLER}")
        assert share_date_of(html) == datetime(2024, 2, 7)

    def test_unix_timestamp_in_markup(self) -> None:
        html = html_page("Post", f'<span data-ts="1768903200">when</span> {FILLER}')
        assert share_date_of(html) == datetime(2026, 1, 20, 10, 0)

    def test_relative_date(self) -> None:
        now = datetime(2026, 2, 10, 12, 0)
        html = html_page("Post", f"posted 3 days ago by admin. {FILLER}")
        assert share_date_of(html, now=now) == datetime(2026, 2, 7, 12, 0)

    def test_relative_date_before_2000_is_ignored(self) -> None:
        now = datetime(2026, 2, 10, 12, 0)
        html = html_page("Post", f"Archived: 40 years ago in the old forum. {FILLER}")
        assert share_date_of(html, now=now) is None

    def test_huge_relative_date_does_not_break_parsing(self) -> None:
        now = datetime(2026, 2, 10, 12, 0)
        page = parse_page(html_page("Post", f"Legend from 3000 years ago. {FILLER}"), now=now)
        assert page is not None
        assert page.share_date is None

    def test_no_date(self) -> None:
        assert share_date_of(html_page("Post", FILLER)) is None

    def test_years_outside_range_are_rejected(self) -> None:
        assert normalize_date("1999-12-31") is None
        assert normalize_date("2150-01-01") is None
        assert normalize_date("2024-06-01") == datetime(2024, 6, 1)

    def test_parse_page_sets_share_date(self) -> None:
        html = html_page(
            "Post", FILLER, head='<meta property="og:published_time" content="2025-08-14">'
        )
        page = parse_page(html)
        assert page is not None
        assert page.share_date == datetime(2025, 8, 14)
