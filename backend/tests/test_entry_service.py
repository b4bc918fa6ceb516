"""Tests for entry ingestion, updates, queries and statistics."""

from datetime import datetime, timedelta

import pytest

from conftest import html_page
from threatscope.clock import utcnow
from threatscope.errors import InvalidArgumentError, NotFoundError
from threatscope.scraper.content import ParsedPage
from threatscope.services.entry_service import EntryService
from threatscope.services.source_service import SourceService

LEAK_PAGE = html_page(
    "Credentials leaked on paste site",
    "A password dump with credentials leaked from a retailer appeared on a paste site.",
)


def page(title: str, content: str, share_date: datetime | None = None) -> ParsedPage:
    return ParsedPage(title=title, cleaned_content=content, share_date=share_date)


class TestIngest:
    """Ingestion classifies new content and deduplicates repeats."""

    async def test_new_content_is_classified(
        self, sources: SourceService, entries: EntryService
    ) -> None:
        source = await sources.create("Paste monitor", "http://paste.example")
        result = await entries.ingest(source.id, LEAK_PAGE)

        assert not result.deduplicated
        assert result.entry.id is not None
        assert result.entry.category == "Data Breach"
        assert 0 <= result.entry.criticality_score <= 100
        assert result.entry.ai_analysis is None

    async def test_same_content_twice_yields_one_entry(
        self, sources: SourceService, entries: EntryService
    ) -> None:
        source = await sources.create("Paste monitor", "http://paste.example")
        first = await entries.ingest(source.id, LEAK_PAGE)
        second = await entries.ingest(source.id, LEAK_PAGE)

        assert second.deduplicated
        assert second.entry.id == first.entry.id
        _, total = await entries.query()
        assert total == 1

    async def test_same_content_from_two_sources_is_kept_twice(
        self, sources: SourceService, entries: EntryService
    ) -> None:
        one = await sources.create("One", "http://one.example")
        two = await sources.create("Two", "http://two.example")
        await entries.ingest(one.id, LEAK_PAGE)
        result = await entries.ingest(two.id, LEAK_PAGE)

        assert not result.deduplicated
        _, total = await entries.query()
        assert total == 2

    async def test_unknown_source(self, entries: EntryService) -> None:
        with pytest.raises(NotFoundError):
            await entries.ingest(999, LEAK_PAGE)

    async def test_too_short_content(self, sources: SourceService, entries: EntryService) -> None:
        source = await sources.create("One", "http://one.example")
        with pytest.raises(InvalidArgumentError):
            await entries.ingest(source.id, "<p>short</p>")


class TestUpdates:
    """Manual criticality and category changes."""

    async def test_criticality_bounds_are_accepted(
        self, sources: SourceService, entries: EntryService
    ) -> None:
        source = await sources.create("One", "http://one.example")
        entry = (await entries.ingest(source.id, LEAK_PAGE)).entry

        assert (await entries.update_criticality(entry.id, 0)).criticality_score == 0
        assert (await entries.update_criticality(entry.id, 100)).criticality_score == 100

    @pytest.mark.parametrize("score", [-1, 101, 1000])
    async def test_out_of_range_criticality_is_rejected(
        self, sources: SourceService, entries: EntryService, score: int
    ) -> None:
        source = await sources.create("One", "http://one.example")
        entry = (await entries.ingest(source.id, LEAK_PAGE)).entry

        with pytest.raises(InvalidArgumentError):
            await entries.update_criticality(entry.id, score)
        assert (await entries.get(entry.id)).criticality_score == entry.criticality_score

    async def test_update_category(self, sources: SourceService, entries: EntryService) -> None:
        source = await sources.create("One", "http://one.example")
        entry = (await entries.ingest(source.id, LEAK_PAGE)).entry

        updated = await entries.update_category(entry.id, "Threat Intelligence")
        assert updated.category == "Threat Intelligence"
        assert updated.source_name == "One"
        assert await entries.categories() == ["Threat Intelligence"]

    async def test_blank_category_is_rejected(
        self, sources: SourceService, entries: EntryService
    ) -> None:
        source = await sources.create("One", "http://one.example")
        entry = (await entries.ingest(source.id, LEAK_PAGE)).entry
        with pytest.raises(InvalidArgumentError):
            await entries.update_category(entry.id, "   ")

    async def test_unknown_entry(self, entries: EntryService) -> None:
        with pytest.raises(NotFoundError):
            await entries.update_criticality(12345, 50)
        with pytest.raises(NotFoundError):
            await entries.get(12345)


class TestQuery:
    """Filtering and 1-indexed pagination."""

    async def test_second_page_holds_items_21_to_40(
        self, sources: SourceService, entries: EntryService
    ) -> None:
        source = await sources.create("Bulk", "http://bulk.example")
        ids = []
        for n in range(45):
            result = await entries.ingest_page(source.id, page(f"Item {n}", f"content number {n}"))
            ids.append(result.entry.id)
        newest_first = sorted(ids, reverse=True)

        second, total = await entries.query(page=2, page_size=20)
        assert total == 45
        assert [e.id for e in second] == newest_first[20:40]

        third, total = await entries.query(page=3, page_size=20)
        assert total == 45
        assert [e.id for e in third] == newest_first[40:]

    async def test_search_is_case_insensitive_on_title_and_content(
        self, sources: SourceService, entries: EntryService
    ) -> None:
        source = await sources.create("One", "http://one.example")
        await entries.ingest_page(source.id, page("LockBit returns", "new affiliate program"))
        await entries.ingest_page(source.id, page("Weekly digest", "mentions lockbit in passing"))
        await entries.ingest_page(source.id, page("Unrelated", "nothing to see"))

        found, total = await entries.query(search="LOCKBIT")
        assert total == 2
        assert {e.title for e in found} == {"LockBit returns", "Weekly digest"}

    async def test_search_treats_wildcards_literally(
        self, sources: SourceService, entries: EntryService
    ) -> None:
        source = await sources.create("One", "http://one.example")
        await entries.ingest_page(source.id, page("Discount", "100% off"))
        await entries.ingest_page(source.id, page("Other", "100 items"))

        _, total = await entries.query(search="100%")
        assert total == 1

    async def test_category_and_criticality_filters(
        self, sources: SourceService, entries: EntryService
    ) -> None:
        source = await sources.create("One", "http://one.example")
        low = (await entries.ingest_page(source.id, page("forum chatter", "general discussion"))).entry
        high = (await entries.ingest_page(source.id, page("Critical breach", "data leaked"))).entry

        only_high, total = await entries.query(min_criticality=80)
        assert total == 1
        assert only_high[0].id == high.id

        only_low, total = await entries.query(max_criticality=low.criticality_score)
        assert [e.id for e in only_low] == [low.id]

        by_category, total = await entries.query(category=high.category)
        assert total == 1
        assert by_category[0].source_url == "http://one.example"

    async def test_invalid_filters(self, entries: EntryService) -> None:
        with pytest.raises(InvalidArgumentError):
            await entries.query(page=0)
        with pytest.raises(InvalidArgumentError):
            await entries.query(page_size=500)
        with pytest.raises(InvalidArgumentError):
            await entries.query(min_criticality=80, max_criticality=20)

    async def test_sort_by_share_date_keeps_undated_last(
        self, sources: SourceService, entries: EntryService
    ) -> None:
        source = await sources.create("One", "http://one.example")
        undated = (await entries.ingest_page(source.id, page("a", "undated"))).entry
        older = (
            await entries.ingest_page(source.id, page("b", "older", datetime(2025, 1, 1)))
        ).entry
        newer = (
            await entries.ingest_page(source.id, page("c", "newer", datetime(2026, 1, 1)))
        ).entry

        ascending, _ = await entries.query(sort_by="share_date", order="asc")
        assert [e.id for e in ascending] == [older.id, newer.id, undated.id]

        descending, _ = await entries.query(sort_by="share_date", order="desc")
        assert [e.id for e in descending] == [newer.id, older.id, undated.id]


class TestStats:
    """Dashboard aggregates are computed from the current entries."""

    async def test_aggregate_stats(self, sources: SourceService, entries: EntryService) -> None:
        now = utcnow()
        source = await sources.create("One", "http://one.example")
        await sources.create("Empty", "http://empty.example")

        first = (
            await entries.ingest_page(
                source.id, page("Ransomware worm", "malware spreads", now - timedelta(days=2))
            )
        ).entry
        await entries.ingest_page(
            source.id, page("Trojan backdoor", "spyware found", now - timedelta(days=2))
        )
        await entries.ingest_page(source.id, page("Old item", "news", now - timedelta(days=90)))
        await entries.set_analysis(first.id, "Looks serious.")

        stats = await entries.aggregate_stats(now=now)

        assert stats.total_entries == 3
        assert stats.total_sources == 2
        assert stats.category_stats[0].category == "Malware Analysis"
        assert stats.category_stats[0].count == 2
        assert [b.range for b in stats.criticality_distribution] == [
            "0-20", "21-40", "41-60", "61-80", "81-100",
        ]
        assert sum(b.count for b in stats.criticality_distribution) == 3
        assert len(stats.time_series_data) == 1
        assert stats.time_series_data[0].count == 2
        assert stats.time_series_data[0].date == (now - timedelta(days=2)).strftime("%Y-%m-%d")
        assert stats.ai_analysis_status.with_analysis == 1
        assert stats.ai_analysis_status.without_analysis == 2
        assert len(stats.recent_entries) == 3

    async def test_empty_analysis_counts_as_missing(
        self, sources: SourceService, entries: EntryService
    ) -> None:
        source = await sources.create("One", "http://one.example")
        entry = (await entries.ingest_page(source.id, page("x", "y"))).entry
        await entries.set_analysis(entry.id, "")

        stats = await entries.aggregate_stats()
        assert stats.ai_analysis_status.without_analysis == 1
        assert await entries.pending_analysis_ids() == [entry.id]
