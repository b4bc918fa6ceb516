"""Entry service - ingestion, classification, queries and dashboard statistics."""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Literal

from sqlalchemy import case, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from threatscope.clock import utcnow
from threatscope.constants.categories import CRITICALITY_BUCKETS
from threatscope.errors import InvalidArgumentError, NotFoundError
from threatscope.models import Entry, Source
from threatscope.schemas.dashboard import (
    AnalysisCoverage,
    CategoryStat,
    CriticalityBucket,
    DailyCount,
    DashboardStats,
)
from threatscope.schemas.entry import EntryResponse
from threatscope.scraper.content import ParsedPage, fingerprint, parse_page
from threatscope.services.classifier import Classifier, KeywordClassifier, score_criticality

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100
RECENT_ENTRIES = 10
TIME_SERIES_DAYS = 30

SortField = Literal["created_at", "share_date"]
SortOrder = Literal["asc", "desc"]


@dataclass
class IngestResult:
    """Outcome of an ingest: the stored entry and whether it already existed."""
    entry: Entry
    deduplicated: bool


class EntryService:
    """Persists and queries ingested entries."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        classifier: Classifier | None = None,
    ):
        self.session_factory = session_factory
        self.classifier = classifier or KeywordClassifier()

    # ------------------------------------------------------------------
    # Ingestion
    # ------------------------------------------------------------------

    async def ingest(self, source_id: int, raw_content: str) -> IngestResult:
        """Normalize raw page content and store it as an entry."""
        page = parse_page(raw_content)
        if page is None:
            raise InvalidArgumentError("content too short to ingest")
        return await self.ingest_page(source_id, page)

    async def ingest_page(self, source_id: int, page: ParsedPage) -> IngestResult:
        """
        Store a parsed page unless the same content was already seen for the source.

        Args:
            source_id: Source the page was fetched from
            page: Cleaned page content

        Returns:
            IngestResult with the new entry, or the existing one when deduplicated
        """
        digest = fingerprint(source_id, page.cleaned_content)

        async with self.session_factory() as session:
            if await session.get(Source, source_id) is None:
                raise NotFoundError(f"Source {source_id} not found")
            existing = await self._find_by_fingerprint(session, source_id, digest)
        if existing is not None:
            return IngestResult(entry=existing, deduplicated=True)

        category = await self.classifier.classify(page.title, page.cleaned_content)
        entry = Entry(
            source_id=source_id,
            title=page.title[:500],
            cleaned_content=page.cleaned_content,
            fingerprint=digest,
            category=category,
            criticality_score=score_criticality(page.title, page.cleaned_content, category),
            share_date=page.share_date,
        )

        async with self.session_factory() as session:
            session.add(entry)
            try:
                await session.commit()
            except IntegrityError:
                await session.rollback()
                existing = await self._find_by_fingerprint(session, source_id, digest)
                if existing is None:
                    raise NotFoundError(f"Source {source_id} no longer exists")
                return IngestResult(entry=existing, deduplicated=True)
            await session.refresh(entry)

        logger.debug(
            "Ingested entry %s for source %s (%s, score %d)",
            entry.id, source_id, entry.category, entry.criticality_score,
        )
        return IngestResult(entry=entry, deduplicated=False)

    async def _find_by_fingerprint(
        self, session: AsyncSession, source_id: int, digest: str
    ) -> Entry | None:
        result = await session.execute(
            select(Entry).where(Entry.source_id == source_id, Entry.fingerprint == digest)
        )
        return result.scalar_one_or_none()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get(self, entry_id: int) -> EntryResponse:
        async with self.session_factory() as session:
            entry = await session.get(Entry, entry_id)
            if entry is None:
                raise NotFoundError(f"Entry {entry_id} not found")
            source = await session.get(Source, entry.source_id)
        return EntryResponse.from_entry(entry, source)

    async def query(
        self,
        page: int = 1,
        page_size: int = 20,
        category: str | None = None,
        search: str | None = None,
        min_criticality: int | None = None,
        max_criticality: int | None = None,
        sort_by: SortField = "created_at",
        order: SortOrder = "desc",
    ) -> tuple[list[EntryResponse], int]:
        """
        Filtered, paginated entry listing.

        Pages are 1-indexed. The returned total counts every entry matching
        the filters, independent of the page window.
        """
        if page < 1:
            raise InvalidArgumentError("page must be >= 1")
        if not 1 <= page_size <= MAX_PAGE_SIZE:
            raise InvalidArgumentError(f"pageSize must be between 1 and {MAX_PAGE_SIZE}")
        for bound in (min_criticality, max_criticality):
            if bound is not None and not 0 <= bound <= 100:
                raise InvalidArgumentError("criticality bounds must be between 0 and 100")
        if (
            min_criticality is not None
            and max_criticality is not None
            and min_criticality > max_criticality
        ):
            raise InvalidArgumentError("min_criticality cannot exceed max_criticality")

        conditions = []
        if category:
            conditions.append(Entry.category == category)
        if search:
            conditions.append(
                or_(
                    Entry.title.icontains(search, autoescape=True),
                    Entry.cleaned_content.icontains(search, autoescape=True),
                )
            )
        if min_criticality is not None:
            conditions.append(Entry.criticality_score >= min_criticality)
        if max_criticality is not None:
            conditions.append(Entry.criticality_score <= max_criticality)

        sort_column = Entry.share_date if sort_by == "share_date" else Entry.created_at
        ordering = sort_column.asc() if order == "asc" else sort_column.desc()
        tiebreak = Entry.id.asc() if order == "asc" else Entry.id.desc()

        async with self.session_factory() as session:
            total = (
                await session.execute(
                    select(func.count()).select_from(Entry).where(*conditions)
                )
            ).scalar_one()
            result = await session.execute(
                select(Entry, Source)
                .outerjoin(Source, Source.id == Entry.source_id)
                .where(*conditions)
                .order_by(ordering.nulls_last(), tiebreak)
                .offset((page - 1) * page_size)
                .limit(page_size)
            )
            entries = [EntryResponse.from_entry(entry, source) for entry, source in result.all()]
        return entries, total

    async def categories(self) -> list[str]:
        """Distinct categories currently in use, alphabetically."""
        async with self.session_factory() as session:
            result = await session.execute(
                select(Entry.category).distinct().order_by(Entry.category)
            )
            return [row for row in result.scalars().all() if row]

    async def top_entries(self, limit: int) -> list[Entry]:
        """Most critical entries, newest first among equals."""
        async with self.session_factory() as session:
            result = await session.execute(
                select(Entry)
                .order_by(Entry.criticality_score.desc(), Entry.created_at.desc())
                .limit(limit)
            )
            return list(result.scalars().all())

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def update_criticality(self, entry_id: int, score: int) -> EntryResponse:
        """Set a manual criticality score; anything outside [0, 100] is rejected."""
        if not 0 <= score <= 100:
            raise InvalidArgumentError("criticality score must be between 0 and 100")
        return await self._update(entry_id, criticality_score=score)

    async def update_category(self, entry_id: int, category: str) -> EntryResponse:
        category = category.strip()
        if not category:
            raise InvalidArgumentError("category is required")
        return await self._update(entry_id, category=category)

    async def _update(self, entry_id: int, **changes: object) -> EntryResponse:
        async with self.session_factory() as session:
            entry = await session.get(Entry, entry_id)
            if entry is None:
                raise NotFoundError(f"Entry {entry_id} not found")
            for field, value in changes.items():
                setattr(entry, field, value)
            await session.commit()
            await session.refresh(entry)
            source = await session.get(Source, entry.source_id)
        return EntryResponse.from_entry(entry, source)

    # ------------------------------------------------------------------
    # Annotation support
    # ------------------------------------------------------------------

    async def get_entry(self, entry_id: int) -> Entry | None:
        async with self.session_factory() as session:
            return await session.get(Entry, entry_id)

    async def set_analysis(self, entry_id: int, analysis: str) -> bool:
        """Store an analysis. Returns False if the entry was deleted meanwhile."""
        async with self.session_factory() as session:
            entry = await session.get(Entry, entry_id)
            if entry is None:
                return False
            entry.ai_analysis = analysis
            await session.commit()
        return True

    async def pending_analysis_ids(self, limit: int = 500) -> list[int]:
        """Ids of entries that still have no analysis, newest first."""
        async with self.session_factory() as session:
            result = await session.execute(
                select(Entry.id)
                .where(or_(Entry.ai_analysis.is_(None), Entry.ai_analysis == ""))
                .order_by(Entry.created_at.desc())
                .limit(limit)
            )
            return list(result.scalars().all())

    # ------------------------------------------------------------------
    # Statistics
    # ------------------------------------------------------------------

    async def aggregate_stats(self, now: datetime | None = None) -> DashboardStats:
        """Compute dashboard aggregates from the current entry set."""
        cutoff = (now or utcnow()) - timedelta(days=TIME_SERIES_DAYS)
        has_analysis = (Entry.ai_analysis.is_not(None)) & (Entry.ai_analysis != "")
        day = func.date(Entry.share_date)

        async with self.session_factory() as session:
            total_entries = (
                await session.execute(select(func.count()).select_from(Entry))
            ).scalar_one()
            total_sources = (
                await session.execute(select(func.count()).select_from(Source))
            ).scalar_one()

            category_rows = await session.execute(
                select(Entry.category, func.count().label("count"))
                .group_by(Entry.category)
                .order_by(func.count().desc(), Entry.category)
            )

            bucket_row = (
                await session.execute(
                    select(
                        *(
                            func.count(case((Entry.criticality_score.between(low, high), 1)))
                            for _, low, high in CRITICALITY_BUCKETS
                        )
                    )
                )
            ).one()

            series_rows = await session.execute(
                select(day, func.count())
                .where(Entry.share_date.is_not(None), Entry.share_date >= cutoff)
                .group_by(day)
                .order_by(day)
            )

            with_analysis = (
                await session.execute(
                    select(func.count()).select_from(Entry).where(has_analysis)
                )
            ).scalar_one()

            recent_rows = await session.execute(
                select(Entry, Source)
                .outerjoin(Source, Source.id == Entry.source_id)
                .order_by(Entry.created_at.desc(), Entry.id.desc())
                .limit(RECENT_ENTRIES)
            )

            return DashboardStats(
                total_entries=total_entries,
                total_sources=total_sources,
                category_stats=[
                    CategoryStat(category=category, count=count)
                    for category, count in category_rows.all()
                ],
                criticality_distribution=[
                    CriticalityBucket(range=label, count=count or 0)
                    for (label, _, _), count in zip(CRITICALITY_BUCKETS, bucket_row)
                ],
                time_series_data=[
                    DailyCount(date=str(value)[:10], count=count)
                    for value, count in series_rows.all()
                    if value is not None
                ],
                ai_analysis_status=AnalysisCoverage(
                    with_analysis=with_analysis,
                    without_analysis=total_entries - with_analysis,
                ),
                recent_entries=[
                    EntryResponse.from_entry(entry, source)
                    for entry, source in recent_rows.all()
                ],
            )
