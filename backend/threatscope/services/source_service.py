"""Source service - registry of scrape targets."""

import logging

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from threatscope.errors import NotFoundError
from threatscope.models import Entry, Source

logger = logging.getLogger(__name__)


class SourceService:
    """CRUD over registered sources."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def create(self, name: str, url: str) -> Source:
        """Register a source. The URL is stored verbatim."""
        source = Source(name=name, url=url)
        async with self.session_factory() as session:
            session.add(source)
            await session.commit()
            await session.refresh(source)
        logger.info("Created source %s (%s)", source.id, source.name)
        return source

    async def get(self, source_id: int) -> Source:
        async with self.session_factory() as session:
            source = await session.get(Source, source_id)
        if source is None:
            raise NotFoundError(f"Source {source_id} not found")
        return source

    async def list_all(self) -> list[Source]:
        """All sources, newest first."""
        async with self.session_factory() as session:
            result = await session.execute(
                select(Source).order_by(Source.created_at.desc(), Source.id.desc())
            )
            return list(result.scalars().all())

    async def update(
        self, source_id: int, name: str | None = None, url: str | None = None
    ) -> Source:
        """Rename and/or retarget a source."""
        async with self.session_factory() as session:
            source = await session.get(Source, source_id)
            if source is None:
                raise NotFoundError(f"Source {source_id} not found")
            if name is not None:
                source.name = name
            if url is not None:
                source.url = url
            await session.commit()
            await session.refresh(source)
        return source

    async def delete(self, source_id: int) -> int:
        """
        Delete a source together with all of its entries.

        Both deletes run in one transaction; if either fails nothing is removed.

        Returns:
            Number of entries removed
        """
        async with self.session_factory() as session:
            async with session.begin():
                source = await session.get(Source, source_id)
                if source is None:
                    raise NotFoundError(f"Source {source_id} not found")
                result = await session.execute(
                    delete(Entry).where(Entry.source_id == source_id)
                )
                await session.delete(source)
        removed = result.rowcount or 0
        logger.info("Deleted source %s and %d entries", source_id, removed)
        return removed
