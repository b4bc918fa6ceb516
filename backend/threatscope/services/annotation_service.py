"""Annotation pipeline - background AI analysis of stored entries."""

import asyncio
import contextlib
import logging

from threatscope.agents.base import AgentError, AnalysisAgent
from threatscope.services.entry_service import EntryService

logger = logging.getLogger(__name__)


class AnnotationPipeline:
    """
    Queue of entry ids waiting for an analysis.

    Scrape jobs only enqueue ids; a small worker pool calls the agent and
    writes the result back. A failed analysis leaves the entry without one
    and is picked up again by the next startup backfill.
    """

    def __init__(
        self,
        entries: EntryService,
        agent: AnalysisAgent,
        workers: int = 1,
        enabled: bool = True,
        backfill: bool = True,
        max_queue: int = 1000,
        pause_seconds: float = 0.5,
    ):
        self.entries = entries
        self.agent = agent
        self.workers = max(1, workers)
        self.enabled = enabled
        self.backfill = backfill
        self.pause_seconds = pause_seconds
        self.queue: asyncio.Queue[int] = asyncio.Queue(maxsize=max_queue)
        self._pending: set[int] = set()
        self._tasks: list[asyncio.Task] = []

    @property
    def active(self) -> bool:
        return self.enabled and self.agent.enabled

    def enqueue(self, entry_id: int) -> bool:
        """Schedule an entry for analysis without waiting. Returns False if not queued."""
        if not self.active or entry_id in self._pending:
            return False
        try:
            self.queue.put_nowait(entry_id)
        except asyncio.QueueFull:
            logger.warning("Annotation queue full, entry %s deferred to next backfill", entry_id)
            return False
        self._pending.add(entry_id)
        return True

    async def annotate(self, entry_id: int) -> str | None:
        """
        Analyze one entry and store the result.

        Returns:
            The stored analysis, or None if the entry is gone, already
            analyzed, or the agent failed
        """
        entry = await self.entries.get_entry(entry_id)
        if entry is None or entry.ai_analysis:
            return None
        try:
            analysis = await self.agent.analyze(
                entry.title, entry.cleaned_content, entry.category, entry.criticality_score
            )
        except AgentError as e:
            logger.warning("Analysis failed for entry %s: %s", entry_id, e)
            return None
        if not await self.entries.set_analysis(entry_id, analysis):
            return None
        logger.debug("Stored analysis for entry %s", entry_id)
        return analysis

    async def _worker(self) -> None:
        while True:
            entry_id = await self.queue.get()
            try:
                await self.annotate(entry_id)
            except Exception:
                logger.exception("Unexpected error annotating entry %s", entry_id)
            finally:
                self._pending.discard(entry_id)
                self.queue.task_done()
            # Leave room for scrape jobs and API requests
            await asyncio.sleep(self.pause_seconds)

    async def _backfill(self) -> None:
        try:
            entry_ids = await self.entries.pending_analysis_ids(limit=self.queue.maxsize)
        except Exception:
            logger.exception("Could not load entries pending analysis")
            return
        queued = sum(1 for entry_id in entry_ids if self.enqueue(entry_id))
        if queued:
            logger.info("Queued %d existing entries for analysis", queued)

    async def start(self) -> None:
        if not self.active:
            logger.info("Entry annotation disabled (provider: %s)", self.agent.name)
            return
        self._tasks = [
            asyncio.create_task(self._worker(), name=f"annotation-worker-{n}")
            for n in range(self.workers)
        ]
        if self.backfill:
            self._tasks.append(asyncio.create_task(self._backfill(), name="annotation-backfill"))

    async def join(self) -> None:
        """Wait until everything queued so far has been processed."""
        await self.queue.join()

    async def stop(self) -> None:
        for task in self._tasks:
            task.cancel()
        for task in self._tasks:
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self._tasks = []
