"""Scrape job scheduler - asynchronous per-source scrape jobs with pollable state."""

import asyncio
import contextlib
import logging
from collections import deque
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Literal

from threatscope.clock import utcnow
from threatscope.errors import ConflictError, NotFoundError, ServiceError, UnavailableError
from threatscope.models import Source
from threatscope.scraper.content import parse_page
from threatscope.scraper.fetcher import FetchError, PageFetcher
from threatscope.scraper.tor_monitor import TransportMonitor, TransportState
from threatscope.services.annotation_service import AnnotationPipeline
from threatscope.services.entry_service import EntryService
from threatscope.services.source_service import SourceService

logger = logging.getLogger(__name__)


class JobStatus(str, Enum):
    QUEUED = "queued"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class ScrapeJobState:
    """Lifecycle of the latest scrape job for one source."""
    source_id: int
    source_name: str
    status: JobStatus = JobStatus.QUEUED
    entries_found: int = 0
    entries_inserted: int = 0
    error: str | None = None
    queued_at: datetime = field(default_factory=utcnow)
    started_at: datetime | None = None
    finished_at: datetime | None = None

    @property
    def is_active(self) -> bool:
        return self.status in (JobStatus.QUEUED, JobStatus.RUNNING)


class ScrapeError(Exception):
    """A scrape job cannot continue."""


class ScrapeScheduler:
    """
    Runs scrape jobs as independent asyncio tasks.

    At most one job per source is active (queued or running) at a time;
    jobs for different sources run in parallel up to ``max_concurrency``.
    Whatever goes wrong inside a job ends up in its state as ``failed``
    with an error message; triggering never raises because of the job.
    """

    def __init__(
        self,
        sources: SourceService,
        entries: EntryService,
        fetcher: PageFetcher,
        monitor: TransportMonitor | None = None,
        annotations: AnnotationPipeline | None = None,
        *,
        max_concurrency: int = 4,
        job_timeout_seconds: float = 120.0,
        require_transport: bool = True,
        bootstrap_policy: Literal["wait", "fail"] = "wait",
        bootstrap_wait_seconds: float = 60.0,
        interval_seconds: float = 0,
        history_limit: int = 50,
    ):
        self.sources = sources
        self.entries = entries
        self.fetcher = fetcher
        self.monitor = monitor
        self.annotations = annotations
        self.job_timeout_seconds = job_timeout_seconds
        self.require_transport = require_transport
        self.bootstrap_policy = bootstrap_policy
        self.bootstrap_wait_seconds = bootstrap_wait_seconds
        self.interval_seconds = interval_seconds

        self._semaphore = asyncio.Semaphore(max(1, max_concurrency))
        self._states: dict[int, ScrapeJobState] = {}
        self._tasks: dict[int, asyncio.Task] = {}
        self._history: deque[ScrapeJobState] = deque(maxlen=history_limit)
        self._periodic: asyncio.Task | None = None

    # ------------------------------------------------------------------
    # Triggering
    # ------------------------------------------------------------------

    async def trigger_scrape(self, source_id: int) -> ScrapeJobState:
        """
        Queue a scrape of one source and return immediately.

        Raises:
            NotFoundError: Unknown source
            ConflictError: A job for the source is already queued or running
        """
        source = await self.sources.get(source_id)
        return self._enqueue(source)

    async def trigger_scrape_all(self) -> list[ScrapeJobState]:
        """Queue a scrape for every source that has no active job."""
        handles = []
        for source in await self.sources.list_all():
            try:
                handles.append(self._enqueue(source))
            except ConflictError:
                logger.debug("Skipping source %s, scrape already active", source.id)
        logger.info("Queued %d scrape jobs", len(handles))
        return handles

    def _enqueue(self, source: Source) -> ScrapeJobState:
        # No await between the check and the insert: the guard is atomic on the loop
        current = self._states.get(source.id)
        if current is not None and current.is_active:
            raise ConflictError("Scrape already running", source_id=source.id)

        state = ScrapeJobState(source_id=source.id, source_name=source.name)
        self._states[source.id] = state
        self._tasks[source.id] = asyncio.create_task(
            self._run_job(state), name=f"scrape-source-{source.id}"
        )
        logger.info("Queued scrape for source %s (%s)", source.id, source.name)
        return replace(state)

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def status(self, source_id: int) -> ScrapeJobState:
        state = self._states.get(source_id)
        if state is None:
            raise NotFoundError(f"No scrape recorded for source {source_id}")
        return replace(state)

    def status_all(self) -> list[ScrapeJobState]:
        """Latest job state per source, most recently queued first."""
        states = sorted(self._states.values(), key=lambda s: s.queued_at, reverse=True)
        return [replace(state) for state in states]

    def recent(self) -> list[ScrapeJobState]:
        """Finished jobs, newest first."""
        return [replace(state) for state in self._history]

    def forget(self, source_id: int) -> None:
        """Drop the job state of a deleted source, cancelling its job if one is active."""
        self._states.pop(source_id, None)
        task = self._tasks.get(source_id)
        if task is not None:
            task.cancel()

    async def wait_idle(self) -> None:
        """Wait for every job started so far to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks.values()), return_exceptions=True)

    # ------------------------------------------------------------------
    # Job execution
    # ------------------------------------------------------------------

    async def _run_job(self, state: ScrapeJobState) -> None:
        try:
            async with self._semaphore:
                state.status = JobStatus.RUNNING
                state.started_at = utcnow()
                logger.info("Scraping source %s (%s)", state.source_id, state.source_name)
                await asyncio.wait_for(self._scrape(state), timeout=self.job_timeout_seconds)
        except TimeoutError:
            self._finish(state, f"scrape timed out after {self.job_timeout_seconds:g}s")
        except (ScrapeError, FetchError, ServiceError) as e:
            self._finish(state, str(e))
        except asyncio.CancelledError:
            self._finish(state, "scrape cancelled")
            raise
        except Exception as e:
            logger.exception("Scrape of source %s crashed", state.source_id)
            self._finish(state, f"internal error: {e}")
        else:
            self._finish(state)
        finally:
            if self._tasks.get(state.source_id) is asyncio.current_task():
                del self._tasks[state.source_id]

    def _finish(self, state: ScrapeJobState, error: str | None = None) -> None:
        state.finished_at = utcnow()
        if error is None:
            state.status = JobStatus.COMPLETED
            logger.info(
                "Scrape of source %s completed: %d found, %d new",
                state.source_id, state.entries_found, state.entries_inserted,
            )
        else:
            state.status = JobStatus.FAILED
            state.error = error
            logger.warning("Scrape of source %s failed: %s", state.source_id, error)
        self._history.appendleft(replace(state))

    async def _scrape(self, state: ScrapeJobState) -> None:
        source = await self.sources.get(state.source_id)
        state.source_name = source.name

        await self._ensure_transport()

        body = await self.fetcher.fetch(source.url)
        if not body.strip():
            raise ScrapeError("no content fetched from URL")

        page = parse_page(body)
        if page is None:
            logger.info("Source %s returned too little content to store", source.id)
            return

        state.entries_found += 1
        result = await self.entries.ingest_page(source.id, page)
        if result.deduplicated:
            logger.debug("Source %s content unchanged (entry %s)", source.id, result.entry.id)
            return

        state.entries_inserted += 1
        if self.annotations is not None:
            self.annotations.enqueue(result.entry.id)

    async def _ensure_transport(self) -> None:
        """Refuse to fetch unless the Tor transport is usable."""
        if not self.require_transport or self.monitor is None:
            return

        status = self.monitor.status()
        if status.is_connected:
            return
        if status.state is TransportState.DISCONNECTED or self.bootstrap_policy == "fail":
            raise UnavailableError(f"Tor not ready: {status.message}")

        self.monitor.request_refresh()
        status = await self.monitor.wait_until_connected(self.bootstrap_wait_seconds)
        if not status.is_connected:
            raise UnavailableError(f"Tor not ready: {status.message}")

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def _run_periodic(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            try:
                await self.trigger_scrape_all()
            except Exception:
                logger.exception("Periodic scrape sweep failed")

    async def start(self) -> None:
        if self.interval_seconds > 0 and self._periodic is None:
            self._periodic = asyncio.create_task(self._run_periodic(), name="scrape-periodic")
            logger.info("Scraping all sources every %gs", self.interval_seconds)

    async def stop(self) -> None:
        tasks = list(self._tasks.values())
        if self._periodic is not None:
            tasks.append(self._periodic)
            self._periodic = None
        for task in tasks:
            task.cancel()
        for task in tasks:
            with contextlib.suppress(asyncio.CancelledError):
                await task
