"""Service wiring - builds every long-lived component from settings."""

import logging
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from threatscope.agents import AnalysisAgent, get_analysis_agent
from threatscope.config import Settings
from threatscope.db.session import create_session_factory, init_db
from threatscope.scraper.fetcher import PageFetcher
from threatscope.scraper.scheduler import ScrapeScheduler
from threatscope.scraper.tor_monitor import TorProbe, TransportMonitor, TransportProbe
from threatscope.services.annotation_service import AnnotationPipeline
from threatscope.services.auth_service import AuthService
from threatscope.services.chat_service import ChatService
from threatscope.services.classifier import AgentClassifier, Classifier, KeywordClassifier
from threatscope.services.entry_service import EntryService
from threatscope.services.source_service import SourceService

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    """Process-wide services shared by the API and background tasks."""

    settings: Settings
    engine: AsyncEngine
    session_factory: async_sessionmaker[AsyncSession]
    agent: AnalysisAgent
    fetcher: PageFetcher
    probe: TransportProbe
    sources: SourceService
    entries: EntryService
    auth: AuthService
    monitor: TransportMonitor
    annotations: AnnotationPipeline
    scheduler: ScrapeScheduler
    chat: ChatService

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        fetcher: PageFetcher | None = None,
        probe: TransportProbe | None = None,
        agent: AnalysisAgent | None = None,
        classifier: Classifier | None = None,
    ) -> "ServiceContainer":
        """Build the default wiring; any collaborator can be passed in instead."""
        engine, session_factory = create_session_factory(settings.database_url, echo=settings.debug)
        agent = agent or get_analysis_agent(settings)

        if classifier is None:
            classifier = (
                AgentClassifier(agent)
                if settings.classifier == "agent" and agent.enabled
                else KeywordClassifier()
            )

        fetcher = fetcher or PageFetcher(
            proxy_url=settings.tor_proxy_url if settings.require_tor else None,
            timeout_seconds=settings.fetch_timeout_seconds,
            max_attempts=settings.fetch_max_attempts,
            retry_wait_seconds=settings.fetch_retry_wait_seconds,
        )
        probe = probe or TorProbe(
            settings.tor_proxy_url,
            timeout_seconds=settings.tor_check_timeout_seconds,
            control_host=settings.tor_control_host,
            control_port=settings.tor_control_port,
            control_password=settings.tor_control_password,
        )

        sources = SourceService(session_factory)
        entries = EntryService(session_factory, classifier)
        monitor = TransportMonitor(probe)
        annotations = AnnotationPipeline(
            entries,
            agent,
            workers=settings.annotation_workers,
            enabled=settings.annotation_enabled,
            backfill=settings.annotation_backfill,
        )
        scheduler = ScrapeScheduler(
            sources,
            entries,
            fetcher,
            monitor,
            annotations,
            max_concurrency=settings.scrape_max_concurrency,
            job_timeout_seconds=settings.scrape_job_timeout_seconds,
            require_transport=settings.require_tor,
            bootstrap_policy=settings.tor_bootstrap_policy,
            bootstrap_wait_seconds=settings.tor_bootstrap_wait_seconds,
            interval_seconds=settings.scrape_interval_seconds,
            history_limit=settings.recent_scrapes_limit,
        )
        chat = ChatService(
            agent,
            entries,
            timeout_seconds=settings.chat_timeout_seconds,
            context_entries=settings.chat_context_entries,
        )

        return cls(
            settings=settings,
            engine=engine,
            session_factory=session_factory,
            agent=agent,
            fetcher=fetcher,
            probe=probe,
            sources=sources,
            entries=entries,
            auth=AuthService(settings),
            monitor=monitor,
            annotations=annotations,
            scheduler=scheduler,
            chat=chat,
        )

    async def start(self) -> None:
        """Create tables and start background loops."""
        await init_db(self.engine)
        logger.info("Database tables initialized")
        if self.settings.require_tor:
            await self.monitor.start()
        await self.annotations.start()
        await self.scheduler.start()

    async def stop(self) -> None:
        await self.scheduler.stop()
        await self.annotations.stop()
        await self.monitor.stop()
        await self.fetcher.close()
        await self.agent.close()
        close_probe = getattr(self.probe, "close", None)
        if close_probe is not None:
            await close_probe()
        await self.engine.dispose()
