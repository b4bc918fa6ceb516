"""Shared fixtures: SQLite-backed services, fake transport probe, fake agent and mocked pages."""

from collections.abc import AsyncIterator
from dataclasses import dataclass
from pathlib import Path

import httpx
import pytest

from threatscope.agents.base import AgentError, AnalysisAgent
from threatscope.config import Settings
from threatscope.db.session import create_session_factory, init_db
from threatscope.scraper.fetcher import PageFetcher
from threatscope.scraper.tor_monitor import TransportStatus
from threatscope.services.entry_service import EntryService
from threatscope.services.source_service import SourceService


def html_page(title: str, body: str, head: str = "") -> str:
    """Minimal HTML document comfortably above the ingest size threshold."""
    return (
        f"<html><head><title>{title}</title>{head}</head>"
        f"<body><article><p>{body}</p>"
        "<p>Collected by the monitoring pipeline for review by the security team.</p>"
        "</article></body></html>"
    )


class FakeProbe:
    """Transport probe returning a configurable status."""

    def __init__(self, status: TransportStatus | None = None):
        self.status = status or TransportStatus.connected("185.220.101.7")
        self.calls = 0

    async def probe(self) -> TransportStatus:
        self.calls += 1
        return self.status


class FakeAgent(AnalysisAgent):
    """Scripted agent: fixed reply, scripted stream, optional failures."""

    name = "fake"

    def __init__(
        self,
        reply: str = "Analysis: active ransomware campaign targeting hospitals.",
        chunks: list[str] | None = None,
        fail: bool = False,
        fail_after: int | None = None,
    ):
        self.reply = reply
        self.chunks = chunks if chunks is not None else ["Ransomware ", "activity ", "is rising."]
        self.fail = fail
        self.fail_after = fail_after
        self.prompts: list[str] = []

    async def complete(self, prompt: str, max_tokens: int = 300) -> str:
        self.prompts.append(prompt)
        if self.fail:
            raise AgentError("backend down")
        return self.reply

    async def stream(self, prompt: str, max_tokens: int = 150) -> AsyncIterator[str]:
        self.prompts.append(prompt)
        if self.fail:
            raise AgentError("backend down")
        for index, chunk in enumerate(self.chunks):
            if self.fail_after is not None and index >= self.fail_after:
                raise AgentError("connection reset by peer")
            yield chunk


@dataclass
class Page:
    body: str
    status_code: int = 200
    content_type: str = "text/html; charset=utf-8"


def page_transport(pages: dict[str, Page]) -> httpx.MockTransport:
    """Serve ``pages`` keyed by host; unknown hosts fail like DNS errors."""

    def handler(request: httpx.Request) -> httpx.Response:
        page = pages.get(request.url.host)
        if page is None:
            raise httpx.ConnectError("Name or service not known", request=request)
        return httpx.Response(
            page.status_code,
            headers={"content-type": page.content_type},
            text=page.body,
        )

    return httpx.MockTransport(handler)


def make_settings(tmp_path: Path, **overrides: object) -> Settings:
    values: dict[str, object] = {
        "database_url": f"sqlite+aiosqlite:///{tmp_path / 'threatscope.db'}",
        "jwt_secret_key": "test-secret",
        "llm_provider": "none",
        "annotation_enabled": False,
        "scrape_on_create": False,
        "scrape_interval_seconds": 0,
        "fetch_max_attempts": 2,
        "fetch_retry_wait_seconds": 0,
        "tor_bootstrap_policy": "fail",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def pages() -> dict[str, Page]:
    return {
        "alpha.example": Page(
            html_page(
                "Ransomware group leaks hospital records",
                "A ransomware crew published a database dump with personal information "
                "of patients. The breach was confirmed by the hospital.",
            )
        ),
        "beta.example": Page(
            html_page(
                "Critical zero-day exploited in VPN appliances",
                "A critical vulnerability, tracked as CVE-2026-1234, is under active exploit. "
                "Vendors urge an immediate patch.",
            )
        ),
    }


@pytest.fixture
def fetcher(pages: dict[str, Page]) -> PageFetcher:
    return PageFetcher(transport=page_transport(pages), max_attempts=2, retry_wait_seconds=0)


@pytest.fixture
async def session_factory(tmp_path: Path):
    engine, factory = create_session_factory(f"sqlite+aiosqlite:///{tmp_path / 'services.db'}")
    await init_db(engine)
    yield factory
    await engine.dispose()


@pytest.fixture
def sources(session_factory) -> SourceService:
    return SourceService(session_factory)


@pytest.fixture
def entries(session_factory) -> EntryService:
    return EntryService(session_factory)
