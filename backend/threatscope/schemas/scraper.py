"""Scrape job schemas."""

from datetime import datetime

from pydantic import BaseModel

from threatscope.scraper.scheduler import JobStatus


class ScrapeJobResponse(BaseModel):
    """State of the latest scrape job for a source."""

    source_id: int
    source_name: str
    status: JobStatus
    entries_found: int
    entries_inserted: int
    error: str | None = None
    queued_at: datetime
    started_at: datetime | None = None
    finished_at: datetime | None = None

    class Config:
        from_attributes = True


class ScrapeQueuedResponse(BaseModel):
    message: str
    status: str
    source_id: int
    job: ScrapeJobResponse


class ScrapeAllResponse(BaseModel):
    message: str
    status: str
    jobs: list[ScrapeJobResponse]


class ScraperStatusResponse(BaseModel):
    active_scrapes: list[ScrapeJobResponse]
    recent_scrapes: list[ScrapeJobResponse]
