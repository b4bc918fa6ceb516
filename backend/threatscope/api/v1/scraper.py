"""Scraper control and status endpoints."""

from fastapi import APIRouter, Depends, status

from threatscope.api.deps import get_container
from threatscope.container import ServiceContainer
from threatscope.schemas.scraper import (
    ScrapeAllResponse,
    ScrapeJobResponse,
    ScraperStatusResponse,
)

router = APIRouter()


@router.post("/trigger", response_model=ScrapeAllResponse, status_code=status.HTTP_202_ACCEPTED)
async def trigger_all(container: ServiceContainer = Depends(get_container)) -> ScrapeAllResponse:
    """Queue a scrape of every source without an active job."""
    jobs = await container.scheduler.trigger_scrape_all()
    return ScrapeAllResponse(
        message=f"Scraping started for {len(jobs)} sources",
        status="started",
        jobs=[ScrapeJobResponse.model_validate(job) for job in jobs],
    )


@router.get("/status", response_model=ScraperStatusResponse)
async def scraper_status(
    container: ServiceContainer = Depends(get_container),
) -> ScraperStatusResponse:
    """Latest job per source plus the history of finished jobs."""
    scheduler = container.scheduler
    return ScraperStatusResponse(
        active_scrapes=[ScrapeJobResponse.model_validate(s) for s in scheduler.status_all()],
        recent_scrapes=[ScrapeJobResponse.model_validate(s) for s in scheduler.recent()[:20]],
    )


@router.get("/status/{source_id}", response_model=ScrapeJobResponse)
async def source_scrape_status(
    source_id: int, container: ServiceContainer = Depends(get_container)
) -> ScrapeJobResponse:
    return ScrapeJobResponse.model_validate(container.scheduler.status(source_id))
