"""Sources API endpoints."""

import logging

from fastapi import APIRouter, Depends, status

from threatscope.api.deps import get_container
from threatscope.container import ServiceContainer
from threatscope.errors import ConflictError
from threatscope.schemas.scraper import ScrapeJobResponse, ScrapeQueuedResponse
from threatscope.schemas.source import (
    SourceCreate,
    SourceListResponse,
    SourceResponse,
    SourceUpdate,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=SourceListResponse)
async def list_sources(container: ServiceContainer = Depends(get_container)) -> SourceListResponse:
    """List all sources, newest first."""
    sources = await container.sources.list_all()
    return SourceListResponse(
        sources=[SourceResponse.model_validate(source) for source in sources]
    )


@router.post("", response_model=SourceResponse, status_code=status.HTTP_201_CREATED)
async def create_source(
    source_in: SourceCreate,
    container: ServiceContainer = Depends(get_container),
) -> SourceResponse:
    """Register a source and, if configured, queue its first scrape."""
    source = await container.sources.create(source_in.name, source_in.url)
    if container.settings.scrape_on_create:
        try:
            await container.scheduler.trigger_scrape(source.id)
        except ConflictError:
            logger.debug("Initial scrape for source %s already queued", source.id)
    return SourceResponse.model_validate(source)


@router.get("/{source_id}", response_model=SourceResponse)
async def get_source(
    source_id: int, container: ServiceContainer = Depends(get_container)
) -> SourceResponse:
    """Get a specific source by ID."""
    return SourceResponse.model_validate(await container.sources.get(source_id))


@router.put("/{source_id}", response_model=SourceResponse)
async def update_source(
    source_id: int,
    source_in: SourceUpdate,
    container: ServiceContainer = Depends(get_container),
) -> SourceResponse:
    source = await container.sources.update(source_id, name=source_in.name, url=source_in.url)
    return SourceResponse.model_validate(source)


@router.delete("/{source_id}")
async def delete_source(
    source_id: int, container: ServiceContainer = Depends(get_container)
) -> dict[str, str | int]:
    """Remove a source and every entry scraped from it."""
    removed = await container.sources.delete(source_id)
    container.scheduler.forget(source_id)
    return {"message": "Source deleted successfully", "entries_deleted": removed}


@router.post(
    "/{source_id}/scrape",
    response_model=ScrapeQueuedResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def scrape_source(
    source_id: int, container: ServiceContainer = Depends(get_container)
) -> ScrapeQueuedResponse:
    """Queue a scrape of one source. 409 while a scrape of it is active."""
    job = await container.scheduler.trigger_scrape(source_id)
    return ScrapeQueuedResponse(
        message="Scrape queued",
        status="queued",
        source_id=source_id,
        job=ScrapeJobResponse.model_validate(job),
    )
