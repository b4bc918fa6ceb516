"""Entries API endpoints."""

from typing import Literal

from fastapi import APIRouter, Depends, Query

from threatscope.api.deps import get_container
from threatscope.container import ServiceContainer
from threatscope.schemas.entry import (
    CategoryListResponse,
    CategoryUpdate,
    CriticalityUpdate,
    EntryListResponse,
    EntryResponse,
)

router = APIRouter()


@router.get("/entries", response_model=EntryListResponse)
async def list_entries(
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=20, ge=1, le=100, alias="pageSize"),
    category: str | None = None,
    search: str | None = None,
    min_criticality: int | None = Query(default=None, ge=0, le=100),
    max_criticality: int | None = Query(default=None, ge=0, le=100),
    sort_by: Literal["created_at", "share_date"] = "created_at",
    order: Literal["asc", "desc"] = "desc",
    container: ServiceContainer = Depends(get_container),
) -> EntryListResponse:
    """
    List entries, newest first by default.

    - category: exact category match
    - search: case-insensitive match on title or content
    - min_criticality / max_criticality: inclusive score range
    - sort_by: ingestion time (created_at) or publish time (share_date)
    """
    entries, total = await container.entries.query(
        page=page,
        page_size=page_size,
        category=category or None,
        search=search or None,
        min_criticality=min_criticality,
        max_criticality=max_criticality,
        sort_by=sort_by,
        order=order,
    )
    return EntryListResponse(entries=entries, total=total, page=page, page_size=page_size)


@router.get("/entries/{entry_id}", response_model=EntryResponse)
async def get_entry(
    entry_id: int, container: ServiceContainer = Depends(get_container)
) -> EntryResponse:
    return await container.entries.get(entry_id)


@router.put("/entries/{entry_id}/criticality", response_model=EntryResponse)
async def update_criticality(
    entry_id: int,
    body: CriticalityUpdate,
    container: ServiceContainer = Depends(get_container),
) -> EntryResponse:
    """Override the criticality score (0-100)."""
    return await container.entries.update_criticality(entry_id, body.score)


@router.put("/entries/{entry_id}/category", response_model=EntryResponse)
async def update_category(
    entry_id: int,
    body: CategoryUpdate,
    container: ServiceContainer = Depends(get_container),
) -> EntryResponse:
    """Reassign the category."""
    return await container.entries.update_category(entry_id, body.category)


@router.get("/categories", response_model=CategoryListResponse)
async def list_categories(
    container: ServiceContainer = Depends(get_container),
) -> CategoryListResponse:
    """Categories currently in use."""
    return CategoryListResponse(categories=await container.entries.categories())
