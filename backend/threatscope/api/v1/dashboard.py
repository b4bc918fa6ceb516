"""Dashboard statistics endpoint."""

from fastapi import APIRouter, Depends

from threatscope.api.deps import get_container
from threatscope.container import ServiceContainer
from threatscope.schemas.dashboard import DashboardStats

router = APIRouter()


@router.get("/stats", response_model=DashboardStats)
async def get_stats(container: ServiceContainer = Depends(get_container)) -> DashboardStats:
    """Aggregates over all entries and sources."""
    return await container.entries.aggregate_stats()
