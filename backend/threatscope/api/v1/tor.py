"""Tor transport status endpoint."""

from fastapi import APIRouter, Depends

from threatscope.api.deps import get_container
from threatscope.container import ServiceContainer
from threatscope.schemas.tor import TransportStatusResponse

router = APIRouter()


@router.get("/status", response_model=TransportStatusResponse)
async def tor_status(
    container: ServiceContainer = Depends(get_container),
) -> TransportStatusResponse:
    """Last known status; also nudges the monitor to re-check soon."""
    container.monitor.request_refresh()
    return TransportStatusResponse.model_validate(container.monitor.status())
