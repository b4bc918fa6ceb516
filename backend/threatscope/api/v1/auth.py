"""Login endpoint."""

from fastapi import APIRouter, Depends

from threatscope.api.deps import get_container
from threatscope.container import ServiceContainer
from threatscope.schemas.auth import LoginRequest, TokenResponse

router = APIRouter()


@router.post("/login", response_model=TokenResponse)
async def login(
    credentials: LoginRequest,
    container: ServiceContainer = Depends(get_container),
) -> TokenResponse:
    """Exchange admin credentials for a bearer token."""
    token = container.auth.login(credentials.username, credentials.password)
    return TokenResponse(token=token)
