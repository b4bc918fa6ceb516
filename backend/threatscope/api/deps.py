"""Shared FastAPI dependencies."""

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from threatscope.container import ServiceContainer
from threatscope.errors import UnauthorizedError

bearer_scheme = HTTPBearer(auto_error=False)


def get_container(request: Request) -> ServiceContainer:
    """Services built at startup."""
    return request.app.state.container


def require_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> str:
    """Validate the bearer token and return the username."""
    header = request.headers.get("Authorization")
    if not header:
        raise _unauthorized("Authorization header required")
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise _unauthorized("Invalid authorization header format")
    try:
        return get_container(request).auth.verify_token(credentials.credentials)
    except UnauthorizedError as e:
        raise _unauthorized(e.message) from e


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )
