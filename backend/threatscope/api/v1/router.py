"""API main router - aggregates all endpoint routers."""

from fastapi import APIRouter, Depends

from threatscope.api.deps import require_user
from threatscope.api.v1 import auth, chat, dashboard, entries, scraper, sources, tor

api_router = APIRouter()

# Public
api_router.include_router(auth.router, tags=["auth"])

# Everything else requires a bearer token
protected = [Depends(require_user)]
api_router.include_router(dashboard.router, prefix="/dashboard", tags=["dashboard"], dependencies=protected)
api_router.include_router(entries.router, tags=["entries"], dependencies=protected)
api_router.include_router(sources.router, prefix="/sources", tags=["sources"], dependencies=protected)
api_router.include_router(scraper.router, prefix="/scraper", tags=["scraper"], dependencies=protected)
api_router.include_router(tor.router, prefix="/tor", tags=["tor"], dependencies=protected)
api_router.include_router(chat.router, prefix="/chat", tags=["chat"], dependencies=protected)
