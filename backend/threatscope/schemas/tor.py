"""Tor transport status schema."""

from datetime import datetime

from pydantic import BaseModel

from threatscope.scraper.tor_monitor import TransportState


class TransportStatusResponse(BaseModel):
    """Last known Tor transport status."""

    state: TransportState
    is_connected: bool
    exit_identity: str | None = None
    bootstrap_progress: int | None = None
    message: str
    checked_at: datetime

    class Config:
        from_attributes = True
