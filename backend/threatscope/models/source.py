"""Source model - a scrape target."""

from datetime import datetime

from sqlmodel import Field, SQLModel

from threatscope.clock import utcnow


class Source(SQLModel, table=True):
    """
    Registered scrape target.
    The URL is stored as given; it is only checked when a scrape fetches it.
    """

    __tablename__ = "sources"

    id: int | None = Field(default=None, primary_key=True)
    name: str = Field(max_length=255)
    url: str = Field(max_length=2048)
    created_at: datetime = Field(default_factory=utcnow)
