"""Entry schemas for API request/response validation."""

from datetime import datetime
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

if TYPE_CHECKING:
    from threatscope.models import Entry, Source


class EntryResponse(BaseModel):
    """Entry as shown to the dashboard, joined with its source."""

    id: int
    source_id: int
    source_name: str | None = None
    source_url: str | None = None
    title: str
    cleaned_content: str
    category: str
    criticality_score: int
    share_date: datetime | None = None
    created_at: datetime
    ai_analysis: str | None = None

    @classmethod
    def from_entry(cls, entry: "Entry", source: "Source | None" = None) -> "EntryResponse":
        """Build a response from an entry row and its (optional) source row."""
        return cls(
            id=entry.id,
            source_id=entry.source_id,
            source_name=source.name if source else None,
            source_url=source.url if source else None,
            title=entry.title,
            cleaned_content=entry.cleaned_content,
            category=entry.category,
            criticality_score=entry.criticality_score,
            share_date=entry.share_date,
            created_at=entry.created_at,
            ai_analysis=entry.ai_analysis,
        )


class EntryListResponse(BaseModel):
    """Paginated entries. ``total`` is the full filtered count."""

    entries: list[EntryResponse]
    total: int
    page: int
    page_size: int = Field(alias="pageSize")

    class Config:
        populate_by_name = True


class CriticalityUpdate(BaseModel):
    """Range is checked by the service so the error maps to InvalidArgument."""

    score: int


class CategoryUpdate(BaseModel):
    category: str = Field(..., max_length=100)


class CategoryListResponse(BaseModel):
    categories: list[str]
