"""Source schemas for API request/response validation."""

from datetime import datetime

from pydantic import BaseModel, Field


class SourceBase(BaseModel):
    """Base source schema with shared fields."""

    name: str = Field(..., min_length=1, max_length=255)
    # Stored as given; a malformed target fails at fetch time
    url: str = Field(..., min_length=1, max_length=2048)


class SourceCreate(SourceBase):
    """Schema for creating a source."""


class SourceUpdate(BaseModel):
    """Schema for updating a source. Omitted fields are left unchanged."""

    name: str | None = Field(default=None, min_length=1, max_length=255)
    url: str | None = Field(default=None, min_length=1, max_length=2048)


class SourceResponse(SourceBase):
    """Schema for source responses."""

    id: int
    created_at: datetime

    class Config:
        from_attributes = True


class SourceListResponse(BaseModel):
    """Schema for source list response."""

    sources: list[SourceResponse]
