"""Entry model - one ingested, classified page."""

from datetime import datetime

from sqlalchemy import CheckConstraint, Column, Text, UniqueConstraint
from sqlmodel import Field, SQLModel

from threatscope.clock import utcnow


class Entry(SQLModel, table=True):
    """
    Ingested content entry.
    ``share_date`` is the publish time found in the page, ``created_at`` the
    ingestion time. ``fingerprint`` identifies the content within a source.
    """

    __tablename__ = "data_entries"
    __table_args__ = (
        UniqueConstraint("source_id", "fingerprint", name="uq_entry_source_fingerprint"),
        CheckConstraint(
            "criticality_score >= 0 AND criticality_score <= 100",
            name="ck_entry_criticality_range",
        ),
    )

    id: int | None = Field(default=None, primary_key=True)
    source_id: int = Field(foreign_key="sources.id", index=True)

    # Content
    title: str = Field(max_length=500)
    cleaned_content: str = Field(sa_column=Column(Text, nullable=False))
    fingerprint: str = Field(max_length=64, index=True)

    # Classification
    category: str = Field(default="Uncategorized", max_length=100, index=True)
    criticality_score: int = Field(default=0, index=True)

    # Timestamps
    share_date: datetime | None = Field(default=None, index=True)
    created_at: datetime = Field(default_factory=utcnow, index=True)

    # Filled in later by the annotation pipeline
    ai_analysis: str | None = Field(default=None, sa_column=Column(Text, nullable=True))
