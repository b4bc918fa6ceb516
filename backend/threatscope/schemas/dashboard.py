"""Dashboard statistics schemas."""

from pydantic import BaseModel

from threatscope.schemas.entry import EntryResponse


class CategoryStat(BaseModel):
    category: str
    count: int


class CriticalityBucket(BaseModel):
    range: str
    count: int


class DailyCount(BaseModel):
    date: str  # YYYY-MM-DD
    count: int


class AnalysisCoverage(BaseModel):
    with_analysis: int
    without_analysis: int


class DashboardStats(BaseModel):
    """Aggregates computed on read from the current entry set."""

    total_entries: int
    total_sources: int
    category_stats: list[CategoryStat]
    criticality_distribution: list[CriticalityBucket]
    time_series_data: list[DailyCount]
    ai_analysis_status: AnalysisCoverage
    recent_entries: list[EntryResponse]
