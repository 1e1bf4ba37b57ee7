"""
app/schemas/cohort_analysis.py

Response schemas for cohort export ingestion and analysis endpoints.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class SkippedLineResponse(BaseModel):
    model_config = {"from_attributes": True}

    line_number: int = Field(..., ge=1)
    reason: str
    value: str | None = None


class IngestStatsResponse(BaseModel):
    """
    Line counters for one ingested export.
    """

    model_config = {"from_attributes": True}

    total: int = Field(..., ge=0)
    valid: int = Field(..., ge=0)
    skipped: int = Field(..., ge=0)
    first_date: str | None = None
    last_date: str | None = None


class IngestDiagnosticsResponse(BaseModel):
    model_config = {"from_attributes": True}

    skipped_by_reason: dict[str, int] = Field(default_factory=dict)
    skipped_lines: list[SkippedLineResponse] = Field(default_factory=list)
    defaulted_values: int = Field(0, ge=0)
    unparsed_month_indices: int = Field(0, ge=0)


class ExportIngestionResponse(BaseModel):
    """
    API response model for one export upload.
    """

    source_name: str | None = None
    created_at: datetime
    stats: IngestStatsResponse
    diagnostics: IngestDiagnosticsResponse
    paths: list[str] = Field(default_factory=list)
    default_path: str


class PathOptionResponse(BaseModel):
    path: str
    display_name: str


class PathOptionsResponse(BaseModel):
    default_path: str
    paths: list[PathOptionResponse] = Field(default_factory=list)


class CohortPointResponse(BaseModel):
    model_config = {"from_attributes": True}

    month_index: int = Field(..., ge=0)
    cumulative: int
    percentage: float
    diff: int
    growth_pct: float
    purchase_rate: float | None = None


class CohortSeriesResponse(BaseModel):
    cohort_start: str
    label: str
    visitors: int
    points: list[CohortPointResponse] = Field(default_factory=list)


class CohortGridResponse(BaseModel):
    path: str
    display_name: str
    cohorts: list[CohortSeriesResponse] = Field(default_factory=list)


class ChartSeriesResponse(BaseModel):
    """
    Sparse chart points; a missing cohort key means no data at that month.
    """

    path: str
    labels: list[str] = Field(default_factory=list)
    max_month_index: int = Field(0, ge=0)
    cumulative: list[dict[str, Any]] = Field(default_factory=list)
    incremental: list[dict[str, Any]] = Field(default_factory=list)


class CalendarMonthBucketResponse(BaseModel):
    model_config = {"from_attributes": True}

    month: str
    visitors: int
    purchases: int
    conversion: str
    velocity: str


class TrendPointResponse(BaseModel):
    model_config = {"from_attributes": True}

    month: str
    purchases: int


class PathSummaryResponse(BaseModel):
    model_config = {"from_attributes": True}

    path: str
    label: str
    visitors: int
    purchases: int
    conversion: str
    trend: list[TrendPointResponse] = Field(default_factory=list)


class VelocityOverviewResponse(BaseModel):
    model_config = {"from_attributes": True}

    total_visitors: int = 0
    latest: CalendarMonthBucketResponse | None = None
    previous: CalendarMonthBucketResponse | None = None
    visitor_trend_pct: float = 0.0
    peak_velocity: float = 0.0
    peak_month: str | None = None
    average_conversion: str = "0.00"
    max_path_visitors: int = 0


class VelocityReportResponse(BaseModel):
    """
    Site-wide monthly buckets and ranked page paths.
    """

    model_config = {"from_attributes": True}

    monthly: list[CalendarMonthBucketResponse] = Field(default_factory=list)
    paths: list[PathSummaryResponse] = Field(default_factory=list)
    overview: VelocityOverviewResponse = Field(default_factory=VelocityOverviewResponse)
