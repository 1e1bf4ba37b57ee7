"""
app/schemas package marker.
"""

from app.schemas.cohort_analysis import (
    ChartSeriesResponse,
    CohortGridResponse,
    ExportIngestionResponse,
    PathOptionsResponse,
    VelocityReportResponse,
)

__all__ = [
    "ChartSeriesResponse",
    "CohortGridResponse",
    "ExportIngestionResponse",
    "PathOptionsResponse",
    "VelocityReportResponse",
]
