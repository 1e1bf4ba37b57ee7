"""
app/domain package marker.
"""

from app.domain.cohort_analysis import (
    CalendarMonthBucket,
    ChartSeries,
    CohortPoint,
    CohortSeries,
    PathSummary,
    TrendPoint,
    VelocityOverview,
    VelocityReport,
)
from app.domain.cohort_export import (
    RESERVED_TOTAL_PATH,
    CanonicalRow,
    IngestDiagnostics,
    IngestOutcome,
    IngestStats,
    RowKind,
    SkippedLine,
    SkipReason,
)

__all__ = [
    "RESERVED_TOTAL_PATH",
    "CalendarMonthBucket",
    "CanonicalRow",
    "ChartSeries",
    "CohortPoint",
    "CohortSeries",
    "IngestDiagnostics",
    "IngestOutcome",
    "IngestStats",
    "PathSummary",
    "RowKind",
    "SkippedLine",
    "SkipReason",
    "TrendPoint",
    "VelocityOverview",
    "VelocityReport",
]
