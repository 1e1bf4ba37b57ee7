"""
app/domain/cohort_analysis.py

Derived views built from canonical cohort rows.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class CohortPoint:
    """
    One month of one cohort in the retention grid.
    """

    month_index: int
    cumulative: int
    percentage: float
    diff: int = 0
    growth_pct: float = 0.0
    purchase_rate: float | None = None
    """Cumulative purchases as a percentage of cohort visitors."""


@dataclass(frozen=True)
class CohortSeries:
    """
    Ordered retention series for one (path, cohort start) pair.
    """

    cohort_start: str
    label: str
    visitors: int
    points: dict[int, CohortPoint] = field(default_factory=dict)

    @property
    def month_indices(self) -> list[int]:
        return list(self.points)


@dataclass(frozen=True)
class ChartSeries:
    """
    Month-index aligned points for cumulative and incremental charts.

    Points are sparse: a cohort without data at an index has no key in that
    point, which is distinct from a stored zero.
    """

    labels: list[str] = field(default_factory=list)
    max_month_index: int = 0
    cumulative: list[dict[str, Any]] = field(default_factory=list)
    incremental: list[dict[str, Any]] = field(default_factory=list)


@dataclass(frozen=True)
class CalendarMonthBucket:
    """
    Site-wide visitors and purchases for one absolute calendar month.
    """

    month: str
    visitors: int
    purchases: int
    conversion: str
    velocity: str


@dataclass(frozen=True)
class TrendPoint:
    month: str
    purchases: int


@dataclass(frozen=True)
class PathSummary:
    """
    Totals and calendar trend for one page path.
    """

    path: str
    label: str
    visitors: int
    purchases: int
    conversion: str
    trend: list[TrendPoint] = field(default_factory=list)


@dataclass(frozen=True)
class VelocityOverview:
    """
    Headline figures over the site-wide monthly buckets.
    """

    total_visitors: int = 0
    latest: CalendarMonthBucket | None = None
    previous: CalendarMonthBucket | None = None
    visitor_trend_pct: float = 0.0
    peak_velocity: float = 0.0
    peak_month: str | None = None
    average_conversion: str = "0.00"
    max_path_visitors: int = 0


@dataclass(frozen=True)
class VelocityReport:
    monthly: list[CalendarMonthBucket] = field(default_factory=list)
    paths: list[PathSummary] = field(default_factory=list)
    overview: VelocityOverview = field(default_factory=VelocityOverview)
