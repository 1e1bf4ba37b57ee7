"""
app/services/chart_series_service.py

Reshape a cohort grid into month-index keyed chart series.
"""

from __future__ import annotations

from typing import Any, Sequence

from app.domain.cohort_analysis import ChartSeries, CohortSeries

GROWTH_SUFFIX = "_growth"


def build_chart_series(grid: Sequence[CohortSeries]) -> ChartSeries:
    """
    Build cumulative and incremental points for months ``0..max`` inclusive.

    Each point carries ``index`` plus one key per cohort label that has data
    at that month. The incremental value at month 0 is the cumulative value
    itself, since there is nothing before it to subtract.
    """

    if not grid:
        return ChartSeries()

    max_month_index = max(
        (month_index for series in grid for month_index in series.points),
        default=0,
    )

    cumulative: list[dict[str, Any]] = []
    incremental: list[dict[str, Any]] = []
    for month_index in range(max_month_index + 1):
        cumulative_point: dict[str, Any] = {"index": month_index}
        incremental_point: dict[str, Any] = {"index": month_index}
        for series in grid:
            point = series.points.get(month_index)
            if point is None:
                continue
            cumulative_point[series.label] = point.cumulative
            incremental_point[series.label] = point.cumulative if month_index == 0 else point.diff
            incremental_point[f"{series.label}{GROWTH_SUFFIX}"] = point.growth_pct
        cumulative.append(cumulative_point)
        incremental.append(incremental_point)

    return ChartSeries(
        labels=[series.label for series in grid],
        max_month_index=max_month_index,
        cumulative=cumulative,
        incremental=incremental,
    )
