"""
app/services/dataframe_service.py

Tabular (pandas) views of the derived cohort structures for display layers.
"""

from __future__ import annotations

from typing import Any, Literal, Sequence

import pandas as pd

from app.domain.cohort_analysis import CohortSeries, VelocityReport

GridMode = Literal["cumulative", "incremental", "percentage"]


def cohort_grid_frame(grid: Sequence[CohortSeries], mode: GridMode = "cumulative") -> pd.DataFrame:
    """
    One row per cohort, one column per month index.

    ``percentage`` shows cumulative purchases as a share of cohort visitors.
    Months a cohort has no data for are left as NaN.
    """

    records: list[dict[str, Any]] = []
    for series in grid:
        record: dict[str, Any] = {"cohort": series.label, "visitors": series.visitors}
        for month_index, point in series.points.items():
            if mode == "incremental":
                value: Any = point.cumulative if month_index == 0 else point.diff
            elif mode == "percentage":
                value = point.purchase_rate
            else:
                value = point.cumulative
            record[month_index] = value
        records.append(record)

    frame = pd.DataFrame.from_records(records)
    if frame.empty:
        return frame
    month_columns = sorted(column for column in frame.columns if isinstance(column, int))
    return frame[["cohort", "visitors", *month_columns]].set_index("cohort")


def chart_points_frame(points: Sequence[dict[str, Any]]) -> pd.DataFrame:
    """
    Chart points indexed by month index; growth columns are dropped.
    """

    frame = pd.DataFrame.from_records(list(points))
    if frame.empty:
        return frame
    frame = frame.set_index("index")
    return frame[[column for column in frame.columns if not str(column).endswith("_growth")]]


def monthly_frame(report: VelocityReport) -> pd.DataFrame:
    frame = pd.DataFrame.from_records(
        [
            {
                "month": bucket.month,
                "visitors": bucket.visitors,
                "purchases": bucket.purchases,
                "conversion": float(bucket.conversion),
                "velocity": float(bucket.velocity),
            }
            for bucket in report.monthly
        ],
        columns=["month", "visitors", "purchases", "conversion", "velocity"],
    )
    return frame.set_index("month")


def paths_frame(report: VelocityReport) -> pd.DataFrame:
    return pd.DataFrame.from_records(
        [
            {
                "path": summary.path,
                "label": summary.label,
                "visitors": summary.visitors,
                "purchases": summary.purchases,
                "conversion": float(summary.conversion),
            }
            for summary in report.paths
        ],
        columns=["path", "label", "visitors", "purchases", "conversion"],
    )


def path_trend_frame(report: VelocityReport, path: str) -> pd.DataFrame:
    for summary in report.paths:
        if summary.path == path:
            return pd.DataFrame.from_records(
                [{"month": point.month, "purchases": point.purchases} for point in summary.trend],
                columns=["month", "purchases"],
            ).set_index("month")
    return pd.DataFrame(columns=["purchases"])
