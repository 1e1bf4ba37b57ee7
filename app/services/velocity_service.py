"""
app/services/velocity_service.py

Calendar-month purchase velocity and page-path ranking.

Cohort rows carry cumulative purchases against a relative month index. This
module turns them into incremental purchases on an absolute calendar, then
rolls them up three ways:

    global monthly buckets: site-wide rows only (RowKind.SITE_WIDE)
    per-path monthly trend: every path, keyed by calendar month
    per-path totals: visitors once per cohort, summed increments

Formulas
--------
incremental  = max(cumulative[i] - cumulative[i-1], 0), cumulative[-1] = 0
calendar     = cohort start year/month + month_index months
conversion   = purchases / visitors * 100          (2 decimals, "0.00" if no visitors)
velocity     = purchases / days in calendar month  (1 decimal)

Per-path rows are never merged into the global buckets: the site-wide rows
already count the same visitors and purchases.
"""

from __future__ import annotations

import calendar
import logging
import re
from collections import defaultdict
from datetime import datetime
from statistics import fmean
from typing import Iterable, Sequence

from app.domain.cohort_analysis import (
    CalendarMonthBucket,
    PathSummary,
    TrendPoint,
    VelocityOverview,
    VelocityReport,
)
from app.domain.cohort_export import CanonicalRow

logger = logging.getLogger(__name__)

HOME_PATH = "/"
HOME_LABEL = "Home Page"

_WORD_START = re.compile(r"\b\w")


# ---------------------------------------------------------------------------
# Formula helpers
# ---------------------------------------------------------------------------


def calendar_month(cohort_start: str, month_index: int) -> str | None:
    """
    Absolute ``YYYY-MM`` reached by advancing *cohort_start* by whole months.

    Returns ``None`` when *cohort_start* is not an ISO date.
    """

    try:
        start = datetime.strptime(cohort_start, "%Y-%m-%d")
    except ValueError:
        return None
    months = start.year * 12 + (start.month - 1) + month_index
    year, month_zero_based = divmod(months, 12)
    return f"{year:04d}-{month_zero_based + 1:02d}"


def days_in_month(month: str) -> int:
    """
    Number of days in a ``YYYY-MM`` calendar month.
    """

    year, month_number = (int(part) for part in month.split("-")[:2])
    return calendar.monthrange(year, month_number)[1]


def conversion_rate(purchases: int, visitors: int) -> str:
    if visitors <= 0:
        return "0.00"
    return f"{purchases / visitors * 100:.2f}"


def purchase_velocity(purchases: int, month: str) -> str:
    return f"{purchases / days_in_month(month):.1f}"


def incremental_purchases(cumulative: Sequence[int]) -> list[int]:
    """
    Per-month purchases from a cumulative series, clamped at zero.

    A regression in the cumulative series (e.g. ``[5, 3, 10]``) is treated as
    an export artifact: that month contributes 0 and the next month is still
    measured from the raw cumulative value, giving ``[5, 0, 7]``.
    """

    increments: list[int] = []
    previous = 0
    for value in cumulative:
        increments.append(max(value - previous, 0))
        previous = value
    return increments


def path_label(path: str) -> str:
    """
    Display label for a page path.

    ``/blog/my-great-post`` becomes ``My Great Post``; the root path is the
    home page.
    """

    if path == HOME_PATH:
        return HOME_LABEL
    segments = [segment for segment in path.split("/") if segment]
    if not segments:
        return path
    words = segments[-1].replace("-", " ")
    return _WORD_START.sub(lambda match: match.group(0).upper(), words)


# ---------------------------------------------------------------------------
# Aggregation
# ---------------------------------------------------------------------------


def _group_cohorts(rows: Iterable[CanonicalRow]) -> dict[tuple[str, str], list[CanonicalRow]]:
    cohorts: dict[tuple[str, str], list[CanonicalRow]] = defaultdict(list)
    for row in rows:
        if row.month_index is None:
            continue
        cohorts[(row.path, row.cohort_start)].append(row)
    for members in cohorts.values():
        members.sort(key=lambda row: row.month_index)
    return cohorts


def _cohort_visitors(members: Sequence[CanonicalRow]) -> int:
    for row in members:
        if row.month_index == 0:
            return row.visitors
    return members[0].visitors


def aggregate_velocity(rows: Iterable[CanonicalRow]) -> VelocityReport:
    """
    Build global monthly buckets and ranked path summaries from all rows.
    """

    global_visitors: dict[str, int] = defaultdict(int)
    global_purchases: dict[str, int] = defaultdict(int)
    path_visitors: dict[str, int] = defaultdict(int)
    path_purchases: dict[str, int] = defaultdict(int)
    path_trend: dict[str, dict[str, int]] = defaultdict(lambda: defaultdict(int))
    site_wide_paths: set[str] = set()
    unplaced = 0

    for (path, cohort_start), members in _group_cohorts(rows).items():
        site_wide = members[0].is_site_wide
        visitors = _cohort_visitors(members)
        path_visitors[path] += visitors
        if site_wide:
            site_wide_paths.add(path)
            global_visitors[cohort_start[:7]] += visitors

        increments = incremental_purchases([row.purchases for row in members])
        for row, incremental in zip(members, increments):
            path_purchases[path] += incremental
            month = calendar_month(cohort_start, row.month_index)
            if month is None:
                unplaced += 1
                continue
            path_trend[path][month] += incremental
            if site_wide:
                global_purchases[month] += incremental

    if unplaced:
        logger.warning(
            "Velocity rows without a calendar month: %d (cohort start is not an ISO date)",
            unplaced,
        )

    monthly = [
        CalendarMonthBucket(
            month=month,
            visitors=global_visitors.get(month, 0),
            purchases=global_purchases.get(month, 0),
            conversion=conversion_rate(
                global_purchases.get(month, 0), global_visitors.get(month, 0)
            ),
            velocity=purchase_velocity(global_purchases.get(month, 0), month),
        )
        for month in sorted(set(global_visitors) | set(global_purchases))
        if _is_calendar_month(month)
    ]

    paths = sorted(
        (
            PathSummary(
                path=path,
                label=path_label(path),
                visitors=path_visitors[path],
                purchases=path_purchases[path],
                conversion=conversion_rate(path_purchases[path], path_visitors[path]),
                trend=[
                    TrendPoint(month=month, purchases=purchases)
                    for month, purchases in sorted(path_trend[path].items())
                ],
            )
            for path in path_visitors
            if path not in site_wide_paths
        ),
        key=lambda summary: (-summary.visitors, summary.path),
    )

    logger.debug("Velocity aggregated months=%d paths=%d", len(monthly), len(paths))
    return VelocityReport(
        monthly=monthly,
        paths=paths,
        overview=build_overview(monthly, paths),
    )


def _is_calendar_month(month: str) -> bool:
    try:
        datetime.strptime(month, "%Y-%m")
    except ValueError:
        return False
    return True


def build_overview(
    monthly: Sequence[CalendarMonthBucket],
    paths: Sequence[PathSummary],
) -> VelocityOverview:
    """
    Headline figures: latest month, visitor trend, peak velocity, averages.
    """

    if not monthly:
        return VelocityOverview(
            max_path_visitors=max((summary.visitors for summary in paths), default=0),
        )

    latest = monthly[-1]
    previous = monthly[-2] if len(monthly) > 1 else None
    visitor_trend_pct = 0.0
    if previous is not None and previous.visitors > 0:
        visitor_trend_pct = round(
            (latest.visitors - previous.visitors) / previous.visitors * 100, 1
        )

    peak = max(monthly, key=lambda bucket: float(bucket.velocity))
    return VelocityOverview(
        total_visitors=sum(bucket.visitors for bucket in monthly),
        latest=latest,
        previous=previous,
        visitor_trend_pct=visitor_trend_pct,
        peak_velocity=float(peak.velocity),
        peak_month=peak.month,
        average_conversion=f"{fmean(float(bucket.conversion) for bucket in monthly):.2f}",
        max_path_visitors=max((summary.visitors for summary in paths), default=0),
    )
