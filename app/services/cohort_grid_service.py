"""
app/services/cohort_grid_service.py

Per-path cohort retention grid.

Groups the canonical rows of one page path by cohort start and derives, for
each month a cohort has data, the month-over-month purchase delta and growth
percentage. Pure functions; no state is kept between calls.
"""

from __future__ import annotations

import logging
from collections import Counter
from datetime import datetime
from typing import Iterable, Sequence

from app.domain.cohort_analysis import CohortPoint, CohortSeries
from app.domain.cohort_export import RESERVED_TOTAL_PATH, CanonicalRow

logger = logging.getLogger(__name__)

DEFAULT_PATH = "/"
SITE_WIDE_DISPLAY_NAME = "All Traffic (Total)"


def cohort_label(cohort_start: str, *, with_day: bool = False) -> str:
    """
    Short display label for a cohort, e.g. ``Jan '24`` or ``15 Jan '24``.

    Falls back to the raw cohort start when it is not an ISO date.
    """

    try:
        parsed = datetime.strptime(cohort_start, "%Y-%m-%d")
    except ValueError:
        return cohort_start
    return parsed.strftime("%d %b '%y" if with_day else "%b '%y")


def cohort_labels(cohort_starts: Iterable[str]) -> dict[str, str]:
    """
    Map each cohort start to a label that is unique among *cohort_starts*.

    Cohorts sharing a calendar month get the day prefixed so that chart
    points keyed by label never overwrite each other.
    """

    labels = {start: cohort_label(start) for start in cohort_starts}
    counts = Counter(labels.values())
    return {
        start: cohort_label(start, with_day=True) if counts[label] > 1 else label
        for start, label in labels.items()
    }


def list_paths(rows: Iterable[CanonicalRow]) -> list[str]:
    return sorted({row.path for row in rows})


def default_path(paths: Sequence[str]) -> str:
    """
    Path to show first: the site-wide total when present.
    """

    if RESERVED_TOTAL_PATH in paths:
        return RESERVED_TOTAL_PATH
    return paths[0] if paths else DEFAULT_PATH


def path_display_name(path: str) -> str:
    return SITE_WIDE_DISPLAY_NAME if path == RESERVED_TOTAL_PATH else path


def _parse_percentage(value: str) -> float:
    try:
        return float(value.rstrip("%"))
    except ValueError:
        return 0.0


def _purchase_rate(cumulative: int, visitors: int) -> float | None:
    if visitors <= 0:
        return None
    return round(cumulative / visitors * 100, 2)


def build_cohort_grid(rows: Iterable[CanonicalRow], path: str) -> list[CohortSeries]:
    """
    Build the ordered cohort series for one path.

    Duplicate (cohort start, month index) rows overwrite each other; the last
    one seen wins. Rows without a parsed month index are not placed.
    """

    visitors_by_cohort: dict[str, int] = {}
    cumulative_by_cohort: dict[str, dict[int, tuple[int, float]]] = {}

    for row in rows:
        if row.path != path or row.month_index is None:
            continue
        if row.cohort_start not in visitors_by_cohort:
            visitors_by_cohort[row.cohort_start] = row.visitors
            cumulative_by_cohort[row.cohort_start] = {}
        cumulative_by_cohort[row.cohort_start][row.month_index] = (
            row.purchases,
            _parse_percentage(row.percentage),
        )

    labels = cohort_labels(cumulative_by_cohort)
    grid: list[CohortSeries] = []
    for cohort_start in sorted(cumulative_by_cohort):
        visitors = visitors_by_cohort[cohort_start]
        by_month = cumulative_by_cohort[cohort_start]

        points: dict[int, CohortPoint] = {}
        previous: int | None = None
        for month_index in sorted(by_month):
            cumulative, percentage = by_month[month_index]
            diff = 0
            growth_pct = 0.0
            if previous is not None:
                diff = cumulative - previous
                growth_pct = round(diff / previous * 100, 2) if previous > 0 else 0.0
            points[month_index] = CohortPoint(
                month_index=month_index,
                cumulative=cumulative,
                percentage=percentage,
                diff=diff,
                growth_pct=growth_pct,
                purchase_rate=_purchase_rate(cumulative, visitors),
            )
            previous = cumulative

        grid.append(
            CohortSeries(
                cohort_start=cohort_start,
                label=labels[cohort_start],
                visitors=visitors,
                points=points,
            )
        )

    logger.debug("Cohort grid built path=%r cohorts=%d", path, len(grid))
    return grid
