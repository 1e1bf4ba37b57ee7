from __future__ import annotations

import pytest

from app.domain.cohort_export import RESERVED_TOTAL_PATH
from app.services.cohort_grid_service import (
    build_cohort_grid,
    cohort_label,
    cohort_labels,
    default_path,
    list_paths,
    path_display_name,
)


class TestCohortGrid:
    def test_filters_to_selected_path(self, ingestion_service, raw_export) -> None:
        rows = ingestion_service.parse_export(raw_export).rows
        grid = build_cohort_grid(rows, "/")
        assert [series.cohort_start for series in grid] == ["2024-01-01"]
        assert grid[0].visitors == 400

    def test_diff_and_growth_between_months(self, ingestion_service, raw_export) -> None:
        rows = ingestion_service.parse_export(raw_export).rows
        points = build_cohort_grid(rows, "/")[0].points
        assert points[0].cumulative == 20
        assert points[0].diff == 0
        assert points[0].growth_pct == 0
        assert points[1].cumulative == 30
        assert points[1].diff == 10
        assert points[1].growth_pct == pytest.approx(50.0)

    def test_percentage_and_purchase_rate(self, ingestion_service, raw_export) -> None:
        rows = ingestion_service.parse_export(raw_export).rows
        points = build_cohort_grid(rows, "/")[0].points
        assert points[1].percentage == pytest.approx(7.5)
        assert points[0].purchase_rate == pytest.approx(5.0)
        assert points[1].purchase_rate == pytest.approx(7.5)

    def test_regression_gives_negative_diff(self, row_factory) -> None:
        rows = [
            row_factory(0, "2024-01-01", "/blog", 200, 4),
            row_factory(1, "2024-01-01", "/blog", 200, 3),
        ]
        point = build_cohort_grid(rows, "/blog")[0].points[1]
        assert point.diff == -1
        assert point.growth_pct == pytest.approx(-25.0)

    def test_diff_is_consecutive_difference_across_gaps(self, row_factory) -> None:
        rows = [
            row_factory(0, "2024-01-01", "/", 100, 5),
            row_factory(3, "2024-01-01", "/", 100, 9),
            row_factory(1, "2024-01-01", "/", 100, 6),
        ]
        series = build_cohort_grid(rows, "/")[0]
        assert series.month_indices == [0, 1, 3]
        cumulative = [series.points[i].cumulative for i in series.month_indices]
        diffs = [series.points[i].diff for i in series.month_indices]
        assert diffs[0] == 0
        assert diffs[1:] == [b - a for a, b in zip(cumulative, cumulative[1:])]

    def test_zero_previous_cumulative_gives_zero_growth(self, row_factory) -> None:
        rows = [
            row_factory(0, "2024-01-01", "/", 100, 0),
            row_factory(1, "2024-01-01", "/", 100, 4),
        ]
        point = build_cohort_grid(rows, "/")[0].points[1]
        assert point.diff == 4
        assert point.growth_pct == 0

    def test_growth_is_rounded_to_two_decimals(self, row_factory) -> None:
        rows = [
            row_factory(0, "2024-01-01", "/", 100, 3),
            row_factory(1, "2024-01-01", "/", 100, 4),
        ]
        assert build_cohort_grid(rows, "/")[0].points[1].growth_pct == 33.33

    def test_cohorts_sorted_by_start(self, row_factory) -> None:
        rows = [
            row_factory(0, "2024-03-01", "/", 10, 1),
            row_factory(0, "2023-12-01", "/", 10, 1),
            row_factory(0, "2024-01-01", "/", 10, 1),
        ]
        grid = build_cohort_grid(rows, "/")
        assert [series.cohort_start for series in grid] == ["2023-12-01", "2024-01-01", "2024-03-01"]

    def test_duplicate_month_last_row_wins(self, row_factory) -> None:
        rows = [
            row_factory(0, "2024-01-01", "/", 10, 1),
            row_factory(0, "2024-01-01", "/", 10, 7),
        ]
        assert build_cohort_grid(rows, "/")[0].points[0].cumulative == 7

    def test_visitors_taken_from_first_row(self, row_factory) -> None:
        rows = [
            row_factory(0, "2024-01-01", "/", 10, 1),
            row_factory(1, "2024-01-01", "/", 12, 2),
        ]
        assert build_cohort_grid(rows, "/")[0].visitors == 10

    def test_unparsed_month_index_is_not_placed(self, row_factory) -> None:
        rows = [
            row_factory(None, "2024-01-01", "/", 10, 1),
            row_factory(0, "2024-01-01", "/", 10, 2),
        ]
        series = build_cohort_grid(rows, "/")[0]
        assert series.month_indices == [0]

    def test_unknown_path_yields_empty_grid(self, ingestion_service, raw_export) -> None:
        rows = ingestion_service.parse_export(raw_export).rows
        assert build_cohort_grid(rows, "/missing") == []


class TestLabels:
    @pytest.mark.parametrize(
        "cohort_start, expected",
        [
            ("2024-01-01", "Jan '24"),
            ("2023-12-15", "Dec '23"),
            ("2024011", "2024011"),
            ("not-a-date", "not-a-date"),
        ],
    )
    def test_cohort_label(self, cohort_start: str, expected: str) -> None:
        assert cohort_label(cohort_start) == expected

    def test_list_paths_is_sorted_and_distinct(self, ingestion_service, raw_export) -> None:
        rows = ingestion_service.parse_export(raw_export).rows
        assert list_paths(rows) == ["/", "/blog/my-great-post", RESERVED_TOTAL_PATH]

    def test_default_path_prefers_site_wide(self) -> None:
        assert default_path(["/", RESERVED_TOTAL_PATH]) == RESERVED_TOTAL_PATH
        assert default_path(["/about", "/pricing"]) == "/about"
        assert default_path([]) == "/"

    def test_path_display_name(self) -> None:
        assert path_display_name(RESERVED_TOTAL_PATH) == "All Traffic (Total)"
        assert path_display_name("/pricing") == "/pricing"

    def test_same_month_cohorts_get_day_in_label(self, row_factory) -> None:
        rows = [
            row_factory(0, "2024-01-01", "/", 10, 1),
            row_factory(0, "2024-01-15", "/", 20, 2),
            row_factory(0, "2024-02-01", "/", 30, 3),
        ]
        grid = build_cohort_grid(rows, "/")
        assert [series.label for series in grid] == ["01 Jan '24", "15 Jan '24", "Feb '24"]

    def test_cohort_labels_are_unique(self) -> None:
        labels = cohort_labels(["2024-01-01", "2024-01-15", "2024011"])
        assert labels == {
            "2024-01-01": "01 Jan '24",
            "2024-01-15": "15 Jan '24",
            "2024011": "2024011",
        }
