"""
app/validators/export_row_validator.py

Line-level validation and type parsing for cohort export ingestion.
"""

from __future__ import annotations

import math
import re

from app.domain.cohort_export import (
    HEADER_PREFIX,
    CanonicalRow,
    RowKind,
    SkippedLine,
    SkipReason,
)

MIN_FIELD_COUNT = 6

_ISO_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")

# Column positions of the fixed 7-column export header.
_COL_MONTH_INDEX = 0
_COL_DATE_RANGE = 1
_COL_COHORT_END = 2
_COL_PATH = 3
_COL_VISITORS = 4
_COL_PURCHASES = 5
_COL_RATE = 6


class ExportRowValidator:
    """
    Validates and parses one export line into a canonical row.

    Malformed lines never raise: they come back as a ``SkippedLine`` and the
    caller counts them. Field-level problems inside an accepted line are
    defaulted and reported through the ``defaulted`` accumulator.
    """

    def parse_line(
        self,
        *,
        line: str,
        line_number: int,
        defaulted: list[str],
    ) -> tuple[CanonicalRow | None, SkippedLine | None]:
        """
        Parse one already-stripped export line.
        """

        if not line:
            return None, SkippedLine(line_number=line_number, reason=SkipReason.BLANK)
        if line.startswith("#"):
            return None, SkippedLine(line_number=line_number, reason=SkipReason.COMMENT, value=line)
        if line.startswith(HEADER_PREFIX):
            return None, SkippedLine(line_number=line_number, reason=SkipReason.HEADER)

        cols = line.split(",")
        if len(cols) < MIN_FIELD_COUNT:
            return None, SkippedLine(
                line_number=line_number,
                reason=SkipReason.TOO_FEW_FIELDS,
                value=line,
            )

        date_field = cols[_COL_DATE_RANGE].strip()
        rate = cols[_COL_RATE] if len(cols) > _COL_RATE else None
        canonical = self._is_canonical_line(date_field=date_field, rate=rate)
        if not canonical and "-" not in date_field:
            return None, SkippedLine(
                line_number=line_number,
                reason=SkipReason.MISSING_DATE_RANGE,
                value=line,
            )

        if canonical:
            cohort_start, cohort_end = date_field, cols[_COL_COHORT_END].strip()
        else:
            cohort_start, cohort_end = self._split_date_range(date_field)
        path = cols[_COL_PATH].strip()

        return (
            CanonicalRow(
                month_index=self._parse_month_index(cols[_COL_MONTH_INDEX]),
                cohort_start=cohort_start,
                cohort_end=cohort_end,
                path=path,
                visitors=self._parse_count(cols[_COL_VISITORS], "visitors", defaulted),
                purchases=self._parse_count(cols[_COL_PURCHASES], "purchases", defaulted),
                percentage=self._format_percentage(rate),
                kind=RowKind.for_path(path),
            ),
            None,
        )

    @staticmethod
    def _is_canonical_line(*, date_field: str, rate: str | None) -> bool:
        """
        True when the line is already in canonical CSV shape.

        Canonical lines carry the start date alone in field 1 and the end
        date in field 2. The start is either ISO or a pass-through value
        without ``-``, and the rate is always written with a ``%`` suffix.
        """

        if _ISO_DATE_PATTERN.match(date_field):
            return True
        return "-" not in date_field and rate is not None and rate.strip().endswith("%")

    def _split_date_range(self, date_field: str) -> tuple[str, str]:
        parts = date_field.split("-")
        return self.format_date(parts[0]), self.format_date(parts[1])

    @staticmethod
    def format_date(value: str) -> str:
        """
        Reformat ``YYYYMMDD`` to ``YYYY-MM-DD``; other lengths pass through.
        """

        if len(value) != 8:
            return value
        return f"{value[0:4]}-{value[4:6]}-{value[6:8]}"

    @staticmethod
    def _parse_month_index(value: str) -> int | None:
        try:
            parsed = int(value.strip(), 10)
        except ValueError:
            return None
        return parsed if parsed >= 0 else None

    @staticmethod
    def _parse_count(value: str, column: str, defaulted: list[str]) -> int:
        try:
            parsed = int(value.strip(), 10)
        except ValueError:
            defaulted.append(column)
            return 0
        if parsed < 0:
            defaulted.append(column)
            return 0
        return parsed

    @staticmethod
    def _format_percentage(value: str | None) -> str:
        """
        Render the rate column as ``xx.xx%``.

        Raw exports carry a fractional ratio; canonical lines carry an
        already formatted percentage, which is kept as written.
        """

        if value is None or not value.strip():
            return "0%"

        raw = value.strip()
        is_percentage = raw.endswith("%")
        try:
            number = float(raw[:-1] if is_percentage else raw)
        except ValueError:
            return "0%"
        if not math.isfinite(number):
            return "0%"
        if is_percentage:
            return raw
        return f"{number * 100:.2f}%"
