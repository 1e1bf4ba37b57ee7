"""
app/domain/cohort_export.py

Domain models produced by cohort export ingestion.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

RESERVED_TOTAL_PATH = "RESERVED_TOTAL"
"""Path token marking site-wide (all paths) rows in the export."""

CANONICAL_HEADER = (
    "Monthly cohort,Cohort Start,Cohort End,Page path and screen class,"
    "Visitors,Purchases,Percentage"
)
HEADER_PREFIX = "Monthly cohort"

UNPARSED_MONTH_INDEX = "NaN"
"""Text written to the canonical CSV for a month index that did not parse."""


class RowKind(str, Enum):
    """
    Classification of a canonical row, fixed at ingestion time.
    """

    SITE_WIDE = "site_wide"
    PER_PATH = "per_path"

    @classmethod
    def for_path(cls, path: str) -> "RowKind":
        return cls.SITE_WIDE if path == RESERVED_TOTAL_PATH else cls.PER_PATH


class SkipReason(str, Enum):
    """
    Why an export line did not become a canonical row.
    """

    BLANK = "blank"
    COMMENT = "comment"
    HEADER = "header"
    TOO_FEW_FIELDS = "too_few_fields"
    MISSING_DATE_RANGE = "missing_date_range"


@dataclass(frozen=True)
class CanonicalRow:
    """
    One cleaned export row.

    ``purchases`` is cumulative through ``month_index``. ``month_index`` is
    ``None`` when the source value was not a non-negative integer; such rows
    are kept in the canonical artifact but cannot be placed on a timeline.
    """

    month_index: int | None
    cohort_start: str
    cohort_end: str
    path: str
    visitors: int
    purchases: int
    percentage: str
    kind: RowKind

    @property
    def is_site_wide(self) -> bool:
        return self.kind is RowKind.SITE_WIDE

    @property
    def has_month_index(self) -> bool:
        return self.month_index is not None

    def sort_key(self) -> tuple[str, str, bool, int]:
        return (
            self.path,
            self.cohort_start,
            self.month_index is None,
            self.month_index if self.month_index is not None else 0,
        )

    def to_csv_line(self) -> str:
        month_index = (
            str(self.month_index) if self.month_index is not None else UNPARSED_MONTH_INDEX
        )
        return ",".join(
            (
                month_index,
                self.cohort_start,
                self.cohort_end,
                self.path,
                str(self.visitors),
                str(self.purchases),
                self.percentage,
            )
        )


@dataclass(frozen=True)
class SkippedLine:
    """
    One export line that was skipped during ingestion.
    """

    line_number: int
    reason: SkipReason
    value: str | None = None


@dataclass(frozen=True)
class IngestStats:
    """
    Line counters for one ingestion run.

    ``valid + skipped == total`` always holds.
    """

    total: int
    valid: int
    skipped: int
    first_date: str | None = None
    last_date: str | None = None


@dataclass(frozen=True)
class IngestDiagnostics:
    """
    Data-quality record for one ingestion run.
    """

    skipped_by_reason: dict[str, int] = field(default_factory=dict)
    skipped_lines: list[SkippedLine] = field(default_factory=list)
    defaulted_values: int = 0
    unparsed_month_indices: int = 0

    @property
    def has_warnings(self) -> bool:
        return bool(self.defaulted_values or self.unparsed_month_indices) or any(
            count
            for reason, count in self.skipped_by_reason.items()
            if reason not in {SkipReason.BLANK.value, SkipReason.HEADER.value}
        )


@dataclass(frozen=True)
class IngestOutcome:
    """
    Usable ingestion result plus the diagnostics describing what was dropped.
    """

    rows: tuple[CanonicalRow, ...]
    stats: IngestStats
    canonical_csv: str
    diagnostics: IngestDiagnostics = field(default_factory=IngestDiagnostics)
