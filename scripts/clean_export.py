"""
Clean a raw cohort export from the CLI.
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from app.services.export_ingestion_service import ExportParseError, get_export_ingestion_service


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Clean and sort a raw cohort retention export.")
    parser.add_argument("input", type=Path, help="Raw export CSV file.")
    parser.add_argument(
        "--output",
        dest="output",
        type=Path,
        default=None,
        help="Where to write the canonical CSV (default: <input>_cleaned.csv).",
    )
    args = parser.parse_args(argv)

    output = args.output or args.input.with_name(f"{args.input.stem}_cleaned.csv")
    service = get_export_ingestion_service()
    try:
        outcome = service.parse_export_bytes(args.input.read_bytes())
    except ExportParseError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1

    output.write_text(outcome.canonical_csv, encoding="utf-8")

    payload = {
        "output": str(output),
        "total": outcome.stats.total,
        "valid": outcome.stats.valid,
        "skipped": outcome.stats.skipped,
        "first_date": outcome.stats.first_date,
        "last_date": outcome.stats.last_date,
        "skipped_by_reason": outcome.diagnostics.skipped_by_reason,
        "defaulted_values": outcome.diagnostics.defaulted_values,
    }
    print(json.dumps(payload, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
