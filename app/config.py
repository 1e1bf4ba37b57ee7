"""
app/config.py

Application-level configuration helpers.

Settings come from the process environment, backed by optional `.env` and
`.env.local` files at the project root.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
ENV_FILENAMES = (".env", ".env.local")


def _parse_env_line(raw_line: str) -> tuple[str, str] | None:
    line = raw_line.strip()
    if not line or line.startswith("#") or "=" not in line:
        return None
    if line.startswith("export "):
        line = line[len("export "):]
    key, value = line.split("=", 1)
    key = key.strip()
    if not key:
        return None
    return key, value.strip().strip('"').strip("'")


def load_env_files(root: Path = PROJECT_ROOT) -> list[Path]:
    """
    Load KEY=VALUE pairs from `.env` files under *root* into ``os.environ``.

    Variables already set in the process win over file values. Returns the
    files that were read.
    """

    loaded: list[Path] = []
    for filename in ENV_FILENAMES:
        env_path = root / filename
        if not env_path.is_file():
            continue
        for raw_line in env_path.read_text(encoding="utf-8").splitlines():
            parsed = _parse_env_line(raw_line)
            if parsed is not None:
                os.environ.setdefault(*parsed)
        loaded.append(env_path)
    return loaded


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    """
    Ensure project `.env` files are loaded once before reading app settings.
    """

    load_env_files()


def _raw_env(name: str) -> str | None:
    _load_env_once()
    value = os.getenv(name)
    if value is None or not value.strip():
        return None
    return value.strip()


def _get_bool_env(name: str, default: bool) -> bool:
    raw_value = _raw_env(name)
    if raw_value is None:
        return default
    return raw_value.lower() in {"1", "true", "yes", "on"}


def _get_int_env(name: str, default: int, *, minimum: int = 0) -> int:
    """
    Read an integer setting, clamped to *minimum*; unparsable values fall
    back to *default*.
    """

    raw_value = _raw_env(name)
    if raw_value is None:
        return default
    try:
        return max(minimum, int(raw_value))
    except ValueError:
        return default


@dataclass(frozen=True)
class ExportIngestionSettings:
    """
    Runtime settings for cohort export ingestion.

    The ceilings bound worst-case parse latency; they are checked before
    any line of the document is parsed.
    """

    max_upload_bytes: int = 20 * 1024 * 1024
    max_lines: int = 500_000
    max_skipped_details: int = 200
    log_skipped_lines: bool = False


@lru_cache(maxsize=1)
def get_export_ingestion_settings() -> ExportIngestionSettings:
    """
    Return cached export ingestion settings from environment variables.
    """

    return ExportIngestionSettings(
        max_upload_bytes=_get_int_env("EXPORT_MAX_UPLOAD_BYTES", 20 * 1024 * 1024, minimum=1),
        max_lines=_get_int_env("EXPORT_MAX_LINES", 500_000, minimum=1),
        max_skipped_details=_get_int_env("EXPORT_MAX_SKIPPED_DETAILS", 200),
        log_skipped_lines=_get_bool_env("EXPORT_LOG_SKIPPED_LINES", False),
    )


def get_log_level() -> str:
    """
    Return the configured root log level name.
    """

    return (_raw_env("LOG_LEVEL") or "INFO").upper()
