from __future__ import annotations

import os

import pytest

from app.config import get_export_ingestion_settings, get_log_level, load_env_files


@pytest.fixture(autouse=True)
def _fresh_settings():
    get_export_ingestion_settings.cache_clear()
    yield
    get_export_ingestion_settings.cache_clear()


def test_defaults(monkeypatch) -> None:
    for name in (
        "EXPORT_MAX_UPLOAD_BYTES",
        "EXPORT_MAX_LINES",
        "EXPORT_MAX_SKIPPED_DETAILS",
        "EXPORT_LOG_SKIPPED_LINES",
    ):
        monkeypatch.delenv(name, raising=False)

    settings = get_export_ingestion_settings()
    assert settings.max_upload_bytes == 20 * 1024 * 1024
    assert settings.max_lines == 500_000
    assert settings.max_skipped_details == 200
    assert settings.log_skipped_lines is False


def test_environment_overrides(monkeypatch) -> None:
    monkeypatch.setenv("EXPORT_MAX_UPLOAD_BYTES", "2048")
    monkeypatch.setenv("EXPORT_MAX_LINES", "0")
    monkeypatch.setenv("EXPORT_MAX_SKIPPED_DETAILS", "not-a-number")
    monkeypatch.setenv("EXPORT_LOG_SKIPPED_LINES", "yes")

    settings = get_export_ingestion_settings()
    assert settings.max_upload_bytes == 2048
    assert settings.max_lines == 1
    assert settings.max_skipped_details == 200
    assert settings.log_skipped_lines is True


def test_log_level(monkeypatch) -> None:
    monkeypatch.setenv("LOG_LEVEL", " debug ")
    assert get_log_level() == "DEBUG"
    monkeypatch.setenv("LOG_LEVEL", "")
    assert get_log_level() == "INFO"


def test_env_files_fill_unset_variables(monkeypatch, tmp_path) -> None:
    monkeypatch.delenv("COHORT_TEST_ONLY_FILE", raising=False)
    monkeypatch.setenv("COHORT_TEST_ALREADY_SET", "process")
    (tmp_path / ".env").write_text(
        "# comment\n"
        "export COHORT_TEST_ONLY_FILE='from-file'\n"
        "COHORT_TEST_ALREADY_SET=file\n"
        "not a pair\n",
        encoding="utf-8",
    )

    loaded = load_env_files(tmp_path)

    assert loaded == [tmp_path / ".env"]
    assert os.environ["COHORT_TEST_ONLY_FILE"] == "from-file"
    assert os.environ["COHORT_TEST_ALREADY_SET"] == "process"
    monkeypatch.delenv("COHORT_TEST_ONLY_FILE")


def test_missing_env_files_are_ignored(tmp_path) -> None:
    assert load_env_files(tmp_path) == []
