from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from app.api.dependencies import get_store
from app.domain.cohort_export import CANONICAL_HEADER, RESERVED_TOTAL_PATH
from app.main import create_app
from app.services.analysis_store import AnalysisStore
from app.services.export_ingestion_service import ExportIngestionService


@pytest.fixture()
def client(ingestion_service) -> TestClient:
    application = create_app()
    store = AnalysisStore(ingestion_service)
    application.dependency_overrides[get_store] = lambda: store
    return TestClient(application)


def _upload(client: TestClient, content: bytes, filename: str = "export.csv", content_type: str = "text/csv"):
    return client.post("/exports", files={"file": (filename, content, content_type)})


def test_health(client: TestClient) -> None:
    assert client.get("/health").json() == {"status": "ok"}


def test_views_before_upload_return_404(client: TestClient) -> None:
    for url in ("/cohorts", "/cohorts/paths", "/cohorts/chart", "/velocity", "/exports/canonical.csv"):
        assert client.get(url).status_code == 404


def test_upload_returns_stats_and_diagnostics(client: TestClient, raw_export: str) -> None:
    response = _upload(client, raw_export.encode("utf-8"))
    assert response.status_code == 200
    body = response.json()
    assert body["source_name"] == "export.csv"
    assert body["stats"]["total"] == 10
    assert body["stats"]["valid"] == 7
    assert body["stats"]["skipped"] == 3
    assert body["diagnostics"]["skipped_by_reason"]["too_few_fields"] == 1
    assert body["default_path"] == RESERVED_TOTAL_PATH


def test_non_csv_upload_is_rejected(client: TestClient) -> None:
    response = _upload(client, b"{}", filename="export.json", content_type="application/json")
    assert response.status_code == 400


def test_undecodable_upload_is_rejected(client: TestClient) -> None:
    response = _upload(client, b"\xff\xfe\xfa")
    assert response.status_code == 400


def test_canonical_download(client: TestClient, raw_export: str) -> None:
    _upload(client, raw_export.encode("utf-8"))
    response = client.get("/exports/canonical.csv")
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert "cohort_data_cleaned.csv" in response.headers["content-disposition"]
    assert response.text.split("\n")[0] == CANONICAL_HEADER


def test_paths_listing(client: TestClient, raw_export: str) -> None:
    _upload(client, raw_export.encode("utf-8"))
    body = client.get("/cohorts/paths").json()
    assert body["default_path"] == RESERVED_TOTAL_PATH
    assert {"path": RESERVED_TOTAL_PATH, "display_name": "All Traffic (Total)"} in body["paths"]


def test_cohort_grid_for_path(client: TestClient, raw_export: str) -> None:
    _upload(client, raw_export.encode("utf-8"))
    body = client.get("/cohorts", params={"path": "/"}).json()
    assert body["path"] == "/"
    (cohort,) = body["cohorts"]
    assert cohort["label"] == "Jan '24"
    assert [point["month_index"] for point in cohort["points"]] == [0, 1]
    assert cohort["points"][1]["diff"] == 10
    assert cohort["points"][1]["growth_pct"] == pytest.approx(50.0)


def test_cohort_grid_defaults_to_site_wide(client: TestClient, raw_export: str) -> None:
    _upload(client, raw_export.encode("utf-8"))
    body = client.get("/cohorts").json()
    assert body["path"] == RESERVED_TOTAL_PATH
    assert body["display_name"] == "All Traffic (Total)"
    assert len(body["cohorts"]) == 2


def test_chart_series(client: TestClient, raw_export: str) -> None:
    _upload(client, raw_export.encode("utf-8"))
    body = client.get("/cohorts/chart", params={"path": "/"}).json()
    assert body["max_month_index"] == 1
    assert body["cumulative"] == [{"index": 0, "Jan '24": 20}, {"index": 1, "Jan '24": 30}]
    assert body["incremental"][1]["Jan '24"] == 10


def test_velocity(client: TestClient, raw_export: str) -> None:
    _upload(client, raw_export.encode("utf-8"))
    body = client.get("/velocity").json()
    assert [bucket["month"] for bucket in body["monthly"]] == ["2024-01", "2024-02"]
    assert body["monthly"][0]["conversion"] == "5.00"
    assert [summary["label"] for summary in body["paths"]] == ["Home Page", "My Great Post"]
    assert body["overview"]["latest"]["month"] == "2024-02"


def test_delete_clears_analysis(client: TestClient, raw_export: str) -> None:
    _upload(client, raw_export.encode("utf-8"))
    assert client.delete("/exports").status_code == 204
    assert client.get("/velocity").status_code == 404


def test_oversized_upload_is_rejected_and_keeps_snapshot() -> None:
    application = create_app()
    store = AnalysisStore(
        ExportIngestionService(
            max_upload_bytes=64,
            max_lines=100,
            max_skipped_details=0,
            log_skipped_lines=False,
        )
    )
    application.dependency_overrides[get_store] = lambda: store
    client = TestClient(application)

    assert _upload(client, b"0,20240101-20240101,x,/,100,10,0.1").status_code == 200
    response = _upload(client, b"0,20240101-20240101,x,/,100,10,0.1\n" * 10)
    assert response.status_code == 413
    assert store.current().outcome.stats.valid == 1
