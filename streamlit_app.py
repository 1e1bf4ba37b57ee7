"""Minimal Streamlit dashboard over the cohort analysis services."""

from __future__ import annotations

import hashlib

import streamlit as st

from app.services.analysis_store import AnalysisSnapshot, build_snapshot
from app.services.cohort_grid_service import path_display_name
from app.services.dataframe_service import (
    chart_points_frame,
    cohort_grid_frame,
    monthly_frame,
    path_trend_frame,
    paths_frame,
)
from app.services.export_ingestion_service import ExportParseError, get_export_ingestion_service

st.set_page_config(page_title="Cohort Retention", page_icon="CR", layout="wide")


@st.cache_data(show_spinner=False)
def _analyse(data: bytes, filename: str) -> AnalysisSnapshot:
    """Run the full pipeline once per distinct upload."""
    outcome = get_export_ingestion_service().parse_export_bytes(data)
    return build_snapshot(outcome, source_name=filename)


if "snapshot" not in st.session_state:
    st.session_state.snapshot = None
if "upload_hash" not in st.session_state:
    st.session_state.upload_hash = None
if "ingest_error" not in st.session_state:
    st.session_state.ingest_error = None


with st.sidebar:
    st.header("Data Ingestion")
    uploaded_file = st.file_uploader("Upload raw cohort export", type=["csv"])
    if uploaded_file is not None:
        uploaded_bytes = uploaded_file.getvalue()
        upload_hash = hashlib.sha256(uploaded_bytes).hexdigest()
        if upload_hash != st.session_state.upload_hash:
            try:
                # Swap in the new snapshot only once it is complete.
                st.session_state.snapshot = _analyse(uploaded_bytes, uploaded_file.name)
                st.session_state.ingest_error = None
            except ExportParseError as exc:
                st.session_state.ingest_error = f"Failed to parse file: {exc}"
            st.session_state.upload_hash = upload_hash

    if st.button("Reset", use_container_width=True):
        st.session_state.snapshot = None
        st.session_state.upload_hash = None
        st.session_state.ingest_error = None
        st.rerun()


st.title("Cohort Retention")

if st.session_state.ingest_error:
    st.error(st.session_state.ingest_error)

snapshot: AnalysisSnapshot | None = st.session_state.snapshot
if snapshot is None:
    st.info("Upload a cohort export to begin.")
    st.stop()

stats = snapshot.outcome.stats
col_valid, col_skipped, col_range = st.columns(3)
col_valid.metric("Valid rows", stats.valid)
col_skipped.metric("Skipped", stats.skipped)
col_range.metric("Range", f"{stats.first_date or '--'} to {stats.last_date or '--'}")
st.download_button(
    "Download clean CSV",
    data=snapshot.outcome.canonical_csv,
    file_name="cohort_data_cleaned.csv",
    mime="text/csv",
)

cohort_tab, velocity_tab = st.tabs(["Cohort Analysis", "Purchase Velocity"])

with cohort_tab:
    selected_path = st.selectbox(
        "Page path",
        options=snapshot.paths,
        index=snapshot.paths.index(snapshot.default_path) if snapshot.default_path in snapshot.paths else 0,
        format_func=path_display_name,
    )
    grid_mode = st.radio("Grid", options=["cumulative", "incremental", "percentage"], horizontal=True)
    grid = snapshot.cohort_grid(selected_path)
    chart = snapshot.chart_series(selected_path)

    if not grid:
        st.info("No cohorts for this path.")
    else:
        st.line_chart(chart_points_frame(chart.cumulative))
        st.bar_chart(chart_points_frame(chart.incremental))
        st.dataframe(cohort_grid_frame(grid, grid_mode), use_container_width=True)

with velocity_tab:
    report = snapshot.velocity
    overview = report.overview
    col_visitors, col_velocity, col_conversion = st.columns(3)
    col_visitors.metric(
        "Total visitors",
        f"{overview.total_visitors:,}",
        delta=f"{overview.visitor_trend_pct}%" if overview.previous is not None else None,
    )
    col_velocity.metric(
        "Latest velocity",
        overview.latest.velocity if overview.latest else "--",
        help=f"Peak {overview.peak_velocity} in {overview.peak_month or '--'}",
    )
    col_conversion.metric("Avg conversion", f"{overview.average_conversion}%")

    if not report.monthly:
        st.info("No site-wide rows in this export; monthly velocity is empty.")
    else:
        monthly = monthly_frame(report)
        st.bar_chart(monthly[["purchases"]])
        st.dataframe(monthly, use_container_width=True)

    ranked = paths_frame(report)
    st.dataframe(ranked, use_container_width=True, hide_index=True)
    if not ranked.empty:
        trend_path = st.selectbox("Path trend", options=list(ranked["path"]))
        st.line_chart(path_trend_frame(report, trend_path))
