"""
app.py — Streamlit Entry Point

Sustainability Report Viewer: Upload product CSV → Browse the ten analyses

All computation is delegated to the report workflow. The UI only handles
presentation and user interaction.
"""

import io
import zipfile

import streamlit as st

from config.settings import ReportSettings, configure_logging
from pipeline.charts import emissions_bar_chart, moving_average_chart, tier_distribution_chart
from pipeline.graph import stream_report_workflow
from pipeline.report import ANALYSES, DEFAULT_ANALYSES


configure_logging()


# =============================================================================
# PAGE CONFIG
# =============================================================================

st.set_page_config(
    page_title="Sustainability Report Viewer",
    page_icon="🌱",
    layout="wide",
)


# =============================================================================
# SESSION STATE INITIALIZATION
# =============================================================================

def init_session_state():
    """Initialize session state with default values."""
    defaults = {
        "file_bytes": None,
        "filename": None,
        "report_result": None,
        "report_complete": False,
    }
    for key, value in defaults.items():
        if key not in st.session_state:
            st.session_state[key] = value


init_session_state()


NODE_NAMES = {
    "ingest_data": "Loading data",
    "validate_schema": "Checking columns",
    "analyze": "Running analyses",
    "build_payload": "Preparing tables",
    "handle_error": "Handling error",
}


# =============================================================================
# SIDEBAR
# =============================================================================

def render_sidebar() -> tuple[ReportSettings, list[str]]:
    """Render report settings; returns (settings, analysis names)."""
    defaults, env_error = ReportSettings.safe_from_env()
    if env_error:
        st.error(f"**INVALID_PARAMETER**: {env_error}")
        st.caption("Fix the SUSTAIN_* environment variables; using built-in defaults.")

    with st.sidebar:
        st.header("Report settings")
        preceding = st.number_input(
            "Moving average: preceding rows", min_value=0, value=defaults.moving_avg_preceding,
        )
        waste_threshold = st.number_input(
            "High-waste threshold (kg)", min_value=0.0, value=defaults.waste_threshold_kg,
        )
        page_offset = st.number_input("Page offset", min_value=0, value=defaults.page_offset)
        page_limit = st.number_input("Page limit", min_value=0, value=defaults.page_limit)
        benchmark_factor = st.number_input(
            "Benchmark factor", min_value=0.0, value=defaults.benchmark_factor, step=0.05,
        )
        include_outliers = st.checkbox("Include emission outlier scan", value=False)

    settings = ReportSettings(
        moving_avg_preceding=int(preceding),
        tile_count=defaults.tile_count,
        tier_labels=defaults.tier_labels,
        waste_threshold_kg=float(waste_threshold),
        page_offset=int(page_offset),
        page_limit=int(page_limit),
        benchmark_factor=float(benchmark_factor),
        high_score_threshold=defaults.high_score_threshold,
        outlier_zscore=defaults.outlier_zscore,
    )
    analyses = list(DEFAULT_ANALYSES) + (["emission_outliers"] if include_outliers else [])
    return settings, analyses


# =============================================================================
# UPLOAD
# =============================================================================

def render_upload_section():
    """Render file upload."""
    uploaded_file = st.file_uploader(
        "📂 Drop your product CSV here or click to browse",
        type=["csv"],
        help="Supported: CSV files up to 100MB",
    )

    if uploaded_file is not None and st.session_state.filename != uploaded_file.name:
        st.session_state.file_bytes = uploaded_file.read()
        st.session_state.filename = uploaded_file.name
        st.session_state.report_result = None
        st.session_state.report_complete = False

    return uploaded_file


def run_report_with_progress(settings: ReportSettings, analyses: list[str]):
    """Execute the workflow with per-node progress updates."""
    progress_bar = st.progress(0, text="Starting report...")

    final_state = None
    for node_name, state in stream_report_workflow(
        raw_file=st.session_state.file_bytes,
        filename=st.session_state.filename,
        settings=settings,
        analyses=analyses,
    ):
        message = state.get("progress_message") or NODE_NAMES.get(node_name, node_name)
        progress_bar.progress(state.get("progress", 0.0), text=message)
        final_state = state

    st.session_state.report_result = final_state
    st.session_state.report_complete = True


# =============================================================================
# RESULTS DISPLAY
# =============================================================================

def render_charts(results: dict):
    """Render the summary charts above the tables."""
    col1, col2 = st.columns(2)

    if "emissions_by_product_type" in results:
        with col1:
            st.markdown("**Average CO₂ by product type**")
            st.plotly_chart(emissions_bar_chart(results["emissions_by_product_type"]), use_container_width=True)

    if "renewable_energy_tiers" in results:
        with col2:
            st.markdown("**Products per renewable-energy tier**")
            st.plotly_chart(tier_distribution_chart(results["renewable_energy_tiers"]), use_container_width=True)

    if "moving_avg_emissions" in results:
        st.markdown("**Moving average CO₂ per product type**")
        st.plotly_chart(moving_average_chart(results["moving_avg_emissions"]), use_container_width=True)


def render_tables(results: dict):
    """One tab per analysis."""
    names = list(results)
    tabs = st.tabs([name.replace("_", " ").title() for name in names])
    for tab, name in zip(tabs, names):
        with tab:
            st.dataframe(results[name], use_container_width=True, hide_index=True)


def _zip_tables(results: dict) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as archive:
        for name, table in results.items():
            archive.writestr(f"{name}.csv", table.to_csv(index=False))
    return buffer.getvalue()


def render_export_actions(results: dict):
    """Render export buttons."""
    st.divider()
    col1, col2 = st.columns(2)

    with col1:
        st.download_button(
            "📦 Download all tables (zip)",
            data=_zip_tables(results),
            file_name="sustainability_report.zip",
            mime="application/zip",
            use_container_width=True,
        )

    with col2:
        if st.button("🔄 Re-run", use_container_width=True):
            st.session_state.report_result = None
            st.session_state.report_complete = False
            st.rerun()


def render_error(ui_payload: dict):
    """Render error state with recovery hint."""
    st.divider()
    st.error(f"**{ui_payload.get('error_type', 'ERROR')}**: {ui_payload.get('error_message')}")
    st.caption(ui_payload.get("recovery_hint", ""))


def render_results():
    """Render report results."""
    result = st.session_state.report_result
    if not result:
        return

    ui_payload = result.get("ui_payload") or {}
    if ui_payload.get("is_error"):
        render_error(ui_payload)
        return

    results = result.get("results") or {}
    st.divider()
    st.caption(
        f"{ui_payload.get('row_count', 0):,} products • "
        f"{len(ui_payload.get('product_types', []))} product types • "
        f"{len(results)} of {len(ANALYSES)} analyses"
    )

    render_charts(results)
    render_tables(results)
    render_export_actions(results)


# =============================================================================
# MAIN APP FLOW
# =============================================================================

def main():
    """Main application flow."""
    st.title("🌱 Sustainability Report Viewer")

    settings, analyses = render_sidebar()
    render_upload_section()

    if st.session_state.file_bytes:
        st.caption(f"**{st.session_state.filename}** • {len(st.session_state.file_bytes) / 1024:.1f} KB")
        if st.button("▶ Run report", type="primary"):
            run_report_with_progress(settings, analyses)
            st.rerun()

    if st.session_state.report_complete:
        render_results()


if __name__ == "__main__":
    main()
