# nodes.py — Workflow node functions
# Steps: ingest → validate → analyze → payload (error → handle_error)
"""
nodes.py — LangGraph Report Nodes

Each node takes ReportState and returns a partial state update.

Node Responsibilities:
- ingest_data_node: Parse the uploaded CSV
- validate_schema_node: Turn the parsed table into a Dataset
- analyze_node: Run the report driver
- build_payload_node: JSON-safe tables for display/export
- handle_error_node: Build the error payload

Nodes convert AnalyticsError into error state so the graph can route to
handle_error; any other exception propagates to the caller.
"""

from __future__ import annotations

import logging

from analytics.data_loader import safe_load_csv
from analytics.errors import AnalyticsError, error_type_for
from analytics.records import Dataset
from analytics.validators import sanitize_dict_for_json, validate_file_extension
from pipeline.report import report_to_payload, run_report


logger = logging.getLogger(__name__)


RECOVERY_HINTS = {
    "DATA_MISSING": "Please upload a CSV file to analyze.",
    "SCHEMA_MISMATCH": "Check that the CSV has all eleven product columns with numeric metrics.",
    "EMPTY_DATASET": "The dataset has no rows for this analysis. Upload a file with product rows.",
    "INVALID_PARAMETER": "Review the report settings (tile count, offset, limit).",
}


# =============================================================================
# PROGRESS HELPERS
# =============================================================================

def _emit_progress(
    state: dict,
    node: str,
    progress: float,
    message: str,
    status: str = "running",
) -> None:
    """
    Emit a progress update via the callback if available.

    Args:
        state: Current workflow state
        node: Current node name
        progress: Progress value (0.0 - 1.0)
        message: Human-readable progress message
        status: "running" | "complete" | "failed"
    """
    callback = state.get("progress_callback")
    if callback and callable(callback):
        callback({
            "node": node,
            "status": status,
            "progress": progress,
            "message": message,
        })


def _create_error_state(node: str, error_msg: str, error_type: str) -> dict:
    """
    Create state update for error routing.
    """
    logger.warning("%s failed (%s): %s", node, error_type, error_msg)
    return {
        "error": error_msg,
        "error_type": error_type,
        "failed_node": node,
        "recovery_hint": RECOVERY_HINTS.get(error_type, "Please try again."),
        "current_node": node,
    }


# =============================================================================
# NODE: INGEST DATA
# =============================================================================

def ingest_data_node(state: dict) -> dict:
    """
    Parse the uploaded CSV file.

    Input state:
        - raw_file: bytes (required)
        - filename: str (required)

    Output state updates:
        - dataframe: pd.DataFrame
        - current_node, progress, progress_message
    """
    node_name = "ingest_data"
    _emit_progress(state, node_name, 0.05, "Loading your data...")

    raw_file = state.get("raw_file")
    filename = state.get("filename") or "unknown.csv"

    if raw_file is None:
        return _create_error_state(node_name, "No file provided", "DATA_MISSING")

    is_valid_ext, ext_error = validate_file_extension(filename)
    if not is_valid_ext:
        return _create_error_state(node_name, ext_error, "SCHEMA_MISMATCH")

    df, load_error = safe_load_csv(raw_file, filename)
    if load_error:
        return _create_error_state(node_name, load_error, "SCHEMA_MISMATCH")

    _emit_progress(state, node_name, 0.20, "Data loaded", "complete")

    return {
        "dataframe": df,
        "current_node": node_name,
        "progress": 0.20,
        "progress_message": f"Loaded {len(df):,} rows × {len(df.columns)} columns",
    }


# =============================================================================
# NODE: VALIDATE SCHEMA
# =============================================================================

def validate_schema_node(state: dict) -> dict:
    """
    Validate columns, types and ids; build the Dataset.

    Output state updates:
        - dataset: Dataset
        - row_count: int
    """
    node_name = "validate_schema"
    _emit_progress(state, node_name, 0.25, "Checking columns...")

    df = state.get("dataframe")
    if df is None:
        return _create_error_state(node_name, "No parsed data available", "DATA_MISSING")

    try:
        dataset = Dataset.from_frame(df)
    except AnalyticsError as e:
        return _create_error_state(node_name, str(e), error_type_for(e))

    _emit_progress(state, node_name, 0.35, "Schema valid", "complete")

    return {
        "dataset": dataset,
        "row_count": len(dataset),
        "current_node": node_name,
        "progress": 0.35,
        "progress_message": f"{len(dataset):,} products across {len(dataset.product_types())} types",
    }


# =============================================================================
# NODE: ANALYZE
# =============================================================================

def analyze_node(state: dict) -> dict:
    """
    Run the report driver over the validated dataset.

    Output state updates:
        - results: dict[str, pd.DataFrame]
    """
    node_name = "analyze"
    _emit_progress(state, node_name, 0.40, "Running analyses...")

    dataset = state.get("dataset")
    if dataset is None:
        return _create_error_state(node_name, "No dataset available for analysis", "DATA_MISSING")

    try:
        results = run_report(dataset, state.get("settings"), state.get("analyses"))
    except AnalyticsError as e:
        return _create_error_state(node_name, str(e), error_type_for(e))

    _emit_progress(state, node_name, 0.90, "Analyses complete", "complete")

    return {
        "results": results,
        "current_node": node_name,
        "progress": 0.90,
        "progress_message": f"Ran {len(results)} analyses",
    }


# =============================================================================
# NODE: BUILD PAYLOAD
# =============================================================================

def build_payload_node(state: dict) -> dict:
    """
    Assemble the JSON-safe output payload.

    Output state updates:
        - ui_payload: {is_error, row_count, product_types, tables}
    """
    node_name = "build_payload"
    results = state.get("results") or {}
    dataset = state.get("dataset")

    payload = {
        "is_error": False,
        "row_count": state.get("row_count", 0),
        "product_types": dataset.product_types() if dataset is not None else [],
        "tables": report_to_payload(results),
    }

    _emit_progress(state, node_name, 1.0, "Report ready", "complete")

    return {
        "ui_payload": sanitize_dict_for_json(payload),
        "current_node": node_name,
        "progress": 1.0,
        "progress_message": "Report ready",
    }


# =============================================================================
# NODE: HANDLE ERROR
# =============================================================================

def handle_error_node(state: dict) -> dict:
    """
    Prepare the user-facing error payload.

    Output state updates:
        - ui_payload: {is_error, error_message, error_type, failed_node, recovery_hint}
    """
    node_name = "handle_error"
    _emit_progress(state, node_name, 1.0, "Handling error...", "failed")

    error_type = state.get("error_type") or "UNKNOWN"

    return {
        "ui_payload": {
            "is_error": True,
            "error_message": state.get("error") or "An unknown error occurred",
            "error_type": error_type,
            "failed_node": state.get("failed_node") or "unknown",
            "recovery_hint": state.get("recovery_hint") or "Please try again.",
        },
        "current_node": node_name,
        "progress": 1.0,
        "progress_message": f"Error: {error_type}",
    }
