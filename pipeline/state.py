# state.py — Shared ReportState schema
# TypedDict definition for state passed between workflow nodes
"""
state.py — Report Workflow State

Defines the TypedDict structure for state passed between LangGraph nodes.
"""

from __future__ import annotations

from typing import Any, Callable, TypedDict

import pandas as pd

from analytics.records import Dataset
from config.settings import ReportSettings


class ReportState(TypedDict, total=False):
    """
    Shared state passed between all workflow nodes.

    All fields are optional (total=False) to support partial updates.
    """

    # =========================================================================
    # INPUT LAYER
    # =========================================================================
    raw_file: bytes | None  # Raw CSV bytes
    filename: str | None  # Original filename
    settings: ReportSettings  # Report parameters
    analyses: list[str] | None  # Analysis names (None = default ten)

    # =========================================================================
    # DATA LAYER
    # =========================================================================
    dataframe: pd.DataFrame | None  # Parsed, unvalidated CSV
    dataset: Dataset | None  # Validated product table
    row_count: int

    # =========================================================================
    # ANALYSIS LAYER
    # =========================================================================
    results: dict[str, pd.DataFrame] | None  # Analysis name -> table

    # =========================================================================
    # OUTPUT LAYER
    # =========================================================================
    ui_payload: dict[str, Any] | None  # JSON-safe tables or error payload

    # =========================================================================
    # CONTROL LAYER
    # =========================================================================
    current_node: str | None
    progress: float  # 0.0 - 1.0
    progress_message: str | None

    # =========================================================================
    # ERROR LAYER
    # =========================================================================
    error: str | None
    error_type: str | None  # SCHEMA_MISMATCH | EMPTY_DATASET | INVALID_PARAMETER | DATA_MISSING
    failed_node: str | None
    recovery_hint: str | None

    # =========================================================================
    # CALLBACKS (not persisted)
    # =========================================================================
    progress_callback: Callable[[dict], None] | None


def create_initial_state(
    raw_file: bytes | None = None,
    filename: str | None = None,
    settings: ReportSettings | None = None,
    analyses: list[str] | None = None,
    progress_callback: Callable[[dict], None] | None = None,
) -> ReportState:
    """
    Create a fresh ReportState with default values.

    Args:
        raw_file: Raw CSV bytes
        filename: Original filename
        settings: Report parameters; defaults when omitted
        analyses: Optional subset of analysis names
        progress_callback: Optional callback for progress updates

    Returns:
        Initialized ReportState dict
    """
    return ReportState(
        raw_file=raw_file,
        filename=filename or "unknown.csv",
        settings=settings or ReportSettings(),
        analyses=analyses,
        dataframe=None,
        dataset=None,
        row_count=0,
        results=None,
        ui_payload=None,
        current_node=None,
        progress=0.0,
        progress_message=None,
        error=None,
        error_type=None,
        failed_node=None,
        recovery_hint=None,
        progress_callback=progress_callback,
    )
