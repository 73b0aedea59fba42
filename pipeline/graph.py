# graph.py — LangGraph workflow definition
# Defines state machine, node edges, and conditional routing
"""
graph.py — LangGraph Workflow Definition

Wires the report nodes into a single graph with error routing.

Flow:
    START → ingest_data → validate_schema → analyze → build_payload → END
                ↓               ↓              ↓
              [ERROR] ──────> [ERROR] ─────> [ERROR] → handle_error → END

Any node that sets state["error"] routes to handle_error_node.
"""

from __future__ import annotations

from typing import Callable, Iterator, Literal

from langgraph.graph import END, START, StateGraph

from config.settings import ReportSettings
from pipeline.nodes import (
    analyze_node,
    build_payload_node,
    handle_error_node,
    ingest_data_node,
    validate_schema_node,
)
from pipeline.state import ReportState, create_initial_state


# =============================================================================
# CONDITIONAL ROUTING
# =============================================================================

def route_after_node(state: ReportState) -> Literal["continue", "error"]:
    """
    Conditional router: check if error occurred, route accordingly.

    Returns:
        "error" if state has error, "continue" otherwise
    """
    if state.get("error"):
        return "error"
    return "continue"


# =============================================================================
# GRAPH BUILDER
# =============================================================================

def build_report_graph() -> StateGraph:
    """
    Build the LangGraph workflow for a report run.

    Returns:
        Uncompiled StateGraph
    """
    workflow = StateGraph(ReportState)

    workflow.add_node("ingest_data", ingest_data_node)
    workflow.add_node("validate_schema", validate_schema_node)
    workflow.add_node("analyze", analyze_node)
    workflow.add_node("build_payload", build_payload_node)
    workflow.add_node("handle_error", handle_error_node)

    workflow.add_edge(START, "ingest_data")

    for node, next_node in (
        ("ingest_data", "validate_schema"),
        ("validate_schema", "analyze"),
        ("analyze", "build_payload"),
    ):
        workflow.add_conditional_edges(
            node,
            route_after_node,
            {
                "continue": next_node,
                "error": "handle_error",
            },
        )

    workflow.add_edge("build_payload", END)
    workflow.add_edge("handle_error", END)

    return workflow


def compile_report_graph():
    """
    Build and compile the report graph.

    Returns:
        Compiled graph ready for .invoke() or .stream()
    """
    return build_report_graph().compile()


# =============================================================================
# GRAPH EXECUTION
# =============================================================================

def run_report_workflow(
    raw_file: bytes,
    filename: str,
    settings: ReportSettings | None = None,
    analyses: list[str] | None = None,
    progress_callback: Callable[[dict], None] | None = None,
) -> dict:
    """
    Run the complete report workflow.

    Args:
        raw_file: Raw CSV file bytes
        filename: Original filename
        settings: Report parameters; defaults when omitted
        analyses: Optional subset of analysis names
        progress_callback: Optional callback for progress updates

    Returns:
        Final ReportState dict; ui_payload holds the tables or the error

    Example:
        result = run_report_workflow(Path("products.csv").read_bytes(), "products.csv")

        if result["ui_payload"]["is_error"]:
            print(result["ui_payload"]["error_message"])
        else:
            tables = result["results"]
    """
    initial_state = create_initial_state(
        raw_file=raw_file,
        filename=filename,
        settings=settings,
        analyses=analyses,
        progress_callback=progress_callback,
    )
    return compile_report_graph().invoke(initial_state)


def stream_report_workflow(
    raw_file: bytes,
    filename: str,
    settings: ReportSettings | None = None,
    analyses: list[str] | None = None,
) -> Iterator[tuple[str, dict]]:
    """
    Stream the workflow, yielding (node_name, accumulated_state) after each node.
    """
    initial_state = create_initial_state(
        raw_file=raw_file,
        filename=filename,
        settings=settings,
        analyses=analyses,
    )
    graph = compile_report_graph()

    accumulated_state = dict(initial_state)

    for event in graph.stream(initial_state):
        for node_name, state_update in event.items():
            accumulated_state.update(state_update)
            yield node_name, accumulated_state
