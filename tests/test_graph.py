"""
Report Workflow Tests

End-to-end runs of the LangGraph workflow on in-memory CSV bytes,
plus the chart builders used by the viewer.
"""

import plotly.graph_objects as go
import pytest

from config.settings import ReportSettings
from pipeline.charts import emissions_bar_chart, moving_average_chart, tier_distribution_chart
from pipeline.graph import route_after_node, run_report_workflow, stream_report_workflow
from pipeline.report import DEFAULT_ANALYSES, run_report


# ==================== SUCCESS PATH ====================

class TestReportWorkflow:
    def test_full_run(self, source_csv_bytes):
        result = run_report_workflow(source_csv_bytes, "products.csv")
        payload = result["ui_payload"]

        assert payload["is_error"] is False
        assert payload["row_count"] == 6
        assert payload["product_types"] == ["Widget", "Gadget", "Gizmo"]
        assert list(payload["tables"]) == DEFAULT_ANALYSES
        assert result["error"] is None

    def test_tables_match_direct_run(self, source_csv_bytes, small_dataset):
        result = run_report_workflow(source_csv_bytes, "products.csv")
        direct = run_report(small_dataset)

        for name, table in direct.items():
            assert result["results"][name].equals(table), name

    def test_analysis_subset(self, source_csv_bytes):
        result = run_report_workflow(
            source_csv_bytes, "products.csv", analyses=["max_emission_chain"],
        )
        rows = result["ui_payload"]["tables"]["max_emission_chain"]["rows"]
        assert rows == [{"chain_length": 6, "max_cumulative_co2_emissions_kg": 175.0}]

    def test_progress_callback(self, source_csv_bytes):
        events = []
        run_report_workflow(source_csv_bytes, "products.csv", progress_callback=events.append)

        assert events[0]["node"] == "ingest_data"
        assert events[-1] == {
            "node": "build_payload",
            "status": "complete",
            "progress": 1.0,
            "message": "Report ready",
        }

    def test_stream_node_order(self, source_csv_bytes):
        steps = list(stream_report_workflow(source_csv_bytes, "products.csv"))

        assert [node for node, _ in steps] == [
            "ingest_data", "validate_schema", "analyze", "build_payload",
        ]
        assert steps[-1][1]["progress"] == 1.0


# ==================== ERROR ROUTING ====================

class TestErrorRouting:
    def test_missing_file(self):
        payload = run_report_workflow(None, "products.csv")["ui_payload"]

        assert payload["is_error"] is True
        assert payload["error_type"] == "DATA_MISSING"
        assert payload["failed_node"] == "ingest_data"

    def test_wrong_extension(self, source_csv_bytes):
        payload = run_report_workflow(source_csv_bytes, "products.txt")["ui_payload"]

        assert payload["error_type"] == "SCHEMA_MISMATCH"
        assert payload["failed_node"] == "ingest_data"

    def test_header_only_file(self):
        payload = run_report_workflow(b"ID,Product_Type\n", "products.csv")["ui_payload"]

        assert payload["error_type"] == "SCHEMA_MISMATCH"
        assert "no data rows" in payload["error_message"]

    def test_missing_columns(self, small_frame):
        raw = small_frame.drop(columns=["sustainability_score"]).to_csv(index=False).encode()
        payload = run_report_workflow(raw, "products.csv")["ui_payload"]

        assert payload["error_type"] == "SCHEMA_MISMATCH"
        assert payload["failed_node"] == "validate_schema"
        assert "sustainability_score" in payload["error_message"]

    def test_infinite_id(self, small_frame):
        bad = small_frame.astype({"id": float})
        bad.loc[0, "id"] = float("inf")
        payload = run_report_workflow(bad.to_csv(index=False).encode(), "products.csv")["ui_payload"]

        assert payload["is_error"] is True
        assert payload["error_type"] == "SCHEMA_MISMATCH"
        assert payload["failed_node"] == "validate_schema"

    def test_headers_clash_after_normalizing(self, small_frame):
        bad = small_frame.rename(columns={"id": "ID"})
        bad.insert(1, "id", bad["ID"])
        payload = run_report_workflow(bad.to_csv(index=False).encode(), "products.csv")["ui_payload"]

        assert payload["error_type"] == "SCHEMA_MISMATCH"
        assert payload["failed_node"] == "validate_schema"

    def test_invalid_settings(self, source_csv_bytes):
        settings = ReportSettings(tile_count=4)
        payload = run_report_workflow(source_csv_bytes, "products.csv", settings)["ui_payload"]

        assert payload["error_type"] == "INVALID_PARAMETER"
        assert payload["failed_node"] == "analyze"
        assert payload["recovery_hint"]

    def test_stream_stops_at_handle_error(self, source_csv_bytes):
        steps = list(stream_report_workflow(source_csv_bytes, "products.txt"))
        assert [node for node, _ in steps] == ["ingest_data", "handle_error"]

    @pytest.mark.parametrize("state, expected", [
        ({"error": "boom"}, "error"),
        ({"error": None}, "continue"),
        ({}, "continue"),
    ])
    def test_router(self, state, expected):
        assert route_after_node(state) == expected


# ==================== CHARTS ====================

class TestCharts:
    def test_charts_build_figures(self, small_dataset):
        report = run_report(small_dataset)

        figures = [
            emissions_bar_chart(report["emissions_by_product_type"]),
            tier_distribution_chart(report["renewable_energy_tiers"]),
            moving_average_chart(report["moving_avg_emissions"]),
        ]

        assert all(isinstance(fig, go.Figure) for fig in figures)

    def test_tier_chart_counts(self, small_dataset):
        report = run_report(small_dataset, analyses=["renewable_energy_tiers"])
        fig = tier_distribution_chart(report["renewable_energy_tiers"])

        assert list(fig.data[0].x) == ["Gold", "Silver", "Bronze"]
        assert list(fig.data[0].y) == [2, 2, 2]
