"""
Report Driver Tests

Each analysis is checked against hand-computed values for the six-row
fixture, plus column order and error propagation for the whole report.
"""

import json
import math

import pandas as pd
import pytest

from analytics.chain import max_chain_impact
from analytics.errors import EmptyDatasetError, InvalidParameterError
from analytics.records import Dataset
from config.settings import ReportSettings
from pipeline.report import (
    ANALYSIS_COLUMNS,
    DEFAULT_ANALYSES,
    report_to_payload,
    run_analysis,
    run_report,
    write_report_csv,
)


# ==================== FIXTURES ====================

@pytest.fixture
def report(small_dataset):
    return run_report(small_dataset)


# ==================== DRIVER ====================

class TestRunReport:
    def test_runs_the_ten_default_analyses_in_order(self, report):
        assert list(report) == DEFAULT_ANALYSES
        assert len(report) == 10
        assert "emission_outliers" not in report

    def test_column_names_and_order(self, report):
        for name, table in report.items():
            assert list(table.columns) == ANALYSIS_COLUMNS[name], name

    def test_subset_and_optional_analysis(self, small_dataset):
        result = run_report(small_dataset, analyses=["score_distribution", "emission_outliers"])
        assert list(result) == ["score_distribution", "emission_outliers"]
        assert list(result["emission_outliers"].columns) == ANALYSIS_COLUMNS["emission_outliers"]

    def test_unknown_analysis(self, small_dataset):
        with pytest.raises(InvalidParameterError, match="nonsense"):
            run_report(small_dataset, analyses=["nonsense"])
        with pytest.raises(InvalidParameterError):
            run_analysis("nonsense", small_dataset, ReportSettings())

    def test_invalid_settings(self, small_dataset):
        with pytest.raises(InvalidParameterError):
            run_report(small_dataset, ReportSettings(tile_count=0, tier_labels=()))

    def test_empty_dataset(self, small_frame):
        empty = Dataset.from_frame(small_frame.iloc[0:0])
        with pytest.raises(EmptyDatasetError):
            run_report(empty)

    def test_dataset_left_untouched(self, small_dataset):
        before = small_dataset.to_frame()
        run_report(small_dataset, analyses=list(ANALYSIS_COLUMNS))
        pd.testing.assert_frame_equal(small_dataset.to_frame(), before)

    def test_deterministic(self, generated_dataset):
        first = run_report(generated_dataset)
        second = run_report(generated_dataset)
        for name in first:
            pd.testing.assert_frame_equal(first[name], second[name])


# ==================== ANALYSES ====================

class TestAnalyses:
    def test_emissions_by_product_type(self, report):
        table = report["emissions_by_product_type"]
        assert table.values.tolist() == [
            ["Gadget", 2, 80.0, 40.0],
            ["Widget", 3, 90.0, 30.0],
            ["Gizmo", 1, 5.0, 5.0],
        ]

    def test_moving_avg_emissions(self, report):
        table = report["moving_avg_emissions"]
        assert table["id"].tolist() == [1, 2, 3, 4, 5, 6]
        assert table["moving_avg_co2_emissions_kg"].tolist() == [10.0, 30.0, 15.0, 5.0, 30.0, 40.0]

    def test_renewable_energy_tiers(self, report):
        table = report["renewable_energy_tiers"]
        assert table["id"].tolist() == [4, 2, 3, 5, 1, 6]
        assert table["tier"].tolist() == [1, 1, 2, 2, 3, 3]
        assert table["tier_label"].tolist() == ["Gold", "Gold", "Silver", "Silver", "Bronze", "Bronze"]

    def test_tier_sizes_follow_ntile_rule(self, generated_dataset):
        table = run_report(generated_dataset, analyses=["renewable_energy_tiers"])["renewable_energy_tiers"]
        assert table["tier"].value_counts().sort_index().tolist() == [50, 50, 50]

    def test_score_progression(self, report):
        table = report["score_progression"]
        assert table["product_type"].tolist() == ["Widget", "Gadget", "Gizmo"]
        assert table["avg_sustainability_score"].tolist() == [60.0, 62.5, 90.0]
        assert math.isnan(table["previous_avg_sustainability_score"].iloc[0])
        assert table["previous_avg_sustainability_score"].iloc[1:].tolist() == [60.0, 62.5]
        assert table["score_change"].iloc[1:].tolist() == [2.5, 27.5]

    def test_high_waste_page_default_offset_is_past_small_data(self, report):
        assert report["high_waste_page"].empty

    def test_high_waste_page_with_offset(self, small_dataset):
        settings = ReportSettings(page_offset=1, page_limit=2)
        table = run_report(small_dataset, settings, ["high_waste_page"])["high_waste_page"]
        assert table["id"].tolist() == [3, 5]

    def test_high_waste_page_on_150_rows(self, generated_dataset):
        table = run_report(generated_dataset, analyses=["high_waste_page"])["high_waste_page"]
        assert table["id"].tolist() == list(range(100, 110))

    def test_max_emission_chain(self, report):
        assert report["max_emission_chain"].values.tolist() == [[6, 175.0]]

    def test_max_emission_chain_matches_resolver(self, generated_dataset):
        table = run_analysis("max_emission_chain", generated_dataset, ReportSettings())
        assert table["max_cumulative_co2_emissions_kg"].iloc[0] == max_chain_impact(generated_dataset.to_frame())

    def test_max_emission_chain_empty(self, small_frame):
        empty = Dataset.from_frame(small_frame.iloc[0:0])
        with pytest.raises(EmptyDatasetError):
            run_analysis("max_emission_chain", empty, ReportSettings())

    def test_efficiency_anomalies(self, report):
        assert report["efficiency_anomalies"]["id"].tolist() == [2]

    def test_energy_benchmark(self, report):
        table = report["energy_benchmark"]
        assert table["benchmark_energy_kwh"].tolist() == pytest.approx([170.0, 425.0, 170.0, 42.5, 170.0, 425.0])
        assert table["exceeds_benchmark"].tolist() == [False, False, True, True, True, True]

    def test_product_type_summary(self, report):
        table = report["product_type_summary"]
        assert table["product_type"].tolist() == ["Widget", "Gadget", "Gizmo"]
        assert table["product_count"].tolist() == [3, 2, 1]

    def test_score_distribution(self, report):
        table = report["score_distribution"]
        assert table["median_sustainability_score"].tolist() == [60.0, 62.5, 90.0]
        assert table["p90_energy_consumption_kwh"].tolist() == pytest.approx([280.0, 580.0, 50.0])
        assert table["high_score_count"].tolist() == [0, 1, 1]


# ==================== OUTPUT ====================

class TestOutput:
    def test_payload_is_json_safe(self, report):
        payload = report_to_payload(report)

        json.dumps(payload)
        progression = payload["score_progression"]
        assert progression["columns"] == ANALYSIS_COLUMNS["score_progression"]
        assert progression["rows"][0]["previous_avg_sustainability_score"] is None

    def test_write_report_csv(self, report, tmp_path):
        paths = write_report_csv(report, tmp_path / "out")

        assert [p.name for p in paths] == [f"{name}.csv" for name in DEFAULT_ANALYSES]
        reread = pd.read_csv(tmp_path / "out" / "emissions_by_product_type.csv")
        assert list(reread.columns) == ANALYSIS_COLUMNS["emissions_by_product_type"]
