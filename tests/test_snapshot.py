"""
Product Type Snapshot Tests
"""

import pytest

from analytics.errors import EmptyDatasetError
from analytics.records import Dataset
from analytics.snapshot import SNAPSHOT_COLUMNS, ProductTypeSnapshot


class TestProductTypeSnapshot:
    def test_summary_values(self, small_dataset):
        snapshot = ProductTypeSnapshot(small_dataset)
        frame = snapshot.frame

        assert list(frame.columns) == SNAPSHOT_COLUMNS
        assert frame["product_type"].tolist() == ["Widget", "Gadget", "Gizmo"]

        widget = frame.iloc[0]
        assert widget["product_count"] == 3
        assert widget["avg_cost_usd"] == pytest.approx(70 / 3)
        assert widget["min_cost_usd"] == 10.0
        assert widget["max_cost_usd"] == 40.0
        assert widget["avg_delivery_time_days"] == pytest.approx(13 / 3)
        assert widget["avg_sustainability_score"] == pytest.approx(60.0)

    def test_refresh_recomputes_and_stamps(self, small_dataset):
        snapshot = ProductTypeSnapshot(small_dataset)
        first_stamp = snapshot.refreshed_at

        refreshed = snapshot.refresh()

        assert snapshot.refreshed_at >= first_stamp
        assert refreshed.equals(snapshot.frame)

    def test_frame_is_a_copy(self, small_dataset):
        snapshot = ProductTypeSnapshot(small_dataset)
        snapshot.frame.loc[0, "product_count"] = 0
        assert snapshot.frame.loc[0, "product_count"] == 3

    def test_empty_dataset(self, small_frame):
        with pytest.raises(EmptyDatasetError):
            ProductTypeSnapshot(Dataset.from_frame(small_frame.iloc[0:0]))
