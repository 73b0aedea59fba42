# snapshot.py — Recomputed per-category summary
"""
snapshot.py — Product Type Snapshot

Stands in for a materialized summary view: the summary is computed from
the live Dataset on construction and again on every refresh(). Nothing
is stored outside the object.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

import pandas as pd

from analytics.aggregation import aggregate, avg, count, max_of, min_of
from analytics.records import CATEGORY_COLUMN, Dataset


logger = logging.getLogger(__name__)


SNAPSHOT_REDUCERS = {
    "product_count": count(),
    "avg_cost_usd": avg("cost_usd"),
    "min_cost_usd": min_of("cost_usd"),
    "max_cost_usd": max_of("cost_usd"),
    "avg_delivery_time_days": avg("delivery_time_days"),
    "avg_sustainability_score": avg("sustainability_score"),
}

SNAPSHOT_COLUMNS = [CATEGORY_COLUMN] + list(SNAPSHOT_REDUCERS)


class ProductTypeSnapshot:
    """Per product type cost, delivery and score summary."""

    def __init__(self, dataset: Dataset):
        self._dataset = dataset
        self._frame: pd.DataFrame | None = None
        self.refreshed_at: datetime | None = None
        self.refresh()

    def refresh(self) -> pd.DataFrame:
        """Recompute the summary from the dataset and return it."""
        self._frame = aggregate(self._dataset.to_frame(), CATEGORY_COLUMN, SNAPSHOT_REDUCERS)
        self.refreshed_at = datetime.now(timezone.utc)
        logger.debug("Snapshot refreshed: %d product types", len(self._frame))
        return self.frame

    @property
    def frame(self) -> pd.DataFrame:
        """Copy of the last computed summary."""
        return self._frame.copy()
