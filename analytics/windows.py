# windows.py — Ordered partition windows (moving average, lag, ntile)
"""
windows.py — Windowed Analytics Engine

Window functions produce one value per input row without collapsing rows.
Every function returns a Series aligned with the input frame's index, so
results can be assigned straight back as a column.

Rows are ordered by the requested key, ties broken by id ascending.
"""

from __future__ import annotations

from typing import Any, Sequence

import numpy as np
import pandas as pd

from analytics.records import ID_COLUMN
from analytics.validators import require_columns, require_non_negative, require_positive


# =============================================================================
# ORDERING HELPERS
# =============================================================================

def _partition_columns(partition_by: str | Sequence[str] | None) -> list[str]:
    if partition_by is None:
        return []
    return [partition_by] if isinstance(partition_by, str) else list(partition_by)


def _ordered(frame: pd.DataFrame, order_by: str | None, ascending: bool = True) -> pd.DataFrame:
    """Stable sort by (order_by, id); order_by=None keeps sequence order."""
    if order_by is None:
        return frame

    keys = [order_by]
    directions = [ascending]
    if order_by != ID_COLUMN and ID_COLUMN in frame.columns:
        keys.append(ID_COLUMN)
        directions.append(True)
    return frame.sort_values(keys, ascending=directions, kind="mergesort")


# =============================================================================
# MOVING AVERAGE
# =============================================================================

def moving_average(
    frame: pd.DataFrame,
    value: str,
    partition_by: str | Sequence[str] | None,
    order_by: str,
    preceding: int,
) -> pd.Series:
    """
    Mean over ROWS BETWEEN `preceding` PRECEDING AND CURRENT ROW.

    The first rows of each partition see a truncated frame: the k-th row
    averages min(k, preceding + 1) values, never padded.

    Raises:
        InvalidParameterError: preceding is negative
        SchemaMismatchError: a referenced column is missing
    """
    preceding = require_non_negative("preceding", preceding)
    partitions = _partition_columns(partition_by)
    require_columns(frame, [value, order_by] + partitions)

    ordered = _ordered(frame, order_by)
    window = preceding + 1

    if partitions:
        result = ordered.groupby(partitions, sort=False)[value].transform(
            lambda s: s.rolling(window, min_periods=1).mean()
        )
    else:
        result = ordered[value].rolling(window, min_periods=1).mean()

    return result.reindex(frame.index).rename(f"moving_avg_{value}")


# =============================================================================
# LAG
# =============================================================================

def lag(
    frame: pd.DataFrame,
    value: str,
    order_by: str | None = None,
    partition_by: str | Sequence[str] | None = None,
    offset: int = 1,
    default: Any = None,
) -> pd.Series:
    """
    Value from the row `offset` positions earlier in the ordered sequence.

    Rows without a predecessor get `default` (NaN when default is None).
    With order_by=None the frame's current row order is the sequence,
    which is how a grouped-then-sorted result is lagged.

    Raises:
        InvalidParameterError: offset is not a positive integer
    """
    offset = require_positive("offset", offset)
    partitions = _partition_columns(partition_by)
    require_columns(frame, [value] + partitions + ([order_by] if order_by else []))

    ordered = _ordered(frame, order_by)

    if partitions:
        grouped = ordered.groupby(partitions, sort=False)
        shifted = grouped[value].shift(offset)
        has_previous = grouped.cumcount() >= offset
    else:
        shifted = ordered[value].shift(offset)
        has_previous = pd.Series(np.arange(len(ordered)) >= offset, index=ordered.index)

    if default is not None:
        shifted = shifted.astype(object).where(has_previous, default)

    return shifted.reindex(frame.index).rename(f"previous_{value}")


# =============================================================================
# NTILE
# =============================================================================

def tile_sizes(n: int, k: int) -> list[int]:
    """
    Bucket sizes for n rows in k tiles.

    The first n mod k buckets get ceil(n/k) rows, the rest floor(n/k).
    When n < k the trailing buckets are empty (size 0).
    """
    n = require_non_negative("row count", n)
    k = require_positive("tile count", k)
    base, extra = divmod(n, k)
    return [base + 1] * extra + [base] * (k - extra)


def ntile(
    frame: pd.DataFrame,
    k: int,
    order_by: str,
    ascending: bool = False,
) -> pd.Series:
    """
    Assign tile numbers 1..k by sequential scan over the sorted rows.

    Raises:
        InvalidParameterError: k is not a positive integer
        SchemaMismatchError: order_by is missing
    """
    sizes = tile_sizes(len(frame), k)
    require_columns(frame, [order_by])

    ordered = _ordered(frame, order_by, ascending=ascending)
    tiles = np.repeat(np.arange(1, len(sizes) + 1), sizes)

    return pd.Series(tiles, index=ordered.index, name="tile").reindex(frame.index)
