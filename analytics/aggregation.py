# aggregation.py — Group-by engine with named reducers
"""
aggregation.py — Grouping & Aggregation Engine

Partitions a product frame by a key and reduces each partition with a
mapping of output-name -> Reducer:

    aggregate(
        frame,
        group_by="product_type",
        reducers={
            "product_count": count(),
            "avg_co2_emissions_kg": avg("co2_emissions_kg"),
        },
    )

Partitions come out in first-seen key order. When sort_by is given the
sort is stable on that output column, then on the group's first-seen id.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Mapping, Sequence

import pandas as pd

from analytics.errors import EmptyDatasetError, InvalidParameterError
from analytics.records import ID_COLUMN
from analytics.validators import require_columns


GroupKey = str | Sequence[str] | Callable[[pd.DataFrame], pd.Series]

_FIRST_ID = "__first_id"
_DEFAULT_KEY_NAME = "group_key"


# =============================================================================
# REDUCERS
# =============================================================================

@dataclass(frozen=True)
class Reducer:
    """
    A named reduction over one partition.

    func receives the partition's rows as a DataFrame. needs_rows marks
    reductions that are undefined on zero rows (min, max, avg, percentiles).
    """
    kind: str
    func: Callable[[pd.DataFrame], Any]
    column: str | None = None
    needs_rows: bool = False

    def __call__(self, part: pd.DataFrame) -> Any:
        if self.needs_rows and part.empty:
            raise EmptyDatasetError(f"{self.kind}({self.column}) requires at least one row")
        return self.func(part)


def count() -> Reducer:
    return Reducer("count", lambda part: int(len(part)))


def count_if(predicate: Callable[[pd.DataFrame], pd.Series]) -> Reducer:
    """Count rows for which predicate(part) is True (vectorized mask)."""
    return Reducer("count_if", lambda part: int(predicate(part).sum()))


def sum_of(column: str) -> Reducer:
    return Reducer("sum", lambda part: float(part[column].sum()), column)


def avg(column: str) -> Reducer:
    return Reducer(
        "avg",
        lambda part: float(part[column].sum() / len(part)),
        column,
        needs_rows=True,
    )


def min_of(column: str) -> Reducer:
    return Reducer("min", lambda part: float(part[column].min()), column, needs_rows=True)


def max_of(column: str) -> Reducer:
    return Reducer("max", lambda part: float(part[column].max()), column, needs_rows=True)


def percentile_cont(column: str, p: float) -> Reducer:
    """
    Continuous percentile: linear interpolation between the order
    statistics around rank p * (n - 1).
    """
    if not 0.0 <= p <= 1.0:
        raise InvalidParameterError(f"Percentile must lie within [0, 1], got {p}")
    return Reducer(
        "percentile_cont",
        lambda part: float(part[column].quantile(p, interpolation="linear")),
        column,
        needs_rows=True,
    )


def median(column: str) -> Reducer:
    return percentile_cont(column, 0.5)


# =============================================================================
# GROUPING
# =============================================================================

def _resolve_keys(frame: pd.DataFrame, group_by: GroupKey) -> tuple[list, list[str]]:
    """Return (groupby argument, output key column names)."""
    if callable(group_by):
        keys = group_by(frame)
        if not isinstance(keys, pd.Series):
            keys = pd.Series(keys, index=frame.index)
        name = keys.name if isinstance(keys.name, str) else _DEFAULT_KEY_NAME
        return [keys.rename(name)], [name]

    columns = [group_by] if isinstance(group_by, str) else list(group_by)
    if not columns:
        raise InvalidParameterError("group_by must name at least one column")
    require_columns(frame, columns)
    return columns, columns


def _check_reducer_columns(frame: pd.DataFrame, reducers: Mapping[str, Reducer]) -> None:
    require_columns(frame, [r.column for r in reducers.values() if r.column is not None])


def aggregate(
    frame: pd.DataFrame,
    group_by: GroupKey,
    reducers: Mapping[str, Reducer],
    sort_by: str | None = None,
    ascending: bool = True,
) -> pd.DataFrame:
    """
    Group frame by group_by and apply each reducer per partition.

    Args:
        frame: Product rows
        group_by: Column name, list of column names, or key extractor
        reducers: Output column name -> Reducer
        sort_by: Optional output column to sort partitions by
        ascending: Sort direction for sort_by

    Returns:
        DataFrame with the key column(s) followed by one column per reducer

    Raises:
        EmptyDatasetError: frame is empty and a reducer needs rows
        SchemaMismatchError: group or reducer column is missing
        InvalidParameterError: sort_by is not an output column
    """
    if not reducers:
        raise InvalidParameterError("At least one reducer is required")

    keys, key_names = _resolve_keys(frame, group_by)
    _check_reducer_columns(frame, reducers)
    output_columns = key_names + list(reducers)

    if sort_by is not None and sort_by not in output_columns:
        raise InvalidParameterError(f"Cannot sort by '{sort_by}': not an output column")

    if frame.empty:
        empty_rule = next((r for r in reducers.values() if r.needs_rows), None)
        if empty_rule is not None:
            raise EmptyDatasetError(
                f"{empty_rule.kind}({empty_rule.column}) requested on an empty dataset"
            )
        return pd.DataFrame(columns=output_columns)

    has_ids = ID_COLUMN in frame.columns
    rows = []
    for position, (key, part) in enumerate(frame.groupby(keys, sort=False, dropna=False)):
        key_values = key if isinstance(key, tuple) else (key,)
        row: dict[str, Any] = dict(zip(key_names, key_values))
        for name, reducer in reducers.items():
            row[name] = reducer(part)
        row[_FIRST_ID] = int(part[ID_COLUMN].iloc[0]) if has_ids else position
        rows.append(row)

    result = pd.DataFrame(rows, columns=output_columns + [_FIRST_ID])

    if sort_by is not None:
        result = result.sort_values(
            [sort_by, _FIRST_ID],
            ascending=[ascending, True],
            kind="mergesort",
        )

    return result.drop(columns=_FIRST_ID).reset_index(drop=True)


def aggregate_all(frame: pd.DataFrame, reducers: Mapping[str, Reducer]) -> dict[str, Any]:
    """
    Reduce the whole frame as a single partition.

    Raises:
        EmptyDatasetError: frame is empty and a reducer needs rows
    """
    _check_reducer_columns(frame, reducers)
    return {name: reducer(frame) for name, reducer in reducers.items()}
