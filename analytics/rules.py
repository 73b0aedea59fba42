# rules.py — Threshold rules, pagination, benchmarks, outliers
"""
rules.py — Threshold & Anomaly Rules

Declarative row predicates evaluated against aggregates computed once
per run:

    context = build_context(frame, {"avg_score": avg("sustainability_score")})
    rules = [ThresholdRule("sustainability_score", "<", "avg_score")]
    flagged = filter_records(frame, rules, context)

Also hosts the per-category energy benchmark and z-score outlier scan.
"""

from __future__ import annotations

import logging
import operator
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Sequence

import pandas as pd
from scipy import stats

from analytics.aggregation import Reducer, aggregate, aggregate_all, avg
from analytics.errors import EmptyDatasetError, InvalidParameterError
from analytics.records import CATEGORY_COLUMN, ID_COLUMN
from analytics.validators import require_columns, require_non_negative


logger = logging.getLogger(__name__)


# =============================================================================
# CONSTANTS
# =============================================================================

OPERATORS: dict[str, Callable[[Any, Any], Any]] = {
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
    "==": operator.eq,
    "!=": operator.ne,
}

ENERGY_COLUMN = "energy_consumption_kwh"
DEFAULT_BENCHMARK_FACTOR = 0.85
MIN_OUTLIER_GROUP_SIZE = 2


# =============================================================================
# THRESHOLD RULES
# =============================================================================

@dataclass(frozen=True)
class ThresholdRule:
    """
    `column <operator> reference`, where reference is a literal number or
    the name of an aggregate in the evaluation context.
    """
    column: str
    operator: str
    reference: float | str

    def __post_init__(self):
        if self.operator not in OPERATORS:
            raise InvalidParameterError(
                f"Unsupported operator '{self.operator}'. Use one of: {', '.join(OPERATORS)}"
            )

    def resolve(self, context: Mapping[str, Any] | None) -> float:
        if not isinstance(self.reference, str):
            return self.reference
        if not context or self.reference not in context:
            raise InvalidParameterError(
                f"Rule on '{self.column}' references unknown aggregate '{self.reference}'"
            )
        return context[self.reference]

    def mask(self, frame: pd.DataFrame, context: Mapping[str, Any] | None = None) -> pd.Series:
        """Vectorized evaluation over every row of frame."""
        return OPERATORS[self.operator](frame[self.column], self.resolve(context))

    def holds(self, record: Any, context: Mapping[str, Any] | None = None) -> bool:
        """Evaluate against a single ProductRecord (or any object/mapping with the field)."""
        value = record[self.column] if isinstance(record, Mapping) else getattr(record, self.column)
        return bool(OPERATORS[self.operator](value, self.resolve(context)))


def build_context(frame: pd.DataFrame, reducers: Mapping[str, Reducer]) -> dict[str, Any]:
    """Compute the aggregates rules refer to, once for the whole frame."""
    context = aggregate_all(frame, reducers)
    logger.debug("Rule context: %s", context)
    return context


def filter_records(
    frame: pd.DataFrame,
    rules: Sequence[ThresholdRule],
    context: Mapping[str, Any] | None = None,
    sort_by: str | None = None,
    ascending: bool = True,
) -> pd.DataFrame:
    """
    Keep rows satisfying every rule.

    Row order is preserved unless sort_by is given, in which case rows are
    sorted stably by sort_by and then by id ascending.
    """
    require_columns(frame, [r.column for r in rules] + ([sort_by] if sort_by else []))

    keep = pd.Series(True, index=frame.index)
    for rule in rules:
        keep &= rule.mask(frame, context)
    result = frame[keep]

    if sort_by is not None:
        keys, directions = [sort_by], [ascending]
        if sort_by != ID_COLUMN and ID_COLUMN in result.columns:
            keys.append(ID_COLUMN)
            directions.append(True)
        result = result.sort_values(keys, ascending=directions, kind="mergesort")

    return result


def paginate(
    frame: pd.DataFrame,
    offset: int,
    limit: int,
    order_by: str = ID_COLUMN,
) -> pd.DataFrame:
    """
    ORDER BY order_by OFFSET offset LIMIT limit.

    offset counts skipped rows: offset=99 returns the 100th row onwards.

    Raises:
        InvalidParameterError: offset or limit is negative
    """
    offset = require_non_negative("offset", offset)
    limit = require_non_negative("limit", limit)
    require_columns(frame, [order_by])

    keys = [order_by] if order_by == ID_COLUMN or ID_COLUMN not in frame.columns else [order_by, ID_COLUMN]
    ordered = frame.sort_values(keys, kind="mergesort")
    return ordered.iloc[offset:offset + limit]


# =============================================================================
# ENERGY BENCHMARK
# =============================================================================

def benchmark(
    product_type: str,
    frame: pd.DataFrame,
    factor: float = DEFAULT_BENCHMARK_FACTOR,
) -> float:
    """
    factor * average energy consumption of the given product type.

    Raises:
        EmptyDatasetError: no rows carry that product type
    """
    require_columns(frame, [CATEGORY_COLUMN, ENERGY_COLUMN])
    rows = frame[frame[CATEGORY_COLUMN] == product_type]
    if rows.empty:
        raise EmptyDatasetError(f"No products of type '{product_type}' to benchmark")
    return factor * float(rows[ENERGY_COLUMN].sum() / len(rows))


class BenchmarkTable:
    """
    Per-run memo of benchmark values, built in one aggregation pass.

    Scoped to a single report run; build a new one for each run.
    """

    def __init__(self, frame: pd.DataFrame, factor: float = DEFAULT_BENCHMARK_FACTOR):
        self.factor = factor
        if frame.empty:
            self._values: dict[str, float] = {}
            return
        averages = aggregate(frame, CATEGORY_COLUMN, {"avg_energy": avg(ENERGY_COLUMN)})
        self._values = {
            row[CATEGORY_COLUMN]: factor * row["avg_energy"]
            for row in averages.to_dict(orient="records")
        }

    def get(self, product_type: str) -> float:
        """
        Raises:
            EmptyDatasetError: product_type was not in the frame
        """
        try:
            return self._values[product_type]
        except KeyError:
            raise EmptyDatasetError(f"No products of type '{product_type}' to benchmark")

    def join(self, frame: pd.DataFrame) -> pd.Series:
        """Benchmark value for every row of frame, aligned to its index."""
        missing = set(frame[CATEGORY_COLUMN]) - set(self._values)
        if missing:
            raise EmptyDatasetError(f"No benchmark for product types: {', '.join(sorted(missing))}")
        return frame[CATEGORY_COLUMN].map(self._values).astype(float).rename("benchmark")

    def __len__(self) -> int:
        return len(self._values)

    def __contains__(self, product_type: object) -> bool:
        return product_type in self._values


# =============================================================================
# OUTLIER SCAN
# =============================================================================

def _group_zscores(values: pd.Series) -> pd.Series:
    if len(values) < MIN_OUTLIER_GROUP_SIZE or values.nunique() <= 1:
        return pd.Series(0.0, index=values.index)
    return pd.Series(stats.zscore(values.to_numpy(), ddof=0), index=values.index)


def emission_outliers(
    frame: pd.DataFrame,
    column: str = "co2_emissions_kg",
    threshold: float = 3.0,
    group_by: str = CATEGORY_COLUMN,
) -> pd.DataFrame:
    """
    Rows whose within-group z-score of `column` exceeds threshold in
    absolute value.

    Returns:
        DataFrame [id, group_by, column, zscore] sorted by id
    """
    if threshold <= 0:
        raise InvalidParameterError(f"Outlier threshold must be positive, got {threshold}")
    require_columns(frame, [ID_COLUMN, group_by, column])

    scored = frame[[ID_COLUMN, group_by, column]].copy()
    scored["zscore"] = scored.groupby(group_by, sort=False)[column].transform(_group_zscores)

    outliers = scored[scored["zscore"].abs() > threshold]
    return outliers.sort_values(ID_COLUMN, kind="mergesort").reset_index(drop=True)
