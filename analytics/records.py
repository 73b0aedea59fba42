# records.py — Product record & dataset model
# Canonical column names, header normalization, typed rows, immutable table
"""
records.py — Record Model

ProductRecord is one product row; Dataset is the full table, held as a
pandas DataFrame with canonical snake_case columns sorted by id.

Engines never receive the Dataset's own frame: to_frame() hands out a
copy, so nothing downstream can write back into the loaded table.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, fields
from typing import Any, Iterator, Mapping

import pandas as pd

from analytics.errors import SchemaMismatchError


logger = logging.getLogger(__name__)


# =============================================================================
# CONSTANTS
# =============================================================================

ID_COLUMN = "id"
CATEGORY_COLUMN = "product_type"

NUMERIC_COLUMNS = [
    "raw_material_usage_kg",
    "energy_consumption_kwh",
    "waste_generated_kg",
    "transport_distance_km",
    "co2_emissions_kg",
    "renewable_energy_percentage",
    "cost_usd",
    "delivery_time_days",
    "sustainability_score",
]

COLUMNS = [ID_COLUMN, CATEGORY_COLUMN] + NUMERIC_COLUMNS

# Fields bounded to [0, 100]
BOUNDED_COLUMNS = ("renewable_energy_percentage", "sustainability_score")
PERCENT_MIN = 0.0
PERCENT_MAX = 100.0

_HEADER_CLEAN = re.compile(r"[\s\-]+")


# =============================================================================
# HEADER NORMALIZATION
# =============================================================================

def normalize_column_name(name: Any) -> str:
    """Normalize a source header: 'Product_Type ' -> 'product_type'."""
    return _HEADER_CLEAN.sub("_", str(name).strip()).lower()


def normalize_columns(df: pd.DataFrame) -> pd.DataFrame:
    """Return a copy of df with normalized column names."""
    renamed = df.copy()
    renamed.columns = [normalize_column_name(c) for c in df.columns]
    return renamed


# =============================================================================
# PRODUCT RECORD
# =============================================================================

@dataclass(frozen=True)
class ProductRecord:
    """One manufactured product and its sustainability metrics."""
    id: int
    product_type: str
    raw_material_usage_kg: float
    energy_consumption_kwh: float
    waste_generated_kg: float
    transport_distance_km: float
    co2_emissions_kg: float
    renewable_energy_percentage: float
    cost_usd: float
    delivery_time_days: float
    sustainability_score: float

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "ProductRecord":
        """
        Build a record from a mapping keyed by canonical or source headers.

        Raises:
            SchemaMismatchError: If a field is missing or not numeric
        """
        normalized = {normalize_column_name(k): v for k, v in row.items()}
        missing = [c for c in COLUMNS if c not in normalized]
        if missing:
            raise SchemaMismatchError(f"Row is missing columns: {', '.join(missing)}")

        values: dict[str, Any] = {}
        for f in fields(cls):
            raw = normalized[f.name]
            try:
                if f.name == ID_COLUMN:
                    if not float(raw).is_integer():
                        raise SchemaMismatchError(f"Column '{ID_COLUMN}' must hold whole numbers, got {raw!r}")
                    values[f.name] = int(float(raw))
                elif f.name == CATEGORY_COLUMN:
                    values[f.name] = str(raw)
                else:
                    values[f.name] = float(raw)
            except (TypeError, ValueError):
                raise SchemaMismatchError(f"Column '{f.name}' has non-numeric value {raw!r}")
        return cls(**values)


# =============================================================================
# DATASET
# =============================================================================

class Dataset:
    """
    Immutable, id-ordered table of product records.

    Build it with Dataset.from_frame() (validates) or Dataset.from_records().
    """

    def __init__(self, frame: pd.DataFrame):
        self._frame = frame

    @classmethod
    def from_frame(cls, df: pd.DataFrame) -> "Dataset":
        """
        Validate a raw DataFrame and wrap it.

        Raises:
            SchemaMismatchError: If columns are missing, mistyped, or ids are invalid
        """
        from analytics.validators import validate_product_frame

        frame = validate_product_frame(df)
        logger.debug("Dataset built with %d rows", len(frame))
        return cls(frame)

    @classmethod
    def from_records(cls, records: list[ProductRecord]) -> "Dataset":
        """Wrap a list of ProductRecord (validated like any other input)."""
        rows = [{f.name: getattr(r, f.name) for f in fields(ProductRecord)} for r in records]
        return cls.from_frame(pd.DataFrame(rows, columns=COLUMNS))

    def to_frame(self) -> pd.DataFrame:
        """Return a private, writable copy of the table."""
        return self._frame.copy(deep=True)

    def records(self) -> Iterator[ProductRecord]:
        """Iterate the table as ProductRecord objects in id order."""
        for row in self._frame.to_dict(orient="records"):
            yield ProductRecord.from_row(row)

    def product_types(self) -> list[str]:
        """Distinct product types in first-seen (id) order."""
        return list(pd.unique(self._frame[CATEGORY_COLUMN]))

    @property
    def is_empty(self) -> bool:
        return self._frame.empty

    def __len__(self) -> int:
        return len(self._frame)

    def __repr__(self) -> str:
        return f"Dataset(rows={len(self)}, product_types={len(self.product_types())})"
