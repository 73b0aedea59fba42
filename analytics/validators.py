# validators.py — Schema validation & input guards
# File type checks, product table schema validation, parameter guards
"""
validators.py — Input Validation

Production implementation for:
- File type validation
- Product table schema validation (columns, types, ranges, ids)
- Numeric parameter guards
- JSON sanitization of result payloads
"""

from __future__ import annotations

import math
from typing import Any

import numpy as np
import pandas as pd

from analytics.errors import InvalidParameterError, SchemaMismatchError
from analytics.records import (
    BOUNDED_COLUMNS,
    CATEGORY_COLUMN,
    COLUMNS,
    ID_COLUMN,
    NUMERIC_COLUMNS,
    PERCENT_MAX,
    PERCENT_MIN,
    normalize_column_name,
    normalize_columns,
)


# =============================================================================
# CONSTANTS
# =============================================================================

ALLOWED_EXTENSIONS = {".csv"}
MAX_BAD_VALUE_EXAMPLES = 3


# =============================================================================
# FILE VALIDATION
# =============================================================================

def validate_file_extension(filename: str) -> tuple[bool, str | None]:
    """
    Validate that file has an allowed extension.

    Returns:
        (is_valid, error_message)
    """
    if not filename:
        return False, "No filename provided"

    ext = "." + filename.rsplit(".", 1)[-1].lower() if "." in filename else ""

    if ext not in ALLOWED_EXTENSIONS:
        return False, f"Invalid file type: {ext}. Allowed: {', '.join(ALLOWED_EXTENSIONS)}"

    return True, None


# =============================================================================
# SCHEMA VALIDATION
# =============================================================================

def _examples(series: pd.Series) -> str:
    return ", ".join(repr(v) for v in series.head(MAX_BAD_VALUE_EXAMPLES).tolist())


def validate_product_frame(df: pd.DataFrame) -> pd.DataFrame:
    """
    Validate a raw product table and return its canonical form.

    Canonical form: the eleven columns in COLUMNS order, int64 ids,
    float64 metrics, string product types, sorted by id.

    Args:
        df: Raw DataFrame with source or canonical headers

    Returns:
        New DataFrame in canonical form (input is not modified)

    Raises:
        SchemaMismatchError: On any missing column, bad type, bad range or bad id
    """
    if df is None or not isinstance(df, pd.DataFrame):
        raise SchemaMismatchError("Data is not a valid DataFrame")

    frame = normalize_columns(df)

    clashing = set(frame.columns[frame.columns.duplicated(keep=False)])
    if clashing:
        headers = [str(c) for c in df.columns if normalize_column_name(c) in clashing]
        raise SchemaMismatchError(f"Columns map to the same name: {', '.join(headers)}")

    missing = [c for c in COLUMNS if c not in frame.columns]
    if missing:
        raise SchemaMismatchError(f"Missing required columns: {', '.join(missing)}")

    frame = frame[COLUMNS].copy()

    # Identifier: positive, integral, unique
    ids = pd.to_numeric(frame[ID_COLUMN], errors="coerce")
    bad_ids = frame.loc[ids.isna(), ID_COLUMN]
    if len(bad_ids) > 0:
        raise SchemaMismatchError(f"Column '{ID_COLUMN}' has non-numeric values: {_examples(bad_ids)}")
    if not np.isfinite(ids).all():
        raise SchemaMismatchError(f"Column '{ID_COLUMN}' has non-finite values")
    if not (ids == ids.round()).all():
        raise SchemaMismatchError(f"Column '{ID_COLUMN}' must hold whole numbers")
    if (ids <= 0).any():
        raise SchemaMismatchError(f"Column '{ID_COLUMN}' must be positive")
    duplicated = ids[ids.duplicated()]
    if len(duplicated) > 0:
        raise SchemaMismatchError(f"Duplicate ids: {_examples(duplicated.astype(int))}")
    frame[ID_COLUMN] = ids.astype("int64")

    # Category
    if frame[CATEGORY_COLUMN].isna().any():
        raise SchemaMismatchError(f"Column '{CATEGORY_COLUMN}' has missing values")
    frame[CATEGORY_COLUMN] = frame[CATEGORY_COLUMN].astype(str).str.strip()

    # Metrics
    for col in NUMERIC_COLUMNS:
        values = pd.to_numeric(frame[col], errors="coerce")
        bad = frame.loc[values.isna(), col]
        if len(bad) > 0:
            raise SchemaMismatchError(f"Column '{col}' has non-numeric values: {_examples(bad)}")
        if not np.isfinite(values).all():
            raise SchemaMismatchError(f"Column '{col}' has non-finite values")
        if (values < 0).any():
            raise SchemaMismatchError(f"Column '{col}' has negative values")
        if col in BOUNDED_COLUMNS and ((values < PERCENT_MIN) | (values > PERCENT_MAX)).any():
            raise SchemaMismatchError(
                f"Column '{col}' must lie within [{PERCENT_MIN:.0f}, {PERCENT_MAX:.0f}]"
            )
        frame[col] = values.astype("float64")

    return frame.sort_values(ID_COLUMN, kind="mergesort").reset_index(drop=True)


def require_columns(df: pd.DataFrame, columns: list[str]) -> None:
    """
    Raises:
        SchemaMismatchError: If any of columns is absent from df
    """
    missing = [c for c in columns if c not in df.columns]
    if missing:
        raise SchemaMismatchError(f"Unknown columns: {', '.join(missing)}")


# =============================================================================
# PARAMETER GUARDS
# =============================================================================

def require_non_negative(name: str, value: int) -> int:
    """Return value, or raise InvalidParameterError if it is negative or not an int."""
    if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
        raise InvalidParameterError(f"{name} must be an integer, got {value!r}")
    if value < 0:
        raise InvalidParameterError(f"{name} must be >= 0, got {value}")
    return int(value)


def require_positive(name: str, value: int) -> int:
    """Return value, or raise InvalidParameterError if it is not a positive int."""
    value = require_non_negative(name, value)
    if value == 0:
        raise InvalidParameterError(f"{name} must be positive, got 0")
    return value


# =============================================================================
# OUTPUT SANITIZATION
# =============================================================================

def sanitize_dict_for_json(obj: Any) -> Any:
    """
    Recursively sanitize a dict/list for JSON serialization.
    Handles numpy types, NaN, Inf, etc.
    """
    if obj is None:
        return None

    if isinstance(obj, dict):
        return {k: sanitize_dict_for_json(v) for k, v in obj.items()}

    if isinstance(obj, (list, tuple)):
        return [sanitize_dict_for_json(v) for v in obj]

    if isinstance(obj, (np.integer,)):
        return int(obj)

    if isinstance(obj, (np.floating,)):
        if np.isnan(obj) or np.isinf(obj):
            return None
        return float(obj)

    if isinstance(obj, np.ndarray):
        return sanitize_dict_for_json(obj.tolist())

    if isinstance(obj, (np.bool_,)):
        return bool(obj)

    if isinstance(obj, float):
        if math.isnan(obj) or math.isinf(obj):
            return None
        return obj

    return obj
