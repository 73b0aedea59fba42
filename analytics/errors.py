# errors.py — Exception hierarchy for the analytics engine
"""
errors.py — Analytics Exceptions

Every failure the engine can produce is deterministic for a given input,
so callers get a typed exception instead of a retry.
"""

from __future__ import annotations


# =============================================================================
# EXCEPTIONS
# =============================================================================

class AnalyticsError(Exception):
    """Base exception for analytics engine errors."""
    pass


class SchemaMismatchError(AnalyticsError):
    """Raised when a required column is missing or holds the wrong type."""
    pass


class EmptyDatasetError(AnalyticsError):
    """Raised when a reduction needing at least one row gets none."""
    pass


class InvalidParameterError(AnalyticsError):
    """Raised for out-of-range parameters (tile count, offset, limit, ...)."""
    pass


# Error type codes used by the workflow state
ERROR_TYPES: dict[type[AnalyticsError], str] = {
    SchemaMismatchError: "SCHEMA_MISMATCH",
    EmptyDatasetError: "EMPTY_DATASET",
    InvalidParameterError: "INVALID_PARAMETER",
}


def error_type_for(exc: AnalyticsError) -> str:
    """Map an exception to its workflow error code."""
    for cls, code in ERROR_TYPES.items():
        if isinstance(exc, cls):
            return code
    return "ANALYSIS_FAILED"
