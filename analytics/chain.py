# chain.py — Cumulative emission chains over transport distance
"""
chain.py — Transitive-Chain Resolver

A product chains to every product whose transport distance is greater
than or equal to its own, equal distances included. That relation is a
total preorder, so the longest chain visits every row: sorting by
(transport_distance_km, id) and taking a running sum of co2_emissions_kg
gives every chain's cumulative impact, and the last prefix sum is the
maximum. O(n log n), no pairwise expansion.
"""

from __future__ import annotations

import pandas as pd

from analytics.errors import EmptyDatasetError
from analytics.records import ID_COLUMN
from analytics.validators import require_columns


DISTANCE_COLUMN = "transport_distance_km"
EMISSIONS_COLUMN = "co2_emissions_kg"
CUMULATIVE_COLUMN = "cumulative_co2_emissions_kg"


def emission_chain(frame: pd.DataFrame) -> pd.DataFrame:
    """
    Rows in chain order with their running emission total.

    Returns:
        DataFrame [id, transport_distance_km, co2_emissions_kg,
        cumulative_co2_emissions_kg], sorted by distance then id
    """
    require_columns(frame, [ID_COLUMN, DISTANCE_COLUMN, EMISSIONS_COLUMN])

    chain = frame[[ID_COLUMN, DISTANCE_COLUMN, EMISSIONS_COLUMN]].sort_values(
        [DISTANCE_COLUMN, ID_COLUMN],
        kind="mergesort",
    )
    chain[CUMULATIVE_COLUMN] = chain[EMISSIONS_COLUMN].cumsum()
    return chain.reset_index(drop=True)


def max_chain_impact(frame: pd.DataFrame) -> float:
    """
    Largest cumulative emissions reachable along a distance chain.

    Raises:
        EmptyDatasetError: frame has no rows
    """
    if frame.empty:
        raise EmptyDatasetError("Cannot resolve an emission chain over zero rows")
    chain = emission_chain(frame)
    return float(chain[CUMULATIVE_COLUMN].iloc[-1])
