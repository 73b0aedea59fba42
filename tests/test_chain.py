"""
Transitive-Chain Resolver Tests
"""

import itertools

import pytest

from analytics.chain import emission_chain, max_chain_impact
from analytics.errors import EmptyDatasetError


def _brute_force_max_chain(frame):
    """Longest non-decreasing-distance chain value by exhaustive search (small n only)."""
    rows = list(zip(frame["id"], frame["transport_distance_km"], frame["co2_emissions_kg"]))
    best = 0.0
    for size in range(1, len(rows) + 1):
        for combo in itertools.permutations(rows, size):
            if all(b[1] >= a[1] for a, b in zip(combo, combo[1:])):
                best = max(best, sum(r[2] for r in combo))
    return best


class TestEmissionChain:
    def test_ties_on_distance(self, make_frame):
        frame = make_frame([
            {"transport_distance_km": 5, "co2_emissions_kg": 10},
            {"transport_distance_km": 5, "co2_emissions_kg": 20},
            {"transport_distance_km": 8, "co2_emissions_kg": 30},
        ])
        assert max_chain_impact(frame) == 60.0

    def test_chain_order_and_prefix_sums(self, small_frame):
        chain = emission_chain(small_frame)
        assert chain["id"].tolist() == [6, 4, 1, 3, 2, 5]
        assert chain["cumulative_co2_emissions_kg"].tolist() == [50.0, 55.0, 65.0, 85.0, 115.0, 175.0]

    def test_does_not_modify_input(self, small_frame):
        before = small_frame.copy()
        emission_chain(small_frame)
        assert small_frame.equals(before)

    def test_matches_exhaustive_search(self, make_frame):
        frame = make_frame([
            {"transport_distance_km": 3, "co2_emissions_kg": 4},
            {"transport_distance_km": 1, "co2_emissions_kg": 7},
            {"transport_distance_km": 3, "co2_emissions_kg": 1},
            {"transport_distance_km": 2, "co2_emissions_kg": 2},
        ])
        assert max_chain_impact(frame) == pytest.approx(_brute_force_max_chain(frame))

    def test_single_row(self, make_frame):
        assert max_chain_impact(make_frame([{"co2_emissions_kg": 12.5}])) == 12.5

    def test_empty(self, small_frame):
        with pytest.raises(EmptyDatasetError):
            max_chain_impact(small_frame.iloc[0:0])
