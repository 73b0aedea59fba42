"""Pytest configuration and shared fixtures."""

import numpy as np
import pandas as pd
import pytest

from analytics.records import COLUMNS, Dataset


DEFAULT_ROW = {
    "product_type": "Widget",
    "raw_material_usage_kg": 10.0,
    "energy_consumption_kwh": 100.0,
    "waste_generated_kg": 5.0,
    "transport_distance_km": 100.0,
    "co2_emissions_kg": 10.0,
    "renewable_energy_percentage": 50.0,
    "cost_usd": 20.0,
    "delivery_time_days": 3.0,
    "sustainability_score": 50.0,
}


def build_frame(rows):
    """Canonical frame from partial rows; missing fields take DEFAULT_ROW values."""
    filled = []
    for position, row in enumerate(rows, start=1):
        full = {"id": position, **DEFAULT_ROW, **row}
        filled.append(full)
    return pd.DataFrame(filled, columns=COLUMNS)


@pytest.fixture
def make_frame():
    """Factory fixture: make_frame([{...}, ...]) -> canonical DataFrame."""
    return build_frame


@pytest.fixture
def small_frame():
    """Six products across three types with hand-checked metrics."""
    return build_frame([
        {"id": 1, "product_type": "Widget", "energy_consumption_kwh": 100, "waste_generated_kg": 60,
         "transport_distance_km": 5, "co2_emissions_kg": 10, "renewable_energy_percentage": 20,
         "cost_usd": 10, "delivery_time_days": 3, "sustainability_score": 50},
        {"id": 2, "product_type": "Gadget", "energy_consumption_kwh": 400, "waste_generated_kg": 40,
         "transport_distance_km": 8, "co2_emissions_kg": 30, "renewable_energy_percentage": 80,
         "cost_usd": 30, "delivery_time_days": 5, "sustainability_score": 40},
        {"id": 3, "product_type": "Widget", "energy_consumption_kwh": 200, "waste_generated_kg": 70,
         "transport_distance_km": 5, "co2_emissions_kg": 20, "renewable_energy_percentage": 50,
         "cost_usd": 20, "delivery_time_days": 4, "sustainability_score": 70},
        {"id": 4, "product_type": "Gizmo", "energy_consumption_kwh": 50, "waste_generated_kg": 10,
         "transport_distance_km": 2, "co2_emissions_kg": 5, "renewable_energy_percentage": 90,
         "cost_usd": 15, "delivery_time_days": 2, "sustainability_score": 90},
        {"id": 5, "product_type": "Widget", "energy_consumption_kwh": 300, "waste_generated_kg": 80,
         "transport_distance_km": 12, "co2_emissions_kg": 60, "renewable_energy_percentage": 50,
         "cost_usd": 40, "delivery_time_days": 6, "sustainability_score": 60},
        {"id": 6, "product_type": "Gadget", "energy_consumption_kwh": 600, "waste_generated_kg": 55,
         "transport_distance_km": 1, "co2_emissions_kg": 50, "renewable_energy_percentage": 10,
         "cost_usd": 50, "delivery_time_days": 7, "sustainability_score": 85},
    ])


@pytest.fixture
def small_dataset(small_frame):
    return Dataset.from_frame(small_frame)


@pytest.fixture
def generated_frame():
    """150 products, ids 1..150, every row above the default waste threshold."""
    rng = np.random.RandomState(42)
    n = 150
    return pd.DataFrame({
        "id": np.arange(1, n + 1),
        "product_type": rng.choice(["Electronics", "Furniture", "Textiles", "Packaging"], size=n),
        "raw_material_usage_kg": rng.uniform(1, 500, size=n).round(2),
        "energy_consumption_kwh": rng.uniform(10, 1000, size=n).round(2),
        "waste_generated_kg": rng.uniform(51, 100, size=n).round(2),
        "transport_distance_km": rng.randint(10, 60, size=n).astype(float),
        "co2_emissions_kg": rng.uniform(5, 300, size=n).round(2),
        "renewable_energy_percentage": rng.randint(0, 11, size=n) * 10.0,
        "cost_usd": rng.uniform(5, 2000, size=n).round(2),
        "delivery_time_days": rng.randint(1, 30, size=n).astype(float),
        "sustainability_score": rng.uniform(0, 100, size=n).round(1),
    }, columns=COLUMNS)


@pytest.fixture
def generated_dataset(generated_frame):
    return Dataset.from_frame(generated_frame)


@pytest.fixture
def source_csv_bytes(small_frame):
    """small_frame serialized with the Title_Case headers of the source CSV."""
    headers = {
        "id": "ID",
        "product_type": "Product_Type",
        "raw_material_usage_kg": "Raw_Material_Usage_kg",
        "energy_consumption_kwh": "Energy_Consumption_kWh",
        "waste_generated_kg": "Waste_Generated_kg",
        "transport_distance_km": "Transport_Distance_km",
        "co2_emissions_kg": "CO2_Emissions_kg",
        "renewable_energy_percentage": "Renewable_Energy_Percentage",
        "cost_usd": "Cost_USD",
        "delivery_time_days": "Delivery_Time_days",
        "sustainability_score": "Sustainability_Score",
    }
    return small_frame.rename(columns=headers).to_csv(index=False).encode("utf-8")
