# charts.py — Plotly figures for report tables
"""
charts.py — Report Charts

Builds Plotly figures from report tables. Pure functions: table in,
go.Figure out; rendering is left to the caller.
"""

from __future__ import annotations

import pandas as pd
import plotly.express as px
import plotly.graph_objects as go


# Blue color palette for charts
CHART_COLORS = [
    "#3b82f6",  # Primary blue
    "#0ea5e9",  # Sky blue
    "#06b6d4",  # Cyan
    "#60a5fa",  # Light blue
    "#38bdf8",  # Lighter sky
    "#22d3ee",  # Light cyan
]

TIER_COLORS = {"Gold": "#eab308", "Silver": "#94a3b8", "Bronze": "#b45309"}


def _style(fig: go.Figure) -> go.Figure:
    fig.update_layout(
        plot_bgcolor="white",
        paper_bgcolor="white",
        xaxis=dict(showgrid=True, gridcolor="#f1f5f9", title=None),
        yaxis=dict(showgrid=True, gridcolor="#f1f5f9", title=None),
    )
    return fig


def emissions_bar_chart(table: pd.DataFrame) -> go.Figure:
    """Average CO2 per product type (emissions_by_product_type table)."""
    colors = [CHART_COLORS[i % len(CHART_COLORS)] for i in range(len(table))]
    fig = go.Figure(go.Bar(
        x=table["product_type"],
        y=table["avg_co2_emissions_kg"],
        marker_color=colors,
        marker=dict(line=dict(width=0)),
    ))
    fig.update_layout(xaxis=dict(tickangle=-45 if len(table) > 5 else 0))
    return _style(fig)


def tier_distribution_chart(table: pd.DataFrame) -> go.Figure:
    """Product count per renewable-energy tier (renewable_energy_tiers table)."""
    counts = (
        table.groupby(["tier", "tier_label"], sort=True)
        .size()
        .reset_index(name="product_count")
    )
    colors = [TIER_COLORS.get(label, CHART_COLORS[0]) for label in counts["tier_label"]]
    fig = go.Figure(go.Bar(
        x=counts["tier_label"],
        y=counts["product_count"],
        marker_color=colors,
    ))
    return _style(fig)


def moving_average_chart(table: pd.DataFrame) -> go.Figure:
    """Moving average of CO2 by id, one line per product type (moving_avg_emissions table)."""
    fig = px.line(
        table,
        x="id",
        y="moving_avg_co2_emissions_kg",
        color="product_type",
        color_discrete_sequence=CHART_COLORS,
        markers=len(table) < 30,
    )
    return _style(fig)
