# report.py — Report driver: the ten sustainability analyses
# Each analysis: Dataset + settings -> DataFrame with fixed output columns
"""
report.py — Report Driver

Runs the named analyses as independent pure functions of one loaded
Dataset. Every analysis works on its own dataset.to_frame() copy and
returns a DataFrame whose columns match ANALYSIS_COLUMNS exactly.

Analyses (default order):
1.  emissions_by_product_type  count / total / average CO2 per type
2.  moving_avg_emissions       3-row moving average of CO2 per type
3.  renewable_energy_tiers     NTILE tiers by renewable share
4.  score_progression          per-type average score with lag
5.  high_waste_page            OFFSET/LIMIT page of high-waste products
6.  max_emission_chain         cumulative CO2 along distance chains
7.  efficiency_anomalies       low score despite high renewable share
8.  energy_benchmark           energy against 85% of type average
9.  product_type_summary       recomputed per-type snapshot
10. score_distribution         median / p90 / high-score counts

emission_outliers is available on request but is not part of the default run.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Iterable

import pandas as pd

from analytics.aggregation import aggregate, avg, count, count_if, median, percentile_cont, sum_of
from analytics.chain import max_chain_impact
from analytics.errors import InvalidParameterError
from analytics.records import CATEGORY_COLUMN, ID_COLUMN, Dataset
from analytics.rules import (
    BenchmarkTable,
    ThresholdRule,
    build_context,
    emission_outliers,
    filter_records,
    paginate,
)
from analytics.snapshot import SNAPSHOT_COLUMNS, ProductTypeSnapshot
from analytics.validators import sanitize_dict_for_json
from analytics.windows import lag, moving_average, ntile
from config.settings import ReportSettings


logger = logging.getLogger(__name__)

Analysis = Callable[[Dataset, ReportSettings], pd.DataFrame]


# =============================================================================
# OUTPUT COLUMNS
# =============================================================================

ANALYSIS_COLUMNS: dict[str, list[str]] = {
    "emissions_by_product_type": [
        CATEGORY_COLUMN, "product_count", "total_co2_emissions_kg", "avg_co2_emissions_kg",
    ],
    "moving_avg_emissions": [
        ID_COLUMN, CATEGORY_COLUMN, "co2_emissions_kg", "moving_avg_co2_emissions_kg",
    ],
    "renewable_energy_tiers": [
        ID_COLUMN, CATEGORY_COLUMN, "renewable_energy_percentage", "tier", "tier_label",
    ],
    "score_progression": [
        CATEGORY_COLUMN, "avg_sustainability_score",
        "previous_avg_sustainability_score", "score_change",
    ],
    "high_waste_page": [ID_COLUMN, CATEGORY_COLUMN, "waste_generated_kg"],
    "max_emission_chain": ["chain_length", "max_cumulative_co2_emissions_kg"],
    "efficiency_anomalies": [
        ID_COLUMN, CATEGORY_COLUMN, "sustainability_score", "renewable_energy_percentage",
    ],
    "energy_benchmark": [
        ID_COLUMN, CATEGORY_COLUMN, "energy_consumption_kwh",
        "benchmark_energy_kwh", "exceeds_benchmark",
    ],
    "product_type_summary": SNAPSHOT_COLUMNS,
    "score_distribution": [
        CATEGORY_COLUMN, "median_sustainability_score",
        "p90_energy_consumption_kwh", "high_score_count",
    ],
    "emission_outliers": [ID_COLUMN, CATEGORY_COLUMN, "co2_emissions_kg", "co2_zscore"],
}


# =============================================================================
# ANALYSES
# =============================================================================

def emissions_by_product_type(dataset: Dataset, settings: ReportSettings) -> pd.DataFrame:
    return aggregate(
        dataset.to_frame(),
        CATEGORY_COLUMN,
        {
            "product_count": count(),
            "total_co2_emissions_kg": sum_of("co2_emissions_kg"),
            "avg_co2_emissions_kg": avg("co2_emissions_kg"),
        },
        sort_by="avg_co2_emissions_kg",
        ascending=False,
    )


def moving_avg_emissions(dataset: Dataset, settings: ReportSettings) -> pd.DataFrame:
    frame = dataset.to_frame()
    frame["moving_avg_co2_emissions_kg"] = moving_average(
        frame,
        "co2_emissions_kg",
        partition_by=CATEGORY_COLUMN,
        order_by=ID_COLUMN,
        preceding=settings.moving_avg_preceding,
    )
    return frame


def renewable_energy_tiers(dataset: Dataset, settings: ReportSettings) -> pd.DataFrame:
    frame = dataset.to_frame()
    frame["tier"] = ntile(frame, settings.tile_count, "renewable_energy_percentage", ascending=False)
    labels = dict(enumerate(settings.tier_labels, start=1))
    frame["tier_label"] = frame["tier"].map(labels)
    return frame.sort_values(
        ["tier", "renewable_energy_percentage", ID_COLUMN],
        ascending=[True, False, True],
        kind="mergesort",
    )


def score_progression(dataset: Dataset, settings: ReportSettings) -> pd.DataFrame:
    grouped = aggregate(
        dataset.to_frame(),
        CATEGORY_COLUMN,
        {"avg_sustainability_score": avg("sustainability_score")},
        sort_by="avg_sustainability_score",
    )
    # Sequence order is the sorted group order
    grouped["previous_avg_sustainability_score"] = lag(grouped, "avg_sustainability_score")
    grouped["score_change"] = (
        grouped["avg_sustainability_score"] - grouped["previous_avg_sustainability_score"]
    )
    return grouped


def high_waste_page(dataset: Dataset, settings: ReportSettings) -> pd.DataFrame:
    frame = dataset.to_frame()
    high_waste = filter_records(
        frame,
        [ThresholdRule("waste_generated_kg", ">", settings.waste_threshold_kg)],
    )
    return paginate(high_waste, settings.page_offset, settings.page_limit, order_by=ID_COLUMN)


def max_emission_chain(dataset: Dataset, settings: ReportSettings) -> pd.DataFrame:
    # Every row joins the chain, so its length is the row count
    return pd.DataFrame([{
        "chain_length": len(dataset),
        "max_cumulative_co2_emissions_kg": max_chain_impact(dataset.to_frame()),
    }])


def efficiency_anomalies(dataset: Dataset, settings: ReportSettings) -> pd.DataFrame:
    frame = dataset.to_frame()
    context = build_context(frame, {
        "avg_sustainability_score": avg("sustainability_score"),
        "avg_renewable_energy_percentage": avg("renewable_energy_percentage"),
    })
    rules = [
        ThresholdRule("sustainability_score", "<", "avg_sustainability_score"),
        ThresholdRule("renewable_energy_percentage", ">", "avg_renewable_energy_percentage"),
    ]
    return filter_records(frame, rules, context, sort_by=ID_COLUMN)


def energy_benchmark(dataset: Dataset, settings: ReportSettings) -> pd.DataFrame:
    frame = dataset.to_frame()
    table = BenchmarkTable(frame, factor=settings.benchmark_factor)
    frame["benchmark_energy_kwh"] = table.join(frame)
    frame["exceeds_benchmark"] = frame["energy_consumption_kwh"] > frame["benchmark_energy_kwh"]
    return frame


def product_type_summary(dataset: Dataset, settings: ReportSettings) -> pd.DataFrame:
    return ProductTypeSnapshot(dataset).frame


def score_distribution(dataset: Dataset, settings: ReportSettings) -> pd.DataFrame:
    threshold = settings.high_score_threshold
    return aggregate(
        dataset.to_frame(),
        CATEGORY_COLUMN,
        {
            "median_sustainability_score": median("sustainability_score"),
            "p90_energy_consumption_kwh": percentile_cont("energy_consumption_kwh", 0.9),
            "high_score_count": count_if(lambda part: part["sustainability_score"] >= threshold),
        },
    )


def emission_outlier_scan(dataset: Dataset, settings: ReportSettings) -> pd.DataFrame:
    outliers = emission_outliers(dataset.to_frame(), threshold=settings.outlier_zscore)
    return outliers.rename(columns={"zscore": "co2_zscore"})


ANALYSES: dict[str, Analysis] = {
    "emissions_by_product_type": emissions_by_product_type,
    "moving_avg_emissions": moving_avg_emissions,
    "renewable_energy_tiers": renewable_energy_tiers,
    "score_progression": score_progression,
    "high_waste_page": high_waste_page,
    "max_emission_chain": max_emission_chain,
    "efficiency_anomalies": efficiency_anomalies,
    "energy_benchmark": energy_benchmark,
    "product_type_summary": product_type_summary,
    "score_distribution": score_distribution,
    "emission_outliers": emission_outlier_scan,
}

DEFAULT_ANALYSES = [name for name in ANALYSES if name != "emission_outliers"]


# =============================================================================
# DRIVER
# =============================================================================

def run_analysis(name: str, dataset: Dataset, settings: ReportSettings) -> pd.DataFrame:
    """
    Run one analysis and project it onto its declared columns.

    Raises:
        InvalidParameterError: name is not a known analysis
    """
    if name not in ANALYSES:
        raise InvalidParameterError(
            f"Unknown analysis '{name}'. Available: {', '.join(ANALYSES)}"
        )
    result = ANALYSES[name](dataset, settings)
    return result.loc[:, ANALYSIS_COLUMNS[name]].reset_index(drop=True)


def run_report(
    dataset: Dataset,
    settings: ReportSettings | None = None,
    analyses: Iterable[str] | None = None,
) -> dict[str, pd.DataFrame]:
    """
    Run analyses over one dataset.

    Args:
        dataset: Loaded, validated product table
        settings: Report parameters (defaults when omitted)
        analyses: Analysis names to run; the ten defaults when omitted

    Returns:
        Ordered mapping of analysis name -> result table

    Raises:
        InvalidParameterError: bad settings or unknown analysis name
        EmptyDatasetError: an analysis needs rows the dataset does not have
    """
    settings = settings or ReportSettings()
    settings.validate()

    names = list(analyses) if analyses is not None else list(DEFAULT_ANALYSES)
    unknown = [n for n in names if n not in ANALYSES]
    if unknown:
        raise InvalidParameterError(
            f"Unknown analyses: {', '.join(unknown)}. Available: {', '.join(ANALYSES)}"
        )

    results: dict[str, pd.DataFrame] = {}
    for name in names:
        results[name] = run_analysis(name, dataset, settings)
        logger.info("Analysis %s: %d rows", name, len(results[name]))

    return results


# =============================================================================
# OUTPUT
# =============================================================================

def report_to_payload(results: dict[str, pd.DataFrame]) -> dict:
    """
    JSON-safe form of a report.

    Returns:
        {name: {"columns": [...], "rows": [{column: value}, ...]}}
        with NaN/inf rendered as None
    """
    payload = {}
    for name, table in results.items():
        payload[name] = {
            "columns": list(table.columns),
            "rows": table.to_dict(orient="records"),
        }
    return sanitize_dict_for_json(payload)


def write_report_csv(results: dict[str, pd.DataFrame], directory: str | Path) -> list[Path]:
    """Write one <name>.csv per analysis into directory; returns the paths."""
    out_dir = Path(directory)
    out_dir.mkdir(parents=True, exist_ok=True)

    written = []
    for name, table in results.items():
        path = out_dir / f"{name}.csv"
        table.to_csv(path, index=False)
        written.append(path)
    logger.info("Wrote %d report tables to %s", len(written), out_dir)
    return written
