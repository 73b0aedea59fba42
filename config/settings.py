# settings.py — Report configuration & logging setup
# Defaults, environment overrides, parameter validation
"""
settings.py — Report Settings

Holds every tunable parameter of a report run:
1. Module-level defaults
2. ReportSettings dataclass, optionally populated from SUSTAIN_* env vars
3. configure_logging() for the process-wide log format
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field

from analytics.errors import InvalidParameterError


logger = logging.getLogger(__name__)


# =============================================================================
# CONSTANTS
# =============================================================================

DEFAULT_MOVING_AVG_PRECEDING = 2
DEFAULT_TILE_COUNT = 3
DEFAULT_TIER_LABELS = ("Gold", "Silver", "Bronze")
DEFAULT_WASTE_THRESHOLD_KG = 50.0
DEFAULT_PAGE_OFFSET = 99
DEFAULT_PAGE_LIMIT = 10
DEFAULT_BENCHMARK_FACTOR = 0.85
DEFAULT_HIGH_SCORE_THRESHOLD = 80.0
DEFAULT_OUTLIER_ZSCORE = 3.0

ENV_PREFIX = "SUSTAIN_"
DEFAULT_LOG_LEVEL = "INFO"
LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


# =============================================================================
# SETTINGS
# =============================================================================

@dataclass(frozen=True)
class ReportSettings:
    """Parameters for a single report run."""
    moving_avg_preceding: int = DEFAULT_MOVING_AVG_PRECEDING
    tile_count: int = DEFAULT_TILE_COUNT
    tier_labels: tuple[str, ...] = field(default=DEFAULT_TIER_LABELS)
    waste_threshold_kg: float = DEFAULT_WASTE_THRESHOLD_KG
    page_offset: int = DEFAULT_PAGE_OFFSET
    page_limit: int = DEFAULT_PAGE_LIMIT
    benchmark_factor: float = DEFAULT_BENCHMARK_FACTOR
    high_score_threshold: float = DEFAULT_HIGH_SCORE_THRESHOLD
    outlier_zscore: float = DEFAULT_OUTLIER_ZSCORE

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> "ReportSettings":
        """
        Build settings from SUSTAIN_* environment variables.

        Unset variables keep their defaults. Labels are comma-separated,
        e.g. SUSTAIN_TIER_LABELS="Gold,Silver,Bronze".

        Raises:
            InvalidParameterError: If a value cannot be parsed or is out of range
        """
        env = os.environ if environ is None else environ
        defaults = cls()

        def _read(name: str, cast, default):
            raw = env.get(f"{ENV_PREFIX}{name.upper()}")
            if raw is None or raw.strip() == "":
                return default
            try:
                return cast(raw.strip())
            except ValueError:
                raise InvalidParameterError(
                    f"{ENV_PREFIX}{name.upper()}={raw!r} is not a valid {cast.__name__}"
                )

        labels_raw = env.get(f"{ENV_PREFIX}TIER_LABELS")
        tier_labels = (
            tuple(p.strip() for p in labels_raw.split(",") if p.strip())
            if labels_raw else defaults.tier_labels
        )

        settings = cls(
            moving_avg_preceding=_read("moving_avg_preceding", int, defaults.moving_avg_preceding),
            tile_count=_read("tile_count", int, defaults.tile_count),
            tier_labels=tier_labels,
            waste_threshold_kg=_read("waste_threshold_kg", float, defaults.waste_threshold_kg),
            page_offset=_read("page_offset", int, defaults.page_offset),
            page_limit=_read("page_limit", int, defaults.page_limit),
            benchmark_factor=_read("benchmark_factor", float, defaults.benchmark_factor),
            high_score_threshold=_read("high_score_threshold", float, defaults.high_score_threshold),
            outlier_zscore=_read("outlier_zscore", float, defaults.outlier_zscore),
        )
        settings.validate()
        return settings

    @classmethod
    def safe_from_env(
        cls, environ: dict[str, str] | None = None,
    ) -> tuple["ReportSettings", str | None]:
        """
        Like from_env(), but never raises.

        Returns:
            (settings, None) on success, (default settings, error message)
            when an environment override is invalid
        """
        try:
            return cls.from_env(environ), None
        except InvalidParameterError as e:
            logger.warning("Ignoring environment overrides: %s", e)
            return cls(), str(e)

    def validate(self) -> None:
        """
        Check parameter ranges.

        Raises:
            InvalidParameterError: On the first invalid parameter found
        """
        if self.tile_count <= 0:
            raise InvalidParameterError(f"tile_count must be positive, got {self.tile_count}")
        if len(self.tier_labels) != self.tile_count:
            raise InvalidParameterError(
                f"Expected {self.tile_count} tier labels, got {len(self.tier_labels)}"
            )
        if self.moving_avg_preceding < 0:
            raise InvalidParameterError(
                f"moving_avg_preceding must be >= 0, got {self.moving_avg_preceding}"
            )
        if self.page_offset < 0:
            raise InvalidParameterError(f"page_offset must be >= 0, got {self.page_offset}")
        if self.page_limit < 0:
            raise InvalidParameterError(f"page_limit must be >= 0, got {self.page_limit}")
        if self.outlier_zscore <= 0:
            raise InvalidParameterError(f"outlier_zscore must be positive, got {self.outlier_zscore}")


# =============================================================================
# LOGGING
# =============================================================================

def configure_logging(level: str | None = None) -> None:
    """
    Configure root logging once for the process.

    Args:
        level: Log level name; falls back to SUSTAIN_LOG_LEVEL, then INFO
    """
    level_name = (level or os.environ.get(f"{ENV_PREFIX}LOG_LEVEL") or DEFAULT_LOG_LEVEL).upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format=LOG_FORMAT,
    )
