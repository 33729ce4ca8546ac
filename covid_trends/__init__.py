"""
COVID Trends
============

Per-capita, time-aligned statistics from the JHU CSSE US cumulative case and
death time series, merged with state vaccination counts, plus a small OLS
model relating death rate to case and vaccination rates.

Example:
    >>> from covid_trends import CovidTrendsPipeline, SnapshotFetcher
    >>> pipeline = CovidTrendsPipeline()
    >>> result = pipeline.run_from_sources(SnapshotFetcher(snapshot_dir="snapshots"))
    >>> result.model_comparison
"""

__version__ = "1.0.0"

from covid_trends.aggregation import (
    add_daily_increments,
    aggregate_region_days,
    build_region_days,
    detect_cumulative_decreases,
    first_difference,
    national_totals,
    per_capita,
    weekly_buckets,
)
from covid_trends.config import CovidTrendsConfig
from covid_trends.correlation import correlation_matrix, correlation_pvalues, pairwise_observations
from covid_trends.exceptions import (
    CovidTrendsError,
    DateParseError,
    DegenerateRegressionError,
    FetchError,
    MissingPredictorError,
    PerCapitaError,
    SchemaError,
    WeekStartError,
)
from covid_trends.fetch import SnapshotFetcher
from covid_trends.models import (
    FittedModel,
    MissingValuePolicy,
    Observation,
    RegionDayRecord,
    RegionSummary,
    TableSchema,
    VaccineRecord,
    WeeklyBucket,
    Weekday,
)
from covid_trends.pipeline import CovidTrendsPipeline, PipelineResult
from covid_trends.regression import add_predictions, compare_models, fit, predict
from covid_trends.reshaping import drop_columns, filter_observations, join_counts, reshape_wide
from covid_trends.summary import merge_vaccinations, summarize_regions, summarize_vaccinations

__all__ = [
    # Pipeline
    "CovidTrendsPipeline",
    "PipelineResult",
    "SnapshotFetcher",
    "CovidTrendsConfig",

    # Models
    "FittedModel",
    "MissingValuePolicy",
    "Observation",
    "RegionDayRecord",
    "RegionSummary",
    "TableSchema",
    "VaccineRecord",
    "WeeklyBucket",
    "Weekday",

    # Stages
    "reshape_wide",
    "drop_columns",
    "join_counts",
    "filter_observations",
    "aggregate_region_days",
    "build_region_days",
    "per_capita",
    "first_difference",
    "add_daily_increments",
    "national_totals",
    "weekly_buckets",
    "detect_cumulative_decreases",
    "summarize_regions",
    "summarize_vaccinations",
    "merge_vaccinations",
    "correlation_matrix",
    "correlation_pvalues",
    "pairwise_observations",
    "fit",
    "predict",
    "add_predictions",
    "compare_models",

    # Errors
    "CovidTrendsError",
    "DateParseError",
    "DegenerateRegressionError",
    "FetchError",
    "MissingPredictorError",
    "PerCapitaError",
    "SchemaError",
    "WeekStartError",
]
