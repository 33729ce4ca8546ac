"""
Main COVID Trends Pipeline
Chains reshaping, aggregation, summarization, correlation and regression
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Union

import pandas as pd

from .aggregation import (
    build_region_days,
    detect_cumulative_decreases,
    national_totals,
    weekly_buckets,
)
from .config import CovidTrendsConfig
from .correlation import correlation_matrix
from .fetch import SnapshotFetcher
from .ingestion import load_confirmed, load_deaths, load_vaccinations
from .models import (
    FittedModel,
    MissingValuePolicy,
    WIDE_CASES_SCHEMA,
    WIDE_DEATHS_SCHEMA,
    Weekday,
)
from .regression import add_predictions, compare_models, fit
from .reshaping import DEFAULT_JOIN_KEYS, drop_columns, filter_observations, join_counts, reshape_wide
from .summary import merge_vaccinations, summarize_regions

logger = logging.getLogger(__name__)


@dataclass
class PipelineResult:
    """In-memory outputs handed to the presentation layer"""
    region_days: pd.DataFrame
    national_days: pd.DataFrame
    weekly_by_region: pd.DataFrame
    national_weekly: pd.DataFrame
    region_summary: pd.DataFrame
    correlation: pd.DataFrame
    models: Dict[str, FittedModel] = field(default_factory=dict)
    model_comparison: pd.DataFrame = field(default_factory=pd.DataFrame)
    cumulative_decreases: pd.DataFrame = field(default_factory=pd.DataFrame)


class CovidTrendsPipeline:
    """
    End-to-end pipeline from raw source bytes to per-capita statistics

    Workflow:
    1. Parse and reshape the wide cases and deaths tables
    2. Join, filter and aggregate to region-days
    3. Difference cumulative counts and bucket into weeks
    4. Summarize regions and merge vaccination data
    5. Correlate summary columns and fit the simple and extended models
    """

    def __init__(
        self,
        week_start: Union[Weekday, str] = CovidTrendsConfig.WEEK_START,
        missing: MissingValuePolicy = MissingValuePolicy.ZERO,
        join_keys: Sequence[str] = DEFAULT_JOIN_KEYS,
        response: str = CovidTrendsConfig.RESPONSE_COLUMN,
        model_predictors: Optional[Dict[str, List[str]]] = None,
        correlation_columns: Optional[List[str]] = None
    ):
        """
        Initialize pipeline

        Args:
            week_start: First weekday of a weekly bucket
            missing: Missing-value policy for every summing step
            join_keys: Identity keys shared by the cases and deaths tables
            response: Regression response column
            model_predictors: Model label -> predictor columns, fitted in order
            correlation_columns: Summary columns to correlate
        """
        self.week_start = week_start
        self.missing = missing
        self.join_keys = list(join_keys)
        self.response = response
        self.model_predictors = model_predictors or {
            'simple': list(CovidTrendsConfig.SIMPLE_PREDICTORS),
            'extended': list(CovidTrendsConfig.EXTENDED_PREDICTORS),
        }
        self.correlation_columns = correlation_columns or list(CovidTrendsConfig.CORRELATION_COLUMNS)

    def run(self, confirmed: bytes, deaths: bytes, vaccine: bytes) -> PipelineResult:
        """
        Run the pipeline over an already-fetched snapshot

        Args:
            confirmed: Wide confirmed-cases CSV bytes
            deaths: Wide deaths CSV bytes (with Population)
            vaccine: Vaccination time series CSV bytes

        Returns:
            PipelineResult
        """
        logger.info("=" * 80)
        logger.info("COVID TRENDS PIPELINE")
        logger.info("=" * 80)

        logger.info("[Step 1/5] Reshaping source tables...")
        cases_long = drop_columns(reshape_wide(load_confirmed(confirmed), WIDE_CASES_SCHEMA, 'cases'))
        deaths_long = drop_columns(reshape_wide(load_deaths(deaths), WIDE_DEATHS_SCHEMA, 'deaths'))
        vaccinations = load_vaccinations(vaccine)

        return self.run_tables(cases_long, deaths_long, vaccinations)

    def run_tables(
        self,
        cases_long: pd.DataFrame,
        deaths_long: pd.DataFrame,
        vaccinations: pd.DataFrame
    ) -> PipelineResult:
        """Run every step after reshaping on long-format tables"""
        logger.info("[Step 2/5] Joining, filtering and aggregating...")
        observations = filter_observations(join_counts(cases_long, deaths_long, self.join_keys))
        region_days = build_region_days(observations, self.missing)

        logger.info("[Step 3/5] Differencing and weekly bucketing...")
        national_days = national_totals(region_days, self.missing)
        weekly_by_region = weekly_buckets(region_days, ['region'], self.week_start, self.missing)
        national_weekly = weekly_buckets(national_days, ['country'], self.week_start, self.missing)

        decreases = detect_cumulative_decreases(region_days)
        if not decreases.empty:
            logger.warning(
                f"Cumulative counts decreased {len(decreases)} times in "
                f"{decreases['region'].nunique()} regions; peak values may predate corrections"
            )

        logger.info("[Step 4/5] Summarizing regions and merging vaccinations...")
        summary = merge_vaccinations(summarize_regions(region_days), vaccinations)

        logger.info("[Step 5/5] Correlation and regression...")
        correlation = correlation_matrix(summary, self.correlation_columns)

        models: Dict[str, FittedModel] = {}
        for label, predictors in self.model_predictors.items():
            model = fit(summary, self.response, predictors)
            models[label] = model
            summary = add_predictions(summary, model, f"predicted_{self.response}_{label}")

        comparison = compare_models(models)
        for row in comparison.itertuples():
            logger.info(f"  {row.model}: R²={row.r_squared:.3f} ({row.predictors})")

        return PipelineResult(
            region_days=region_days,
            national_days=national_days,
            weekly_by_region=weekly_by_region,
            national_weekly=national_weekly,
            region_summary=summary,
            correlation=correlation,
            models=models,
            model_comparison=comparison,
            cumulative_decreases=decreases,
        )

    def run_from_sources(
        self,
        fetcher: SnapshotFetcher,
        confirmed_url: str = CovidTrendsConfig.CONFIRMED_URL,
        deaths_url: str = CovidTrendsConfig.DEATHS_URL,
        vaccine_url: str = CovidTrendsConfig.VACCINE_URL,
        refresh: bool = False
    ) -> PipelineResult:
        """Fetch the three sources (or their cached snapshots) and run"""
        return self.run(
            confirmed=fetcher.fetch(confirmed_url, refresh=refresh),
            deaths=fetcher.fetch(deaths_url, refresh=refresh),
            vaccine=fetcher.fetch(vaccine_url, refresh=refresh),
        )
