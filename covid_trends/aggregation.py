"""
Region-level aggregation, per-capita rates and temporal differencing
"""

import logging
from typing import Sequence, Union

import pandas as pd

from .exceptions import PerCapitaError, SchemaError, WeekStartError
from .models import (
    COUNTS_SCHEMA,
    MissingValuePolicy,
    OBSERVATION_SCHEMA,
    REGION_DAY_SCHEMA,
    RegionDayRecord,
    WEEKLY_SCHEMA,
    Weekday,
    check_row_sample,
)

logger = logging.getLogger(__name__)

PER_MILLION = 1_000_000
PER_THOUSAND = 1_000

COUNT_COLUMNS = ['cases', 'deaths', 'population']

# Region-day rows validated against RegionDayRecord on each build
ROW_CHECK_SAMPLE = 200


def per_capita(values: pd.Series, population: pd.Series, scale: float) -> pd.Series:
    """
    values * scale / population

    Raises:
        PerCapitaError: if any population is zero, negative or missing
    """
    invalid = population.isna() | (population <= 0)
    if invalid.any():
        raise PerCapitaError(
            f"Per-capita rate requested over {int(invalid.sum())} rows "
            f"with non-positive or missing population"
        )
    return values * scale / population


def grouped_sum(
    df: pd.DataFrame,
    keys: Sequence[str],
    columns: Sequence[str],
    missing: MissingValuePolicy
) -> pd.DataFrame:
    """
    Sum columns per group under an explicit missing-value policy

    ZERO treats missing as 0, PROPAGATE makes a group's sum missing when any
    member is missing, EXCLUDE drops rows with a missing value first.
    """
    keys, columns = list(keys), list(columns)
    missing = MissingValuePolicy(missing)

    if missing is MissingValuePolicy.EXCLUDE:
        work = df.dropna(subset=columns)
    else:
        work = df.copy()
        work[columns] = work[columns].fillna(0)

    totals = work.groupby(keys, sort=True)[columns].sum()

    if missing is MissingValuePolicy.PROPAGATE:
        has_missing = df[columns].isna().groupby([df[k] for k in keys], sort=True).any()
        totals = totals.mask(has_missing.reindex(totals.index, fill_value=False))

    return totals.reset_index()


def first_difference(values: pd.Series) -> pd.Series:
    """
    Daily increments from a cumulative series

    The value before the first observation is taken as 0, so the first
    increment equals the first cumulative value. Negative increments from
    downward revisions are kept.
    """
    return values - values.shift(1, fill_value=0)


def add_daily_increments(
    df: pd.DataFrame,
    group_columns: Sequence[str] = ('region',),
    columns: Sequence[str] = ('cases', 'deaths')
) -> pd.DataFrame:
    """Add new_<column> increments per group, in date order"""
    group_columns = list(group_columns)
    result = df.sort_values(group_columns + ['date'], kind='mergesort').reset_index(drop=True)

    for col in columns:
        if group_columns:
            result[f'new_{col}'] = result.groupby(group_columns, sort=False)[col].transform(first_difference)
        else:
            result[f'new_{col}'] = first_difference(result[col])

    return result


def _with_rates(df: pd.DataFrame) -> pd.DataFrame:
    df = df.copy()
    df['cases_per_million'] = per_capita(df['cases'], df['population'], PER_MILLION)
    df['deaths_per_million'] = per_capita(df['deaths'], df['population'], PER_MILLION)
    return df


def aggregate_region_days(
    observations: pd.DataFrame,
    missing: MissingValuePolicy = MissingValuePolicy.ZERO
) -> pd.DataFrame:
    """
    Roll filtered observations up to one row per (region, country, date)

    Counts and population are summed over every entity sharing the key. A date
    on which some sub-units did not report gets an incomplete population sum.

    Args:
        observations: Filtered Observation table
        missing: Policy for missing counts inside a group

    Returns:
        Region-day counts with cases_per_million and deaths_per_million
    """
    OBSERVATION_SCHEMA.validate(observations)

    totals = grouped_sum(observations, ['region', 'country', 'date'], COUNT_COLUMNS, missing)
    totals = _with_rates(totals)

    logger.info(
        f"Aggregated {len(observations)} observations into {len(totals)} region-days "
        f"across {totals['region'].nunique()} regions"
    )
    return totals


def build_region_days(
    observations: pd.DataFrame,
    missing: MissingValuePolicy = MissingValuePolicy.ZERO
) -> pd.DataFrame:
    """Aggregate observations and add daily increments per region"""
    region_days = add_daily_increments(aggregate_region_days(observations, missing))
    REGION_DAY_SCHEMA.validate(region_days)

    if region_days.duplicated(subset=['region', 'date']).any():
        raise SchemaError("Region-day table has more than one row per (region, date)")

    checked = check_row_sample(region_days, RegionDayRecord, ROW_CHECK_SAMPLE)
    logger.debug(f"Validated {checked} sampled region-day rows")

    return region_days


def national_totals(
    region_days: pd.DataFrame,
    missing: MissingValuePolicy = MissingValuePolicy.ZERO
) -> pd.DataFrame:
    """
    Sum region-day counts into one series per country

    Increments are re-derived from the national cumulative totals rather than
    summed from regional increments.
    """
    COUNTS_SCHEMA.validate(region_days)

    totals = grouped_sum(region_days, ['country', 'date'], COUNT_COLUMNS, missing)
    totals = add_daily_increments(_with_rates(totals), group_columns=['country'])

    logger.info(f"Built national series: {len(totals)} days")
    return totals


def _weekday(value: Union[Weekday, str, int]) -> Weekday:
    try:
        if isinstance(value, str):
            return Weekday[value.strip().upper()]
        return Weekday(value)
    except (KeyError, ValueError) as e:
        raise WeekStartError(value) from e


def week_start_dates(dates: pd.Series, week_start: Union[Weekday, str, int] = Weekday.MON) -> pd.Series:
    """Map each date to the first day of its week"""
    start = _weekday(week_start)
    dates = pd.to_datetime(dates).dt.normalize()
    offset = (dates.dt.weekday - start.value) % 7
    return dates - pd.to_timedelta(offset, unit='D')


def weekly_buckets(
    daily: pd.DataFrame,
    group_columns: Sequence[str] = (),
    week_start: Union[Weekday, str, int] = Weekday.MON,
    missing: MissingValuePolicy = MissingValuePolicy.ZERO
) -> pd.DataFrame:
    """
    Sum daily increments into calendar weeks

    Weeks whose totals are zero or negative are kept.

    Args:
        daily: Table with date, new_cases and new_deaths
        group_columns: Optional grouping (e.g. ['region'])
        week_start: First weekday of a week
        missing: Policy for missing increments

    Returns:
        {group columns..., week_start, weekly_new_cases, weekly_new_deaths}
    """
    required = ['date', 'new_cases', 'new_deaths'] + list(group_columns)
    absent = [col for col in required if col not in daily.columns]
    if absent:
        raise SchemaError(f"Daily table is missing columns for weekly bucketing: {absent}")

    work = daily.assign(week_start=week_start_dates(daily['date'], week_start))
    weekly = grouped_sum(
        work,
        list(group_columns) + ['week_start'],
        ['new_cases', 'new_deaths'],
        missing
    )
    weekly = weekly.rename(columns={
        'new_cases': 'weekly_new_cases',
        'new_deaths': 'weekly_new_deaths'
    })
    return WEEKLY_SCHEMA.validate(weekly)


def detect_cumulative_decreases(
    daily: pd.DataFrame,
    group_columns: Sequence[str] = ('region',)
) -> pd.DataFrame:
    """
    Rows where a cumulative series went down (negative increment)

    A non-empty result means peak values are historical maxima rather than
    the latest corrected totals for those groups.
    """
    mask = (daily['new_cases'] < 0) | (daily['new_deaths'] < 0)
    columns = list(group_columns) + ['date', 'cases', 'deaths', 'new_cases', 'new_deaths']
    return daily.loc[mask, columns].reset_index(drop=True)
