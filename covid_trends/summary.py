"""
Per-region summarization and the vaccination merge
"""

import logging

import pandas as pd

from .aggregation import PER_THOUSAND, per_capita
from .models import COUNTS_SCHEMA, REGION_SUMMARY_SCHEMA, VACCINE_SCHEMA

logger = logging.getLogger(__name__)

VACCINE_COLUMNS = [
    'doses_administered',
    'people_one_dose',
    'people_fully_vaccinated',
    'additional_doses',
]

# vaccine count column -> per-thousand rate column
VACCINE_RATE_COLUMNS = {
    'doses_administered': 'doses_per_thousand',
    'people_one_dose': 'one_dose_per_thousand',
    'people_fully_vaccinated': 'fully_vaccinated_per_thousand',
    'additional_doses': 'additional_doses_per_thousand',
}


def summarize_regions(region_days: pd.DataFrame) -> pd.DataFrame:
    """
    Collapse each region's history into one row of peak values and rates

    The maximum over all dates stands in for the latest cumulative total.
    If a region's series was revised downward the peak is a historical value,
    not the corrected one (see detect_cumulative_decreases).

    Args:
        region_days: Region-day table

    Returns:
        RegionSummary table, one row per region
    """
    COUNTS_SCHEMA.validate(region_days)

    summary = region_days.groupby('region', as_index=False, sort=True).agg(
        country=('country', 'first'),
        peak_cases=('cases', 'max'),
        peak_deaths=('deaths', 'max'),
        peak_population=('population', 'max'),
    )

    summary = summary[(summary['peak_cases'] > 0) & (summary['peak_population'] > 0)]
    summary = summary.reset_index(drop=True)

    summary['cases_per_thousand'] = per_capita(summary['peak_cases'], summary['peak_population'], PER_THOUSAND)
    summary['deaths_per_thousand'] = per_capita(summary['peak_deaths'], summary['peak_population'], PER_THOUSAND)

    logger.info(f"Summarized {len(summary)} regions")
    return REGION_SUMMARY_SCHEMA.validate(summary)


def summarize_vaccinations(vaccinations: pd.DataFrame) -> pd.DataFrame:
    """Reduce vaccination records to the per-column maximum for each region"""
    VACCINE_SCHEMA.validate(vaccinations)

    records = vaccinations.dropna(subset=['region'])
    return records.groupby('region', as_index=False, sort=True)[VACCINE_COLUMNS].max()


def merge_vaccinations(summary: pd.DataFrame, vaccinations: pd.DataFrame) -> pd.DataFrame:
    """
    Left-join vaccination maxima onto the region summary by exact region name

    Region names are not normalized; a region spelled differently in the two
    sources keeps missing vaccine columns.

    Args:
        summary: RegionSummary table
        vaccinations: Vaccination records

    Returns:
        New summary table with vaccine counts and per-thousand rates
    """
    REGION_SUMMARY_SCHEMA.validate(summary)

    vaccine_summary = summarize_vaccinations(vaccinations)
    merged = summary.merge(vaccine_summary, on='region', how='left', validate='one_to_one')

    unmatched = sorted(set(summary['region']) - set(vaccine_summary['region']))
    if unmatched:
        logger.warning(f"No vaccination data matched {len(unmatched)} regions: {unmatched}")

    unused = sorted(set(vaccine_summary['region']) - set(summary['region']))
    if unused:
        logger.info(f"Vaccination regions without a case summary: {unused}")

    for count_col, rate_col in VACCINE_RATE_COLUMNS.items():
        merged[rate_col] = per_capita(merged[count_col], merged['peak_population'], PER_THOUSAND)

    return merged
