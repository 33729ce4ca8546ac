"""
Tests for aggregation, per-capita rates and differencing
"""

import numpy as np
import pandas as pd
import pytest

from covid_trends.aggregation import (
    add_daily_increments,
    aggregate_region_days,
    build_region_days,
    detect_cumulative_decreases,
    first_difference,
    national_totals,
    per_capita,
    week_start_dates,
    weekly_buckets,
)
from covid_trends.exceptions import PerCapitaError, SchemaError, WeekStartError
from covid_trends.models import MissingValuePolicy, Weekday


@pytest.fixture
def observations():
    """Two counties in region R and one in region S on one date"""
    return pd.DataFrame({
        'entity_id': [1, 2, 3],
        'region': ['R', 'R', 'S'],
        'country': ['US', 'US', 'US'],
        'date': pd.to_datetime(['2020-03-01'] * 3),
        'cases': [10.0, 20.0, 4.0],
        'deaths': [1.0, np.nan, 2.0],
        'population': [100.0, 300.0, 1000.0],
    })


class TestPerCapita:
    """Test per-capita derivation"""

    def test_scaling(self):
        """value * scale / population"""
        rates = per_capita(pd.Series([5.0, 30.0]), pd.Series([1000.0, 2000.0]), 1000)
        assert rates.tolist() == pytest.approx([5.0, 15.0])

    @pytest.mark.parametrize("population", [0.0, -10.0, np.nan])
    def test_invalid_population_fails(self, population):
        """Zero, negative or missing population is a contract violation"""
        with pytest.raises(PerCapitaError):
            per_capita(pd.Series([1.0, 2.0]), pd.Series([100.0, population]), 1_000_000)


class TestAggregateRegionDays:
    """Test region-day aggregation"""

    def test_sums_entities_per_region(self, observations):
        """Counts and population are summed; missing deaths count as zero"""
        result = aggregate_region_days(observations).set_index('region')

        assert result.loc['R', 'cases'] == 30
        assert result.loc['R', 'deaths'] == 1
        assert result.loc['R', 'population'] == 400
        assert result.loc['R', 'cases_per_million'] == pytest.approx(30 * 1_000_000 / 400)
        assert result.loc['S', 'deaths_per_million'] == pytest.approx(2 * 1_000_000 / 1000)

    def test_propagate_policy(self, observations):
        """A missing member makes the group's sum missing"""
        result = aggregate_region_days(observations, MissingValuePolicy.PROPAGATE).set_index('region')

        assert np.isnan(result.loc['R', 'deaths'])
        assert np.isnan(result.loc['R', 'deaths_per_million'])
        assert result.loc['R', 'cases'] == 30
        assert result.loc['S', 'deaths'] == 2

    def test_exclude_policy(self, observations):
        """Rows with a missing value are dropped before summing"""
        result = aggregate_region_days(observations, MissingValuePolicy.EXCLUDE).set_index('region')

        assert result.loc['R', 'cases'] == 10
        assert result.loc['R', 'population'] == 100

    def test_input_not_mutated(self, observations):
        """Aggregation returns a new table"""
        before = observations.copy()
        aggregate_region_days(observations)
        pd.testing.assert_frame_equal(observations, before)

    def test_build_region_days_adds_increments(self):
        """Region-day records carry new_cases and new_deaths"""
        observations = pd.DataFrame({
            'entity_id': [1, 1, 1],
            'region': ['R'] * 3,
            'country': ['US'] * 3,
            'date': pd.to_datetime(['2020-03-03', '2020-03-01', '2020-03-02']),
            'cases': [9.0, 2.0, 5.0],
            'deaths': [1.0, 0.0, 1.0],
            'population': [50.0] * 3,
        })

        result = build_region_days(observations)

        assert result['date'].is_monotonic_increasing
        assert result['new_cases'].tolist() == [2.0, 3.0, 4.0]
        assert result['new_deaths'].tolist() == [0.0, 1.0, 0.0]
        assert (result['population'] > 0).all()
        assert (result['cases'] >= 0).all()

    def test_build_region_days_rejects_invalid_rows(self, observations):
        """Aggregated rows are checked against the region-day record"""
        bad = observations.assign(cases=[-10.0, -20.0, -4.0])

        with pytest.raises(SchemaError):
            build_region_days(bad)

    def test_build_region_days_propagated_deaths(self, observations):
        """Missing deaths under the propagate policy are valid region-day rows"""
        result = build_region_days(observations, MissingValuePolicy.PROPAGATE).set_index('region')

        assert np.isnan(result.loc['R', 'deaths'])
        assert np.isnan(result.loc['R', 'new_deaths'])
        assert result.loc['S', 'new_deaths'] == 2


class TestDifferencer:
    """Test daily increments"""

    def test_first_value_boundary(self):
        """The first increment equals the first cumulative value"""
        assert first_difference(pd.Series([0, 5, 5, 12])).tolist() == [0, 5, 0, 7]

    def test_negative_increments_kept(self):
        """Downward revisions are not clamped"""
        assert first_difference(pd.Series([10, 8, 12])).tolist() == [10, -2, 4]

    def test_per_region_ordering(self):
        """Each region is differenced over its own chronologically sorted series"""
        df = pd.DataFrame({
            'region': ['B', 'A', 'B', 'A'],
            'date': pd.to_datetime(['2020-03-02', '2020-03-02', '2020-03-01', '2020-03-01']),
            'cases': [7, 4, 3, 1],
            'deaths': [0, 1, 0, 0],
        })

        result = add_daily_increments(df).set_index(['region', 'date'])

        assert result.loc[('A', pd.Timestamp('2020-03-01')), 'new_cases'] == 1
        assert result.loc[('A', pd.Timestamp('2020-03-02')), 'new_cases'] == 3
        assert result.loc[('B', pd.Timestamp('2020-03-01')), 'new_cases'] == 3
        assert result.loc[('B', pd.Timestamp('2020-03-02')), 'new_cases'] == 4


class TestWeeklyBuckets:
    """Test weekly re-aggregation"""

    @pytest.fixture
    def daily(self):
        dates = pd.date_range('2021-01-01', '2021-01-20', freq='D')
        rng = np.random.default_rng(7)
        return pd.DataFrame({
            'region': ['R'] * len(dates),
            'date': dates,
            'new_cases': rng.integers(-5, 50, len(dates)).astype(float),
            'new_deaths': rng.integers(-1, 5, len(dates)).astype(float),
        })

    def test_sum_conservation(self, daily):
        """Weekly totals add up to the daily totals"""
        weekly = weekly_buckets(daily, ['region'])

        assert weekly['weekly_new_cases'].sum() == daily['new_cases'].sum()
        assert weekly['weekly_new_deaths'].sum() == daily['new_deaths'].sum()

    def test_monday_week_start(self, daily):
        """2021-01-01 is a Friday; its week starts on 2020-12-28"""
        weekly = weekly_buckets(daily, ['region'], Weekday.MON)

        assert (weekly['week_start'].dt.weekday == 0).all()
        assert weekly['week_start'].iloc[0] == pd.Timestamp('2020-12-28')
        assert len(weekly) == 4

    def test_sunday_week_start(self, daily):
        """Week start convention is configurable"""
        weekly = weekly_buckets(daily, ['region'], 'SUN')

        assert (weekly['week_start'].dt.weekday == 6).all()
        assert weekly['week_start'].iloc[0] == pd.Timestamp('2020-12-27')

    def test_non_positive_weeks_kept(self):
        """A week whose total is negative stays in the output"""
        daily = pd.DataFrame({
            'date': pd.to_datetime(['2021-01-04', '2021-01-05', '2021-01-11']),
            'new_cases': [-3.0, 1.0, 4.0],
            'new_deaths': [0.0, 0.0, 0.0],
        })

        weekly = weekly_buckets(daily)

        assert weekly['weekly_new_cases'].tolist() == [-2.0, 4.0]
        assert weekly['weekly_new_deaths'].tolist() == [0.0, 0.0]

    def test_week_start_dates(self):
        """Dates already on the week start map to themselves"""
        dates = pd.Series(pd.to_datetime(['2021-01-04', '2021-01-10']))
        assert week_start_dates(dates).tolist() == [pd.Timestamp('2021-01-04')] * 2

    @pytest.mark.parametrize("week_start", ['FUNDAY', 9])
    def test_unknown_week_start(self, daily, week_start):
        """An unknown week start is a typed error"""
        with pytest.raises(WeekStartError):
            weekly_buckets(daily, ['region'], week_start)

    def test_missing_increment_columns(self):
        daily = pd.DataFrame({'date': pd.to_datetime(['2021-01-04']), 'new_cases': [1.0]})

        with pytest.raises(SchemaError):
            weekly_buckets(daily)


class TestNationalTotals:
    """Test the national series"""

    def test_sums_regions_and_differences_totals(self, region_days_scenario):
        """National cumulative counts are summed, then differenced"""
        national = national_totals(region_days_scenario)

        assert national['cases'].tolist() == [110.0, 170.0, 330.0]
        assert national['new_cases'].tolist() == [110.0, 60.0, 160.0]
        assert national['population'].tolist() == [3000.0] * 3
        assert national['deaths_per_million'].iloc[-1] == pytest.approx(33 * 1_000_000 / 3000)


class TestCumulativeDecreases:
    """Test detection of downward revisions"""

    def test_reports_negative_increments(self):
        df = pd.DataFrame({
            'region': ['A', 'A', 'A', 'B'],
            'date': pd.to_datetime(['2020-03-01', '2020-03-02', '2020-03-03', '2020-03-01']),
            'cases': [5, 9, 7, 3],
            'deaths': [0, 1, 1, 0],
        })

        decreases = detect_cumulative_decreases(add_daily_increments(df))

        assert len(decreases) == 1
        assert decreases.iloc[0]['region'] == 'A'
        assert decreases.iloc[0]['new_cases'] == -2
