"""
Reshaping, joining and filtering of the cumulative count tables

Wide JHU-style tables (one column per date) become long tables with one row
per (entity, date); cases and deaths are joined on declared identity keys and
records that cannot produce a per-capita rate are filtered out.
"""

import logging
from datetime import datetime
from typing import Dict, Iterable, List, Sequence

import pandas as pd

from .exceptions import DateParseError, SchemaError
from .models import OBSERVATION_SCHEMA, POST_RESHAPE_DROP, TableSchema

logger = logging.getLogger(__name__)

# Header formats seen in the source tables, tried in order
DATE_HEADER_FORMATS = ("%m/%d/%y", "%m/%d/%Y", "%Y-%m-%d")

DEFAULT_JOIN_KEYS = ("entity_id", "subregion", "region", "country", "combined_key", "date")


def parse_date_header(header) -> pd.Timestamp:
    """
    Parse one wide-table column header as a calendar date

    Raises:
        DateParseError: if no known format matches
    """
    text = str(header).strip()
    for fmt in DATE_HEADER_FORMATS:
        try:
            return pd.Timestamp(datetime.strptime(text, fmt))
        except ValueError:
            continue
    raise DateParseError(text)


def reshape_wide(df: pd.DataFrame, schema: TableSchema, value_name: str) -> pd.DataFrame:
    """
    Convert a wide cumulative table into long format

    Columns named by the schema are identity columns; every other column must
    be a date header. All headers are parsed before any reshaping happens, so
    a bad header aborts the whole table.

    Args:
        df: Wide table
        schema: Wide-table schema declaring the identity columns
        value_name: Name of the value column in the output

    Returns:
        Long table {identity columns..., date, value_name}
    """
    schema.validate(df)

    identity = [col for col in df.columns if col in schema.columns]
    date_columns = [col for col in df.columns if col not in schema.columns]
    parsed: Dict[str, pd.Timestamp] = {col: parse_date_header(col) for col in date_columns}

    long_df = df.melt(
        id_vars=identity,
        value_vars=date_columns,
        var_name='date',
        value_name=value_name
    )
    long_df['date'] = pd.to_datetime(long_df['date'].map(parsed))
    values = pd.to_numeric(long_df[value_name], errors='coerce')
    unparsed = values.isna() & long_df[value_name].notna()
    if unparsed.any():
        first = long_df.loc[unparsed].iloc[0]
        raise SchemaError(
            f"{schema.name} has {int(unparsed.sum())} non-numeric {value_name} values; "
            f"first is {first[value_name]!r} on {first['date']:%Y-%m-%d}"
        )
    long_df[value_name] = values

    sort_keys = [col for col in ('entity_id', 'date') if col in long_df.columns]
    long_df = long_df.sort_values(sort_keys, kind='mergesort').reset_index(drop=True)

    logger.info(
        f"Reshaped {schema.name}: {len(df)} rows x {len(date_columns)} dates "
        f"-> {len(long_df)} long rows"
    )
    return long_df


def drop_columns(df: pd.DataFrame, columns: Iterable[str] = POST_RESHAPE_DROP) -> pd.DataFrame:
    """Drop identity columns not used downstream (coordinates, ISO codes)"""
    present = [col for col in columns if col in df.columns]
    return df.drop(columns=present)


def _check_join_input(df: pd.DataFrame, keys: List[str], label: str):
    missing = [key for key in keys if key not in df.columns]
    if missing:
        raise SchemaError(f"{label} table is missing join keys: {missing}")
    if df.duplicated(subset=keys).any():
        raise SchemaError(f"{label} table has duplicate rows for join keys {keys}")


def join_counts(
    cases: pd.DataFrame,
    deaths: pd.DataFrame,
    keys: Sequence[str] = DEFAULT_JOIN_KEYS
) -> pd.DataFrame:
    """
    Full outer join of the long cases and deaths tables

    Rows present on one side only get NaN for the other side's columns.

    Args:
        cases: Long table with a 'cases' column
        deaths: Long table with 'deaths' and 'population' columns
        keys: Join key columns, required in both inputs

    Returns:
        Observation table, one row per key
    """
    keys = list(keys)
    _check_join_input(cases, keys, "cases")
    _check_join_input(deaths, keys, "deaths")

    overlap = (set(cases.columns) & set(deaths.columns)) - set(keys)
    if overlap:
        raise SchemaError(f"Columns {sorted(overlap)} appear in both inputs but are not join keys")

    joined = pd.merge(cases, deaths, on=keys, how='outer', indicator=True)

    only_cases = int((joined['_merge'] == 'left_only').sum())
    only_deaths = int((joined['_merge'] == 'right_only').sum())
    if only_cases or only_deaths:
        logger.warning(
            f"Join left {only_cases} rows without deaths and "
            f"{only_deaths} rows without cases"
        )

    joined = joined.drop(columns='_merge')
    OBSERVATION_SCHEMA.validate(joined)
    return joined.sort_values(['entity_id', 'date'], kind='mergesort').reset_index(drop=True)


def filter_observations(df: pd.DataFrame) -> pd.DataFrame:
    """
    Keep observations with positive cumulative cases and positive population

    Missing values fail both tests. Entities whose cases are still zero are
    absent until their first positive count.
    """
    OBSERVATION_SCHEMA.validate(df)
    mask = (df['cases'] > 0) & (df['population'] > 0)
    filtered = df.loc[mask].reset_index(drop=True)
    logger.info(f"Filter kept {len(filtered)} of {len(df)} observations")
    return filtered
