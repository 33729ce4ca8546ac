"""
Data Ingestion for the COVID Trends Pipeline
Parses fetched CSV bytes and standardizes source column names
"""

import io
import logging
from abc import ABC, abstractmethod
from typing import Dict

import pandas as pd

from .models import (
    TableSchema,
    VACCINE_SCHEMA,
    WIDE_CASES_SCHEMA,
    WIDE_DEATHS_SCHEMA,
)

logger = logging.getLogger(__name__)


# JHU CSSE US time series identity columns
WIDE_COLUMN_MAPPING: Dict[str, str] = {
    'UID': 'entity_id',
    'iso2': 'iso2',
    'iso3': 'iso3',
    'code3': 'code3',
    'FIPS': 'fips',
    'Admin2': 'subregion',
    'Province_State': 'region',
    'Country_Region': 'country',
    'Lat': 'lat',
    'Long_': 'long',
    'Combined_Key': 'combined_key',
    'Population': 'population',
}

# GovEx US vaccine time series
VACCINE_COLUMN_MAPPING: Dict[str, str] = {
    'Date': 'date',
    'Province_State': 'region',
    'Country_Region': 'country',
    'Doses_admin': 'doses_administered',
    'People_at_least_one_dose': 'people_one_dose',
    'People_fully_vaccinated': 'people_fully_vaccinated',
    'Total_additional_doses': 'additional_doses',
}


def read_table(content: bytes) -> pd.DataFrame:
    """Parse CSV bytes into a DataFrame without interpreting any column"""
    return pd.read_csv(io.BytesIO(content))


class SourceTableLoader(ABC):
    """Base class for source table loaders"""

    schema: TableSchema
    column_mapping: Dict[str, str]

    def load(self, content: bytes) -> pd.DataFrame:
        """
        Parse and standardize one fetched table

        Args:
            content: Raw CSV bytes

        Returns:
            DataFrame with internal column names
        """
        df = read_table(content)
        df = self.standardize_columns(df)
        self.schema.validate(df)
        df = self.prepare(df)
        logger.info(f"Loaded {self.schema.name} table: {len(df)} rows, {len(df.columns)} columns")
        return df

    def standardize_columns(self, df: pd.DataFrame) -> pd.DataFrame:
        """Rename source headers; already-standard headers pass through"""
        renames = {
            old: new for old, new in self.column_mapping.items()
            if old in df.columns and new not in df.columns
        }
        return df.rename(columns=renames)

    @abstractmethod
    def prepare(self, df: pd.DataFrame) -> pd.DataFrame:
        pass


class WideCountsLoader(SourceTableLoader):
    """
    Loader for wide cumulative count tables (confirmed cases, deaths)

    Date columns are left as raw header strings; the reshaper owns date parsing.
    """

    column_mapping = WIDE_COLUMN_MAPPING

    def __init__(self, schema: TableSchema):
        self.schema = schema

    def prepare(self, df: pd.DataFrame) -> pd.DataFrame:
        return df


class VaccineLoader(SourceTableLoader):
    """Loader for the long-format vaccination time series"""

    schema = VACCINE_SCHEMA
    column_mapping = VACCINE_COLUMN_MAPPING

    def prepare(self, df: pd.DataFrame) -> pd.DataFrame:
        columns = list(self.schema.required) + self.schema.present_optional(df)
        df = df[columns].copy()
        df['date'] = pd.to_datetime(df['date'])
        return df


def load_confirmed(content: bytes) -> pd.DataFrame:
    return WideCountsLoader(WIDE_CASES_SCHEMA).load(content)


def load_deaths(content: bytes) -> pd.DataFrame:
    return WideCountsLoader(WIDE_DEATHS_SCHEMA).load(content)


def load_vaccinations(content: bytes) -> pd.DataFrame:
    return VaccineLoader().load(content)
