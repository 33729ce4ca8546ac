"""
Data Models for the COVID Trends Pipeline
Row models, table schemas and the fitted regression value
"""

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Dict, List, Optional, Tuple, Type, Union

import pandas as pd
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .exceptions import SchemaError


class MissingValuePolicy(str, Enum):
    """How an aggregation treats missing members of a group"""
    ZERO = "zero"            # missing counts as 0
    PROPAGATE = "propagate"  # any missing member makes the group value missing
    EXCLUDE = "exclude"      # rows with a missing value are dropped before grouping


class Weekday(int, Enum):
    """Week start convention used by weekly bucketing"""
    MON = 0
    TUE = 1
    WED = 2
    THU = 3
    FRI = 4
    SAT = 5
    SUN = 6


# ============================================================================
# Row models
# ============================================================================

class Observation(BaseModel):
    """One entity on one date, produced by the cases/deaths join"""

    entity_id: Union[int, str] = Field(..., description="Unique administrative unit id (JHU UID)")
    region: str = Field(..., description="State or territory name")
    country: str
    date: date
    cases: Optional[float] = Field(None, description="Cumulative confirmed cases")
    deaths: Optional[float] = Field(None, description="Cumulative deaths")
    population: Optional[float] = None

    subregion: Optional[str] = Field(None, description="County or equivalent")
    combined_key: Optional[str] = None


class RegionDayRecord(BaseModel):
    """Aggregated counts for one region on one date"""

    region: str
    country: str
    date: date
    cases: float = Field(ge=0)
    deaths: Optional[float] = Field(..., description="Missing only under the propagate policy")
    population: float = Field(gt=0)
    cases_per_million: float
    deaths_per_million: Optional[float] = Field(...)
    new_cases: float = Field(description="Daily increment, may be negative after revisions")
    new_deaths: Optional[float] = Field(...)


class WeeklyBucket(BaseModel):
    """Sum of daily increments over one calendar week"""

    week_start: date
    weekly_new_cases: float
    weekly_new_deaths: float


class RegionSummary(BaseModel):
    """Peak cumulative values and per-thousand rates for one region"""

    region: str
    country: Optional[str] = None
    peak_cases: float = Field(gt=0)
    peak_deaths: float
    peak_population: float = Field(gt=0)
    cases_per_thousand: float
    deaths_per_thousand: float


class VaccineRecord(BaseModel):
    """One row of the vaccination time series"""

    region: str
    date: date
    doses_administered: Optional[float] = None
    people_one_dose: Optional[float] = None
    people_fully_vaccinated: Optional[float] = None
    additional_doses: Optional[float] = None

    country: Optional[str] = None


class FittedModel(BaseModel):
    """Immutable result of an ordinary least squares fit"""

    model_config = ConfigDict(frozen=True)

    response_name: str
    predictor_names: Tuple[str, ...]
    coefficients: Dict[str, float]
    intercept: float
    standard_errors: Dict[str, float]
    intercept_standard_error: float
    r_squared: float
    adjusted_r_squared: float
    n_observations: int = Field(ge=0)


# ============================================================================
# Table schemas
# ============================================================================

@dataclass(frozen=True)
class TableSchema:
    """Required and optional columns of one table type"""

    name: str
    required: Tuple[str, ...]
    optional: Tuple[str, ...] = ()

    @classmethod
    def from_model(
        cls,
        name: str,
        model: Type[BaseModel],
        optional: Tuple[str, ...] = ()
    ) -> "TableSchema":
        required = tuple(f for f in model.model_fields if f not in optional)
        return cls(name=name, required=required, optional=tuple(optional))

    @property
    def columns(self) -> Tuple[str, ...]:
        return self.required + self.optional

    def missing(self, df: pd.DataFrame) -> List[str]:
        return [col for col in self.required if col not in df.columns]

    def present_optional(self, df: pd.DataFrame) -> List[str]:
        return [col for col in self.optional if col in df.columns]

    def validate(self, df: pd.DataFrame) -> pd.DataFrame:
        """Raise SchemaError if a required column is absent"""
        missing = self.missing(df)
        if missing:
            raise SchemaError(f"{self.name} table is missing required columns: {missing}")
        return df


WIDE_CASES_SCHEMA = TableSchema(
    name="confirmed cases (wide)",
    required=("entity_id", "region", "country"),
    optional=("subregion", "combined_key", "lat", "long", "iso2", "iso3", "code3", "fips"),
)

WIDE_DEATHS_SCHEMA = TableSchema(
    name="deaths (wide)",
    required=("entity_id", "region", "country", "population"),
    optional=WIDE_CASES_SCHEMA.optional,
)

OBSERVATION_SCHEMA = TableSchema.from_model(
    "observation", Observation, optional=("subregion", "combined_key")
)
REGION_DAY_SCHEMA = TableSchema.from_model("region-day", RegionDayRecord)
COUNTS_SCHEMA = TableSchema(
    name="region-day counts",
    required=("region", "country", "date", "cases", "deaths", "population"),
)
WEEKLY_SCHEMA = TableSchema.from_model("weekly bucket", WeeklyBucket)
REGION_SUMMARY_SCHEMA = TableSchema.from_model(
    "region summary", RegionSummary, optional=("country",)
)
VACCINE_SCHEMA = TableSchema.from_model("vaccination", VaccineRecord, optional=("country",))

# Columns dropped after reshaping; coordinates are not used downstream
POST_RESHAPE_DROP = ("lat", "long", "iso2", "iso3", "code3", "fips")


def records_from_frame(df: pd.DataFrame, model: Type[BaseModel]) -> list:
    """
    Convert a table into validated row models

    Extra columns are ignored; NaN becomes None so optional fields validate.

    Raises:
        SchemaError: if a row violates the model constraints
    """
    fields = [f for f in model.model_fields if f in df.columns]
    rows = df[fields].copy()
    for col in fields:
        if pd.api.types.is_datetime64_any_dtype(rows[col]):
            rows[col] = rows[col].dt.date
    rows = rows.astype(object).where(rows.notna(), None)

    records = []
    for index, row in zip(rows.index, rows.to_dict(orient="records")):
        try:
            records.append(model(**row))
        except ValidationError as e:
            raise SchemaError(f"Row {index!r} is not a valid {model.__name__}: {e}") from e
    return records


def check_row_sample(df: pd.DataFrame, model: Type[BaseModel], size: int) -> int:
    """
    Validate a reproducible sample of rows against a row model

    Returns:
        Number of rows checked
    """
    if size <= 0 or df.empty:
        return 0
    sample = df.sample(n=size, random_state=0) if len(df) > size else df
    return len(records_from_frame(sample, model))
