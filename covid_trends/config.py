"""
Configuration for the COVID Trends Pipeline
"""

import logging
import os
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

from .models import Weekday

load_dotenv()

logger = logging.getLogger(__name__)

_JHU_BASE = (
    "https://raw.githubusercontent.com/CSSEGISandData/COVID-19/master/"
    "csse_covid_19_data/csse_covid_19_time_series"
)
_VACCINE_BASE = (
    "https://raw.githubusercontent.com/govex/COVID-19/master/"
    "data_tables/vaccine_data/us_data/time_series"
)


def _csv_list(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


class CovidTrendsConfig:
    """Configuration for the COVID trends pipeline"""

    # ═══════════════════════════════════════════════════════════
    # Directory Paths
    # ═══════════════════════════════════════════════════════════
    BASE_DIR = Path(__file__).parent.parent
    SNAPSHOT_DIR: Optional[Path] = (
        Path(os.environ["SNAPSHOT_DIR"]) if os.getenv("SNAPSHOT_DIR") else None
    )

    # ═══════════════════════════════════════════════════════════
    # Data Sources
    # ═══════════════════════════════════════════════════════════
    CONFIRMED_URL = os.getenv("CONFIRMED_URL", f"{_JHU_BASE}/time_series_covid19_confirmed_US.csv")
    DEATHS_URL = os.getenv("DEATHS_URL", f"{_JHU_BASE}/time_series_covid19_deaths_US.csv")
    VACCINE_URL = os.getenv("VACCINE_URL", f"{_VACCINE_BASE}/time_series_covid19_vaccine_us.csv")

    # ═══════════════════════════════════════════════════════════
    # Fetch Policy
    # ═══════════════════════════════════════════════════════════
    FETCH_TIMEOUT_SECONDS = float(os.getenv("FETCH_TIMEOUT_SECONDS", "60"))
    FETCH_MAX_RETRIES = int(os.getenv("FETCH_MAX_RETRIES", "3"))
    FETCH_BACKOFF_SECONDS = float(os.getenv("FETCH_BACKOFF_SECONDS", "1"))

    # ═══════════════════════════════════════════════════════════
    # Time Series
    # ═══════════════════════════════════════════════════════════
    WEEK_START = os.getenv("WEEK_START", "MON").upper()

    # ═══════════════════════════════════════════════════════════
    # Regression & Correlation
    # ═══════════════════════════════════════════════════════════
    RESPONSE_COLUMN = os.getenv("RESPONSE_COLUMN", "deaths_per_thousand")
    SIMPLE_PREDICTORS = _csv_list(os.getenv("SIMPLE_PREDICTORS", "cases_per_thousand"))
    EXTENDED_PREDICTORS = _csv_list(
        os.getenv("EXTENDED_PREDICTORS", "cases_per_thousand,fully_vaccinated_per_thousand")
    )
    CORRELATION_COLUMNS = _csv_list(os.getenv(
        "CORRELATION_COLUMNS",
        "cases_per_thousand,deaths_per_thousand,doses_per_thousand,"
        "one_dose_per_thousand,fully_vaccinated_per_thousand,additional_doses_per_thousand"
    ))

    # ═══════════════════════════════════════════════════════════
    # Logging
    # ═══════════════════════════════════════════════════════════
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

    @classmethod
    def ensure_directories(cls):
        """Create the snapshot directory if one is configured"""
        if cls.SNAPSHOT_DIR is not None:
            cls.SNAPSHOT_DIR.mkdir(parents=True, exist_ok=True)

    @classmethod
    def validate(cls) -> bool:
        """Validate configuration"""
        errors = []

        if cls.FETCH_MAX_RETRIES < 1:
            errors.append("FETCH_MAX_RETRIES must be at least 1")

        if cls.FETCH_TIMEOUT_SECONDS <= 0:
            errors.append("FETCH_TIMEOUT_SECONDS must be positive")

        if cls.FETCH_BACKOFF_SECONDS < 0:
            errors.append("FETCH_BACKOFF_SECONDS cannot be negative")

        if cls.WEEK_START not in Weekday.__members__:
            errors.append(f"WEEK_START must be one of {list(Weekday.__members__)}")

        if not cls.SIMPLE_PREDICTORS:
            errors.append("SIMPLE_PREDICTORS cannot be empty")

        if not set(cls.SIMPLE_PREDICTORS) <= set(cls.EXTENDED_PREDICTORS):
            errors.append("EXTENDED_PREDICTORS must include every simple predictor")

        if errors:
            for error in errors:
                logger.error(f"Configuration Error: {error}")
            return False

        return True

    @classmethod
    def summary(cls) -> dict:
        """Return configuration summary"""
        return {
            "sources": {
                "confirmed": cls.CONFIRMED_URL,
                "deaths": cls.DEATHS_URL,
                "vaccine": cls.VACCINE_URL,
                "snapshot_dir": str(cls.SNAPSHOT_DIR) if cls.SNAPSHOT_DIR else None
            },
            "fetch": {
                "timeout_seconds": cls.FETCH_TIMEOUT_SECONDS,
                "max_retries": cls.FETCH_MAX_RETRIES,
                "backoff_seconds": cls.FETCH_BACKOFF_SECONDS
            },
            "time_series": {
                "week_start": cls.WEEK_START
            },
            "regression": {
                "response": cls.RESPONSE_COLUMN,
                "simple_predictors": cls.SIMPLE_PREDICTORS,
                "extended_predictors": cls.EXTENDED_PREDICTORS
            },
            "correlation_columns": cls.CORRELATION_COLUMNS
        }


if __name__ == "__main__":
    import json
    print("COVID Trends Configuration")
    print("=" * 60)
    print(json.dumps(CovidTrendsConfig.summary(), indent=2))
    print("\nValidation:", "PASSED" if CovidTrendsConfig.validate() else "FAILED")
