"""
Error types raised by the COVID trends pipeline
"""


class CovidTrendsError(Exception):
    """Base class for all pipeline errors"""


class FetchError(CovidTrendsError):
    """Remote data source could not be retrieved"""

    def __init__(self, url: str, attempts: int, cause: Exception):
        self.url = url
        self.attempts = attempts
        self.cause = cause
        super().__init__(f"Failed to fetch {url} after {attempts} attempts: {cause}")


class DateParseError(CovidTrendsError, ValueError):
    """A wide-table column header is not a calendar date"""

    def __init__(self, header: str):
        self.header = header
        super().__init__(f"Column header {header!r} is not a parseable date")


class SchemaError(CovidTrendsError, KeyError):
    """A table does not satisfy its declared schema"""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else ""


class PerCapitaError(CovidTrendsError, ValueError):
    """Per-capita rate requested over a non-positive or missing population"""


class DegenerateRegressionError(CovidTrendsError, ValueError):
    """Regression input cannot identify a unique least-squares solution"""


class MissingPredictorError(SchemaError):
    """Prediction table lacks a predictor column used at fit time"""


class WeekStartError(CovidTrendsError, ValueError):
    """Week start is not a weekday name or number"""

    def __init__(self, value):
        self.value = value
        super().__init__(f"Unknown week start {value!r}; expected one of MON..SUN or 0..6")
