"""
Pairwise-complete Pearson correlation over summary columns
"""

import logging
from typing import Sequence

import numpy as np
import pandas as pd
from scipy import stats

from .exceptions import SchemaError

logger = logging.getLogger(__name__)


def _select_numeric(table: pd.DataFrame, columns: Sequence[str]) -> pd.DataFrame:
    columns = list(columns)
    missing = [col for col in columns if col not in table.columns]
    if missing:
        raise SchemaError(f"Correlation columns not in table: {missing}")

    non_numeric = [col for col in columns if not pd.api.types.is_numeric_dtype(table[col])]
    if non_numeric:
        raise SchemaError(f"Correlation columns must be numeric: {non_numeric}")

    return table[columns].astype(float)


def correlation_matrix(table: pd.DataFrame, columns: Sequence[str]) -> pd.DataFrame:
    """
    Pearson correlation for every pair of columns

    Each coefficient uses only the rows where both values of that pair are
    present. Pairs with fewer than two such rows, or a column with zero
    variance over them, are NaN. The diagonal is exactly 1 wherever the
    column has non-zero variance.

    Args:
        table: Source table (e.g. region summary)
        columns: Numeric columns to correlate

    Returns:
        Square symmetric DataFrame indexed by columns
    """
    data = _select_numeric(table, columns)
    matrix = data.corr(method='pearson', min_periods=2)

    values = matrix.to_numpy(copy=True)
    values = (values + values.T) / 2

    for i, col in enumerate(data.columns):
        present = data[col].dropna()
        values[i, i] = 1.0 if len(present) >= 2 and present.var() > 0 else np.nan

    result = pd.DataFrame(values, index=data.columns, columns=data.columns)
    logger.info(f"Computed {len(data.columns)}x{len(data.columns)} correlation matrix over {len(data)} rows")
    return result


def pairwise_observations(table: pd.DataFrame, columns: Sequence[str]) -> pd.DataFrame:
    """Number of rows where both columns of each pair are present"""
    present = _select_numeric(table, columns).notna().astype(int)
    return present.T.dot(present)


def correlation_pvalues(table: pd.DataFrame, columns: Sequence[str]) -> pd.DataFrame:
    """
    Two-sided p-values for the pairwise-complete Pearson coefficients

    NaN on the diagonal and wherever the coefficient is undefined.
    """
    data = _select_numeric(table, columns)
    names = list(data.columns)
    pvalues = pd.DataFrame(np.nan, index=names, columns=names)

    for i, left in enumerate(names):
        for right in names[i + 1:]:
            pair = data[[left, right]].dropna()
            if len(pair) < 3 or pair[left].var() == 0 or pair[right].var() == 0:
                continue
            _, pvalue = stats.pearsonr(pair[left], pair[right])
            pvalues.loc[left, right] = pvalues.loc[right, left] = pvalue

    return pvalues
