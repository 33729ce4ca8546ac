"""
Ordinary least squares fit and prediction over the region summary

A fit produces an immutable FittedModel; predict applies its linear formula
to any table carrying the same predictor columns.
"""

import logging
import warnings
from typing import Dict, Sequence

import numpy as np
import pandas as pd
import statsmodels.api as sm

from .exceptions import DegenerateRegressionError, MissingPredictorError, SchemaError
from .models import FittedModel

logger = logging.getLogger(__name__)


def fit(table: pd.DataFrame, response: str, predictors: Sequence[str]) -> FittedModel:
    """
    Fit response ~ intercept + predictors by OLS

    Rows missing the response or any predictor are left out of this fit only.

    Args:
        table: Source table
        response: Response column
        predictors: Predictor columns

    Returns:
        FittedModel

    Raises:
        SchemaError: if a column is absent
        DegenerateRegressionError: if no rows remain or the design matrix is
            rank deficient (zero-variance predictor, collinear predictors,
            fewer rows than parameters)
    """
    predictors = list(predictors)
    if not predictors:
        raise ValueError("At least one predictor is required")

    missing = [col for col in [response] + predictors if col not in table.columns]
    if missing:
        raise SchemaError(f"Regression columns not in table: {missing}")

    data = table[[response] + predictors].astype(float).dropna()
    dropped = len(table) - len(data)
    if dropped:
        logger.info(f"Listwise deletion dropped {dropped} of {len(table)} rows")

    if data.empty:
        raise DegenerateRegressionError(
            f"No complete rows for {response} ~ {' + '.join(predictors)}"
        )

    design = sm.add_constant(data[predictors], has_constant='add')
    rank = np.linalg.matrix_rank(design.to_numpy())
    if rank < design.shape[1]:
        raise DegenerateRegressionError(
            f"Design matrix for {response} ~ {' + '.join(predictors)} has rank {rank} "
            f"with {design.shape[1]} parameters over {len(data)} rows; a predictor is "
            f"constant, collinear with others, or there are too few rows"
        )

    with warnings.catch_warnings():
        warnings.simplefilter("ignore", RuntimeWarning)
        result = sm.OLS(data[response], design).fit()
        r_squared = float(result.rsquared)

        if result.df_resid > 0:
            bse = result.bse
            adjusted = float(result.rsquared_adj)
        else:
            logger.warning(
                f"{response} ~ {' + '.join(predictors)} has zero residual degrees of freedom; "
                f"standard errors and adjusted R² are undefined"
            )
            bse = pd.Series(np.nan, index=result.params.index)
            adjusted = float('nan')

    model = FittedModel(
        response_name=response,
        predictor_names=tuple(predictors),
        coefficients={name: float(result.params[name]) for name in predictors},
        intercept=float(result.params['const']),
        standard_errors={name: float(bse[name]) for name in predictors},
        intercept_standard_error=float(bse['const']),
        r_squared=r_squared,
        adjusted_r_squared=adjusted,
        n_observations=int(result.nobs),
    )

    logger.info(
        f"Fitted {response} ~ {' + '.join(predictors)}: "
        f"R²={model.r_squared:.3f}, n={model.n_observations}"
    )
    return model


def predict(model: FittedModel, table: pd.DataFrame) -> pd.Series:
    """
    Apply the fitted linear formula row by row

    Rows with a missing predictor value get NaN.

    Raises:
        MissingPredictorError: if a predictor column is absent from table
    """
    missing = [name for name in model.predictor_names if name not in table.columns]
    if missing:
        raise MissingPredictorError(f"Table lacks predictor columns used at fit time: {missing}")

    prediction = pd.Series(model.intercept, index=table.index, dtype=float)
    for name in model.predictor_names:
        prediction = prediction + model.coefficients[name] * table[name].astype(float)

    return prediction.rename(f"predicted_{model.response_name}")


def add_predictions(table: pd.DataFrame, model: FittedModel, column: str) -> pd.DataFrame:
    """Return a copy of table with model predictions in column"""
    result = table.copy()
    result[column] = predict(model, table)
    return result


def compare_models(models: Dict[str, FittedModel]) -> pd.DataFrame:
    """Explanatory power of several fits side by side"""
    rows = [
        {
            'model': label,
            'predictors': ' + '.join(model.predictor_names),
            'r_squared': model.r_squared,
            'adjusted_r_squared': model.adjusted_r_squared,
            'n_observations': model.n_observations,
        }
        for label, model in models.items()
    ]
    return pd.DataFrame(rows, columns=['model', 'predictors', 'r_squared', 'adjusted_r_squared', 'n_observations'])
