"""
Table Preprocessing
===================

Validation and type normalisation applied to every table before it reaches
a detector. Rows containing any missing value are dropped here, so they
never take part in training nor appear in predictions.

Categorical columns are handed to the detector as ``object`` columns:
boolean columns become the strings 'True' / 'False', and pandas string
columns (the default ``str`` dtype of pandas 3) are converted back to
``object``, the only text column type ``outliertree`` accepts.
"""

import logging

import pandas as pd
from pandas.api.types import infer_dtype, is_bool_dtype, is_string_dtype

from bagged_outliertrees.exceptions import DataError

logger = logging.getLogger(__name__)


def _is_boolean_column(series: pd.Series) -> bool:
    if is_bool_dtype(series):
        return True
    # object columns holding Python bools (e.g. after dropping NaNs)
    return series.dtype == object and infer_dtype(series, skipna=False) == 'boolean'


def _is_extension_string_column(series: pd.Series) -> bool:
    return series.dtype != object and is_string_dtype(series.dtype)


def validate_table(df, name: str = 'table', unique_index: bool = True) -> None:
    """Fail fast on tables the ensemble cannot work with.

    Args:
        df: Candidate table.
        name: Name used in error messages.
        unique_index: Reject duplicated row labels. Query tables need unique
            labels to identify flagged rows; training tables do not, since
            bootstrap samples are relabelled.

    Raises:
        DataError: If ``df`` is not a DataFrame, has no columns or rows,
            has multi-level row labels, or duplicated labels when
            ``unique_index`` is set.
    """
    if not isinstance(df, pd.DataFrame):
        raise DataError(f"{name} must be a pandas DataFrame, got {type(df).__name__}")
    if df.shape[1] == 0:
        raise DataError(f"{name} has zero columns")
    if df.shape[0] == 0:
        raise DataError(f"{name} has zero rows")
    if isinstance(df.index, pd.MultiIndex):
        raise DataError(f"{name} cannot use a multi-level row index")
    if unique_index and df.index.has_duplicates:
        raise DataError(f"{name} contains duplicated row labels")


def prepare_table(
    df: pd.DataFrame,
    name: str = 'table',
    unique_index: bool = True,
) -> pd.DataFrame:
    """Return a cleaned copy of ``df`` ready for fitting or prediction.

    Drops rows with missing values, casts boolean columns to their string
    representation ('True' / 'False') and stores every text column with the
    ``object`` dtype, so that detectors treat them as categorical. The input
    frame is never modified.

    Args:
        df: Input table.
        name: Name used in error and log messages.
        unique_index: Reject duplicated row labels (see :func:`validate_table`).

    Returns:
        New DataFrame with the original row labels of the retained rows.

    Raises:
        DataError: If the table is malformed or every row has a missing value.
    """
    validate_table(df, name, unique_index=unique_index)

    result = df.dropna(how='any').copy()
    n_dropped = len(df) - len(result)
    if n_dropped:
        logger.info(f"{name}: dropped {n_dropped:,} of {len(df):,} rows with missing values")
    if result.empty:
        raise DataError(f"{name}: every row contains at least one missing value")

    bool_cols = [col for col in result.columns if _is_boolean_column(result[col])]
    for col in bool_cols:
        result[col] = result[col].astype(bool).astype(str).astype(object)
    if bool_cols:
        logger.debug(f"{name}: cast boolean columns to strings: {bool_cols}")

    string_cols = [col for col in result.columns if _is_extension_string_column(result[col])]
    for col in string_cols:
        result[col] = result[col].astype(object)
    if string_cols:
        logger.debug(f"{name}: converted string columns to object dtype: {string_cols}")

    return result
