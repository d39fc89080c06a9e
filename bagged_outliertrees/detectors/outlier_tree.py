"""
OutlierTree Adapter
===================

DetectorAdapter backed by the ``outliertree`` package (explainable outlier
detection through decision-tree conditioning, similar in spirit to GritBot).

Each tree is fitted single-threaded: parallelism is handled by the ensemble,
which runs many trees at once.

Usage:
    >>> adapter = OutlierTreeAdapter()
    >>> detector = adapter.fit(df, {'max_depth': 4, 'min_gain': 1e-2})
    >>> flagged = adapter.predict(detector, df)
"""

import logging
from typing import Any, Dict, Hashable, Mapping

import pandas as pd

from bagged_outliertrees.aggregation.explanations import PerTreeRowExplanation, parse_explanation
from bagged_outliertrees.detectors.base import DetectorAdapter
from bagged_outliertrees.exceptions import FitError, PredictError

logger = logging.getLogger(__name__)

# OutlierTree validates argument types with isinstance checks
_INT_PARAMS = ('max_depth', 'min_size_numeric', 'min_size_categ')
_FLOAT_PARAMS = ('min_gain', 'z_norm', 'z_outlier', 'pct_outliers')
_BOOL_PARAMS = ('follow_all', 'gain_as_pct')

# Errors the library raises on degenerate or incompatible input (it reports
# unsupported column dtypes through a NameError)
_LIBRARY_ERRORS = (ValueError, AssertionError, RuntimeError, KeyError, TypeError, NameError)


def _coerce_params(params: Mapping[str, Any]) -> Dict[str, Any]:
    params = dict(params)
    for name in _INT_PARAMS:
        if name in params:
            params[name] = int(params[name])
    for name in _FLOAT_PARAMS:
        if name in params:
            params[name] = float(params[name])
    for name in _BOOL_PARAMS:
        if name in params:
            params[name] = bool(params[name])
    return params


class OutlierTreeAdapter(DetectorAdapter):
    """Fit / predict ``outliertree.OutlierTree`` models.

    Args:
        nthreads: Threads used inside a single tree (default 1).
    """

    def __init__(self, nthreads: int = 1):
        self.nthreads = nthreads

    def fit(self, table: pd.DataFrame, params: Mapping[str, Any]):
        from outliertree import OutlierTree

        params = _coerce_params(params)
        cols_ignore = params.pop('cols_ignore', None)
        try:
            model = OutlierTree(nthreads=self.nthreads, **params)
            model.fit(table, cols_ignore=cols_ignore, outliers_print=0, return_outliers=False)
        except _LIBRARY_ERRORS as e:
            raise FitError(f"OutlierTree could not be fitted on {len(table):,} rows: {e}") from e
        return model

    def predict(self, detector, table: pd.DataFrame) -> Dict[Hashable, PerTreeRowExplanation]:
        try:
            out_df = detector.predict(table, outliers_print=0)
        except _LIBRARY_ERRORS as e:
            raise PredictError(f"OutlierTree prediction failed: {e}") from e

        flagged = out_df[out_df['outlier_score'].notna()]
        explanations = {}
        for row_id, row in flagged.iterrows():
            try:
                explanations[row_id] = parse_explanation(
                    row['suspicious_value'], row['group_statistics'], row['conditions'],
                )
            except KeyError as e:
                raise PredictError(f"Malformed explanation for row {row_id!r}: missing {e}") from e
        logger.debug(f"OutlierTree flagged {len(explanations):,} of {len(table):,} rows")
        return explanations
