"""
Detector Adapter Interface
==========================

The ensemble never looks inside a fitted detector. It only needs two
operations, provided by a DetectorAdapter:

    fit(table, params)       -> detector             (raises FitError)
    predict(detector, table) -> {row_id: explanation} (raises PredictError)

``predict`` only returns the rows the detector flagged; every other row of
the table is simply absent from the mapping.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Hashable, Mapping

import pandas as pd

from bagged_outliertrees.aggregation.explanations import PerTreeRowExplanation


class DetectorAdapter(ABC):
    """Fits and queries one single-tree outlier detector."""

    @abstractmethod
    def fit(self, table: pd.DataFrame, params: Mapping[str, Any]) -> Any:
        """Fit a detector on a (bootstrapped) table.

        Args:
            table: Training rows, without missing values.
            params: Detector hyperparameters, passed through untouched.

        Returns:
            Fitted detector. Treated as immutable by the ensemble.

        Raises:
            FitError: If no model can be produced from ``table``.
        """

    @abstractmethod
    def predict(self, detector: Any, table: pd.DataFrame) -> Dict[Hashable, PerTreeRowExplanation]:
        """Explanations for the rows of ``table`` flagged by ``detector``.

        Raises:
            PredictError: If ``table`` does not match the detector's schema.
        """
