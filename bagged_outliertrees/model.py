"""
Bagged OutlierTrees
===================

Robust, explainable outlier detection by bagging OutlierTree models.

A single outlier tree can miss outliers hidden by more extreme ones (the
masking effect). Fitting many trees on small bootstrapped samples and
keeping the explanations a majority of them agree on gives a stable outlier
score (fraction of trees flagging a row) together with a consensus
explanation of why the row is suspicious.

Usage:
    >>> from bagged_outliertrees import BaggedOutlierTrees
    >>> model = BaggedOutlierTrees(ntrees=100, subsampling_rate=0.25)
    >>> model.fit(train_df)
    >>> outliers = model.predict(test_df, min_outlier_score=0.8)
    >>> outliers[0].outlier_score, outliers[0].suspicious_value.column
"""

import logging
from pathlib import Path
from typing import List, Optional, Union

import pandas as pd

from bagged_outliertrees.aggregation.aggregator import AggregatedRowRecord, ScoreAggregator
from bagged_outliertrees.aggregation.ranking import rank_records, records_to_frame
from bagged_outliertrees.config import BaggedOutlierTreesConfig, validate_min_outlier_score
from bagged_outliertrees.detectors.base import DetectorAdapter
from bagged_outliertrees.ensemble.base import Ensemble
from bagged_outliertrees.ensemble.predictor import EnsemblePredictor
from bagged_outliertrees.ensemble.trainer import EnsembleTrainer
from bagged_outliertrees.exceptions import NotFittedError
from bagged_outliertrees.persistence import load_ensemble, save_ensemble

logger = logging.getLogger(__name__)


class BaggedOutlierTrees:
    """Bagged ensemble of OutlierTree detectors.

    Args:
        config: Ensemble configuration. Keyword overrides are applied on top
            of it (or of the defaults when None).
        adapter: Detector adapter (OutlierTreeAdapter if None).
        **overrides: Any BaggedOutlierTreesConfig option.
    """

    def __init__(
        self,
        config: Optional[BaggedOutlierTreesConfig] = None,
        adapter: Optional[DetectorAdapter] = None,
        **overrides,
    ):
        if config is None:
            config = BaggedOutlierTreesConfig(**overrides)
        elif overrides:
            config = config.replace(**overrides)
        if adapter is None:
            from bagged_outliertrees.detectors.outlier_tree import OutlierTreeAdapter
            adapter = OutlierTreeAdapter()
        self.config = config
        self.adapter = adapter
        self.ensemble: Optional[Ensemble] = None

    @property
    def is_fitted(self) -> bool:
        return self.ensemble is not None

    def fit(self, df: pd.DataFrame) -> 'BaggedOutlierTrees':
        """Fit the ensemble to data that may contain some outliers."""
        self.ensemble = EnsembleTrainer(self.config, self.adapter).fit(df)
        return self

    def predict(
        self,
        newdata: pd.DataFrame,
        min_outlier_score: float = 0.95,
        nthreads: Optional[int] = None,
    ) -> List[AggregatedRowRecord]:
        """Detect outliers in new data.

        Args:
            newdata: Table with (at least) the training columns. Rows with
                missing values are dropped and never reported.
            min_outlier_score: Minimum fraction of trees that must flag a
                row for it to be reported, in [0, 1].
            nthreads: Worker pool size; defaults to the config's nthreads.

        Returns:
            Consensus records, highest outlier score first (ties in query
            table order).
        """
        if self.ensemble is None:
            raise NotFittedError("Call fit() (or load()) before predict()")
        min_outlier_score = validate_min_outlier_score(min_outlier_score)

        predictor = EnsemblePredictor(
            adapter=self.adapter,
            nthreads=self.config.nthreads if nthreads is None else nthreads,
            backend=self.config.backend,
            failure_policy=self.config.failure_policy,
            show_progress=self.config.show_progress,
        )
        batch = predictor.predict(self.ensemble, newdata)
        aggregator = ScoreAggregator(batch.n_trees, min_outlier_score)
        records = aggregator.aggregate(batch.raw)
        return rank_records(records, row_order=batch.row_order)

    def predict_frame(
        self,
        newdata: pd.DataFrame,
        min_outlier_score: float = 0.95,
        nthreads: Optional[int] = None,
    ) -> pd.DataFrame:
        """Same as :meth:`predict`, flattened to a DataFrame."""
        return records_to_frame(self.predict(newdata, min_outlier_score, nthreads))

    def save(self, path: Union[str, Path]) -> Path:
        if self.ensemble is None:
            raise NotFittedError("Cannot save an unfitted model")
        return save_ensemble(self.ensemble, path)

    @classmethod
    def load(
        cls,
        path: Union[str, Path],
        adapter: Optional[DetectorAdapter] = None,
    ) -> 'BaggedOutlierTrees':
        ensemble = load_ensemble(path)
        model = cls(config=ensemble.config, adapter=adapter)
        model.ensemble = ensemble
        return model

    def __repr__(self) -> str:
        state = f"ntrees={self.ensemble.ntrees}" if self.is_fitted else "unfitted"
        return f"BaggedOutlierTrees({state}, subsampling_rate={self.config.subsampling_rate})"


def fit_bagged_outliertrees(
    df: pd.DataFrame,
    adapter: Optional[DetectorAdapter] = None,
    **options,
) -> BaggedOutlierTrees:
    """Fit a bagged OutlierTrees ensemble (options: see BaggedOutlierTreesConfig)."""
    return BaggedOutlierTrees(adapter=adapter, **options).fit(df)


def predict_bagged_outliertrees(
    model: BaggedOutlierTrees,
    newdata: pd.DataFrame,
    min_outlier_score: float = 0.95,
    nthreads: Optional[int] = None,
) -> List[AggregatedRowRecord]:
    """Outliers in ``newdata`` according to a fitted ensemble."""
    return model.predict(newdata, min_outlier_score=min_outlier_score, nthreads=nthreads)
