"""
Ensemble Training
=================

Fits ``ntrees`` detectors, each on its own bootstrapped sample of the
training table, in parallel. Tasks share nothing but the read-only table;
each draws its sample from a seed fixed before the batch starts, so the
ensemble does not depend on which fit finishes first.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

import numpy as np
import pandas as pd

from bagged_outliertrees.config import BaggedOutlierTreesConfig
from bagged_outliertrees.data.preprocess import prepare_table
from bagged_outliertrees.data.sampling import bootstrap_sample, bootstrap_size, spawn_seeds
from bagged_outliertrees.detectors.base import DetectorAdapter
from bagged_outliertrees.ensemble.base import Ensemble
from bagged_outliertrees.ensemble.parallel import run_unordered
from bagged_outliertrees.exceptions import ConfigError, FitError

logger = logging.getLogger(__name__)


class EnsembleTrainer:
    """Bagging of single-tree outlier detectors.

    Args:
        config: Ensemble configuration (defaults if None).
        adapter: Detector adapter (OutlierTreeAdapter if None).

    Example:
        >>> trainer = EnsembleTrainer(BaggedOutlierTreesConfig(ntrees=50))
        >>> ensemble = trainer.fit(df)
        >>> ensemble.ntrees
        50
    """

    def __init__(
        self,
        config: Optional[BaggedOutlierTreesConfig] = None,
        adapter: Optional[DetectorAdapter] = None,
    ):
        if config is None:
            config = BaggedOutlierTreesConfig()
        if adapter is None:
            from bagged_outliertrees.detectors.outlier_tree import OutlierTreeAdapter
            adapter = OutlierTreeAdapter()
        self.config = config
        self.adapter = adapter

    def fit(self, df: pd.DataFrame) -> Ensemble:
        """Train the ensemble.

        Args:
            df: Training table. Rows with missing values are dropped and
                boolean columns are treated as categorical.

        Returns:
            Ensemble with ``ntrees`` detectors (fewer only under
            ``failure_policy='skip'``).

        Raises:
            DataError: If the table is malformed or empty.
            ConfigError: If ``cols_ignore`` names unknown columns or is a
                boolean mask of the wrong length.
            FitError: If a member fails (fail-fast policy) or every member
                fails (skip policy).
        """
        config = self.config
        table = prepare_table(df, name='training table', unique_index=False)
        cols_ignore = self._resolve_cols_ignore(table)

        seeds = spawn_seeds(config.random_state, config.ntrees)
        params = config.tree_params()
        params['cols_ignore'] = cols_ignore
        logger.info(
            f"Fitting {config.ntrees} trees on bootstrap samples of "
            f"{bootstrap_size(len(table), config.subsampling_rate):,} rows "
            f"(from {len(table):,} rows, {table.shape[1]} columns)"
        )

        results = run_unordered(
            self._fit_member,
            [(tree_id, table, seed, params) for tree_id, seed in enumerate(seeds)],
            nthreads=config.nthreads,
            backend=config.backend,
            desc="Fitting trees",
            show_progress=config.show_progress,
        )

        fitted = sorted((r for r in results if r[1] is not None), key=lambda r: r[0])
        n_failed = len(results) - len(fitted)
        if not fitted:
            raise FitError(f"All {config.ntrees} ensemble members failed to fit")
        if n_failed:
            logger.warning(
                f"{n_failed} of {config.ntrees} trees failed to fit and were dropped; "
                f"ensemble has {len(fitted)} trees"
            )

        ensemble = Ensemble(
            detectors=tuple(detector for _, detector in fitted),
            columns=tuple(table.columns),
            config=config,
            n_failed=n_failed,
        )
        logger.info(f"Ensemble training complete: {ensemble.ntrees} trees")
        return ensemble

    def _fit_member(
        self,
        tree_id: int,
        table: pd.DataFrame,
        seed: int,
        params: Dict[str, Any],
    ) -> Tuple[int, Any]:
        sample = bootstrap_sample(table, self.config.subsampling_rate, random_state=seed)
        try:
            detector = self.adapter.fit(sample, params)
        except FitError as e:
            if self.config.failure_policy == 'raise':
                raise FitError(f"Tree {tree_id} failed to fit: {e}", tree_id=tree_id) from e
            logger.warning(f"Tree {tree_id} failed to fit, skipping: {e}")
            return tree_id, None
        return tree_id, detector

    def _resolve_cols_ignore(self, table: pd.DataFrame) -> Optional[List[str]]:
        """Column names to ignore; a boolean mask selects columns by position."""
        cols_ignore = self.config.cols_ignore
        if not cols_ignore:
            return None
        if all(isinstance(flag, (bool, np.bool_)) for flag in cols_ignore):
            if len(cols_ignore) != table.shape[1]:
                raise ConfigError(
                    f"cols_ignore mask has {len(cols_ignore)} entries but the table "
                    f"has {table.shape[1]} columns"
                )
            return [col for col, flag in zip(table.columns, cols_ignore) if flag] or None
        unknown = [col for col in cols_ignore if col not in table.columns]
        if unknown:
            raise ConfigError(f"cols_ignore contains unknown columns: {unknown}")
        return list(cols_ignore)
