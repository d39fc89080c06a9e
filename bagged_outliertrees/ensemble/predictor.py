"""
Ensemble Prediction
===================

Queries every ensemble member on the same table in parallel and collects,
for each flagged row, the list of (tree_id, explanation) pairs. Rows no
tree flagged are absent from the result.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Dict, Hashable, List, Optional, Tuple

import pandas as pd

from bagged_outliertrees.aggregation.explanations import TreeExplanation
from bagged_outliertrees.data.preprocess import prepare_table
from bagged_outliertrees.detectors.base import DetectorAdapter
from bagged_outliertrees.ensemble.base import Ensemble
from bagged_outliertrees.ensemble.parallel import run_unordered
from bagged_outliertrees.exceptions import PredictError

logger = logging.getLogger(__name__)

RawExplanations = Dict[Hashable, List[TreeExplanation]]


@dataclass(frozen=True)
class PredictionBatch:
    """Per-tree explanations gathered from one prediction batch.

    Attributes:
        raw: row_id -> [(tree_id, explanation)], sorted by tree_id.
        n_trees: Number of trees that produced predictions.
        row_order: Row labels of the prepared query table, in order.
    """
    raw: RawExplanations
    n_trees: int
    row_order: Tuple[Hashable, ...]

    @property
    def n_flagged_rows(self) -> int:
        return len(self.raw)


class EnsemblePredictor:
    """Fan-out / fan-in of ``predict`` over all ensemble members.

    Args:
        adapter: Detector adapter (OutlierTreeAdapter if None).
        nthreads: Worker pool size (None / -1 = all cores).
        backend: joblib backend.
        failure_policy: 'raise' aborts on the first failing tree; 'skip'
            drops failing trees from the batch.
        show_progress: Display a progress bar.
    """

    def __init__(
        self,
        adapter: Optional[DetectorAdapter] = None,
        nthreads: Optional[int] = None,
        backend: str = 'threading',
        failure_policy: str = 'raise',
        show_progress: bool = True,
    ):
        if adapter is None:
            from bagged_outliertrees.detectors.outlier_tree import OutlierTreeAdapter
            adapter = OutlierTreeAdapter()
        self.adapter = adapter
        self.nthreads = nthreads
        self.backend = backend
        self.failure_policy = failure_policy
        self.show_progress = show_progress

    def predict(self, ensemble: Ensemble, df: pd.DataFrame) -> PredictionBatch:
        """Collect the explanations of every tree for the rows of ``df``.

        Raises:
            DataError: If the query table is malformed or empty.
            PredictError: If training columns are missing from ``df``, or a
                tree fails (fail-fast) or every tree fails (skip).
        """
        table = prepare_table(df, name='query table')
        missing = [col for col in ensemble.columns if col not in table.columns]
        if missing:
            raise PredictError(f"Query table is missing training columns: {missing}")
        table = table[list(ensemble.columns)]

        logger.info(f"Predicting {len(table):,} rows with {ensemble.ntrees} trees")
        results = run_unordered(
            self._predict_member,
            [(tree_id, detector, table) for tree_id, detector in enumerate(ensemble.detectors)],
            nthreads=self.nthreads,
            backend=self.backend,
            desc="Predicting",
            show_progress=self.show_progress,
        )

        collected: Dict[Hashable, List[TreeExplanation]] = defaultdict(list)
        n_trees = 0
        for tree_id, flagged in results:
            if flagged is None:
                continue
            n_trees += 1
            for row_id, explanation in flagged.items():
                collected[row_id].append((tree_id, explanation))

        n_failed = len(results) - n_trees
        if n_trees == 0:
            raise PredictError(f"All {len(results)} trees failed to predict")
        if n_failed:
            logger.warning(f"{n_failed} of {len(results)} trees failed to predict and were skipped")

        row_order = tuple(table.index)
        raw = {}
        for row_id in row_order:
            if row_id in collected:
                raw[row_id] = sorted(collected[row_id], key=lambda item: item[0])

        logger.info(f"{len(raw):,} of {len(table):,} rows flagged by at least one tree")
        return PredictionBatch(raw=raw, n_trees=n_trees, row_order=row_order)

    def _predict_member(self, tree_id: int, detector: Any, table: pd.DataFrame):
        try:
            flagged = self.adapter.predict(detector, table)
        except PredictError as e:
            if self.failure_policy == 'raise':
                raise PredictError(f"Tree {tree_id} failed to predict: {e}", tree_id=tree_id) from e
            logger.warning(f"Tree {tree_id} failed to predict, skipping: {e}")
            return tree_id, None
        return tree_id, dict(flagged)
