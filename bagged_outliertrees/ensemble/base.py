"""
Ensemble Artifact
=================

A fitted ensemble: the detectors, the columns they were trained on and the
configuration used. Immutable and reusable across any number of predictions;
the order of its members carries no meaning.
"""

from dataclasses import dataclass
from typing import Any, Tuple

from bagged_outliertrees.config import BaggedOutlierTreesConfig


@dataclass(frozen=True, eq=False)
class Ensemble:
    """Collection of fitted single-tree detectors.

    Attributes:
        detectors: Fitted detectors, one per successful bootstrap fit.
        columns: Columns of the (prepared) training table.
        config: Configuration the ensemble was trained with.
        n_failed: Members dropped under ``failure_policy='skip'``.
    """
    detectors: Tuple[Any, ...]
    columns: Tuple[str, ...]
    config: BaggedOutlierTreesConfig
    n_failed: int = 0

    def __post_init__(self):
        object.__setattr__(self, 'detectors', tuple(self.detectors))
        object.__setattr__(self, 'columns', tuple(self.columns))

    @property
    def ntrees(self) -> int:
        return len(self.detectors)

    def __len__(self) -> int:
        return len(self.detectors)

    def __repr__(self) -> str:
        return (f"Ensemble(ntrees={self.ntrees}, columns={len(self.columns)}, "
                f"n_failed={self.n_failed})")
