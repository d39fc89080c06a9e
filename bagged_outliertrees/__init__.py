"""
Bagged OutlierTrees: Robust Explainable Outlier Detection
==========================================================

Bagging of OutlierTree detectors with majority-consensus aggregation of their
per-row explanations.

Pipeline:
    1. Bootstrap: draw many small resampled training sets
    2. Fit: one OutlierTree per sample, in parallel
    3. Predict: every tree explains the rows it flags, in parallel
    4. Aggregate: outlier score + consensus explanation per row
    5. Rank: rows by descending outlier score

Modules:
    data: Table preparation and bootstrap sampling
    detectors: Single-tree detector interface (outliertree)
    ensemble: Parallel training and prediction
    aggregation: Consensus scoring, merging and ranking

Authors: Bagged OutlierTrees Team
License: MIT
"""

__version__ = "0.1.0"

from bagged_outliertrees.config import BaggedOutlierTreesConfig
from bagged_outliertrees.exceptions import (
    BaggedOutlierTreesError,
    ConfigError,
    DataError,
    FitError,
    PredictError,
    NotFittedError,
)
from bagged_outliertrees.aggregation import (
    AggregatedRowRecord,
    PerTreeRowExplanation,
    ScoreAggregator,
    rank_records,
    records_to_frame,
)
from bagged_outliertrees.ensemble import Ensemble, EnsembleTrainer, EnsemblePredictor
from bagged_outliertrees.model import (
    BaggedOutlierTrees,
    fit_bagged_outliertrees,
    predict_bagged_outliertrees,
)
from bagged_outliertrees.persistence import save_ensemble, load_ensemble

__all__ = [
    "BaggedOutlierTreesConfig",
    "BaggedOutlierTreesError",
    "ConfigError",
    "DataError",
    "FitError",
    "PredictError",
    "NotFittedError",
    "AggregatedRowRecord",
    "PerTreeRowExplanation",
    "ScoreAggregator",
    "rank_records",
    "records_to_frame",
    "Ensemble",
    "EnsembleTrainer",
    "EnsemblePredictor",
    "BaggedOutlierTrees",
    "fit_bagged_outliertrees",
    "predict_bagged_outliertrees",
    "save_ensemble",
    "load_ensemble",
]
