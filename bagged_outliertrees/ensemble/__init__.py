"""
Ensemble Module
===============

Parallel training and prediction of the bagged detectors.

Key Components:
    EnsembleTrainer: Fit one detector per bootstrap sample
    EnsemblePredictor: Collect the explanations of every detector
    Ensemble: Immutable collection of fitted detectors
    worker_pool: Scoped joblib pool for one batch of tasks
"""

from bagged_outliertrees.ensemble.base import Ensemble
from bagged_outliertrees.ensemble.parallel import worker_pool, run_unordered, resolve_n_jobs
from bagged_outliertrees.ensemble.trainer import EnsembleTrainer
from bagged_outliertrees.ensemble.predictor import EnsemblePredictor, PredictionBatch

__all__ = [
    "Ensemble",
    "worker_pool",
    "run_unordered",
    "resolve_n_jobs",
    "EnsembleTrainer",
    "EnsemblePredictor",
    "PredictionBatch",
]
