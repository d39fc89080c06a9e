"""
Data Module
===========

Table preparation and bootstrap sampling for ensemble members.

Key Components:
    prepare_table: Drop incomplete rows and normalise boolean columns
    bootstrap_sample: Draw one resampled training table (with replacement)
    spawn_seeds: Per-member seeds derived from one master seed
"""

from bagged_outliertrees.data.preprocess import prepare_table, validate_table
from bagged_outliertrees.data.sampling import bootstrap_sample, bootstrap_size, spawn_seeds

__all__ = [
    "prepare_table",
    "validate_table",
    "bootstrap_sample",
    "bootstrap_size",
    "spawn_seeds",
]
