"""
Bootstrap Sampling
==================

Draws the resampled training table of one ensemble member. Seeds for all
members are derived up front from one master seed so that each sample is
reproducible regardless of the order in which the parallel fits complete.
"""

import logging
import math
from typing import List, Optional

import numpy as np
import pandas as pd
from sklearn.utils import resample

from bagged_outliertrees.exceptions import ConfigError, DataError

logger = logging.getLogger(__name__)


def bootstrap_size(n_rows: int, subsampling_rate: float) -> int:
    """Number of rows in a bootstrapped sample (rounded half up, at least 1)."""
    if not 0 < subsampling_rate <= 1:
        raise ConfigError(f"subsampling_rate must be in (0, 1], got {subsampling_rate!r}")
    return max(1, int(math.floor(n_rows * subsampling_rate + 0.5)))


def spawn_seeds(random_state: Optional[int], n: int) -> List[int]:
    """Derive ``n`` independent 32-bit seeds from a master seed."""
    children = np.random.SeedSequence(random_state).spawn(n)
    return [int(child.generate_state(1)[0]) for child in children]


def bootstrap_sample(
    df: pd.DataFrame,
    subsampling_rate: float,
    random_state: Optional[int] = None,
) -> pd.DataFrame:
    """Sample rows of ``df`` uniformly with replacement.

    The row labels of the sample are reset to ``0..m-1`` since a sample may
    contain the same source row several times.

    Args:
        df: Source table (at least one row).
        subsampling_rate: Fraction of rows to draw, in (0, 1].
        random_state: Seed for this sample.

    Returns:
        Table with ``bootstrap_size(len(df), subsampling_rate)`` rows.
    """
    if len(df) == 0:
        raise DataError("Cannot bootstrap an empty table")
    n_samples = bootstrap_size(len(df), subsampling_rate)
    sample = resample(df, replace=True, n_samples=n_samples, random_state=random_state)
    logger.debug(f"Bootstrap sample: {n_samples:,} of {len(df):,} rows (seed={random_state})")
    return sample.reset_index(drop=True)
