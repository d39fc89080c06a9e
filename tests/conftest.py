"""
Shared fixtures: lightweight detector adapters that stand in for the native
OutlierTree library so that orchestration and aggregation can be tested on
synthetic data.
"""

import threading

import numpy as np
import pandas as pd
import pytest

from bagged_outliertrees.aggregation.explanations import (
    Condition,
    GroupStatistics,
    PerTreeRowExplanation,
    SuspiciousValue,
)
from bagged_outliertrees.detectors.base import DetectorAdapter
from bagged_outliertrees.exceptions import FitError, PredictError


def make_explanation(column, value, conditions=(), **stats):
    """Build a PerTreeRowExplanation from short-hand arguments.

    ``conditions`` is a sequence of (column, value_this, comparison, value_comp).
    """
    return PerTreeRowExplanation(
        suspicious_value=SuspiciousValue(column, value),
        group_statistics=GroupStatistics(**stats),
        conditions=tuple(Condition(*cond) for cond in conditions),
    )


class ScriptedAdapter(DetectorAdapter):
    """Detectors are dicts ``{'flags': {row_id: explanation}}`` set by the test.

    A detector dict with ``'broken': True`` raises PredictError.
    """

    def fit(self, table, params):
        return {'flags': {}}

    def predict(self, detector, table):
        if detector.get('broken'):
            raise PredictError("detector is broken")
        return {row_id: exp for row_id, exp in detector['flags'].items() if row_id in table.index}


class ZScoreAdapter(DetectorAdapter):
    """Flags a row when its largest |z| over numeric columns exceeds a threshold.

    Records every fit call (sample size, params, dtypes) for assertions.
    ``fail_first`` makes the first N fit calls raise FitError.
    """

    def __init__(self, z_threshold=4.0, fail_first=0):
        self.z_threshold = z_threshold
        self.fail_first = fail_first
        self.fit_calls = []
        self._lock = threading.Lock()

    def fit(self, table, params):
        with self._lock:
            call_index = len(self.fit_calls)
            self.fit_calls.append({
                'n_rows': len(table),
                'params': dict(params),
                'dtypes': dict(table.dtypes.astype(str)),
                'index_unique': table.index.is_unique,
            })
        if call_index < self.fail_first:
            raise FitError(f"degenerate sample (call {call_index})")
        numeric = table.select_dtypes(include='number')
        return {
            'mean': numeric.mean().to_dict(),
            'sd': numeric.std(ddof=0).to_dict(),
            'n_obs': len(table),
        }

    def predict(self, detector, table):
        flagged = {}
        for row_id, row in table.iterrows():
            best = None
            for col, mean in detector['mean'].items():
                sd = detector['sd'][col]
                if sd <= 0:
                    continue
                z = abs(row[col] - mean) / sd
                if z > self.z_threshold and (best is None or z > best[1]):
                    best = (col, z)
            if best is None:
                continue
            col = best[0]
            mean, sd = detector['mean'][col], detector['sd'][col]
            flagged[row_id] = make_explanation(
                col, row[col],
                threshold=mean + self.z_threshold * sd,
                pct=0.99,
                mean=mean,
                sd=sd,
                n_obs=detector['n_obs'],
            )
        return flagged


def make_training_frame(n=300, seed=0):
    """Normal data with two planted outliers: row 5 (column x) and row 17 (column y)."""
    rng = np.random.default_rng(seed)
    df = pd.DataFrame({
        'x': rng.normal(0.0, 1.0, n),
        'y': rng.normal(10.0, 2.0, n),
        'group': rng.choice(['a', 'b', 'c'], size=n),
        'flag': rng.choice([True, False], size=n),
    })
    df.loc[5, 'x'] = 60.0
    df.loc[17, 'y'] = 250.0
    return df


@pytest.fixture
def training_frame():
    return make_training_frame()


@pytest.fixture
def scripted_adapter():
    return ScriptedAdapter()


@pytest.fixture
def zscore_adapter():
    return ZScoreAdapter()
