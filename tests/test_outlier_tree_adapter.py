"""
Tests for the OutlierTree Adapter
=================================

Prediction parsing is tested against a stand-in detector returning frames in
the layout of ``OutlierTree.predict``. Fitting is tested against the real
library when it is installed.
"""

import numpy as np
import pandas as pd
import pytest

from bagged_outliertrees import BaggedOutlierTrees
from bagged_outliertrees.aggregation.explanations import Condition, GroupStatistics
from bagged_outliertrees.data.preprocess import prepare_table
from bagged_outliertrees.detectors.outlier_tree import OutlierTreeAdapter, _coerce_params
from bagged_outliertrees.exceptions import FitError, PredictError


class _FrameDetector:
    """Returns a prepared prediction frame, reindexed like the query."""

    def __init__(self, rows, error=None):
        self.rows = rows
        self.error = error
        self.calls = []

    def predict(self, df, outliers_print=None, min_decimals=2):
        self.calls.append({'outliers_print': outliers_print})
        if self.error is not None:
            raise self.error
        records = []
        for row_id in df.index:
            record = {
                'suspicious_value': dict(),
                'group_statistics': dict(),
                'conditions': list(),
                'tree_depth': np.nan,
                'uses_NA_branch': np.nan,
                'outlier_score': np.nan,
            }
            record.update(self.rows.get(row_id, {}))
            records.append(record)
        return pd.DataFrame(records, index=df.index)


@pytest.fixture
def query():
    return pd.DataFrame({'age': [30.0, 455.0, 41.0], 'sex': ['F', 'F', 'M']}, index=['a', 'b', 'c'])


class TestPredict:

    def test_flagged_rows_parsed(self, query):
        detector = _FrameDetector({
            'b': {
                'suspicious_value': {'column': 'age', 'value': 455.0, 'decimals': 0},
                'group_statistics': {'upper_thr': 120.0, 'pct_below': 0.99,
                                     'mean': 40.0, 'sd': 12.0, 'n_obs': 50},
                'conditions': [{'column': 'sex', 'value_this': 'F',
                                'comparison': '=', 'value_comp': 'F'}],
                'tree_depth': 1,
                'uses_NA_branch': 0,
                'outlier_score': 0.001,
            },
        })
        flagged = OutlierTreeAdapter().predict(detector, query)

        assert list(flagged) == ['b']
        explanation = flagged['b']
        assert explanation.suspicious_value.column == 'age'
        assert explanation.suspicious_value.value == 455.0
        assert explanation.group_statistics == GroupStatistics(
            threshold=120.0, pct=0.99, mean=40.0, sd=12.0, n_obs=50,
        )
        assert explanation.conditions == (Condition('sex', 'F', '=', 'F'),)
        assert detector.calls == [{'outliers_print': 0}]

    def test_nothing_flagged(self, query):
        assert OutlierTreeAdapter().predict(_FrameDetector({}), query) == {}

    def test_library_error(self, query):
        detector = _FrameDetector({}, error=ValueError("columns differ"))
        with pytest.raises(PredictError, match="columns differ"):
            OutlierTreeAdapter().predict(detector, query)

    def test_unsupported_column_error(self, query):
        detector = _FrameDetector({}, error=NameError("column 'sex' has unsupported type"))
        with pytest.raises(PredictError, match="unsupported type"):
            OutlierTreeAdapter().predict(detector, query)

    def test_malformed_explanation(self, query):
        detector = _FrameDetector({
            'a': {'suspicious_value': {'value': 1.0}, 'outlier_score': 0.01},
        })
        with pytest.raises(PredictError, match="Malformed"):
            OutlierTreeAdapter().predict(detector, query)


def test_coerce_params():
    params = _coerce_params({
        'max_depth': np.int64(3), 'min_gain': 1, 'follow_all': np.bool_(True),
        'categ_split': 'binarize', 'cols_ignore': None,
    })
    assert type(params['max_depth']) is int
    assert type(params['min_gain']) is float
    assert params['follow_all'] is True
    assert params['categ_split'] == 'binarize'
    assert params['cols_ignore'] is None


class TestWithLibrary:

    @pytest.fixture
    def frame(self):
        rng = np.random.default_rng(1)
        n = 500
        df = pd.DataFrame({
            'height': rng.normal(170.0, 8.0, n),
            'group': rng.choice(['a', 'b'], size=n),
        })
        df.loc[df['group'] == 'b', 'height'] += 30.0
        df.loc[3, 'height'] = 400.0
        return df

    def test_fit_and_predict(self, frame):
        pytest.importorskip('outliertree')
        adapter = OutlierTreeAdapter()
        params = {'max_depth': 2, 'min_gain': 1e-2, 'z_norm': 2.67, 'z_outlier': 8.0,
                  'pct_outliers': 0.01, 'min_size_numeric': 25, 'min_size_categ': 50,
                  'cols_ignore': None}
        table = prepare_table(frame)
        detector = adapter.fit(table, params)
        flagged = adapter.predict(detector, table)

        assert 3 in flagged
        assert flagged[3].suspicious_value.column == 'height'

    def test_invalid_params_raise_fit_error(self, frame):
        pytest.importorskip('outliertree')
        with pytest.raises(FitError):
            OutlierTreeAdapter().fit(prepare_table(frame), {'z_norm': 5.0, 'z_outlier': 2.0})

    def test_ensemble_with_bool_and_string_columns(self, frame):
        pytest.importorskip('outliertree')
        df = frame.assign(
            group=frame['group'].astype('string'),
            tall=frame['height'] > 180.0,
        )
        model = BaggedOutlierTrees(ntrees=3, subsampling_rate=0.5, nthreads=1,
                                   random_state=0, show_progress=False)
        model.fit(df)
        assert model.ensemble.ntrees == 3
        assert model.ensemble.n_failed == 0

        records = model.predict(df, min_outlier_score=0.0)
        assert all(0.0 < record.outlier_score <= 1.0 for record in records)
        assert all(record.row_id in df.index for record in records)
