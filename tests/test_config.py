"""
Tests for Ensemble Configuration
================================

Defaults, validation, YAML round-trip and per-tree parameter forwarding.
"""

import pytest
import yaml

from bagged_outliertrees.config import (
    TREE_PARAM_NAMES,
    BaggedOutlierTreesConfig,
    validate_min_outlier_score,
)
from bagged_outliertrees.exceptions import ConfigError


class TestDefaults:

    def test_default_values(self):
        config = BaggedOutlierTreesConfig()
        assert config.ntrees == 100
        assert config.subsampling_rate == 0.25
        assert config.max_depth == 4
        assert config.min_gain == 1e-2
        assert config.z_norm == 2.67
        assert config.z_outlier == 8.0
        assert config.pct_outliers == 0.01
        assert config.min_size_numeric == 25
        assert config.min_size_categ == 50
        assert config.categ_split == 'binarize'
        assert config.categ_outliers == 'tail'
        assert config.numeric_split == 'raw'
        assert config.cols_ignore is None
        assert config.follow_all is False
        assert config.gain_as_pct is True
        assert config.failure_policy == 'raise'

    def test_cols_ignore_string_becomes_list(self):
        config = BaggedOutlierTreesConfig(cols_ignore='id')
        assert config.cols_ignore == ['id']

    def test_cols_ignore_mask_kept(self):
        config = BaggedOutlierTreesConfig(cols_ignore=[False, True, False])
        assert config.cols_ignore == [False, True, False]
        assert config.tree_params()['cols_ignore'] == [False, True, False]


class TestValidation:

    @pytest.mark.parametrize("overrides", [
        {'ntrees': 0},
        {'ntrees': 2.5},
        {'ntrees': True},
        {'subsampling_rate': 0.0},
        {'subsampling_rate': 1.5},
        {'max_depth': -1},
        {'z_norm': 0.0},
        {'z_norm': 3.0, 'z_outlier': 3.0},
        {'pct_outliers': 0.2},
        {'min_size_numeric': 5},
        {'min_size_categ': 9},
        {'categ_split': 'random'},
        {'categ_outliers': 'head'},
        {'numeric_split': 'left'},
        {'failure_policy': 'ignore'},
        {'backend': 'dask-cluster'},
        {'backend': 'multiprocessing'},
        {'nthreads': 0},
    ])
    def test_invalid_options(self, overrides):
        with pytest.raises(ConfigError):
            BaggedOutlierTreesConfig(**overrides)

    def test_config_error_is_value_error(self):
        with pytest.raises(ValueError):
            BaggedOutlierTreesConfig(ntrees=-3)

    @pytest.mark.parametrize("nthreads", [None, -1, 1, 8])
    def test_valid_nthreads(self, nthreads):
        assert BaggedOutlierTreesConfig(nthreads=nthreads).nthreads == nthreads

    def test_subsampling_rate_of_one_is_valid(self):
        assert BaggedOutlierTreesConfig(subsampling_rate=1.0).subsampling_rate == 1.0

    @pytest.mark.parametrize("value", [-0.01, 1.01, 'high', None])
    def test_invalid_min_outlier_score(self, value):
        with pytest.raises(ConfigError):
            validate_min_outlier_score(value)

    @pytest.mark.parametrize("value", [0, 0.0, 0.5, 1])
    def test_valid_min_outlier_score(self, value):
        assert validate_min_outlier_score(value) == float(value)


class TestSerialisation:

    def test_yaml_round_trip(self, tmp_path):
        config = BaggedOutlierTreesConfig(
            ntrees=12, subsampling_rate=0.5, cols_ignore=['id', 'batch'],
            random_state=3, failure_policy='skip',
        )
        path = config.to_yaml(tmp_path / 'config.yaml')

        with open(path) as f:
            raw = yaml.safe_load(f)
        assert raw['ntrees'] == 12
        assert raw['cols_ignore'] == ['id', 'batch']

        assert BaggedOutlierTreesConfig.from_yaml(path) == config

    def test_from_dict_rejects_unknown_keys(self):
        with pytest.raises(ConfigError, match="n_estimators"):
            BaggedOutlierTreesConfig.from_dict({'ntrees': 5, 'n_estimators': 5})

    def test_from_yaml_rejects_non_mapping(self, tmp_path):
        path = tmp_path / 'bad.yaml'
        path.write_text("- 1\n- 2\n")
        with pytest.raises(ConfigError):
            BaggedOutlierTreesConfig.from_yaml(path)

    def test_replace_revalidates(self):
        config = BaggedOutlierTreesConfig(ntrees=10)
        updated = config.replace(ntrees=20)
        assert updated.ntrees == 20
        assert config.ntrees == 10
        with pytest.raises(ConfigError):
            config.replace(subsampling_rate=2.0)


class TestTreeParams:

    def test_only_tree_options_are_forwarded(self):
        config = BaggedOutlierTreesConfig(ntrees=7, max_depth=2, cols_ignore=['id'])
        params = config.tree_params()
        assert set(params) == set(TREE_PARAM_NAMES)
        assert params['max_depth'] == 2
        assert params['cols_ignore'] == ['id']
        for name in ('ntrees', 'subsampling_rate', 'nthreads', 'random_state', 'failure_policy'):
            assert name not in params

    def test_tree_params_are_a_copy(self):
        config = BaggedOutlierTreesConfig(cols_ignore=['id'])
        config.tree_params()['cols_ignore'].append('other')
        assert config.cols_ignore == ['id']
