"""
Ensemble Configuration
======================

Hyperparameters for a bagged OutlierTrees ensemble. Ensemble-level options
(``ntrees``, ``subsampling_rate``, ``nthreads``, ...) are consumed here; the
per-tree options are forwarded untouched to the detector library through
:meth:`BaggedOutlierTreesConfig.tree_params`.

Usage:
    >>> from bagged_outliertrees.config import BaggedOutlierTreesConfig
    >>> config = BaggedOutlierTreesConfig(ntrees=50, subsampling_rate=0.5)
    >>> config.to_yaml('ensemble.yaml')
    >>> config = BaggedOutlierTreesConfig.from_yaml('ensemble.yaml')
"""

from dataclasses import dataclass, asdict, fields
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from bagged_outliertrees.exceptions import ConfigError

CATEG_SPLITS = ('binarize', 'bruteforce', 'separate')
CATEG_OUTLIERS = ('tail', 'majority')
NUMERIC_SPLITS = ('mid', 'raw')
FAILURE_POLICIES = ('raise', 'skip')
# joblib backends able to yield results in completion order
BACKENDS = ('threading', 'loky', 'sequential')

# Options forwarded opaquely to the single-tree detector
TREE_PARAM_NAMES = (
    'max_depth', 'min_gain', 'z_norm', 'z_outlier', 'pct_outliers',
    'min_size_numeric', 'min_size_categ', 'categ_split', 'categ_outliers',
    'numeric_split', 'follow_all', 'gain_as_pct', 'cols_ignore',
)


@dataclass
class BaggedOutlierTreesConfig:
    """Configuration for training a bagged OutlierTrees ensemble.

    Attributes:
        ntrees: Ensemble size, i.e. the number of bootstrapped training sets.
            A large value gives a more stable ensemble.
        subsampling_rate: Fraction of rows drawn (with replacement) for each
            bootstrapped training set. Small rates suffer less from the
            masking effect.
        max_depth: Maximum depth of each tree. Zero only looks for outliers
            in the 1-d distribution of every column.
        min_gain: Minimum gain a split must produce to be considered.
        z_norm: Maximum Z-value considered a normal observation.
        z_outlier: Minimum Z-value to flag an observation as an outlier.
            Must be larger than ``z_norm``.
        pct_outliers: Approximate maximum fraction of outliers expected.
        min_size_numeric: Minimum branch size to look for outliers in a
            numeric column.
        min_size_categ: Minimum branch size to look for outliers in a
            categorical column.
        categ_split: How categorical columns are split
            ('binarize', 'bruteforce' or 'separate').
        categ_outliers: How outliers in categorical columns are flagged
            ('tail' or 'majority').
        numeric_split: Where numeric splits are placed ('mid' or 'raw').
        cols_ignore: Columns used only to build conditions, never flagged.
            Either column names or a boolean mask with one entry per
            column of the training table.
        follow_all: Whether to continue branching from every split.
        gain_as_pct: Whether gain is measured as a percentage of the
            parent's variance / entropy.
        nthreads: Worker pool size for the fit and predict batches
            (None or -1 = all cores).
        random_state: Master seed for bootstrap sampling (None = fresh
            entropy on every fit).
        failure_policy: 'raise' aborts the whole batch when one ensemble
            member fails; 'skip' drops failed members and shrinks the score
            denominator accordingly.
        backend: joblib backend for the worker pool.
        show_progress: Display a progress bar for each batch.
    """
    ntrees: int = 100
    subsampling_rate: float = 0.25
    max_depth: int = 4
    min_gain: float = 1e-2
    z_norm: float = 2.67
    z_outlier: float = 8.0
    pct_outliers: float = 0.01
    min_size_numeric: int = 25
    min_size_categ: int = 50
    categ_split: str = 'binarize'
    categ_outliers: str = 'tail'
    numeric_split: str = 'raw'
    cols_ignore: Optional[List[Union[str, bool]]] = None
    follow_all: bool = False
    gain_as_pct: bool = True
    nthreads: Optional[int] = None
    random_state: Optional[int] = None
    failure_policy: str = 'raise'
    backend: str = 'threading'
    show_progress: bool = True

    def __post_init__(self):
        if self.cols_ignore is not None:
            if isinstance(self.cols_ignore, str):
                self.cols_ignore = [self.cols_ignore]
            self.cols_ignore = list(self.cols_ignore)
        self.validate()

    def validate(self) -> None:
        """Check option ranges and combinations.

        Raises:
            ConfigError: If any option is out of range.
        """
        if not isinstance(self.ntrees, int) or isinstance(self.ntrees, bool) or self.ntrees < 1:
            raise ConfigError(f"ntrees must be a positive integer, got {self.ntrees!r}")
        if not 0 < self.subsampling_rate <= 1:
            raise ConfigError(
                f"subsampling_rate must be in (0, 1], got {self.subsampling_rate!r}"
            )
        if self.max_depth < 0:
            raise ConfigError(f"max_depth must be >= 0, got {self.max_depth!r}")
        if self.z_norm <= 0:
            raise ConfigError(f"z_norm must be > 0, got {self.z_norm!r}")
        if self.z_outlier <= self.z_norm:
            raise ConfigError(
                f"z_outlier ({self.z_outlier}) must be greater than z_norm ({self.z_norm})"
            )
        if not 0 < self.pct_outliers < 0.1:
            raise ConfigError(f"pct_outliers must be in (0, 0.1), got {self.pct_outliers!r}")
        if self.min_size_numeric < 10 or self.min_size_categ < 10:
            raise ConfigError("min_size_numeric and min_size_categ must be >= 10")
        self._check_choice('categ_split', CATEG_SPLITS)
        self._check_choice('categ_outliers', CATEG_OUTLIERS)
        self._check_choice('numeric_split', NUMERIC_SPLITS)
        self._check_choice('failure_policy', FAILURE_POLICIES)
        self._check_choice('backend', BACKENDS)
        if self.nthreads is not None and self.nthreads != -1 and self.nthreads < 1:
            raise ConfigError(f"nthreads must be None, -1 or positive, got {self.nthreads!r}")

    def _check_choice(self, name: str, choices) -> None:
        value = getattr(self, name)
        if value not in choices:
            raise ConfigError(f"{name} must be one of {list(choices)}, got {value!r}")

    def tree_params(self) -> Dict[str, Any]:
        """Hyperparameters forwarded to every single-tree fit."""
        params = {name: getattr(self, name) for name in TREE_PARAM_NAMES}
        if params['cols_ignore'] is not None:
            params['cols_ignore'] = list(params['cols_ignore'])
        return params

    # ---- serialisation -----------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        """Plain-dict (YAML-safe) representation."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'BaggedOutlierTreesConfig':
        """Build a config from a dict, rejecting unknown keys."""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigError(f"Unknown configuration options: {unknown}")
        return cls(**data)

    def to_yaml(self, path: Union[str, Path]) -> Path:
        path = Path(path)
        with open(path, 'w') as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False, sort_keys=False)
        return path

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> 'BaggedOutlierTreesConfig':
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ConfigError(f"Expected a mapping in {path}, got {type(data).__name__}")
        return cls.from_dict(data)

    def replace(self, **overrides) -> 'BaggedOutlierTreesConfig':
        """Copy of this config with some options overridden (re-validated)."""
        data = self.to_dict()
        data.update(overrides)
        return self.from_dict(data)


def validate_min_outlier_score(min_outlier_score: float) -> float:
    """Check that a minimum outlier score lies in [0, 1]."""
    try:
        value = float(min_outlier_score)
    except (TypeError, ValueError):
        raise ConfigError(
            f"min_outlier_score must be a number in [0, 1], got {min_outlier_score!r}"
        ) from None
    if not 0.0 <= value <= 1.0:
        raise ConfigError(f"min_outlier_score must be in [0, 1], got {value}")
    return value
