"""
Ensemble Persistence
====================

Stores a fitted ensemble in a directory::

    {path}/
        ensemble.joblib   -- fitted detectors + training columns
        properties.yaml   -- configuration and metadata (human-readable)

Example::

    from bagged_outliertrees.persistence import save_ensemble, load_ensemble

    save_ensemble(model.ensemble, 'save/ensemble')
    ensemble = load_ensemble('save/ensemble')
"""

from __future__ import annotations

import datetime
import logging
from pathlib import Path
from typing import Any, Dict, Union

import joblib
import yaml

from bagged_outliertrees.config import BaggedOutlierTreesConfig
from bagged_outliertrees.ensemble.base import Ensemble

logger = logging.getLogger(__name__)

ENSEMBLE_FILE = 'ensemble.joblib'
PROPERTIES_FILE = 'properties.yaml'


def _build_properties(ensemble: Ensemble) -> Dict[str, Any]:
    from bagged_outliertrees import __version__

    return {
        'package_version': __version__,
        'created': datetime.datetime.now().isoformat(timespec='seconds'),
        'ntrees': ensemble.ntrees,
        'n_failed': ensemble.n_failed,
        'columns': [str(col) for col in ensemble.columns],
        'config': ensemble.config.to_dict(),
    }


def save_ensemble(ensemble: Ensemble, path: Union[str, Path]) -> Path:
    """
    Persist a fitted ensemble.

    Parameters
    ----------
    ensemble : Ensemble
        Fitted ensemble.
    path : str or Path
        Target directory (created if needed; existing files are replaced).

    Returns
    -------
    Path
        The directory written to.
    """
    path = Path(path)
    path.mkdir(parents=True, exist_ok=True)

    bundle = {
        'detectors': list(ensemble.detectors),
        'columns': list(ensemble.columns),
        'n_failed': ensemble.n_failed,
    }
    joblib.dump(bundle, path / ENSEMBLE_FILE)

    with open(path / PROPERTIES_FILE, 'w') as f:
        yaml.dump(_build_properties(ensemble), f, default_flow_style=False, sort_keys=False)

    logger.info(f"Ensemble ({ensemble.ntrees} trees) saved to {path}")
    return path


def load_ensemble(path: Union[str, Path]) -> Ensemble:
    """
    Reconstruct an ensemble written by :func:`save_ensemble`.

    Raises
    ------
    FileNotFoundError
        If either file is missing from ``path``.
    """
    path = Path(path)
    for name in (ENSEMBLE_FILE, PROPERTIES_FILE):
        if not (path / name).exists():
            raise FileNotFoundError(f"Ensemble file not found: {path / name}")

    with open(path / PROPERTIES_FILE) as f:
        props = yaml.safe_load(f) or {}
    bundle = joblib.load(path / ENSEMBLE_FILE)

    config = BaggedOutlierTreesConfig.from_dict(props.get('config', {}))
    ensemble = Ensemble(
        detectors=tuple(bundle['detectors']),
        columns=tuple(bundle['columns']),
        config=config,
        n_failed=int(bundle.get('n_failed', 0)),
    )
    logger.info(f"Ensemble ({ensemble.ntrees} trees) loaded from {path}")
    return ensemble
