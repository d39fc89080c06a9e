"""
Detectors Module
================

Interface to the single-tree outlier detector used for every ensemble member.

Key Components:
    DetectorAdapter: Abstract fit / predict interface
    OutlierTreeAdapter: Implementation backed by the ``outliertree`` package
"""

from bagged_outliertrees.detectors.base import DetectorAdapter
from bagged_outliertrees.detectors.outlier_tree import OutlierTreeAdapter

__all__ = [
    "DetectorAdapter",
    "OutlierTreeAdapter",
]
