"""
Exception Hierarchy
===================

All errors raised by the package derive from BaggedOutlierTreesError, and
additionally from the builtin that best describes them so that callers can
keep catching ValueError / RuntimeError.
"""


class BaggedOutlierTreesError(Exception):
    """Base class for all package errors."""


class ConfigError(BaggedOutlierTreesError, ValueError):
    """Invalid hyperparameter or option combination."""


class DataError(BaggedOutlierTreesError, ValueError):
    """Malformed input table (wrong type, empty, all rows missing, ...)."""


class FitError(BaggedOutlierTreesError, RuntimeError):
    """A bootstrap sample could not be fitted by the detector library."""

    def __init__(self, message: str, tree_id=None):
        super().__init__(message)
        self.tree_id = tree_id


class PredictError(BaggedOutlierTreesError, RuntimeError):
    """A query table is incompatible with a fitted detector."""

    def __init__(self, message: str, tree_id=None):
        super().__init__(message)
        self.tree_id = tree_id


class NotFittedError(BaggedOutlierTreesError, RuntimeError):
    """Prediction or persistence was requested before fitting."""
