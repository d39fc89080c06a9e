"""
Tagged Statistic Values
=======================

Statistics and comparison values reported by the trees are either numbers
(thresholds, proportions, means) or category names. Every raw value is
classified once into ``Numeric`` or ``Categorical`` so that merging values
reported by several trees is a single rule:

- all values Numeric      -> arithmetic mean, rounded
- any value Categorical   -> sorted set of distinct tokens

Mixed fields (some trees numeric, others categorical) are therefore merged
as categorical, with numbers contributing their string form.
"""

import math
import numbers
from dataclasses import dataclass
from typing import Any, Iterable, Optional, Tuple, Union

import numpy as np

TOKEN_SEPARATOR = ', '


@dataclass(frozen=True)
class Numeric:
    """A real-valued statistic."""
    value: float

    def tokens(self) -> Tuple[str, ...]:
        return (format_number(self.value),)

    def to_python(self) -> float:
        return self.value


@dataclass(frozen=True)
class Categorical:
    """One or more category names."""
    values: Tuple[str, ...]

    def tokens(self) -> Tuple[str, ...]:
        return self.values

    def to_python(self) -> str:
        return TOKEN_SEPARATOR.join(self.values)


MergedValue = Union[Numeric, Categorical]


def format_number(value: float) -> str:
    """String form of a number: integers without a trailing '.0'."""
    if math.isfinite(value) and float(value).is_integer():
        return str(int(value))
    return repr(float(value))


def _parse_float(text: str) -> Optional[float]:
    try:
        number = float(text)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def classify(value: Any) -> Optional[MergedValue]:
    """Tag a raw value as Numeric or Categorical.

    ``None`` and NaN are treated as absent and return None. Booleans are
    categorical. Sequences (e.g. the category set of an ``in`` condition)
    become a Categorical holding one token per element.
    """
    if value is None:
        return None
    if isinstance(value, (Numeric, Categorical)):
        return value
    if isinstance(value, (bool, np.bool_)):
        return Categorical((str(bool(value)),))
    if isinstance(value, numbers.Real):
        number = float(value)
        if math.isnan(number):
            return None
        return Numeric(number) if math.isfinite(number) else Categorical((str(number),))
    if isinstance(value, (list, tuple, set, frozenset, np.ndarray)):
        items = sorted(value, key=str) if isinstance(value, (set, frozenset)) else list(value)
        return Categorical(tuple(str(item) for item in items))
    text = str(value)
    number = _parse_float(text)
    if number is not None:
        return Numeric(number)
    return Categorical((text,))


def merge_values(values: Iterable[Optional[MergedValue]], decimals: int = 4) -> Optional[MergedValue]:
    """Merge the values several trees reported for the same field.

    Args:
        values: Classified values; None entries are ignored.
        decimals: Rounding applied to a numeric mean.

    Returns:
        Numeric mean when every value is numeric, otherwise a Categorical
        with the sorted distinct tokens. None when no value is present.
    """
    present = [value for value in values if value is not None]
    if not present:
        return None
    if all(isinstance(value, Numeric) for value in present):
        mean = sum(value.value for value in present) / len(present)
        return Numeric(float(round(mean, decimals)))
    tokens = sorted({token for value in present for token in value.tokens()})
    return Categorical(tuple(tokens))


def to_python(value: Optional[MergedValue]) -> Any:
    """Plain Python form of a merged value (float, joined string or None)."""
    return None if value is None else value.to_python()
