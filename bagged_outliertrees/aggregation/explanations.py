"""
Per-Tree Explanations
=====================

Structures describing why one tree flagged one row, and the conversion from
the dictionaries returned by ``outliertree.OutlierTree.predict``.

An explanation has:
    conditions        -- the branch conditions leading to the row's group
                         (empty when the value is anomalous in the column's
                         marginal distribution)
    suspicious_value  -- the column and value judged anomalous
    group_statistics  -- the distribution the value was compared against
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np

# Library statistic keys, in priority order, for each unified field.
# Numeric columns report upper_thr/pct_below or lower_thr/pct_above with
# mean/sd; categorical columns report categs_common or categ_maj with
# pct_common, pct_next_most_comm and prior_prob.
STATISTIC_ALIASES: Dict[str, Tuple[str, ...]] = {
    'threshold': ('threshold', 'thr', 'upper_thr', 'lower_thr', 'categs_common', 'categ_maj'),
    'pct': ('pct', 'pct_below', 'pct_above', 'pct_common', 'pct_other'),
    'mean': ('mean', 'pct_next_most_comm'),
    'sd': ('sd', 'prior_prob'),
    'n_obs': ('n_obs',),
}

STATISTIC_FIELDS = tuple(STATISTIC_ALIASES)


def _freeze(value: Any) -> Any:
    """Make list-like values hashable (tuples), leave scalars alone."""
    if isinstance(value, np.ndarray):
        return tuple(_freeze(item) for item in value.tolist())
    if isinstance(value, (list, tuple)):
        return tuple(_freeze(item) for item in value)
    if isinstance(value, np.generic):
        return value.item()
    return value


@dataclass(frozen=True)
class Condition:
    """One splitting predicate: ``column <comparison> value_comp``."""
    column: str
    value_this: Any
    comparison: str
    value_comp: Any = None

    def __post_init__(self):
        object.__setattr__(self, 'value_this', _freeze(self.value_this))
        object.__setattr__(self, 'value_comp', _freeze(self.value_comp))


@dataclass(frozen=True)
class SuspiciousValue:
    column: str
    value: Any

    def __post_init__(self):
        object.__setattr__(self, 'value', _freeze(self.value))


@dataclass(frozen=True)
class GroupStatistics:
    """Distribution of the suspicious column within the row's group."""
    threshold: Any = None
    pct: Any = None
    mean: Any = None
    sd: Any = None
    n_obs: Any = None

    def __post_init__(self):
        for name in STATISTIC_FIELDS:
            object.__setattr__(self, name, _freeze(getattr(self, name)))

    @classmethod
    def from_mapping(cls, stats: Optional[Mapping[str, Any]]) -> 'GroupStatistics':
        """Collapse the library's statistic keys onto the unified fields."""
        stats = stats or {}
        values = {}
        for name, aliases in STATISTIC_ALIASES.items():
            for alias in aliases:
                if alias in stats:
                    values[name] = stats[alias]
                    break
        return cls(**values)

    def to_dict(self) -> Dict[str, Any]:
        return {name: getattr(self, name) for name in STATISTIC_FIELDS}


@dataclass(frozen=True)
class PerTreeRowExplanation:
    """Why a single tree flagged a single row."""
    suspicious_value: SuspiciousValue
    group_statistics: GroupStatistics = field(default_factory=GroupStatistics)
    conditions: Tuple[Condition, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, 'conditions', tuple(self.conditions))

    @property
    def is_unconditional(self) -> bool:
        return len(self.conditions) == 0


# A row's explanation as given by one identified tree
TreeExplanation = Tuple[int, PerTreeRowExplanation]


def parse_condition(raw: Mapping[str, Any]) -> Condition:
    return Condition(
        column=raw['column'],
        value_this=raw.get('value_this'),
        comparison=raw['comparison'],
        value_comp=raw.get('value_comp'),
    )


def parse_explanation(
    suspicious_value: Mapping[str, Any],
    group_statistics: Optional[Mapping[str, Any]] = None,
    conditions: Optional[Sequence[Mapping[str, Any]]] = None,
) -> PerTreeRowExplanation:
    """Build an explanation from the dictionaries of an OutlierTree prediction.

    Args:
        suspicious_value: Dict with 'column' and 'value' (other keys such as
            'decimals' are ignored).
        group_statistics: Dict of group statistics in the library's naming.
        conditions: List of condition dicts with 'column', 'value_this',
            'comparison' and 'value_comp'.

    Raises:
        KeyError: If a mandatory key is missing.
    """
    parsed: List[Condition] = [parse_condition(cond) for cond in (conditions or [])]
    return PerTreeRowExplanation(
        suspicious_value=SuspiciousValue(
            column=suspicious_value['column'],
            value=suspicious_value.get('value'),
        ),
        group_statistics=GroupStatistics.from_mapping(group_statistics),
        conditions=tuple(parsed),
    )
