"""
Consensus Aggregation of Per-Tree Explanations
==============================================

Turns the explanations that many ensemble members gave for the same row into
one stable verdict per row.

Algorithm (per row):
1. Score: fraction of distinct trees that flagged the row, rounded to two
   decimals. Rows below ``min_outlier_score`` are dropped.
2. Majority filter: explanations are exploded into one record per
   (tree, condition) and grouped by (condition column, condition value,
   comparison, suspicious column, suspicious value). A group survives when
   it has at least ``score * ntrees / 2`` records, or when it carries no
   condition at all (unconditional flags always survive).
3. Dominant column: the suspicious column named most often among surviving
   records wins; ties go to the lexicographically smallest name. Records on
   other columns are dropped.
4. Merge: every statistic is merged across the remaining records (numeric
   mean, or the set of categories), as is each condition's comparison value.

The result does not depend on the order in which trees are listed.

Example:
    >>> aggregator = ScoreAggregator(ntrees=100, min_outlier_score=0.5)
    >>> records = aggregator.aggregate(raw_explanations)
    >>> ranked = rank_records(records)
"""

import logging
from collections import Counter, defaultdict
from dataclasses import dataclass
from typing import Any, Dict, Hashable, Iterable, List, Mapping, Optional, Sequence, Tuple

from bagged_outliertrees.aggregation.explanations import (
    STATISTIC_FIELDS,
    Condition,
    GroupStatistics,
    PerTreeRowExplanation,
    SuspiciousValue,
    TreeExplanation,
)
from bagged_outliertrees.aggregation.values import (
    TOKEN_SEPARATOR,
    Categorical,
    MergedValue,
    Numeric,
    classify,
    merge_values,
    to_python,
)
from bagged_outliertrees.config import validate_min_outlier_score
from bagged_outliertrees.exceptions import ConfigError

logger = logging.getLogger(__name__)

# Rounding of merged statistics; observation counts are reported as integers
STATISTIC_DECIMALS = {'threshold': 4, 'pct': 4, 'mean': 4, 'sd': 4, 'n_obs': 0}
CONDITION_DECIMALS = 4
SCORE_DECIMALS = 2


@dataclass(frozen=True)
class MergedStatistics:
    threshold: Optional[MergedValue] = None
    pct: Optional[MergedValue] = None
    mean: Optional[MergedValue] = None
    sd: Optional[MergedValue] = None
    n_obs: Optional[MergedValue] = None

    def to_dict(self) -> Dict[str, Any]:
        out = {name: to_python(getattr(self, name)) for name in STATISTIC_FIELDS}
        if isinstance(self.n_obs, Numeric):
            out['n_obs'] = int(self.n_obs.value)
        return out


@dataclass(frozen=True)
class ConsensusCondition:
    """A branch condition shared by a majority of the trees flagging a row."""
    column: str
    value_this: Any
    comparison: str
    value_comp: Optional[MergedValue]
    n_trees: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            'column': self.column,
            'value_this': self.value_this,
            'comparison': self.comparison,
            'value_comp': to_python(self.value_comp),
        }


@dataclass(frozen=True)
class AggregatedRowRecord:
    """Consensus verdict of the ensemble for one row.

    Attributes:
        row_id: Row label in the query table.
        outlier_score: Fraction of trees that flagged the row.
        suspicious_value: Dominant anomalous column and the row's value in it.
        group_statistics: Statistics merged across the surviving explanations.
        conditions: Majority branch conditions (empty when only
            unconditional explanations survived).
        unconditional: True when at least one surviving explanation had no
            branch conditions.
        n_trees_flagged: Number of distinct trees that flagged the row.
    """
    row_id: Hashable
    outlier_score: float
    suspicious_value: SuspiciousValue
    group_statistics: MergedStatistics
    conditions: Tuple[ConsensusCondition, ...] = ()
    unconditional: bool = False
    n_trees_flagged: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'row_id': self.row_id,
            'outlier_score': self.outlier_score,
            'suspicious_value': {
                'column': self.suspicious_value.column,
                'value': self.suspicious_value.value,
            },
            'group_statistics': self.group_statistics.to_dict(),
            'conditions': [cond.to_dict() for cond in self.conditions],
            'unconditional': self.unconditional,
            'n_trees_flagged': self.n_trees_flagged,
        }

    def to_explanation(self) -> PerTreeRowExplanation:
        """Express the consensus in the same shape as a single tree's output."""
        stats = self.group_statistics.to_dict()
        for name in ('threshold', 'pct', 'mean', 'sd'):
            stats[name] = _unwrap(getattr(self.group_statistics, name))
        return PerTreeRowExplanation(
            suspicious_value=self.suspicious_value,
            group_statistics=GroupStatistics(**stats),
            conditions=tuple(
                Condition(cond.column, cond.value_this, cond.comparison, _unwrap(cond.value_comp))
                for cond in self.conditions
            ),
        )


def _unwrap(value: Optional[MergedValue]) -> Any:
    if isinstance(value, Categorical):
        return value.values[0] if len(value.values) == 1 else value.values
    return to_python(value)


@dataclass(frozen=True)
class _Record:
    """One (tree, condition) pair of a row's explanations."""
    tree_id: int
    position: int
    condition: Optional[Condition]
    suspicious: SuspiciousValue
    statistics: GroupStatistics

    @property
    def group_key(self) -> Tuple:
        cond = self.condition
        if cond is None:
            return (None, None, None, self.suspicious.column, self.suspicious.value)
        return (cond.column, cond.value_this, cond.comparison,
                self.suspicious.column, self.suspicious.value)


def explode_explanations(explanations: Iterable[TreeExplanation]) -> List[_Record]:
    """One record per (tree, condition); unconditional explanations give one record."""
    records = []
    for tree_id, explanation in explanations:
        if explanation.is_unconditional:
            records.append(_Record(tree_id, -1, None, explanation.suspicious_value,
                                   explanation.group_statistics))
            continue
        for position, cond in enumerate(explanation.conditions):
            records.append(_Record(tree_id, position, cond, explanation.suspicious_value,
                                   explanation.group_statistics))
    records.sort(key=lambda r: (r.tree_id, r.position))
    return records


def dominant_column(columns: Iterable[str]) -> Optional[str]:
    """Most frequent column name; ties broken by lexicographic order.

    Names joined with ', ' count once for each of their parts.
    """
    tally = Counter(
        token
        for column in columns
        for token in str(column).split(TOKEN_SEPARATOR)
    )
    if not tally:
        return None
    return min(tally.items(), key=lambda item: (-item[1], item[0]))[0]


def _sort_key(value: Any) -> Tuple[str, str]:
    return (type(value).__name__, str(value))


class ScoreAggregator:
    """Majority-consensus aggregation of the ensemble's explanations.

    Args:
        ntrees: Number of trees that produced predictions (score denominator).
        min_outlier_score: Rows whose score is below this are dropped.
    """

    def __init__(self, ntrees: int, min_outlier_score: float = 0.0):
        if ntrees < 1:
            raise ConfigError(f"ntrees must be >= 1, got {ntrees}")
        self.ntrees = ntrees
        self.min_outlier_score = validate_min_outlier_score(min_outlier_score)

        self._stats = {
            'rows_seen': 0,
            'rows_below_score': 0,
            'rows_without_majority': 0,
            'rows_aggregated': 0,
        }

    def outlier_score(self, explanations: Sequence[TreeExplanation]) -> float:
        n_trees = len({tree_id for tree_id, _ in explanations})
        return round(n_trees / self.ntrees, SCORE_DECIMALS)

    def aggregate(
        self,
        raw: Mapping[Hashable, Sequence[TreeExplanation]],
    ) -> Dict[Hashable, AggregatedRowRecord]:
        """Aggregate every row of ``raw`` (row_id -> [(tree_id, explanation)])."""
        results: Dict[Hashable, AggregatedRowRecord] = {}
        for row_id, explanations in raw.items():
            self._stats['rows_seen'] += 1
            record = self.aggregate_row(row_id, explanations)
            if record is not None:
                results[row_id] = record

        logger.info(
            f"Aggregated {len(raw):,} flagged rows over {self.ntrees} trees: "
            f"{len(results):,} kept (min_outlier_score={self.min_outlier_score})"
        )
        return results

    def aggregate_row(
        self,
        row_id: Hashable,
        explanations: Sequence[TreeExplanation],
    ) -> Optional[AggregatedRowRecord]:
        """Consensus record for one row, or None if the row is filtered out."""
        if not explanations:
            return None
        tree_ids = {tree_id for tree_id, _ in explanations}
        if len(tree_ids) > self.ntrees:
            raise ConfigError(
                f"Row {row_id!r} was flagged by {len(tree_ids)} trees but ntrees={self.ntrees}"
            )

        score = self.outlier_score(explanations)
        if score < self.min_outlier_score:
            self._stats['rows_below_score'] += 1
            return None

        records = self._majority_records(explode_explanations(explanations), score)
        dominant = dominant_column(r.suspicious.column for r in records)
        records = [r for r in records if r.suspicious.column == dominant]
        if not records:
            self._stats['rows_without_majority'] += 1
            logger.debug(f"Row {row_id!r}: no explanation reached a majority, dropped")
            return None

        self._stats['rows_aggregated'] += 1
        return AggregatedRowRecord(
            row_id=row_id,
            outlier_score=score,
            suspicious_value=self._suspicious_value(records),
            group_statistics=self._merge_statistics(records),
            conditions=self._consensus_conditions(records),
            unconditional=any(r.condition is None for r in records),
            n_trees_flagged=len(tree_ids),
        )

    def _majority_records(self, records: List[_Record], score: float) -> List[_Record]:
        groups: Dict[Tuple, List[_Record]] = defaultdict(list)
        for record in records:
            groups[record.group_key].append(record)

        min_size = score * self.ntrees / 2
        kept = []
        for key, members in groups.items():
            if key[0] is None or len(members) >= min_size:
                kept.extend(members)
        kept.sort(key=lambda r: (r.tree_id, r.position))
        return kept

    @staticmethod
    def _suspicious_value(records: List[_Record]) -> SuspiciousValue:
        # A row has a single value per column, so this is one value in practice
        values = Counter(r.suspicious.value for r in records)
        value = min(values.items(), key=lambda item: (-item[1], _sort_key(item[0])))[0]
        return SuspiciousValue(column=records[0].suspicious.column, value=value)

    @staticmethod
    def _merge_statistics(records: List[_Record]) -> MergedStatistics:
        merged = {}
        for name in STATISTIC_FIELDS:
            merged[name] = merge_values(
                (classify(getattr(r.statistics, name)) for r in records),
                decimals=STATISTIC_DECIMALS[name],
            )
        return MergedStatistics(**merged)

    @staticmethod
    def _consensus_conditions(records: List[_Record]) -> Tuple[ConsensusCondition, ...]:
        groups: Dict[Tuple, List[_Record]] = defaultdict(list)
        for record in records:
            cond = record.condition
            if cond is not None:
                groups[(cond.column, cond.value_this, cond.comparison)].append(record)

        consensus = []
        for (column, value_this, comparison), members in groups.items():
            consensus.append((
                (min(r.position for r in members), str(column), str(comparison), _sort_key(value_this)),
                ConsensusCondition(
                    column=column,
                    value_this=value_this,
                    comparison=comparison,
                    value_comp=merge_values(
                        (classify(r.condition.value_comp) for r in members),
                        decimals=CONDITION_DECIMALS,
                    ),
                    n_trees=len({r.tree_id for r in members}),
                ),
            ))
        consensus.sort(key=lambda item: item[0])
        return tuple(cond for _, cond in consensus)

    def get_statistics(self) -> Dict[str, int]:
        return dict(self._stats)
