"""
Aggregation Module
==================

Combines the explanations of many ensemble members into one consensus
record per row.

Key Components:
    PerTreeRowExplanation: Why one tree flagged one row
    ScoreAggregator: Score, majority filter, dominant column and merge
    AggregatedRowRecord: Consensus verdict for one row
    rank_records: Order records by descending outlier score
"""

from bagged_outliertrees.aggregation.values import (
    Numeric,
    Categorical,
    MergedValue,
    classify,
    merge_values,
)
from bagged_outliertrees.aggregation.explanations import (
    Condition,
    SuspiciousValue,
    GroupStatistics,
    PerTreeRowExplanation,
    TreeExplanation,
    parse_explanation,
)
from bagged_outliertrees.aggregation.aggregator import (
    ScoreAggregator,
    AggregatedRowRecord,
    ConsensusCondition,
    MergedStatistics,
    dominant_column,
)
from bagged_outliertrees.aggregation.ranking import rank_records, records_to_frame

__all__ = [
    "Numeric",
    "Categorical",
    "MergedValue",
    "classify",
    "merge_values",
    "Condition",
    "SuspiciousValue",
    "GroupStatistics",
    "PerTreeRowExplanation",
    "TreeExplanation",
    "parse_explanation",
    "ScoreAggregator",
    "AggregatedRowRecord",
    "ConsensusCondition",
    "MergedStatistics",
    "dominant_column",
    "rank_records",
    "records_to_frame",
]
