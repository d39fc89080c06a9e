"""
Ranking of Aggregated Records
=============================

Orders consensus records by descending outlier score and flattens them to a
DataFrame for downstream reporting.
"""

from typing import Hashable, Iterable, List, Mapping, Optional, Sequence, Union

import pandas as pd

from bagged_outliertrees.aggregation.aggregator import AggregatedRowRecord
from bagged_outliertrees.aggregation.explanations import STATISTIC_FIELDS
from bagged_outliertrees.aggregation.values import format_number

FRAME_COLUMNS = [
    'row_id', 'outlier_score', 'n_trees_flagged',
    'suspicious_column', 'suspicious_value',
    *STATISTIC_FIELDS,
    'conditions', 'unconditional',
]

Records = Union[Mapping[Hashable, AggregatedRowRecord], Iterable[AggregatedRowRecord]]


def rank_records(
    records: Records,
    row_order: Optional[Sequence[Hashable]] = None,
) -> List[AggregatedRowRecord]:
    """Sort records by outlier score, highest first.

    Args:
        records: Mapping row_id -> record, or an iterable of records.
        row_order: Row labels in query-table order. Ties in score keep this
            order; rows not listed go last. Without it, ties keep the input
            order.

    Returns:
        List of records in non-increasing score order.
    """
    items = list(records.values()) if isinstance(records, Mapping) else list(records)
    if row_order is not None:
        position = {row_id: i for i, row_id in enumerate(row_order)}
        items.sort(key=lambda r: position.get(r.row_id, len(position)))
    return sorted(items, key=lambda r: -r.outlier_score)


def _format_value(value) -> str:
    if isinstance(value, (tuple, list)):
        return '[' + ', '.join(_format_value(v) for v in value) + ']'
    if isinstance(value, float):
        return format_number(value)
    return str(value)


def format_conditions(record: AggregatedRowRecord) -> str:
    """Conditions of a record as ``col <op> value`` joined by '; '."""
    parts = []
    for cond in record.conditions:
        comp = cond.to_dict()['value_comp']
        parts.append(f"{cond.column} {cond.comparison} {_format_value(comp)}".rstrip())
    return '; '.join(parts)


def records_to_frame(records: Iterable[AggregatedRowRecord]) -> pd.DataFrame:
    """One row per record, statistics as plain values, conditions as text."""
    rows = []
    for record in records:
        stats = record.group_statistics.to_dict()
        rows.append({
            'row_id': record.row_id,
            'outlier_score': record.outlier_score,
            'n_trees_flagged': record.n_trees_flagged,
            'suspicious_column': record.suspicious_value.column,
            'suspicious_value': record.suspicious_value.value,
            **{name: stats[name] for name in STATISTIC_FIELDS},
            'conditions': format_conditions(record),
            'unconditional': record.unconditional,
        })
    return pd.DataFrame(rows, columns=FRAME_COLUMNS)
