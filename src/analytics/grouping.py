"""Group-by-key aggregation helpers shared by every research analyzer."""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, Iterable, Mapping, Sequence, Tuple, Union

import pandas as pd

Records = Union[pd.DataFrame, Iterable[Mapping[str, Any]]]


@dataclass(frozen=True)
class GroupSummary:
    """One group of records sharing the same key values.

    ``sums`` and ``means`` are keyed by value column name. ``means`` are
    ``sum / count`` where count is the number of records in the group.
    """

    key: Tuple[Any, ...]
    count: int
    sums: Mapping[str, float]
    means: Mapping[str, float]

    def mean(self, column: str) -> float:
        return self.means[column]


def records_frame(records: Records) -> pd.DataFrame:
    """Return *records* as a DataFrame without touching the caller's object."""
    if isinstance(records, pd.DataFrame):
        return records
    return pd.DataFrame.from_records(list(records))


def column(frame: pd.DataFrame, name: str) -> pd.Series:
    """Return a column, or an all-missing column when the records lack it."""
    if name in frame.columns:
        return frame[name]
    return pd.Series([None] * len(frame), index=frame.index, dtype=object)


def _clean_key(value: Any) -> Any:
    if not isinstance(value, (list, tuple, dict)) and pd.isna(value):
        return None
    return value


def group_summaries(
    records: Records,
    keys: Union[str, Sequence[str]],
    values: Sequence[str] = (),
) -> Tuple[GroupSummary, ...]:
    """Group records by *keys* and sum/average each column in *values*.

    Every distinct key combination is kept, including missing keys (which
    surface as ``None``). Groups appear in first-appearance order; callers
    that need a ranking sort explicitly.
    """
    key_cols = [keys] if isinstance(keys, str) else list(keys)
    value_cols = list(values)
    frame = records_frame(records)
    if frame.empty:
        return ()

    work = pd.DataFrame({k: column(frame, k) for k in key_cols}, index=frame.index)
    for v in value_cols:
        # missing numeric columns are a caller error, let the KeyError surface
        work[v] = frame[v]

    grouped = work.groupby(key_cols, sort=False, dropna=False)
    if value_cols:
        table = grouped[value_cols].sum()
    else:
        table = pd.DataFrame(index=grouped.size().index)
    table["__count"] = grouped.size()

    out = []
    for key, row in table.iterrows():
        key_tuple = key if isinstance(key, tuple) else (key,)
        count = int(row["__count"])
        if count == 0:
            continue
        sums = {v: float(row[v]) for v in value_cols}
        means = {v: sums[v] / count for v in value_cols}
        out.append(GroupSummary(
            key=tuple(_clean_key(k) for k in key_tuple),
            count=count,
            sums=MappingProxyType(sums),
            means=MappingProxyType(means),
        ))
    return tuple(out)


def count_by(records: Records, key: str) -> Dict[Any, int]:
    """Frequency table of *key*, in first-appearance order."""
    frame = records_frame(records)
    if frame.empty:
        return {}
    counts = column(frame, key).value_counts(dropna=False, sort=False)
    return {_clean_key(k): int(n) for k, n in counts.items()}
