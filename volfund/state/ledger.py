"""
Snapshot ledger: trigger timestamp -> cumulative fee-per-unit.

Entries exist only where a trigger happened; nothing is interpolated. The
ledger is append-only: timestamps strictly increase, values never decrease,
and the first value is the baseline (``precision``, i.e. "1.0").
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Tuple


def _require_uint(value: int, *, name: str) -> int:
    if not isinstance(value, int) or isinstance(value, bool) or value < 0:
        raise TypeError(f"{name} must be a non-negative int")
    return int(value)


@dataclass
class SnapshotLedger:
    """
    Mutable append-only table of ``(timestamp, cumulative_value)``.

    Owned by exactly one engine; independent engines get independent ledgers.
    """

    baseline: int = 10**10
    _values: Dict[int, int] = field(default_factory=dict)
    _order: List[int] = field(default_factory=list)

    def __post_init__(self) -> None:
        _require_uint(self.baseline, name="baseline")

    def append(self, timestamp: int, value: int) -> None:
        timestamp = _require_uint(timestamp, name="timestamp")
        value = _require_uint(value, name="value")
        if not self._order:
            if value != self.baseline:
                raise ValueError(f"first ledger value must be the baseline {self.baseline}, got {value}")
        else:
            last_ts = self._order[-1]
            if timestamp <= last_ts:
                raise ValueError(f"timestamp {timestamp} must exceed latest snapshot {last_ts}")
            if value < self._values[last_ts]:
                raise ValueError(f"value {value} decreases from {self._values[last_ts]}")
        self._values[timestamp] = value
        self._order.append(timestamp)

    def value_at(self, timestamp: int) -> Optional[int]:
        """Exact-match lookup; None when no trigger happened at *timestamp*."""
        return self._values.get(timestamp)

    def latest(self) -> Optional[Tuple[int, int]]:
        if not self._order:
            return None
        ts = self._order[-1]
        return ts, self._values[ts]

    def entries(self) -> List[Tuple[int, int]]:
        # Copy so callers cannot reorder the log.
        return [(ts, self._values[ts]) for ts in self._order]

    def __len__(self) -> int:
        return len(self._order)

    def __iter__(self) -> Iterator[Tuple[int, int]]:
        return iter(self.entries())

    @classmethod
    def from_entries(cls, entries: List[Tuple[int, int]], *, baseline: int) -> "SnapshotLedger":
        ledger = cls(baseline=baseline)
        for ts, value in entries:
            ledger.append(ts, value)
        return ledger
