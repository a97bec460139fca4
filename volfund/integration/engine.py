"""
Funding-fee accumulation engine (imperative shell).

Wraps the pure trigger step in ``volfund.core.engine``:
- reads the oracle when a trigger arrives (never on a timer),
- runs the step against the current state,
- checkpoints the result (optional), then swaps in the new state and appends
  to the ledger.

One lock serializes triggers and reads, so a reader never sees a ledger entry
without its matching engine/turbulence state. A rejected trigger raises before
anything is written.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import List, Optional, Tuple

from loguru import logger

from ..core.engine import step_or_raise
from ..core.fee_function import FeeFunction
from ..core.math import fee_for_amount
from ..core.oracle import PriceOracleFeed, new_round_timestamps
from ..core.types import EngineConfig, EngineState, StepResult, TriggerEffect, TurbulenceState
from ..state.checkpoint import CheckpointStore
from ..state.ledger import SnapshotLedger


@dataclass(frozen=True)
class EngineSnapshot:
    """Point-in-time copy of everything a trigger can change."""

    engine_state: EngineState
    turbulence_state: TurbulenceState
    ledger: Tuple[Tuple[int, int], ...]


class FeeAccumulationEngine:
    def __init__(
        self,
        oracle: PriceOracleFeed,
        fee_function: FeeFunction,
        config: EngineConfig = EngineConfig(),
        *,
        store: Optional[CheckpointStore] = None,
    ) -> None:
        self._oracle = oracle
        self._fee_function = fee_function
        self._config = config
        self._store = store
        self._lock = threading.Lock()
        self._ledger = SnapshotLedger(baseline=config.precision)
        self._engine_state = EngineState()
        self._turbulence_state = TurbulenceState()

    @classmethod
    def from_store(
        cls,
        store: CheckpointStore,
        oracle: PriceOracleFeed,
        fee_function: FeeFunction,
        config: EngineConfig = EngineConfig(),
    ) -> "FeeAccumulationEngine":
        """Restore an engine from its last committed checkpoint."""
        engine = cls(oracle, fee_function, config, store=store)
        checkpoint = store.load()
        if checkpoint is not None:
            engine._ledger = SnapshotLedger.from_entries(checkpoint.ledger, baseline=config.precision)
            engine._engine_state = checkpoint.engine_state
            engine._turbulence_state = checkpoint.turbulence_state
            logger.info(
                "restored funding engine: {} snapshots, last update at {}",
                len(checkpoint.ledger),
                checkpoint.engine_state.last_update_timestamp,
            )
        return engine

    @property
    def config(self) -> EngineConfig:
        return self._config

    # ---------------------------------------------------------------- trigger

    def _run_step(self, now: int) -> StepResult:
        current = self._oracle.current_round()
        state = self._engine_state
        rounds: Tuple[int, ...] = ()
        if state.initialized and current.round_id > state.last_oracle_round_id:
            rounds = new_round_timestamps(
                self._oracle, state.last_oracle_round_id, current, max_rounds=self._config.max_rounds_scanned,
            )
        latest = self._ledger.latest()
        return step_or_raise(
            state,
            self._turbulence_state,
            self._config,
            now=now,
            current_round=current,
            fee_function=self._fee_function,
            last_value=None if latest is None else latest[1],
            round_timestamps=rounds,
        )

    def on_trigger(self, now: int) -> int:
        """Bring the ledger up to date as of *now*; return the new cumulative value."""
        with self._lock:
            try:
                result = self._run_step(now)
            except Exception as exc:
                logger.warning("rejected trigger at {}: {}", now, exc)
                raise
            effect = result.effect
            assert effect is not None and result.engine_state is not None and result.turbulence_state is not None

            if self._store is not None:
                self._store.record(
                    ledger_length=len(self._ledger) + 1,
                    entry=(effect.timestamp, effect.cumulative_value),
                    engine_state=result.engine_state,
                    turbulence_state=result.turbulence_state,
                )
            self._ledger.append(effect.timestamp, effect.cumulative_value)
            self._engine_state = result.engine_state
            self._turbulence_state = result.turbulence_state

        if effect.baseline:
            logger.info("funding ledger baseline set at {}", effect.timestamp)
        else:
            logger.debug(
                "funding snapshot at {}: delta={} value={} turbulence={}",
                effect.timestamp,
                effect.fee_delta,
                effect.cumulative_value,
                effect.turbulence_percent,
            )
        return effect.cumulative_value

    # ---------------------------------------------------------------- queries

    def ledger_value_at(self, timestamp: int) -> Optional[int]:
        with self._lock:
            return self._ledger.value_at(timestamp)

    def turbulence_percent(self) -> int:
        with self._lock:
            return self._turbulence_state.turbulence_percent

    def latest_snapshot(self) -> Optional[Tuple[int, int]]:
        with self._lock:
            return self._ledger.latest()

    def ledger_entries(self) -> List[Tuple[int, int]]:
        with self._lock:
            return self._ledger.entries()

    def snapshot(self) -> EngineSnapshot:
        with self._lock:
            return EngineSnapshot(
                engine_state=self._engine_state,
                turbulence_state=self._turbulence_state,
                ledger=tuple(self._ledger.entries()),
            )

    def preview(self, now: int) -> TriggerEffect:
        """What ``on_trigger(now)`` would do, without doing it.

        Raises the same errors ``on_trigger`` would.
        """
        with self._lock:
            result = self._run_step(now)
        assert result.effect is not None
        return result.effect

    def preview_cumulative(self, now: int) -> int:
        return self.preview(now).cumulative_value

    def funding_fee(self, amount: int, start_timestamp: int, end_timestamp: Optional[int] = None) -> int:
        """Fee owed by *amount* units between two snapshots (exact timestamps).

        ``end_timestamp=None`` means the latest snapshot.
        """
        with self._lock:
            start_value = self._ledger.value_at(start_timestamp)
            if start_value is None:
                raise KeyError(f"no snapshot at {start_timestamp}")
            if end_timestamp is None:
                latest = self._ledger.latest()
                assert latest is not None
                end_timestamp, end_value = latest
            else:
                found = self._ledger.value_at(end_timestamp)
                if found is None:
                    raise KeyError(f"no snapshot at {end_timestamp}")
                end_value = found
        if end_timestamp < start_timestamp:
            raise ValueError(f"end_timestamp {end_timestamp} precedes start_timestamp {start_timestamp}")
        return fee_for_amount(amount, start_value, end_value, self._config.precision)

    def calculate_funding_fees_addendum(self, amount: int, now: int) -> int:
        """Fee *amount* units would owe for the interval not yet in the ledger."""
        with self._lock:
            state = self._engine_state
            if not state.initialized or now == state.last_update_timestamp:
                return 0
            result = self._run_step(now)
        assert result.effect is not None
        return (amount * result.effect.fee_delta) // self._config.precision
