"""Turbulence indicator state machine.

Distinguishes an oracle that is updating rapidly (many rounds, each closer
than a heartbeat to the previous one) from an oracle that has gone quiet.

Per trigger, in this order:
  1. decay: ``heartbeats = elapsed // heartbeat_seconds``, subtract
     ``heartbeats * decay_step`` floored at 0,
  2. trim: a value below ``min_turbulence_floor`` snaps to exactly 0,
  3. growth: ``growth_step`` per rapid round, capped at ``max_turbulence``.

Decay-then-grow and grow-then-decay give different results when both fire in
one trigger; the order above is part of the contract.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Sequence

from .types import EngineConfig, TurbulenceState


def count_rapid_rounds(since: int, round_timestamps: Sequence[int], heartbeat_seconds: int) -> int:
    """Number of rounds whose gap to the preceding round is under a heartbeat.

    The first round's gap is measured from *since* (the previous turbulence
    update); a negative gap counts as 0.
    """
    rapid = 0
    previous = since
    for ts in round_timestamps:
        if max(ts - previous, 0) < heartbeat_seconds:
            rapid += 1
        previous = ts
    return rapid


def decay(percent: int, heartbeats: int, config: EngineConfig) -> int:
    decayed = max(percent - heartbeats * config.decay_step, 0)
    if decayed < config.min_turbulence_floor:
        return 0
    return decayed


def grow(percent: int, rapid_rounds: int, config: EngineConfig) -> int:
    return min(percent + rapid_rounds * config.growth_step, config.max_turbulence)


def init_turbulence_state(now: int, current_price: int) -> TurbulenceState:
    """State recorded by the very first trigger: no turbulence yet."""
    return TurbulenceState(turbulence_percent=0, last_cvi=current_price, previous_cvi=0, last_update_timestamp=now)


def on_trigger(
    state: TurbulenceState,
    config: EngineConfig,
    *,
    now: int,
    current_price: int,
    round_timestamps: Sequence[int] = (),
) -> TurbulenceState:
    """Advance the indicator to *now*.

    ``round_timestamps`` are the start times of the rounds observed since the
    previous update, oldest first; the last one is the latest round.
    """
    elapsed = max(now - state.last_update_timestamp, 0)
    heartbeats = elapsed // config.heartbeat_seconds

    percent = decay(state.turbulence_percent, heartbeats, config)
    rapid = count_rapid_rounds(state.last_update_timestamp, round_timestamps, config.heartbeat_seconds)
    percent = grow(percent, rapid, config)

    if round_timestamps:
        return replace(
            state,
            turbulence_percent=percent,
            previous_cvi=state.last_cvi,
            last_cvi=current_price,
            last_update_timestamp=now,
        )
    return replace(state, turbulence_percent=percent, last_update_timestamp=now)
