"""Pure trigger step for the funding-fee engine.

``step(...)`` is the single entry point. It:

1. Validates the trigger timestamp and the oracle round (guards).
2. Computes the fee accrued since the previous trigger with the two-segment
   time split, and the new cumulative ledger value.
3. Advances the turbulence indicator.
4. Checks invariants on the post-state.
5. Returns a ``StepResult`` (accepted, or rejected with a reason).

Nothing here mutates. The stateful shell (``volfund.integration.engine``)
applies an accepted result in one go, which is what makes a failed trigger
leave every piece of state untouched.
"""

from __future__ import annotations

from typing import Sequence

from . import turbulence
from .errors import ArithmeticOverflowError, CorruptOracleStateError, EngineInvariantError, StaleTriggerError
from .fee_function import FeeFunction
from .math import checked_add, in_uint_range, split_interval
from .oracle import round_order_ok, round_rejection
from .types import (
    EngineConfig,
    EngineState,
    FeeSegment,
    OracleRound,
    StepResult,
    TriggerEffect,
    TurbulenceState,
)


def _reject(reason: str) -> StepResult:
    return StepResult(accepted=False, rejection=reason)


def compute_segments(
    state: EngineState,
    config: EngineConfig,
    *,
    now: int,
    current_round: OracleRound,
    fee_function: FeeFunction,
) -> tuple[FeeSegment, ...] | None:
    """Fee segments between the previous trigger and *now*.

    Returns None when a segment fee falls outside ``[0, max_ledger_value]``.
    """
    prices = {"previous": state.price_at_last_update, "current": current_round.price}
    segments: list[FeeSegment] = []
    for which, duration in split_interval(state.last_update_timestamp, current_round.timestamp, now):
        price = prices[which]
        fee = fee_function.fee_for_interval(price, duration)
        if not in_uint_range(fee, config.max_ledger_value):
            return None
        segments.append(FeeSegment(price=price, duration_seconds=duration, fee=fee))
    return tuple(segments)


def check_invariants(
    pre: EngineState,
    post: EngineState,
    post_turbulence: TurbulenceState,
    config: EngineConfig,
    last_value: int | None,
    new_value: int,
) -> list[str]:
    """Check all invariants on the post-state. Returns list of violation names."""
    violations: list[str] = []
    if pre.initialized and post.last_update_timestamp <= pre.last_update_timestamp:
        violations.append("timestamp_increasing")
    if last_value is None and new_value != config.precision:
        violations.append("baseline_is_precision")
    if last_value is not None and new_value < last_value:
        violations.append("ledger_monotone")
    if new_value > config.max_ledger_value:
        violations.append("ledger_bounded")
    if not (0 <= post_turbulence.turbulence_percent <= config.max_turbulence):
        violations.append("turbulence_bounded")
    return violations


def step(
    engine_state: EngineState,
    turbulence_state: TurbulenceState,
    config: EngineConfig,
    *,
    now: int,
    current_round: OracleRound,
    fee_function: FeeFunction,
    last_value: int | None,
    round_timestamps: Sequence[int] = (),
) -> StepResult:
    """Bring the ledger up to date as of *now*.

    ``last_value`` is the latest ledger value (None before the first trigger);
    ``round_timestamps`` are the start times of rounds observed since the
    previous trigger, oldest first.
    """
    if not isinstance(now, int) or isinstance(now, bool) or now < 0:
        return _reject("param_domain:now")

    if engine_state.initialized and now <= engine_state.last_update_timestamp:
        return _reject("stale_trigger")

    oracle_err = round_rejection(engine_state, current_round, now)
    if oracle_err is not None:
        return _reject(oracle_err)

    if not engine_state.initialized:
        new_state = EngineState(
            initialized=True,
            last_update_timestamp=now,
            price_at_last_update=current_round.price,
            last_oracle_round_id=current_round.round_id,
            last_round_timestamp=current_round.timestamp,
        )
        new_turbulence = turbulence.init_turbulence_state(now, current_round.price)
        violations = check_invariants(engine_state, new_state, new_turbulence, config, None, config.precision)
        if violations:
            return _reject(f"invariant:{','.join(violations)}")
        effect = TriggerEffect(
            timestamp=now,
            cumulative_value=config.precision,
            fee_delta=0,
            turbulence_percent=0,
            baseline=True,
        )
        return StepResult(accepted=True, engine_state=new_state, turbulence_state=new_turbulence, effect=effect)

    if not round_order_ok(round_timestamps, current_round, engine_state.last_round_timestamp):
        return _reject("oracle:round_order")

    segments = compute_segments(
        engine_state, config, now=now, current_round=current_round, fee_function=fee_function,
    )
    if segments is None:
        return _reject("overflow:fee")

    delta = 0
    for seg in segments:
        total = checked_add(delta, seg.fee, config.max_ledger_value)
        if total is None:
            return _reject("overflow:fee")
        delta = total

    base = config.precision if last_value is None else last_value
    new_value = checked_add(base, delta, config.max_ledger_value)
    if new_value is None:
        return _reject("overflow:ledger")

    new_state = EngineState(
        initialized=True,
        last_update_timestamp=now,
        price_at_last_update=current_round.price,
        last_oracle_round_id=current_round.round_id,
        last_round_timestamp=current_round.timestamp,
    )
    new_turbulence = turbulence.on_trigger(
        turbulence_state,
        config,
        now=now,
        current_price=current_round.price,
        round_timestamps=round_timestamps,
    )

    violations = check_invariants(engine_state, new_state, new_turbulence, config, last_value, new_value)
    if violations:
        return _reject(f"invariant:{','.join(violations)}")

    effect = TriggerEffect(
        timestamp=now,
        cumulative_value=new_value,
        fee_delta=delta,
        turbulence_percent=new_turbulence.turbulence_percent,
        segments=segments,
    )
    return StepResult(accepted=True, engine_state=new_state, turbulence_state=new_turbulence, effect=effect)


def step_or_raise(
    engine_state: EngineState,
    turbulence_state: TurbulenceState,
    config: EngineConfig,
    **kwargs,
) -> StepResult:
    """Like ``step()`` but raises on rejection instead of returning a result.

    Raises:
        ValueError: ``now`` is not a non-negative int.
        StaleTriggerError: ``now`` does not advance past the previous trigger.
        CorruptOracleStateError: The oracle round breaks ordering invariants.
        ArithmeticOverflowError: A fee or the ledger value leaves its range.
        EngineInvariantError: Post-state violates one or more invariants.
    """
    result = step(engine_state, turbulence_state, config, **kwargs)
    if result.accepted:
        return result

    reason = result.rejection or ""
    if reason == "stale_trigger":
        raise StaleTriggerError(
            f"trigger at {kwargs.get('now')} does not advance past {engine_state.last_update_timestamp}"
        )
    if reason.startswith("oracle:"):
        raise CorruptOracleStateError(reason)
    if reason.startswith("overflow:"):
        raise ArithmeticOverflowError(reason)
    if reason.startswith("invariant:"):
        raise EngineInvariantError(reason.removeprefix("invariant:").split(","))
    raise ValueError(reason)
