"""Pure fixed-point arithmetic for the funding-fee engine.

Every function is stateless and operates on plain Python ints. Python ints do
not overflow, so range limits are checked explicitly against the configured
bound; division uses ``//`` (floor), matching the integer semantics of the
ledger values.
"""

from __future__ import annotations

from .types import MAX_UINT256


SECONDS_PER_DAY: int = 86_400
BPS_SCALE: int = 10_000


def in_uint_range(value: int, bound: int = MAX_UINT256) -> bool:
    """True when *value* is an int in ``[0, bound]`` (bools excluded)."""
    if not isinstance(value, int) or isinstance(value, bool):
        return False
    return 0 <= value <= bound


def checked_add(a: int, b: int, bound: int = MAX_UINT256) -> int | None:
    """``a + b``, or ``None`` when the sum exceeds *bound*."""
    total = a + b
    if total > bound:
        return None
    return total


def split_interval(
    last_update_timestamp: int,
    round_timestamp: int,
    now: int,
) -> tuple[tuple[str, int], ...]:
    """Split ``(t0, t2]`` into the segments priced by the two cached prices.

    Returns ``(which_price, duration)`` pairs, where ``which_price`` is
    ``"previous"`` (price cached at the last trigger) or ``"current"``.

    - ``t1 <= t0``: the active round started before the last trigger, so the
      current price covers the whole interval.
    - ``t1 > t0``: the previous price holds until the latest round started,
      the current price from there to ``now``. Rounds strictly between ``t0``
      and ``t1`` are never consulted.
    """
    t0, t1, t2 = last_update_timestamp, round_timestamp, now
    if t1 <= t0:
        return (("current", t2 - t0),)
    return (("previous", t1 - t0), ("current", t2 - t1))


def fee_for_amount(amount: int, start_value: int, end_value: int, precision: int) -> int:
    """Fee owed by *amount* units between two cumulative ledger values."""
    if amount < 0:
        raise ValueError(f"amount must be non-negative: {amount}")
    if end_value < start_value:
        raise ValueError(f"end_value {end_value} precedes start_value {start_value}")
    return (amount * (end_value - start_value)) // precision
