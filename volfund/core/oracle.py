"""
Oracle feed boundary.

The engine never fetches prices on its own schedule: it asks the feed for the
active round when a trigger arrives.

This module keeps the boundary small:
- ``PriceOracleFeed`` is the interface the engine consumes.
- ``round_rejection`` decides, purely, whether a reported round is consistent
  with what the engine saw at its previous trigger.
- ``InMemoryPriceOracle`` is a local feed whose rounds are published explicitly.
"""

from __future__ import annotations

from typing import Sequence

from .types import EngineState, OracleRound


class PriceOracleFeed:
    """Interface for a round-based price feed.

    Round ids are non-decreasing across calls but may jump (e.g. a phase
    encoded in the high bits); ``round_data`` returns None for ids it does not
    report.
    """

    def current_round(self) -> OracleRound:
        raise NotImplementedError

    def round_data(self, round_id: int) -> OracleRound | None:
        raise NotImplementedError


def round_rejection(state: EngineState, current: OracleRound, now: int) -> str | None:
    """Return a rejection reason for *current* as seen at *now*, or None."""
    if current.timestamp > now:
        return "oracle:round_in_future"
    if not state.initialized:
        return None
    if current.round_id < state.last_oracle_round_id:
        return "oracle:round_regressed"
    if current.round_id == state.last_oracle_round_id and current.timestamp != state.last_round_timestamp:
        return "oracle:round_mismatch"
    if current.round_id > state.last_oracle_round_id and current.timestamp < state.last_round_timestamp:
        return "oracle:round_backdated"
    return None


def new_round_timestamps(
    feed: PriceOracleFeed,
    last_round_id: int,
    current: OracleRound,
    *,
    max_rounds: int,
) -> tuple[int, ...]:
    """Timestamps of the rounds after ``last_round_id``, oldest first, ending at *current*.

    Round ids only have to be non-decreasing, so the walk goes backwards from
    ``current.round_id - 1`` one id at a time and stops at ``last_round_id``,
    at the first id the feed does not report (a sparse id jump), or after
    ``max_rounds`` rounds in total. Rounds beyond the stop are never counted.
    The current round is taken from *current* rather than re-read, so a feed
    that moves on mid-call cannot desynchronize the two.
    """
    if current.round_id <= last_round_id or max_rounds <= 0:
        return ()
    out: list[int] = [current.timestamp]
    round_id = current.round_id - 1
    while round_id > last_round_id and len(out) < max_rounds:
        r = feed.round_data(round_id)
        if r is None:
            break
        out.append(r.timestamp)
        round_id -= 1
    out.reverse()
    return tuple(out)


def round_order_ok(timestamps: Sequence[int], current: OracleRound, last_round_timestamp: int = 0) -> bool:
    """True when *timestamps* are non-decreasing from ``last_round_timestamp`` and end at the current round."""
    if not timestamps:
        return True
    if timestamps[-1] != current.timestamp:
        return False
    previous = last_round_timestamp
    for ts in timestamps:
        if ts < previous:
            return False
        previous = ts
    return True


class InMemoryPriceOracle(PriceOracleFeed):
    """Feed whose rounds are published by calling ``set_price``."""

    def __init__(self, price: int, timestamp: int, *, first_round_id: int = 1) -> None:
        self._rounds: dict[int, OracleRound] = {}
        self._latest_id = first_round_id - 1
        self.set_price(price, timestamp)

    def set_price(self, price: int, timestamp: int) -> OracleRound:
        """Publish a new round starting at *timestamp*."""
        latest = self._rounds.get(self._latest_id)
        if latest is not None and timestamp < latest.timestamp:
            raise ValueError(f"round timestamp {timestamp} precedes latest round at {latest.timestamp}")
        r = OracleRound(price=price, round_id=self._latest_id + 1, timestamp=timestamp)
        self._rounds[r.round_id] = r
        self._latest_id = r.round_id
        return r

    def current_round(self) -> OracleRound:
        return self._rounds[self._latest_id]

    def round_data(self, round_id: int) -> OracleRound | None:
        return self._rounds.get(round_id)
