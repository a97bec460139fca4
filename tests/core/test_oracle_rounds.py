"""Tests for the oracle boundary: round checks and the bounded round walk."""

from __future__ import annotations

from volfund.core.oracle import (
    InMemoryPriceOracle,
    PriceOracleFeed,
    new_round_timestamps,
    round_order_ok,
    round_rejection,
)
from volfund.core.types import EngineState, OracleRound


T0 = 1_700_000_000
PHASE_JUMP = (1 << 64) + 1


class _CountingFeed(PriceOracleFeed):
    """Feed over an explicit id -> round table that counts lookups."""

    def __init__(self, rounds: list[OracleRound]) -> None:
        self.rounds = {r.round_id: r for r in rounds}
        self.lookups = 0

    def current_round(self) -> OracleRound:
        return self.rounds[max(self.rounds)]

    def round_data(self, round_id: int) -> OracleRound | None:
        self.lookups += 1
        return self.rounds.get(round_id)


def _state(round_id: int = 1, round_ts: int = T0 - 100) -> EngineState:
    return EngineState(
        initialized=True,
        last_update_timestamp=T0,
        price_at_last_update=5000,
        last_oracle_round_id=round_id,
        last_round_timestamp=round_ts,
    )


# ---------------------------------------------------------------------------
# new_round_timestamps
# ---------------------------------------------------------------------------

def test_walk_returns_contiguous_rounds_oldest_first() -> None:
    oracle = InMemoryPriceOracle(5000, T0)
    for k in range(1, 4):
        oracle.set_price(5000 + k, T0 + 60 * k)
    assert new_round_timestamps(oracle, 1, oracle.current_round(), max_rounds=128) == (
        T0 + 60,
        T0 + 120,
        T0 + 180,
    )


def test_walk_without_new_round_is_empty() -> None:
    oracle = InMemoryPriceOracle(5000, T0)
    assert new_round_timestamps(oracle, 1, oracle.current_round(), max_rounds=128) == ()


def test_walk_stops_at_sparse_id_jump() -> None:
    current = OracleRound(price=6000, round_id=PHASE_JUMP, timestamp=T0 + 250)
    feed = _CountingFeed([OracleRound(price=5000, round_id=1, timestamp=T0 - 100), current])
    assert new_round_timestamps(feed, 1, current, max_rounds=128) == (T0 + 250,)
    assert feed.lookups == 1


def test_walk_is_capped() -> None:
    rounds = [OracleRound(price=5000, round_id=i, timestamp=T0 + i) for i in range(1, 501)]
    feed = _CountingFeed(rounds)
    out = new_round_timestamps(feed, 1, rounds[-1], max_rounds=10)
    assert out == tuple(T0 + i for i in range(491, 501))
    assert feed.lookups == 9


# ---------------------------------------------------------------------------
# round_rejection / round_order_ok
# ---------------------------------------------------------------------------

def test_backdated_round_is_rejected() -> None:
    current = OracleRound(price=6000, round_id=2, timestamp=T0 - 150)
    assert round_rejection(_state(), current, T0 + 60) == "oracle:round_backdated"


def test_round_starting_with_previous_round_is_accepted() -> None:
    current = OracleRound(price=6000, round_id=2, timestamp=T0 - 100)
    assert round_rejection(_state(), current, T0 + 60) is None


def test_round_order_is_seeded_with_last_round_timestamp() -> None:
    current = OracleRound(price=6000, round_id=3, timestamp=T0 + 30)
    assert round_order_ok((T0 - 50, T0 + 30), current, T0 - 100)
    assert not round_order_ok((T0 - 150, T0 + 30), current, T0 - 100)
