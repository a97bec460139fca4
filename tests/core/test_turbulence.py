"""Tests for the turbulence indicator state machine."""

from __future__ import annotations

import importlib.util

import pytest

from volfund.core.turbulence import count_rapid_rounds, decay, grow, init_turbulence_state, on_trigger
from volfund.core.types import EngineConfig, TurbulenceState


CONFIG = EngineConfig()  # heartbeat 3300s, growth 100, decay 50, max 1000, floor 100
HB = CONFIG.heartbeat_seconds
T0 = 1_000_000


def _state(percent: int = 0, last_update: int = T0) -> TurbulenceState:
    return TurbulenceState(turbulence_percent=percent, last_cvi=6000, previous_cvi=0, last_update_timestamp=last_update)


def _rounds_after(start: int, periods: list[int]) -> list[int]:
    out = []
    t = start
    for p in periods:
        t += p
        out.append(t)
    return out


# ---------------------------------------------------------------------------
# building blocks
# ---------------------------------------------------------------------------

def test_count_rapid_rounds_measures_first_gap_from_last_update() -> None:
    assert count_rapid_rounds(T0, [T0 + 60, T0 + 120], HB) == 2
    assert count_rapid_rounds(T0, [T0 + HB, T0 + HB + 60], HB) == 1


def test_count_rapid_rounds_gap_equal_to_heartbeat_is_not_rapid() -> None:
    assert count_rapid_rounds(T0, [T0 + HB], HB) == 0
    assert count_rapid_rounds(T0, [T0 + HB - 1], HB) == 1


def test_count_rapid_rounds_before_last_update_counts_as_rapid() -> None:
    assert count_rapid_rounds(T0, [T0 - 10], HB) == 1


def test_decay_floors_at_zero() -> None:
    assert decay(300, 100, CONFIG) == 0


def test_decay_snaps_below_floor_to_zero() -> None:
    assert decay(300, 5, CONFIG) == 0  # 300 - 250 = 50 < 100


def test_decay_keeps_value_at_floor() -> None:
    assert decay(300, 4, CONFIG) == 100


def test_grow_caps_at_max() -> None:
    assert grow(900, 3, CONFIG) == CONFIG.max_turbulence


def test_init_state() -> None:
    s = init_turbulence_state(T0, 5000)
    assert s == TurbulenceState(turbulence_percent=0, last_cvi=5000, previous_cvi=0, last_update_timestamp=T0)


# ---------------------------------------------------------------------------
# on_trigger scenarios
# ---------------------------------------------------------------------------

class TestOnTrigger:
    def test_rapid_rounds_grow_linearly(self) -> None:
        rounds = _rounds_after(T0, [60] * 5)
        s = on_trigger(_state(), CONFIG, now=rounds[-1], current_price=7000, round_timestamps=rounds)
        assert s.turbulence_percent == 5 * CONFIG.growth_step

    def test_eleven_rapid_rounds_hit_the_cap_exactly(self) -> None:
        rounds = _rounds_after(T0, [60] * 11)
        s = on_trigger(_state(), CONFIG, now=rounds[-1], current_price=7000, round_timestamps=rounds)
        assert s.turbulence_percent == CONFIG.max_turbulence

    def test_decay_applies_before_growth(self) -> None:
        # Silence of four heartbeats, then two rapid rounds, starting at the cap.
        rounds = _rounds_after(T0, [4 * HB, 60, 60])
        s = on_trigger(_state(CONFIG.max_turbulence), CONFIG, now=rounds[-1], current_price=7000, round_timestamps=rounds)
        # 1000 - 4*50 = 800, then + 2*100 = 1000. Growing first would give min(1200, 1000) - 200 = 800.
        assert s.turbulence_percent == 1000

    def test_decay_then_growth_with_mixed_gaps(self) -> None:
        rounds = _rounds_after(T0, [60 * 60, 30 * 60, 30 * 60])
        s = on_trigger(_state(300), CONFIG, now=rounds[-1], current_price=7000, round_timestamps=rounds)
        # elapsed 7200s -> 2 heartbeats -> 200; two of three gaps are rapid -> 400
        assert s.turbulence_percent == 400

    def test_zeroes_if_decays_below_minimum(self) -> None:
        s = on_trigger(_state(300), CONFIG, now=T0 + 5 * HB, current_price=6000)
        assert s.turbulence_percent == 0

    def test_slow_rounds_only_decay(self) -> None:
        rounds = _rounds_after(T0, [60 * 60, 60 * 60, 60 * 60])
        s = on_trigger(_state(300), CONFIG, now=rounds[-1], current_price=7000, round_timestamps=rounds)
        # 10800s -> 3 heartbeats -> 150, no rapid rounds
        assert s.turbulence_percent == 150

    def test_growth_is_measured_to_end_of_time_span(self) -> None:
        rounds = _rounds_after(T0, [10 * 60, 10 * 60, 10 * 60, 60 * 60])
        s = on_trigger(_state(300), CONFIG, now=rounds[-1], current_price=7000, round_timestamps=rounds)
        # 5400s -> 1 heartbeat -> 250; three rapid rounds -> 550
        assert s.turbulence_percent == 550

    def test_zero_stays_zero_through_decay(self) -> None:
        rounds = _rounds_after(T0, [60 * 60, 30 * 60, 3 * 60 * 60])
        s = on_trigger(_state(0), CONFIG, now=rounds[-1] + 15 * 60, current_price=7000, round_timestamps=rounds)
        # decay leaves 0; the single 30-minute gap is rapid
        assert s.turbulence_percent == CONFIG.growth_step

    def test_records_last_two_samples_on_new_rounds(self) -> None:
        s = on_trigger(_state(), CONFIG, now=T0 + 60, current_price=7000, round_timestamps=[T0 + 30])
        assert (s.previous_cvi, s.last_cvi) == (6000, 7000)
        assert s.last_update_timestamp == T0 + 60

    def test_samples_unchanged_without_new_rounds(self) -> None:
        s = on_trigger(_state(), CONFIG, now=T0 + 60, current_price=6000)
        assert (s.previous_cvi, s.last_cvi) == (0, 6000)
        assert s.last_update_timestamp == T0 + 60

    def test_growth_step_below_floor_is_trimmed_next_trigger(self) -> None:
        config = EngineConfig(growth_step=40, min_turbulence_floor=100)
        s = on_trigger(_state(), config, now=T0 + 60, current_price=7000, round_timestamps=[T0 + 30])
        assert s.turbulence_percent == 40
        s = on_trigger(s, config, now=T0 + 120, current_price=7000)
        assert s.turbulence_percent == 0


# ---------------------------------------------------------------------------
# bounds (property-based)
# ---------------------------------------------------------------------------

if importlib.util.find_spec("hypothesis") is not None:
    import hypothesis.strategies as st
    from hypothesis import given, settings

    @settings(max_examples=200, deadline=None)
    @given(
        start=st.integers(min_value=0, max_value=CONFIG.max_turbulence),
        gaps=st.lists(st.integers(min_value=0, max_value=4 * HB), max_size=30),
        tail=st.integers(min_value=0, max_value=10 * HB),
    )
    def test_turbulence_stays_in_bounds(start: int, gaps: list[int], tail: int) -> None:
        rounds = _rounds_after(T0, gaps)
        now = (rounds[-1] if rounds else T0) + tail
        s = on_trigger(_state(start), CONFIG, now=now, current_price=6000, round_timestamps=rounds)
        assert 0 <= s.turbulence_percent <= CONFIG.max_turbulence
        rapid = count_rapid_rounds(T0, rounds, HB)
        if rapid == 0:
            assert s.turbulence_percent == 0 or s.turbulence_percent >= CONFIG.min_turbulence_floor
else:  # pragma: no cover
    @pytest.mark.skip(reason="hypothesis not installed")
    def test_turbulence_stays_in_bounds() -> None:
        pass
