"""
Pluggable fee functions (functional core).

The engine only relies on the contract of ``FeeFunction.fee_for_interval``:
- pure and deterministic,
- monotone non-decreasing in ``duration_seconds`` for a fixed price
  (and in ``price`` for a fixed duration),
- integer-only, returning a non-negative fee in ledger units.

How a price maps to a fee rate is up to the implementation;
the two classes below are reference curves for wiring and tests.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from .math import BPS_SCALE, SECONDS_PER_DAY


class FeeFunction:
    """Interface for computing the per-unit fee of one constant-price interval."""

    def fee_for_interval(self, price: int, duration_seconds: int) -> int:
        raise NotImplementedError


def _require_non_negative(name: str, value: int) -> None:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be an int")
    if value < 0:
        raise ValueError(f"{name} must be non-negative: {value}")


@dataclass(frozen=True)
class LinearFeeFunction(FeeFunction):
    """Fee proportional to price and duration.

    ``fee = precision * daily_rate_bps * price * duration
            // (BPS_SCALE * reference_price * SECONDS_PER_DAY)``

    At ``price == reference_price`` one unit accrues ``daily_rate_bps`` per day.
    """

    precision: int = 10**10
    daily_rate_bps: int = 250
    reference_price: int = 5000

    def __post_init__(self) -> None:
        _require_non_negative("precision", self.precision)
        _require_non_negative("daily_rate_bps", self.daily_rate_bps)
        _require_non_negative("reference_price", self.reference_price)
        if self.reference_price == 0:
            raise ValueError("reference_price must be positive")

    def fee_for_interval(self, price: int, duration_seconds: int) -> int:
        _require_non_negative("price", price)
        _require_non_negative("duration_seconds", duration_seconds)
        numerator = self.precision * self.daily_rate_bps * price * duration_seconds
        return numerator // (BPS_SCALE * self.reference_price * SECONDS_PER_DAY)


@dataclass(frozen=True)
class TieredFeeFunction(FeeFunction):
    """Piecewise-constant daily rate selected by price thresholds.

    ``thresholds[i]`` is the lowest price at which ``daily_rates_bps[i + 1]``
    applies; prices below ``thresholds[0]`` use ``daily_rates_bps[0]``.
    Rates must be non-decreasing so the fee stays monotone in price.
    """

    thresholds: tuple[int, ...] = (2000, 4000, 8000)
    daily_rates_bps: tuple[int, ...] = (100, 200, 300, 400)
    precision: int = 10**10

    def __post_init__(self) -> None:
        object.__setattr__(self, "thresholds", tuple(self.thresholds))
        object.__setattr__(self, "daily_rates_bps", tuple(self.daily_rates_bps))
        _require_non_negative("precision", self.precision)
        if len(self.daily_rates_bps) != len(self.thresholds) + 1:
            raise ValueError(
                f"need len(thresholds) + 1 rates, got {len(self.daily_rates_bps)} rates "
                f"for {len(self.thresholds)} thresholds"
            )
        for t in self.thresholds:
            _require_non_negative("threshold", t)
        for r in self.daily_rates_bps:
            _require_non_negative("daily_rate_bps", r)
        if list(self.thresholds) != sorted(set(self.thresholds)):
            raise ValueError("thresholds must be strictly increasing")
        if list(self.daily_rates_bps) != sorted(self.daily_rates_bps):
            raise ValueError("daily_rates_bps must be non-decreasing")

    def rate_for_price(self, price: int) -> int:
        tier = 0
        for t in self.thresholds:
            if price >= t:
                tier += 1
        return self.daily_rates_bps[tier]

    def fee_for_interval(self, price: int, duration_seconds: int) -> int:
        _require_non_negative("price", price)
        _require_non_negative("duration_seconds", duration_seconds)
        rate = self.rate_for_price(price)
        return (self.precision * rate * duration_seconds) // (BPS_SCALE * SECONDS_PER_DAY)


def tiered_from_pairs(pairs: Sequence[tuple[int, int]], base_rate_bps: int, precision: int) -> TieredFeeFunction:
    """Build a ``TieredFeeFunction`` from ``(threshold, rate_bps)`` pairs."""
    ordered = sorted(pairs)
    return TieredFeeFunction(
        thresholds=tuple(t for t, _ in ordered),
        daily_rates_bps=(base_rate_bps, *(r for _, r in ordered)),
        precision=precision,
    )
