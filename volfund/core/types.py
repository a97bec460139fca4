"""Data types for the funding-fee engine.

All types are frozen dataclasses (immutable). The stateful shell in
``volfund.integration.engine`` swaps whole values instead of mutating fields.

Units/conventions:
- timestamps are integer unix seconds.
- prices are the oracle's fixed-point integers, passed through untouched.
- ledger values are cumulative fee-per-unit, scaled by ``EngineConfig.precision``
  (``precision`` itself is "1.0", i.e. no fee accrued yet).
- turbulence is an integer percentage in ``[0, max_turbulence]``.
"""

from __future__ import annotations

from dataclasses import dataclass

from .errors import ConfigurationError


MAX_UINT256: int = 2**256 - 1


def _require_int(name: str, value: object, *, error: type[Exception] = ValueError) -> None:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be an int")
    if value < 0:
        raise error(f"{name} must be non-negative: {value}")


@dataclass(frozen=True)
class EngineConfig:
    """Constants fixed at construction time."""

    precision: int = 10**10
    heartbeat_seconds: int = 55 * 60
    growth_step: int = 100
    decay_step: int = 50
    max_turbulence: int = 1000
    min_turbulence_floor: int = 100
    max_ledger_value: int = MAX_UINT256
    # Most oracle rounds read per trigger for the turbulence indicator.
    max_rounds_scanned: int = 128

    def __post_init__(self) -> None:
        for name in (
            "precision", "heartbeat_seconds", "growth_step", "decay_step",
            "max_turbulence", "min_turbulence_floor", "max_ledger_value", "max_rounds_scanned",
        ):
            _require_int(name, getattr(self, name), error=ConfigurationError)
        if self.precision == 0:
            raise ConfigurationError("precision must be positive")
        if self.max_rounds_scanned == 0:
            raise ConfigurationError("max_rounds_scanned must be positive")
        if self.heartbeat_seconds == 0:
            raise ConfigurationError("heartbeat_seconds must be positive")
        if self.min_turbulence_floor > self.max_turbulence:
            raise ConfigurationError(
                f"min_turbulence_floor={self.min_turbulence_floor} exceeds max_turbulence={self.max_turbulence}"
            )
        if self.precision > self.max_ledger_value:
            raise ConfigurationError("precision must not exceed max_ledger_value")
        if self.max_ledger_value > MAX_UINT256:
            raise ConfigurationError("max_ledger_value must fit in uint256")


@dataclass(frozen=True)
class OracleRound:
    """One oracle round as reported by the price feed."""

    price: int
    round_id: int
    timestamp: int

    def __post_init__(self) -> None:
        _require_int("price", self.price)
        _require_int("round_id", self.round_id)
        _require_int("timestamp", self.timestamp)


@dataclass(frozen=True)
class EngineState:
    """Working state of the accumulation engine (distinct from the ledger)."""

    initialized: bool = False
    last_update_timestamp: int = 0
    price_at_last_update: int = 0
    last_oracle_round_id: int = 0
    last_round_timestamp: int = 0

    def __post_init__(self) -> None:
        if not isinstance(self.initialized, bool):
            raise TypeError("initialized must be a bool")
        for name in (
            "last_update_timestamp", "price_at_last_update",
            "last_oracle_round_id", "last_round_timestamp",
        ):
            _require_int(name, getattr(self, name))


@dataclass(frozen=True)
class TurbulenceState:
    """Bounded turbulence indicator state."""

    turbulence_percent: int = 0
    last_cvi: int = 0
    previous_cvi: int = 0
    last_update_timestamp: int = 0

    def __post_init__(self) -> None:
        for name in ("turbulence_percent", "last_cvi", "previous_cvi", "last_update_timestamp"):
            _require_int(name, getattr(self, name))


@dataclass(frozen=True)
class FeeSegment:
    """A price held constant for ``duration_seconds``, and the fee it accrued."""

    price: int
    duration_seconds: int
    fee: int


@dataclass(frozen=True)
class TriggerEffect:
    """Post-state observables emitted after an accepted trigger."""

    timestamp: int
    cumulative_value: int
    fee_delta: int
    turbulence_percent: int
    baseline: bool = False
    segments: tuple[FeeSegment, ...] = ()


@dataclass(frozen=True)
class StepResult:
    """Result of a single pure engine step."""

    accepted: bool
    engine_state: EngineState | None = None
    turbulence_state: TurbulenceState | None = None
    effect: TriggerEffect | None = None
    rejection: str | None = None
