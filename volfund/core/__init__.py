"""
Functional core: fee segmentation, turbulence and the pure trigger step.

Public API:
- `step(engine_state, turbulence_state, config, ...) -> StepResult`
- `step_or_raise(...) -> StepResult` (raises on rejection)
"""

from .engine import compute_segments, step, step_or_raise
from .errors import (
    ArithmeticOverflowError,
    ConfigurationError,
    CorruptOracleStateError,
    EngineInvariantError,
    FundingEngineError,
    StaleTriggerError,
)
from .fee_function import FeeFunction, LinearFeeFunction, TieredFeeFunction
from .oracle import InMemoryPriceOracle, PriceOracleFeed
from .types import (
    EngineConfig,
    EngineState,
    FeeSegment,
    OracleRound,
    StepResult,
    TriggerEffect,
    TurbulenceState,
)

__all__ = [
    "compute_segments",
    "step",
    "step_or_raise",
    "ArithmeticOverflowError",
    "ConfigurationError",
    "CorruptOracleStateError",
    "EngineInvariantError",
    "FundingEngineError",
    "StaleTriggerError",
    "FeeFunction",
    "LinearFeeFunction",
    "TieredFeeFunction",
    "InMemoryPriceOracle",
    "PriceOracleFeed",
    "EngineConfig",
    "EngineState",
    "FeeSegment",
    "OracleRound",
    "StepResult",
    "TriggerEffect",
    "TurbulenceState",
]
