"""Exception types for the funding-fee engine.

Used by ``step_or_raise()`` in ``engine.py`` for callers that prefer
exceptions over ``StepResult`` inspection, and by the stateful shell in
``volfund.integration.engine``.
"""

from __future__ import annotations


class FundingEngineError(Exception):
    """Base class for every error raised by the engine."""


class StaleTriggerError(FundingEngineError):
    """Raised when a trigger timestamp does not advance past the previous one."""


class CorruptOracleStateError(FundingEngineError):
    """Raised when the oracle reports rounds that break ordering invariants."""


class ArithmeticOverflowError(FundingEngineError):
    """Raised when a fee or ledger value leaves the representable range."""


class EngineInvariantError(FundingEngineError):
    """Raised when a post-state violates one or more invariants."""

    def __init__(self, violations: list[str]) -> None:
        self.violations = violations
        super().__init__(f"invariant violations: {', '.join(violations)}")


class ConfigurationError(FundingEngineError, ValueError):
    """Raised at construction time for out-of-range configuration constants."""
