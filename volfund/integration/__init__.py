"""
Imperative shell around the funding-fee core
"""

from .engine import EngineSnapshot, FeeAccumulationEngine

__all__ = [
    "EngineSnapshot",
    "FeeAccumulationEngine",
]
