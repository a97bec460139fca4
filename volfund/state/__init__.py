"""
State management for the funding-fee engine
"""

from .checkpoint import Checkpoint, CheckpointStore
from .ledger import SnapshotLedger

__all__ = [
    "Checkpoint",
    "CheckpointStore",
    "SnapshotLedger",
]
