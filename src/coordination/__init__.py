"""Coordination layer - file lock waiting and change suppression."""

from .file_locks import LockWaiter, try_exclusive_open
from .suppression import SuppressionGate, SuppressionScope

__all__ = [
    "LockWaiter",
    "SuppressionGate",
    "SuppressionScope",
    "try_exclusive_open",
]
