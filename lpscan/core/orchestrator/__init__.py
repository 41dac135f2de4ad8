"""
Range allocation and worker supervision.
"""

from .allocator import BlockRangeAllocator
from .base import RangeReport, WorkerState
from .worker import Watchdog, WorkerSupervisor

__all__ = [
    "BlockRangeAllocator",
    "RangeReport",
    "Watchdog",
    "WorkerState",
    "WorkerSupervisor",
]
