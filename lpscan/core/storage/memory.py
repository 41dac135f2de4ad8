"""
In-process cursor store.
"""

import asyncio
import logging
from typing import Optional

from .base import CursorStoreInterface

logger = logging.getLogger(__name__)


class MemoryCursorStore(CursorStoreInterface):
    """
    Cursor held in process memory.

    Same compare-and-set contract as the Redis store. FileCursorStore builds on
    it for the single-worker mode by overriding `_store`.
    """

    def __init__(self, initial: Optional[int] = None):
        self._value = initial
        self._lock = asyncio.Lock()

    async def get_cursor(self) -> Optional[int]:
        return self._value

    async def compare_and_set_cursor(self, expected: int, new_value: int) -> bool:
        async with self._lock:
            if self._value is None or self._value == expected:
                self._store(new_value)
                return True
            return False

    def _store(self, value: int) -> None:
        self._value = value
