"""
Block range allocator.

Hands out contiguous, non-overlapping block ranges to competing workers using
an optimistic compare-and-set claim loop on the shared cursor.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from ..models import BlockRange
from ..storage.base import CursorStoreInterface

logger = logging.getLogger(__name__)


class BlockRangeAllocator:
    """
    Claims block ranges against a cursor store.

    The same allocator serves the single-worker mode (cursor file) and
    the fleet mode (Redis cursor); only the store differs.

    Args:
        store: shared cursor store holding the next unscanned block
        head_source: coroutine function returning the current chain head
        start_block: first block when the cursor has never been set
        start_offset: when start_block is unset, start this many blocks below the head
        head_wait_delay: seconds to wait when the next range is not yet mined
        claim_retry_delay: seconds to wait after losing a claim race
    """

    def __init__(
        self,
        store: CursorStoreInterface,
        head_source: Callable[[], Awaitable[int]],
        start_block: Optional[int] = None,
        start_offset: int = 1_000_000,
        head_wait_delay: float = 5.0,
        claim_retry_delay: float = 0.2,
    ):
        self.store = store
        self.head_source = head_source
        self.start_block = start_block
        self.start_offset = start_offset
        self.head_wait_delay = head_wait_delay
        self.claim_retry_delay = claim_retry_delay
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")
        self._head: Optional[int] = None

    async def _refresh_head(self) -> int:
        self._head = await self.head_source()
        return self._head

    def _fallback_start(self, head: int) -> int:
        if self.start_block is not None:
            return self.start_block
        return max(0, head - self.start_offset)

    async def claim_range(self, batch_size: int) -> BlockRange:
        """
        Block until a range of batch_size blocks is exclusively claimed.

        Raises:
            ValueError: if batch_size is not positive
            StorageError: if the cursor store is unreachable
        """
        if batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {batch_size}")

        while True:
            cursor = await self.store.get_cursor()
            if cursor is None:
                head = await self._refresh_head()
                start = self._fallback_start(head)
                self.logger.info(f"Cursor unset, starting at block {start}")
            else:
                start = cursor

            end = start + batch_size - 1
            if self._head is None or end > self._head:
                await self._refresh_head()
            if end > self._head:
                self.logger.debug(
                    f"Range {start}-{end} beyond head {self._head}, "
                    f"waiting {self.head_wait_delay}s"
                )
                await asyncio.sleep(self.head_wait_delay)
                continue

            if await self.store.compare_and_set_cursor(start, end + 1):
                block_range = BlockRange(start, end)
                self.logger.debug(f"Claimed blocks {block_range}")
                return block_range

            self.logger.debug(f"Lost claim race at block {start}, retrying")
            await asyncio.sleep(self.claim_retry_delay)
