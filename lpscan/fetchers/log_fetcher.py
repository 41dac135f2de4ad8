"""
Log fetcher: pulls the raw logs of one claimed block range.
"""

import asyncio
import logging
from typing import List, Optional, Sequence

from ..config.protocols import ProtocolConfig
from ..core.models import BlockRange, RawLog
from .base import FetchError, FetchResult, FilterSet
from .chain_client import ChainClient

logger = logging.getLogger(__name__)


def build_filter_sets(
    protocols: ProtocolConfig, chain: str, include_v2_pair_created: Optional[bool] = None
) -> List[FilterSet]:
    """
    Filter sets fetched for every range.

    V3 pool creation is scoped to the V3 factory; swaps and syncs of both
    versions are taken from any address. V2 pair creation at the V2 factory
    is added when enabled and a factory is configured.
    """
    topics = protocols.get_event_topics(chain)
    filter_sets = [
        FilterSet(
            name="v3_pool_created",
            topics=(topics["v3_pool_created"],),
            address=protocols.get_factory_address("v3", chain),
        ),
        FilterSet(name="v2_swap_sync", topics=(topics["v2_swap"], topics["v2_sync"])),
        FilterSet(name="v3_swap", topics=(topics["v3_swap"],)),
    ]

    if include_v2_pair_created is None:
        include_v2_pair_created = protocols.TRACK_V2_PAIR_CREATED
    v2_factory = protocols.get_factory_address("v2", chain)
    if include_v2_pair_created and v2_factory:
        filter_sets.append(
            FilterSet(
                name="v2_pair_created",
                topics=(topics["v2_pair_created"],),
                address=v2_factory,
            )
        )
    return filter_sets


class LogFetcher:
    """
    Fetches raw logs for a block range across a fixed list of filter sets.

    A range is processed atomically: every filter set is attempted, and if any
    of them fails the whole range raises FetchError so nothing is partially
    applied.
    """

    def __init__(self, client: ChainClient, filter_sets: Sequence[FilterSet]):
        if not filter_sets:
            raise ValueError("At least one filter set is required")
        self.client = client
        self.filter_sets = list(filter_sets)
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    async def fetch(self, from_block: int, to_block: int, filter_set: FilterSet) -> List[RawLog]:
        """Fetch the logs of one filter set over [from_block, to_block]."""
        return await self.client.get_logs(filter_set.to_filter_params(from_block, to_block))

    async def fetch_range(self, block_range: BlockRange) -> FetchResult:
        """
        Fetch every filter set for a range concurrently.

        Returns:
            FetchResult whose logs are ordered by (block_number, log_index)

        Raises:
            FetchError: if any filter set failed
        """
        results = await asyncio.gather(
            *(
                self.fetch(block_range.from_block, block_range.to_block, filter_set)
                for filter_set in self.filter_sets
            ),
            return_exceptions=True,
        )

        logs: List[RawLog] = []
        counts = {}
        failures = []
        for filter_set, result in zip(self.filter_sets, results):
            if isinstance(result, BaseException):
                self.logger.error(
                    f"Filter set {filter_set.name} failed for blocks {block_range}: {result}"
                )
                failures.append(f"{filter_set.name}: {result}")
                continue
            counts[filter_set.name] = len(result)
            logs.extend(result)

        if failures:
            raise FetchError(
                f"Fetching blocks {block_range} failed for {len(failures)} filter set(s): "
                + "; ".join(failures)
            )

        logs.sort(key=lambda log: (log.block_number, log.log_index))
        self.logger.debug(f"Fetched {len(logs)} logs for blocks {block_range}: {counts}")

        return FetchResult(block_range=block_range, logs=logs, metadata={"counts": counts})
