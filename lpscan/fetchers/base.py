"""
Base classes for blockchain log fetchers.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple
import logging

from ..core.models import BlockRange, RawLog

logger = logging.getLogger(__name__)


class FetchError(Exception):
    """Base exception for fetch-related errors."""
    pass


@dataclass(frozen=True)
class FilterSet:
    """
    One eth_getLogs filter: an optional contract address and topic0 alternatives.

    Multiple topics are OR-ed in position 0.
    """
    name: str
    topics: Tuple[str, ...]
    address: Optional[str] = None

    def to_filter_params(self, from_block: int, to_block: int) -> Dict[str, Any]:
        params: Dict[str, Any] = {
            "fromBlock": from_block,
            "toBlock": to_block,
            "topics": [list(self.topics)],
        }
        if self.address:
            params["address"] = self.address
        return params


@dataclass
class FetchResult:
    """Logs fetched for one block range, ordered by (block_number, log_index)."""
    block_range: BlockRange
    logs: List[RawLog] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)
