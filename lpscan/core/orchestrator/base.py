"""
Base classes and types for the scanning worker.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional

from ..models import BlockRange

logger = logging.getLogger(__name__)


class WorkerState(Enum):
    """Worker iteration state."""
    IDLE = "idle"
    CLAIMING_RANGE = "claiming_range"
    FETCHING = "fetching"
    DECODING = "decoding"
    RECONCILING = "reconciling"
    ABORTED = "aborted"


@dataclass
class RangeReport:
    """Result of processing one claimed block range."""
    block_range: BlockRange
    start_time: datetime
    end_time: Optional[datetime] = None
    logs_fetched: int = 0
    events_decoded: int = 0
    skipped_logs: int = 0
    pools_created: int = 0
    reserve_updates: int = 0
    trades: int = 0
    ignored_events: int = 0
    volume: Decimal = Decimal(0)
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def duration(self) -> Optional[float]:
        """Processing time in seconds."""
        if self.start_time and self.end_time:
            return (self.end_time - self.start_time).total_seconds()
        return None

    def summary(self) -> str:
        return (
            f"blocks {self.block_range}: {self.logs_fetched} logs, "
            f"{self.events_decoded} events ({self.skipped_logs} skipped), "
            f"{self.pools_created} new pools, {self.reserve_updates} reserve updates, "
            f"{self.trades} trades"
        )
