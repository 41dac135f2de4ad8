"""
Event classifier: decodes raw pool logs into typed events.

Decoding is pure. A malformed payload raises DecodeError for that log only;
batch classification logs a warning and carries on with the rest of the range.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional

from eth_abi import decode
from eth_abi.exceptions import DecodingError
from hexbytes import HexBytes

from ..core.models import (
    PoolCreated,
    PoolEvent,
    ProtocolVersion,
    RawLog,
    ReserveSync,
    Swap,
    TradeAmounts,
)

logger = logging.getLogger(__name__)

WORD = 32

# Non-indexed payload types by event
PAIR_CREATED_TYPES = ["address", "uint256"]
POOL_CREATED_TYPES = ["int24", "address"]
SYNC_TYPES = ["uint112", "uint112"]
V2_SWAP_TYPES = ["uint256", "uint256", "uint256", "uint256"]
V3_SWAP_TYPES = ["int256", "int256", "uint160", "uint128", "int24"]
# PancakeSwap V3 appends protocolFeesToken0 / protocolFeesToken1
V3_SWAP_WITH_FEES_TYPES = V3_SWAP_TYPES + ["uint128", "uint128"]


class DecodeError(Exception):
    """Raised when a log does not match the expected event layout."""
    pass


@dataclass
class ClassifiedBatch:
    """Events decoded from one range plus the logs that were dropped."""
    events: List[PoolEvent] = field(default_factory=list)
    skipped: int = 0
    unknown: int = 0


def _topic_address(topic: str) -> str:
    """Low 20 bytes of a 32-byte topic slot."""
    try:
        return decode(["address"], HexBytes(topic))[0].lower()
    except DecodingError as e:
        raise DecodeError(f"Topic is not an address: {topic} ({e})")


def _decode_payload(types: List[str], data: bytes, event: str) -> tuple:
    if len(data) != WORD * len(types):
        raise DecodeError(
            f"{event} payload is {len(data)} bytes, expected {WORD * len(types)}"
        )
    try:
        return decode(types, data)
    except DecodingError as e:
        raise DecodeError(f"Malformed {event} payload: {e}")


def _require_topics(log: RawLog, count: int, event: str) -> None:
    if len(log.topics) != count:
        raise DecodeError(f"{event} expects {count} topics, got {len(log.topics)}")
    for topic in log.topics:
        if len(topic) != 2 + 2 * WORD:
            raise DecodeError(f"{event} topic has unexpected length: {topic}")


class EventClassifier:
    """
    Map raw logs to PoolCreated, ReserveSync and Swap events.

    Args:
        topics: topic0 hashes keyed by event type, as returned by
            ProtocolConfig.get_event_topics
        factories: optional allow-list of factory addresses for creation events
    """

    def __init__(self, topics: Dict[str, str], factories: Optional[Iterable[str]] = None):
        self.topics = {name: topic.lower() for name, topic in topics.items()}
        self.factories = {f.lower() for f in factories if f} if factories else None
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

        self._decoders: Dict[str, Callable[[RawLog], PoolEvent]] = {}
        handlers = {
            "v3_pool_created": self._decode_pool_created,
            "v2_pair_created": self._decode_pair_created,
            "v2_sync": self._decode_sync,
            "v2_swap": self._decode_v2_swap,
            "v3_swap": self._decode_v3_swap,
        }
        for name, handler in handlers.items():
            if name in self.topics:
                self._decoders[self.topics[name]] = handler

    def classify(self, log: RawLog) -> Optional[PoolEvent]:
        """
        Decode one log.

        Returns:
            The typed event, or None when the topic is not a tracked event

        Raises:
            DecodeError: if the log carries a tracked topic with a bad layout
        """
        topic0 = log.topic0.lower() if log.topic0 else None
        decoder = self._decoders.get(topic0)
        if decoder is None:
            return None
        return decoder(log)

    def classify_batch(self, logs: Iterable[RawLog]) -> ClassifiedBatch:
        batch = ClassifiedBatch()
        for log in logs:
            try:
                event = self.classify(log)
            except DecodeError as e:
                self.logger.warning(
                    f"Skipping log {log.block_number}:{log.log_index} from {log.address}: {e}"
                )
                batch.skipped += 1
                continue

            if event is None:
                batch.unknown += 1
            else:
                batch.events.append(event)
        return batch

    def _check_factory(self, log: RawLog, event: str) -> None:
        if self.factories is not None and log.address.lower() not in self.factories:
            raise DecodeError(f"{event} emitted by non-factory {log.address}")

    def _decode_pool_created(self, log: RawLog) -> PoolCreated:
        _require_topics(log, 4, "PoolCreated")
        self._check_factory(log, "PoolCreated")
        _tick_spacing, pool = _decode_payload(POOL_CREATED_TYPES, log.data, "PoolCreated")
        return PoolCreated(
            pool=pool.lower(),
            token0=_topic_address(log.topics[1]),
            token1=_topic_address(log.topics[2]),
            protocol_version=ProtocolVersion.V3,
            fee=int(log.topics[3], 16),
            block_number=log.block_number,
            log_index=log.log_index,
        )

    def _decode_pair_created(self, log: RawLog) -> PoolCreated:
        _require_topics(log, 3, "PairCreated")
        self._check_factory(log, "PairCreated")
        pair, _index = _decode_payload(PAIR_CREATED_TYPES, log.data, "PairCreated")
        return PoolCreated(
            pool=pair.lower(),
            token0=_topic_address(log.topics[1]),
            token1=_topic_address(log.topics[2]),
            protocol_version=ProtocolVersion.V2,
            block_number=log.block_number,
            log_index=log.log_index,
        )

    def _decode_sync(self, log: RawLog) -> ReserveSync:
        reserve0, reserve1 = _decode_payload(SYNC_TYPES, log.data, "Sync")
        return ReserveSync(
            pool=log.address.lower(),
            reserve0=reserve0,
            reserve1=reserve1,
            block_number=log.block_number,
            log_index=log.log_index,
        )

    def _decode_v2_swap(self, log: RawLog) -> Swap:
        amount0_in, amount1_in, amount0_out, amount1_out = _decode_payload(
            V2_SWAP_TYPES, log.data, "Swap"
        )
        return Swap(
            pool=log.address.lower(),
            protocol_version=ProtocolVersion.V2,
            amounts=TradeAmounts(amount0_in + amount0_out, amount1_in + amount1_out),
            block_number=log.block_number,
            log_index=log.log_index,
        )

    def _decode_v3_swap(self, log: RawLog) -> Swap:
        if len(log.data) == WORD * len(V3_SWAP_WITH_FEES_TYPES):
            types = V3_SWAP_WITH_FEES_TYPES
        else:
            types = V3_SWAP_TYPES
        amount0, amount1, *_pricing = _decode_payload(types, log.data, "V3 Swap")
        return Swap(
            pool=log.address.lower(),
            protocol_version=ProtocolVersion.V3,
            amounts=TradeAmounts(abs(amount0), abs(amount1)),
            block_number=log.block_number,
            log_index=log.log_index,
        )
