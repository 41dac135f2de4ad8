"""
Domain types shared by the fetchers, processors and storage layers.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Union

from hexbytes import HexBytes


class ProtocolVersion(Enum):
    """Pool protocol version."""
    V2 = "v2"
    V3 = "v3"


@dataclass(frozen=True)
class BlockRange:
    """An inclusive range of blocks claimed by one worker."""
    from_block: int
    to_block: int

    def __post_init__(self):
        if self.from_block > self.to_block:
            raise ValueError(f"Empty block range: {self.from_block}-{self.to_block}")

    @property
    def size(self) -> int:
        return self.to_block - self.from_block + 1

    def overlaps(self, other: "BlockRange") -> bool:
        return self.from_block <= other.to_block and other.from_block <= self.to_block

    def __str__(self) -> str:
        return f"{self.from_block}-{self.to_block}"


def _hex(value: Union[str, bytes]) -> str:
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    value = str(value).lower()
    return value if value.startswith("0x") else "0x" + value


@dataclass
class RawLog:
    """An undecoded log entry as returned by eth_getLogs."""
    address: str
    topics: List[str]
    data: bytes
    block_number: int
    log_index: int
    transaction_hash: Optional[str] = None

    @property
    def topic0(self) -> Optional[str]:
        return self.topics[0] if self.topics else None

    @classmethod
    def from_web3(cls, log: Mapping[str, Any]) -> "RawLog":
        """Build from a web3 log receipt (AttributeDict with HexBytes fields)."""
        data = log.get("data", b"")
        if isinstance(data, str):
            data = HexBytes(data)
        tx_hash = log.get("transactionHash")
        return cls(
            address=str(log["address"]).lower(),
            topics=[_hex(t) for t in log.get("topics", [])],
            data=bytes(data),
            block_number=int(log.get("blockNumber") or 0),
            log_index=int(log.get("logIndex") or 0),
            transaction_hash=_hex(tx_hash) if tx_hash is not None else None,
        )


@dataclass(frozen=True)
class TokenMetadata:
    """ERC-20 metadata; total_supply is already scaled by decimals."""
    symbol: str = "UNK"
    decimals: int = 18
    total_supply: Decimal = Decimal(0)
    name: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "symbol": self.symbol,
            "decimals": self.decimals,
            "total_supply": str(self.total_supply),
            "name": self.name,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TokenMetadata":
        return cls(
            symbol=data.get("symbol") or "UNK",
            decimals=int(data.get("decimals", 18)),
            total_supply=Decimal(str(data.get("total_supply") or 0)),
            name=data.get("name"),
        )


@dataclass
class PoolRecord:
    """One row of the pool ledger."""
    address: str
    protocol_version: ProtocolVersion
    token0: str
    token1: str
    subject_token: str
    reference_token: Optional[str]
    reference_symbol: Optional[str] = None
    subject_symbol: Optional[str] = None
    subject_total_supply: Decimal = Decimal(0)
    reserve0: Decimal = Decimal(0)
    reserve1: Decimal = Decimal(0)
    valuation: Decimal = Decimal(0)
    cumulative_volume: Decimal = Decimal(0)
    trade_count_24h: int = 0
    trade_count_12h: int = 0
    created_at: Optional[datetime] = None
    last_updated: Optional[datetime] = None

    @property
    def reference_is_token0(self) -> bool:
        return self.reference_token is not None and self.reference_token == self.token0

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "PoolRecord":
        """Build from a database row (asyncpg Record or dict)."""
        return cls(
            address=row["address"],
            protocol_version=ProtocolVersion(row["protocol_version"]),
            token0=row["token0"],
            token1=row["token1"],
            subject_token=row["subject_token"],
            reference_token=row["reference_token"],
            reference_symbol=row.get("reference_symbol"),
            subject_symbol=row.get("subject_symbol"),
            subject_total_supply=Decimal(row.get("subject_total_supply") or 0),
            reserve0=Decimal(row.get("reserve0") or 0),
            reserve1=Decimal(row.get("reserve1") or 0),
            valuation=Decimal(row.get("valuation") or 0),
            cumulative_volume=Decimal(row.get("cumulative_volume") or 0),
            trade_count_24h=int(row.get("trade_count_24h") or 0),
            trade_count_12h=int(row.get("trade_count_12h") or 0),
            created_at=row.get("created_at"),
            last_updated=row.get("last_updated"),
        )


@dataclass(frozen=True)
class TradeAmounts:
    """Unsigned raw traded magnitude on each side of a pool."""
    amount0: int
    amount1: int

    def __post_init__(self):
        if self.amount0 < 0 or self.amount1 < 0:
            raise ValueError("Traded amounts are magnitudes and cannot be negative")


@dataclass(frozen=True)
class PoolCreated:
    pool: str
    token0: str
    token1: str
    protocol_version: ProtocolVersion
    fee: Optional[int] = None
    block_number: int = 0
    log_index: int = 0


@dataclass(frozen=True)
class ReserveSync:
    pool: str
    reserve0: int
    reserve1: int
    block_number: int = 0
    log_index: int = 0


@dataclass(frozen=True)
class Swap:
    pool: str
    protocol_version: ProtocolVersion
    amounts: TradeAmounts
    block_number: int = 0
    log_index: int = 0


PoolEvent = Union[PoolCreated, ReserveSync, Swap]
