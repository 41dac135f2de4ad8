"""
Reference-currency registry configuration.

A reference currency is a token with a configured conversion rate into the
common unit of account (USD). Pools are only tracked when at least one side is
a reference currency; that side prices the pool's liquidity and volume.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from decimal import Decimal
from types import MappingProxyType
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from .base import BaseConfig, ConfigError


@dataclass(frozen=True)
class ReferenceCurrency:
    """A registry entry: lowercase address, display symbol and conversion rate."""
    address: str
    symbol: str
    rate: Decimal


class ReferenceRegistry(Mapping):
    """
    Immutable address -> ReferenceCurrency mapping.

    Lookups are case-insensitive. One member may be designated the stable
    anchor; when both sides of a pair are reference currencies the anchor is
    kept as the reference and the other token becomes the subject.
    """

    def __init__(self, currencies: Iterable[ReferenceCurrency], anchor: Optional[str] = None):
        entries: Dict[str, ReferenceCurrency] = {}
        for currency in currencies:
            address = currency.address.lower()
            if address in entries:
                raise ConfigError(f"Duplicate reference currency: {address}")
            if currency.rate < 0:
                raise ConfigError(f"Negative rate for {currency.symbol}: {currency.rate}")
            entries[address] = ReferenceCurrency(address, currency.symbol, Decimal(currency.rate))

        anchor = anchor.lower() if anchor else None
        if anchor is not None and anchor not in entries:
            raise ConfigError(f"Anchor {anchor} is not a reference currency")

        self._entries = MappingProxyType(entries)
        self._anchor = anchor

    @property
    def anchor(self) -> Optional[str]:
        return self._anchor

    def __getitem__(self, address: str) -> ReferenceCurrency:
        return self._entries[address.lower()]

    def __contains__(self, address: object) -> bool:
        return isinstance(address, str) and address.lower() in self._entries

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def rate_of(self, address: str) -> Decimal:
        """Conversion rate of a reference token, zero for anything else."""
        currency = self.get(address.lower())
        return currency.rate if currency else Decimal(0)

    def __repr__(self) -> str:
        symbols = ", ".join(c.symbol for c in self._entries.values())
        return f"ReferenceRegistry([{symbols}], anchor={self._anchor})"


# (address, symbol, default rate); rates of volatile assets are overridable via RATE_<SYMBOL>
DEFAULT_REFERENCE_TOKENS: Dict[str, List[Tuple[str, str, str]]] = {
    "bsc": [
        ("0x55d398326f99059ff775485246999027b3197955", "USDT", "1"),
        ("0x8ac76a51cc950d9822d68b83fe1ad97b32cd580d", "USDC", "1"),
        ("0xe9e7cea3dedca5984780bafc599bd69add087d56", "BUSD", "1"),
        ("0x1af3f329e8be154074d8769d1ffa4ee058b1dbc3", "DAI", "1"),
        ("0x8d0d000ee44948fc98c9b98a4fa4921476f08b0d", "USD1", "1"),
        ("0xbb4cdb9cbd36b01bd1cbaebf2de08d9173bc095c", "WBNB", "700"),
        ("0x2170ed0880ac9a755fd29b2688956bd959f933f8", "ETH", "3500"),
        ("0x7130d2a12b9bcbfae4f2634d864a1ee1ce3ead9c", "BTCB", "118000"),
    ],
    "ethereum": [
        ("0xdac17f958d2ee523a2206206994597c13d831ec7", "USDT", "1"),
        ("0xa0b86991c6218b36c1d19d4a2e9eb0ce3606eb48", "USDC", "1"),
        ("0x6b175474e89094c44da98b954eedeac495271d0f", "DAI", "1"),
        ("0xc02aaa39b223fe8d0a0e5c4f27ead9083c756cc2", "WETH", "3500"),
        ("0x2260fac5e5542a773aa44fbcfedf7c193bc2c599", "WBTC", "118000"),
    ],
}

DEFAULT_ANCHORS: Dict[str, str] = {
    "bsc": "0x55d398326f99059ff775485246999027b3197955",
    "ethereum": "0xdac17f958d2ee523a2206206994597c13d831ec7",
}


@dataclass
class ReferenceConfig(BaseConfig):
    """Reference registry settings."""

    # Optional full override: "address:SYMBOL:rate,address:SYMBOL:rate"
    REFERENCE_TOKENS: str = BaseConfig.get_env("REFERENCE_TOKENS", "")
    REFERENCE_ANCHOR: str = BaseConfig.get_env("REFERENCE_ANCHOR", "")

    def _parse_override(self) -> List[ReferenceCurrency]:
        currencies = []
        for item in [i.strip() for i in self.REFERENCE_TOKENS.split(",") if i.strip()]:
            parts = item.split(":")
            if len(parts) != 3:
                raise ConfigError(f"Invalid REFERENCE_TOKENS entry: {item}")
            address, symbol, rate = parts
            currencies.append(
                ReferenceCurrency(address.strip().lower(), symbol.strip(), Decimal(rate.strip()))
            )
        return currencies

    def get_registry(self, chain: str) -> ReferenceRegistry:
        """Build the immutable registry for a chain (loaded once at startup)."""
        if self.REFERENCE_TOKENS:
            currencies = self._parse_override()
        else:
            if chain not in DEFAULT_REFERENCE_TOKENS:
                raise ValueError(f"Unsupported chain: {chain}")
            currencies = [
                ReferenceCurrency(
                    address,
                    symbol,
                    BaseConfig.get_env_decimal(f"RATE_{symbol}", Decimal(default_rate)),
                )
                for address, symbol, default_rate in DEFAULT_REFERENCE_TOKENS[chain]
            ]

        anchor = self.REFERENCE_ANCHOR or DEFAULT_ANCHORS.get(chain)
        if anchor and anchor.lower() not in {c.address for c in currencies}:
            anchor = None
        return ReferenceRegistry(currencies, anchor=anchor)
