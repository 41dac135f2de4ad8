"""
Pair analyzer: decides which side of a pair is priced and which is tracked.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from ..config.reference import ReferenceRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PairAnalysis:
    """Resolved roles of a token pair."""
    has_reference: bool
    reference_token: Optional[str]
    subject_token: str
    reference_symbol: Optional[str] = None


class PairAnalyzer:
    """
    Resolve reference and subject roles of a pair against a reference registry.

    Rules, in order:
      1. Neither token is a reference currency: no reference, the lower
         address is the subject.
      2. Exactly one is: it is the reference, the other is the subject.
      3. Both are: if one is the registry anchor the other is the subject,
         otherwise the lower address (on-chain token0) is the subject.

    The result depends only on the unordered pair, so analyze(a, b) and
    analyze(b, a) always agree.
    """

    def __init__(self, registry: ReferenceRegistry):
        self.registry = registry

    def analyze(self, token0: str, token1: str) -> PairAnalysis:
        token0, token1 = token0.lower(), token1.lower()
        if token0 == token1:
            raise ValueError(f"Pair needs two distinct tokens, got {token0} twice")

        low, high = sorted((token0, token1))
        low_is_ref = low in self.registry
        high_is_ref = high in self.registry

        if not low_is_ref and not high_is_ref:
            return PairAnalysis(has_reference=False, reference_token=None, subject_token=low)

        if low_is_ref and high_is_ref:
            if high == self.registry.anchor:
                reference, subject = high, low
            else:
                # low is the anchor, or neither is and token0 is the subject
                reference, subject = (low, high) if low == self.registry.anchor else (high, low)
        elif low_is_ref:
            reference, subject = low, high
        else:
            reference, subject = high, low

        return PairAnalysis(
            has_reference=True,
            reference_token=reference,
            subject_token=subject,
            reference_symbol=self.registry[reference].symbol,
        )

    def rate_of(self, token: Optional[str]) -> Decimal:
        """Conversion rate of a reference token (zero when None or unknown)."""
        return self.registry.rate_of(token) if token else Decimal(0)
