"""
Event processors for the scanning pipeline.

Leaves first: TokenMetadataCache -> PairAnalyzer -> EventClassifier -> PoolLedger.
"""

from .event_classifier import ClassifiedBatch, DecodeError, EventClassifier
from .pair_analyzer import PairAnalysis, PairAnalyzer
from .pool_ledger import LedgerAction, LedgerError, PoolLedger
from .token_metadata import TokenMetadataCache, to_human

__all__ = [
    "ClassifiedBatch",
    "DecodeError",
    "EventClassifier",
    "PairAnalysis",
    "PairAnalyzer",
    "LedgerAction",
    "LedgerError",
    "PoolLedger",
    "TokenMetadataCache",
    "to_human",
]
