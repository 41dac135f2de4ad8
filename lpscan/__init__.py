"""
lpScanner: concurrent DEX pool ledger scanner.
"""

__version__ = "0.1.0"
