"""LedgerMap: ledger-to-taxonomy mapping engine."""

__version__ = "1.0.0"
