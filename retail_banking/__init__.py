"""
Retail Banking Ledger Engine

An in-memory banking core with per-account append-only ledgers, a
deadlock-free transfer protocol, loan amortization and batch jobs.
All financial calculations use Decimal.
"""

__version__ = "1.0.0"
