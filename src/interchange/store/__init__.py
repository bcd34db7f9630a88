"""
Relational store for exchange status, backed by DuckDB through ibis.
"""

from interchange.store.connection import DatabaseConnection
from interchange.store.store import IMPORTED_TABLE, LEDGER_TABLE, OUTBOUND_TABLE, ExchangeStore

__all__ = [
    "DatabaseConnection",
    "ExchangeStore",
    "OUTBOUND_TABLE",
    "IMPORTED_TABLE",
    "LEDGER_TABLE",
]
