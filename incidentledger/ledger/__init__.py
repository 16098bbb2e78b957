from __future__ import annotations

from .base import KeyValueLedger, TransactionResult
from .memory import InMemoryLedger
from .remote import HttpLedger, LedgerTransportError
from .sqlite import DEFAULT_LEDGER_PATH, SqliteLedger

__all__ = [
    "DEFAULT_LEDGER_PATH",
    "HttpLedger",
    "InMemoryLedger",
    "KeyValueLedger",
    "LedgerTransportError",
    "SqliteLedger",
    "TransactionResult",
]
