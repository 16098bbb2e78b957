from __future__ import annotations

import datetime as dt
from typing import Protocol, TypedDict, runtime_checkable


class TransactionResult(TypedDict):
    key: str
    size: int
    committed_at: str


@runtime_checkable
class KeyValueLedger(Protocol):
    """Minimal ledger surface: two data calls plus an availability check.

    ``get_data`` returns ``b""`` for keys that were never written. Backends
    raise on transport failure; callers wrap those as ``StoreError``.
    """

    def get_data(self, key: str) -> bytes: ...

    def set_data(self, key: str, value: bytes) -> TransactionResult: ...

    def is_available(self) -> bool: ...


def transaction_result(key: str, value: bytes) -> TransactionResult:
    return {
        "key": key,
        "size": len(value),
        "committed_at": dt.datetime.now(dt.UTC).isoformat(),
    }
