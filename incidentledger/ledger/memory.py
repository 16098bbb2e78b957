from __future__ import annotations

import threading

from .base import TransactionResult, transaction_result


class InMemoryLedger:
    def __init__(self, initial: dict[str, bytes] | None = None, *, available: bool = True) -> None:
        self._data: dict[str, bytes] = dict(initial or {})
        self._lock = threading.Lock()
        self.available = available

    def get_data(self, key: str) -> bytes:
        with self._lock:
            return self._data.get(key, b"")

    def set_data(self, key: str, value: bytes) -> TransactionResult:
        with self._lock:
            self._data[key] = bytes(value)
        return transaction_result(key, value)

    def is_available(self) -> bool:
        return self.available

    def keys(self) -> list[str]:
        with self._lock:
            return sorted(self._data)
