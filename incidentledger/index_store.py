from __future__ import annotations

import json
import logging

from .errors import StoreError
from .ledger.base import KeyValueLedger, TransactionResult

DEFAULT_INDEX_KEY = "spaceweather_keys"
DEFAULT_RECORD_KEY_PREFIX = "spaceweather_"

logger = logging.getLogger(__name__)


def _dedupe(ids: list[str]) -> list[str]:
    seen: set[str] = set()
    deduped: list[str] = []
    for record_id in ids:
        if record_id in seen:
            continue
        seen.add(record_id)
        deduped.append(record_id)
    return deduped


class KeyIndexStore:
    """Index key plus per-record data keys on top of a bare key-value ledger.

    Holds no state of its own. The ledger offers no append or compare-and-swap,
    so ``append_to_index`` is a read-modify-write: a concurrent writer landing
    between the read and the write loses its index entry (last writer wins).
    The record bytes stay under their data key but become unreachable.
    """

    def __init__(
        self,
        ledger: KeyValueLedger,
        *,
        index_key: str = DEFAULT_INDEX_KEY,
        record_key_prefix: str = DEFAULT_RECORD_KEY_PREFIX,
    ) -> None:
        self.ledger = ledger
        self.index_key = index_key
        self.record_key_prefix = record_key_prefix

    def record_key(self, record_id: str) -> str:
        return f"{self.record_key_prefix}{record_id}"

    def is_available(self) -> bool:
        try:
            return bool(self.ledger.is_available())
        except Exception as exc:
            logger.warning("ledger availability check raised: %s", exc)
            return False

    def read_index(self) -> list[str]:
        try:
            raw = self.ledger.get_data(self.index_key)
        except Exception as exc:
            raise StoreError(f"index read failed: {exc}") from exc
        if not raw:
            return []
        try:
            data = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise StoreError(f"index value is not valid json: {exc}") from exc
        if not isinstance(data, list) or not all(isinstance(item, str) for item in data):
            raise StoreError("index value must be a json list of strings")
        return _dedupe(data)

    def read_record(self, record_id: str) -> bytes | None:
        try:
            raw = self.ledger.get_data(self.record_key(record_id))
        except Exception as exc:
            raise StoreError(f"record read failed for {record_id}: {exc}") from exc
        return raw or None

    def write_record(self, record_id: str, raw: bytes) -> TransactionResult:
        try:
            return self.ledger.set_data(self.record_key(record_id), raw)
        except Exception as exc:
            raise StoreError(f"record write failed for {record_id}: {exc}") from exc

    def write_index(self, ids: list[str]) -> TransactionResult:
        if len(set(ids)) != len(ids):
            raise ValueError("index ids must be unique")
        raw = json.dumps(list(ids), ensure_ascii=False).encode("utf-8")
        try:
            return self.ledger.set_data(self.index_key, raw)
        except Exception as exc:
            raise StoreError(f"index write failed: {exc}") from exc

    def append_to_index(self, record_id: str) -> list[str]:
        ids = self.read_index()
        if record_id not in ids:
            ids.append(record_id)
        self.write_index(ids)
        return ids
