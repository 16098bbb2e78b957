from __future__ import annotations

import datetime as dt
import logging
from concurrent.futures import ThreadPoolExecutor

from ..codec import RecordCodec
from ..errors import StoreError, SyncError, SyncFailure
from ..index_store import KeyIndexStore
from ..models import Decoded, Record, SkippedItem, Snapshot

DEFAULT_FANOUT = 8

logger = logging.getLogger(__name__)


class SyncEngine:
    """Rebuilds a full Snapshot from the index key and every referenced record.

    Stateless between calls: each ``synchronize`` returns a fresh Snapshot and
    the caller decides what to keep when it raises.
    """

    def __init__(
        self,
        store: KeyIndexStore,
        codec: RecordCodec | None = None,
        *,
        max_workers: int = DEFAULT_FANOUT,
    ) -> None:
        self.store = store
        self.codec = codec or RecordCodec()
        self.max_workers = max(1, int(max_workers))

    def _load_one(self, record_id: str) -> Record | SkippedItem:
        try:
            raw = self.store.read_record(record_id)
        except StoreError as exc:
            return SkippedItem(record_id, str(exc))
        if raw is None:
            return SkippedItem(record_id, "record value absent")
        result = self.codec.decode(record_id, raw)
        if isinstance(result, Decoded):
            return result.record
        return SkippedItem(record_id, result.reason)

    def synchronize(self) -> Snapshot:
        if not self.store.is_available():
            raise SyncError(SyncFailure.SERVICE_UNAVAILABLE)
        try:
            ids = self.store.read_index()
        except StoreError as exc:
            raise SyncError(SyncFailure.INDEX_UNAVAILABLE, str(exc)) from exc

        if not ids:
            loaded: list[Record | SkippedItem] = []
        elif self.max_workers == 1 or len(ids) == 1:
            loaded = [self._load_one(record_id) for record_id in ids]
        else:
            workers = min(self.max_workers, len(ids))
            with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="ledger-sync") as pool:
                # map() yields in submission order, so index position is kept.
                loaded = list(pool.map(self._load_one, ids))

        records: list[Record] = []
        skipped: list[SkippedItem] = []
        for item in loaded:
            if isinstance(item, SkippedItem):
                logger.warning("skipping record %s: %s", item.record_id, item.reason)
                skipped.append(item)
            else:
                records.append(item)

        records.sort(key=lambda record: record.timestamp, reverse=True)
        return Snapshot(
            records=tuple(records),
            skipped=tuple(skipped),
            index_size=len(ids),
            synced_at=dt.datetime.now(dt.UTC).isoformat(),
        )
