from __future__ import annotations

import logging
from pathlib import Path

from .codec import RecordCodec
from .config import IncidentLedgerConfig
from .errors import SyncError
from .index_store import KeyIndexStore
from .ledger import HttpLedger, InMemoryLedger, KeyValueLedger, SqliteLedger
from .models import Draft, Snapshot, Stats
from .submission import Signer, StaticSigner, SubmissionOutcome, SubmissionPipeline
from .sync import SyncEngine
from .views import RenderModel, Tab, aggregate, build_render_model

logger = logging.getLogger(__name__)


class LedgerSession:
    """Caller-side owner of the current Snapshot.

    A failed refresh keeps the previous Snapshot and records the error in
    ``last_error``. Every successful submission triggers a full refresh.
    """

    def __init__(
        self,
        ledger: KeyValueLedger,
        signer: Signer,
        *,
        index_key: str | None = None,
        record_key_prefix: str | None = None,
        codec: RecordCodec | None = None,
        sync_fanout: int = 8,
    ) -> None:
        store_kwargs: dict[str, str] = {}
        if index_key:
            store_kwargs["index_key"] = index_key
        if record_key_prefix:
            store_kwargs["record_key_prefix"] = record_key_prefix
        self.ledger = ledger
        self.signer = signer
        self.codec = codec or RecordCodec()
        self.store = KeyIndexStore(ledger, **store_kwargs)
        self.engine = SyncEngine(self.store, self.codec, max_workers=sync_fanout)
        self.pipeline = SubmissionPipeline(
            store=self.store,
            signer=signer,
            codec=self.codec,
            refresh=self.refresh,
        )
        self.snapshot = Snapshot()
        self.last_error: SyncError | None = None

    @property
    def identity(self) -> str:
        return self.signer.identity()

    def refresh(self) -> Snapshot:
        try:
            snapshot = self.engine.synchronize()
        except SyncError as exc:
            logger.warning("synchronization failed, keeping previous snapshot: %s", exc)
            self.last_error = exc
            raise
        self.snapshot = snapshot
        self.last_error = None
        return snapshot

    def submit(self, draft: Draft) -> SubmissionOutcome:
        return self.pipeline.submit(draft)

    def view(self, search_term: str = "", tab: Tab = Tab.ALL) -> RenderModel:
        return build_render_model(self.snapshot, search_term, tab, self.identity)

    def stats(self) -> Stats:
        return aggregate(self.snapshot)

    def close(self) -> None:
        close = getattr(self.ledger, "close", None)
        if callable(close):
            close()


def open_ledger(config: IncidentLedgerConfig) -> KeyValueLedger:
    if config.ledger_backend == "http":
        if not config.ledger_url:
            raise ValueError("ledger_url is required for the http backend")
        return HttpLedger(config.ledger_url, timeout_s=config.ledger_timeout_s)
    if config.ledger_backend == "memory":
        return InMemoryLedger()
    return SqliteLedger(Path(config.ledger_path).expanduser())


def open_session(config: IncidentLedgerConfig, signer: Signer | None = None) -> LedgerSession:
    return LedgerSession(
        open_ledger(config),
        signer or StaticSigner(config.identity),
        index_key=config.index_key,
        record_key_prefix=config.record_key_prefix,
        sync_fanout=config.sync_fanout,
    )
