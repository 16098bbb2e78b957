from __future__ import annotations

import pytest

from incidentledger.config import IncidentLedgerConfig
from incidentledger.errors import SyncError, SyncFailure
from incidentledger.ledger import HttpLedger, InMemoryLedger, SqliteLedger
from incidentledger.models import Draft
from incidentledger.session import LedgerSession, open_ledger, open_session
from incidentledger.submission import StaticSigner
from incidentledger.views import Tab


def _session(ledger: InMemoryLedger, identity: str = "0xAbC") -> LedgerSession:
    return LedgerSession(ledger, StaticSigner(identity))


def test_submit_refreshes_snapshot_held_by_session() -> None:
    session = _session(InMemoryLedger())

    outcome = session.submit(Draft(severity=5, impact_category="Power Grid", location="Texas"))

    assert outcome.ok
    assert [r.id for r in session.snapshot.records] == [outcome.record.id]
    assert session.stats().high_severity_count == 1


def test_failed_refresh_keeps_previous_snapshot() -> None:
    ledger = InMemoryLedger()
    session = _session(ledger)
    session.submit(Draft(severity=2, impact_category="GPS", location="Ontario"))
    before = session.snapshot

    ledger.available = False
    with pytest.raises(SyncError):
        session.refresh()

    assert session.snapshot is before
    assert session.last_error is not None
    assert session.last_error.reason is SyncFailure.SERVICE_UNAVAILABLE

    ledger.available = True
    session.refresh()
    assert session.last_error is None


def test_view_uses_session_identity() -> None:
    ledger = InMemoryLedger()
    mine = _session(ledger, "0xabc")
    theirs = _session(ledger, "0xdef")
    mine.submit(Draft(severity=1, impact_category="Power Grid", location="Texas"))
    theirs.submit(Draft(severity=3, impact_category="Communication", location="Ontario"))

    mine.refresh()

    assert len(mine.view().records) == 2
    assert [r.location for r in mine.view(tab=Tab.MINE).records] == ["Texas"]
    assert [r.location for r in mine.view("ont").records] == ["Ontario"]


def test_submission_with_unavailable_ledger_still_reports_write_outcome() -> None:
    class WriteOnlyLedger(InMemoryLedger):
        def is_available(self) -> bool:
            return False

    session = _session(WriteOnlyLedger())

    outcome = session.submit(Draft(severity=2, impact_category="GPS", location="Peru"))

    assert outcome.ok
    assert isinstance(outcome.refresh_error, SyncError)


def test_open_ledger_by_backend(tmp_path) -> None:
    sqlite_ledger = open_ledger(
        IncidentLedgerConfig(ledger_backend="sqlite", ledger_path=str(tmp_path / "l.sqlite"))
    )
    assert isinstance(sqlite_ledger, SqliteLedger)
    sqlite_ledger.close()
    assert isinstance(open_ledger(IncidentLedgerConfig(ledger_backend="memory")), InMemoryLedger)
    assert isinstance(
        open_ledger(IncidentLedgerConfig(ledger_backend="http", ledger_url="127.0.0.1:7341")),
        HttpLedger,
    )
    with pytest.raises(ValueError, match="ledger_url"):
        open_ledger(IncidentLedgerConfig(ledger_backend="http"))


def test_open_session_honours_custom_keys() -> None:
    config = IncidentLedgerConfig(
        ledger_backend="memory", index_key="idx", record_key_prefix="r/", identity="0x1"
    )
    session = open_session(config)

    session.submit(Draft(severity=1, impact_category="GPS", location="Chile"))

    keys = session.ledger.keys()
    assert "idx" in keys
    assert any(key.startswith("r/sw-") for key in keys)
    assert session.identity == "0x1"
