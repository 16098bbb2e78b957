from __future__ import annotations

from enum import Enum


class IncidentLedgerError(Exception):
    """Base class for every error raised by incidentledger."""


class DecodeError(IncidentLedgerError):
    """A single stored record or payload could not be decoded."""


class StoreError(IncidentLedgerError):
    """Transport or availability failure talking to the ledger."""


class WritePhase(str, Enum):
    DATA = "data"
    INDEX = "index"


class StoreWriteError(StoreError):
    def __init__(self, phase: WritePhase, message: str) -> None:
        super().__init__(message)
        self.phase = phase

    def __str__(self) -> str:
        return f"{self.phase.value} write failed: {super().__str__()}"


class ValidationError(IncidentLedgerError, ValueError):
    """Draft rejected before any ledger I/O."""


class UserRejected(IncidentLedgerError):
    """The submitting identity declined to authorize a write."""


class SyncFailure(str, Enum):
    SERVICE_UNAVAILABLE = "service_unavailable"
    INDEX_UNAVAILABLE = "index_unavailable"


class SyncError(IncidentLedgerError):
    def __init__(self, reason: SyncFailure, detail: str | None = None) -> None:
        message = reason.value if not detail else f"{reason.value}: {detail}"
        super().__init__(message)
        self.reason = reason
        self.detail = detail
