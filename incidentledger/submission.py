from __future__ import annotations

import logging
import secrets
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol

from .codec import RecordCodec
from .errors import (
    StoreError,
    StoreWriteError,
    UserRejected,
    ValidationError,
    WritePhase,
)
from .index_store import KeyIndexStore
from .models import MAX_SEVERITY, MIN_SEVERITY, Draft, Record

REJECTED_MESSAGE = "Transaction rejected by user"
PENDING_MESSAGE = "Encrypting incident report..."
SUCCESS_MESSAGE = "Encrypted report submitted securely!"

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"

logger = logging.getLogger(__name__)


class SubmissionState(str, Enum):
    IDLE = "idle"
    PENDING = "pending"
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True)
class SubmissionEvent:
    state: SubmissionState
    message: str
    record_id: str | None = None
    error: Exception | None = None


@dataclass
class SubmissionOutcome:
    state: SubmissionState
    message: str
    record: Record | None = None
    error: Exception | None = None
    refresh_result: Any = None
    refresh_error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.state is SubmissionState.SUCCESS


class Signer(Protocol):
    """Identity collaborator: who is submitting, and may they write."""

    def identity(self) -> str: ...

    def authorize(self, key: str) -> None: ...


class StaticSigner:
    def __init__(self, identity: str) -> None:
        self._identity = identity

    def identity(self) -> str:
        return self._identity

    def authorize(self, key: str) -> None:
        return None


class ConfirmingSigner(StaticSigner):
    """Asks ``confirm`` before each write and raises ``UserRejected`` on no."""

    def __init__(self, identity: str, confirm: Callable[[str], bool]) -> None:
        super().__init__(identity)
        self._confirm = confirm

    def authorize(self, key: str) -> None:
        if not self._confirm(key):
            raise UserRejected(f"write to {key} declined")


def generate_record_id(*, now_ms: int | None = None, suffix_len: int = 8) -> str:
    """``sw-<epoch millis>-<random base36>``; not checked against the index."""

    millis = now_ms if now_ms is not None else time.time_ns() // 1_000_000
    suffix = "".join(secrets.choice(_BASE36) for _ in range(suffix_len))
    return f"sw-{millis}-{suffix}"


def validate_draft(draft: Draft) -> None:
    if not isinstance(draft.impact_category, str) or not draft.impact_category:
        raise ValidationError("impact category is required")
    if not isinstance(draft.location, str) or not draft.location:
        raise ValidationError("location is required")
    severity = draft.severity
    if isinstance(severity, bool) or not isinstance(severity, int):
        raise ValidationError("severity must be an integer")
    if not MIN_SEVERITY <= severity <= MAX_SEVERITY:
        raise ValidationError(f"severity must be between {MIN_SEVERITY} and {MAX_SEVERITY}")


def _error_message(exc: Exception) -> str:
    if isinstance(exc, UserRejected):
        return REJECTED_MESSAGE
    return f"Submission failed: {str(exc) or exc.__class__.__name__}"


@dataclass
class SubmissionPipeline:
    """Publishes a draft with two dependent writes: data record, then index.

    Transitions are reported to listeners as ``SubmissionEvent``. A failed data
    write stops before the index is touched. Returning a terminal state to
    idle after a display delay is the caller's job (``reset``).
    """

    store: KeyIndexStore
    signer: Signer
    codec: RecordCodec = field(default_factory=RecordCodec)
    refresh: Callable[[], Any] | None = None
    clock: Callable[[], float] = time.time
    id_factory: Callable[[], str] = generate_record_id
    state: SubmissionState = field(default=SubmissionState.IDLE, init=False)
    events: list[SubmissionEvent] = field(default_factory=list, init=False)
    _listeners: list[Callable[[SubmissionEvent], None]] = field(
        default_factory=list, init=False, repr=False
    )

    def subscribe(self, listener: Callable[[SubmissionEvent], None]) -> None:
        self._listeners.append(listener)

    def _emit(
        self,
        state: SubmissionState,
        message: str,
        *,
        record_id: str | None = None,
        error: Exception | None = None,
    ) -> None:
        self.state = state
        event = SubmissionEvent(state=state, message=message, record_id=record_id, error=error)
        self.events.append(event)
        logger.info("submission %s: %s", state.value, message)
        for listener in list(self._listeners):
            listener(event)

    def _fail(self, exc: Exception, *, record_id: str | None = None) -> SubmissionOutcome:
        message = _error_message(exc)
        self._emit(SubmissionState.ERROR, message, record_id=record_id, error=exc)
        return SubmissionOutcome(state=SubmissionState.ERROR, message=message, error=exc)

    def reset(self) -> None:
        if self.state in (SubmissionState.SUCCESS, SubmissionState.ERROR):
            self._emit(SubmissionState.IDLE, "")

    def _publish(self, record_id: str, draft: Draft) -> Record:
        submitter = self.signer.identity()
        self.signer.authorize(self.store.record_key(record_id))
        record = Record(
            id=record_id,
            encoded_payload=self.codec.encode_payload(draft),
            timestamp=int(self.clock()),
            submitter_id=submitter,
            severity=draft.severity,
            impact_category=draft.impact_category,
            location=draft.location,
        )
        raw = self.codec.encode(record)
        try:
            self.store.write_record(record_id, raw)
        except StoreError as exc:
            raise StoreWriteError(WritePhase.DATA, str(exc)) from exc

        self.signer.authorize(self.store.index_key)
        try:
            self.store.append_to_index(record_id)
        except StoreError as exc:
            raise StoreWriteError(WritePhase.INDEX, str(exc)) from exc
        return record

    def submit(self, draft: Draft) -> SubmissionOutcome:
        if self.state is SubmissionState.PENDING:
            raise RuntimeError("submission already in progress")
        self._emit(SubmissionState.PENDING, PENDING_MESSAGE)

        record_id: str | None = None
        try:
            validate_draft(draft)
            record_id = self.id_factory()
            record = self._publish(record_id, draft)
        except (ValidationError, UserRejected, StoreError) as exc:
            return self._fail(exc, record_id=record_id)
        except Exception as exc:
            logger.exception("submission %s failed", record_id)
            return self._fail(exc, record_id=record_id)

        self._emit(SubmissionState.SUCCESS, SUCCESS_MESSAGE, record_id=record_id)
        outcome = SubmissionOutcome(
            state=SubmissionState.SUCCESS, message=SUCCESS_MESSAGE, record=record
        )
        if self.refresh is not None:
            try:
                outcome.refresh_result = self.refresh()
            except Exception as exc:
                logger.warning("refresh after submission %s failed: %s", record_id, exc)
                outcome.refresh_error = exc
        return outcome
