from __future__ import annotations

import base64
import binascii
import json
import logging
from http.client import HTTPConnection, HTTPException, HTTPSConnection
from typing import Any
from urllib.parse import urlencode, urlparse

from .base import TransactionResult

logger = logging.getLogger(__name__)


class LedgerTransportError(RuntimeError):
    pass


def _decode_body(raw: bytes) -> dict[str, Any] | None:
    if not raw:
        return None
    try:
        payload = json.loads(raw.decode("utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None
    return payload if isinstance(payload, dict) else None


def _decode_value(payload: dict[str, Any]) -> bytes:
    value = payload.get("value")
    if value is None or value == "":
        return b""
    if not isinstance(value, str):
        raise LedgerTransportError("ledger read returned non-string value")
    try:
        return base64.b64decode(value.encode("ascii"), validate=True)
    except (binascii.Error, UnicodeEncodeError) as exc:
        raise LedgerTransportError("ledger read returned invalid base64") from exc


class HttpLedger:
    """Client for a ledger gateway speaking the ``/v1/data`` JSON protocol.

    Values travel base64 encoded. Timeouts and connection errors propagate
    as-is; the index store turns them into ``StoreError``.
    """

    def __init__(self, address: str, *, timeout_s: float = 5.0) -> None:
        trimmed = address.strip().rstrip("/")
        if not trimmed:
            raise ValueError("ledger address is empty")
        if "://" not in trimmed:
            trimmed = f"http://{trimmed}"
        parsed = urlparse(trimmed)
        if not parsed.hostname:
            raise ValueError(f"ledger address has no host: {address}")
        self.base_url = trimmed
        self.timeout_s = timeout_s
        self._secure = parsed.scheme == "https"
        self._host = parsed.hostname
        self._port = parsed.port or (443 if self._secure else 80)
        self._prefix = parsed.path

    def _connect(self) -> HTTPConnection:
        if self._secure:
            return HTTPSConnection(self._host, self._port, timeout=self.timeout_s)
        return HTTPConnection(self._host, self._port, timeout=self.timeout_s)

    def _call(
        self,
        action: str,
        method: str,
        path: str,
        entry: dict[str, str] | None = None,
    ) -> dict[str, Any] | None:
        """Run one gateway call; ``None`` means 404, other failures raise."""

        headers = {"Accept": "application/json"}
        body = None
        if entry is not None:
            body = json.dumps(entry).encode("utf-8")
            headers["Content-Type"] = "application/json"
            headers["Content-Length"] = str(len(body))
        conn = self._connect()
        try:
            conn.request(method, f"{self._prefix}{path}", body=body, headers=headers)
            resp = conn.getresponse()
            status = int(resp.status)
            payload = _decode_body(resp.read())
        finally:
            conn.close()
        if status == 404:
            return None
        if status != 200 or payload is None:
            error = payload.get("error") if payload else None
            detail = f"{status}: {error}" if isinstance(error, str) else str(status)
            raise LedgerTransportError(f"ledger {action} failed ({detail})")
        return payload

    def get_data(self, key: str) -> bytes:
        payload = self._call("read", "GET", f"/v1/data?{urlencode({'key': key})}")
        return b"" if payload is None else _decode_value(payload)

    def set_data(self, key: str, value: bytes) -> TransactionResult:
        entry = {"key": key, "value": base64.b64encode(value).decode("ascii")}
        payload = self._call("write", "POST", "/v1/data", entry)
        if payload is None:
            raise LedgerTransportError("ledger write failed (404)")
        return {
            "key": str(payload.get("key") or key),
            "size": int(payload.get("size") or len(value)),
            "committed_at": str(payload.get("committed_at") or ""),
        }

    def is_available(self) -> bool:
        try:
            payload = self._call("status", "GET", "/v1/status")
        except (OSError, HTTPException, LedgerTransportError) as exc:
            logger.warning("ledger status check failed: %s", exc)
            return False
        return bool(payload and payload.get("available"))
