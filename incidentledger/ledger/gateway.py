from __future__ import annotations

import base64
import binascii
import contextlib
import json
import logging
import os
import socket
import threading
from http.server import BaseHTTPRequestHandler, HTTPServer
from pathlib import Path
from typing import Any
from urllib.parse import parse_qs, urlparse

from .sqlite import DEFAULT_LEDGER_PATH, SqliteLedger

PROTOCOL_VERSION = "1"
MAX_ENTRY_BYTES = 1 << 20

logger = logging.getLogger(__name__)


class GatewayRequestError(Exception):
    """A client mistake answered with ``{"error": code}`` and ``status``."""

    def __init__(self, status: int, code: str) -> None:
        super().__init__(code)
        self.status = status
        self.code = code


def parse_entry(raw: bytes) -> tuple[str, bytes]:
    """Decode a ``{"key": ..., "value": <base64>}`` write body."""

    try:
        data = json.loads(raw.decode("utf-8")) if raw else None
    except (json.JSONDecodeError, UnicodeDecodeError):
        data = None
    if not isinstance(data, dict):
        raise GatewayRequestError(400, "invalid_json")
    key = data.get("key")
    value = data.get("value")
    if not isinstance(key, str) or not key or not isinstance(value, str):
        raise GatewayRequestError(400, "invalid_entry")
    try:
        return key, base64.b64decode(value.encode("ascii"), validate=True)
    except (binascii.Error, UnicodeEncodeError) as exc:
        raise GatewayRequestError(400, "invalid_base64") from exc


def build_gateway_handler(db_path: Path | None = None, *, max_entry_bytes: int = MAX_ENTRY_BYTES):
    resolved_db = Path(
        db_path or os.environ.get("INCIDENTLEDGER_LEDGER_PATH") or DEFAULT_LEDGER_PATH
    )

    class GatewayHandler(BaseHTTPRequestHandler):
        def log_message(self, format: str, *args: object) -> None:  # noqa: A003
            if os.environ.get("INCIDENTLEDGER_GATEWAY_LOGS") == "1":
                super().log_message(format, *args)

        def _reply(self, payload: dict[str, Any], status: int = 200) -> None:
            body = json.dumps(payload, ensure_ascii=False).encode("utf-8")
            self.send_response(status)
            self.send_header("Content-Type", "application/json; charset=utf-8")
            self.send_header("Content-Length", str(len(body)))
            self.end_headers()
            self.wfile.write(body)

        def _entry(self) -> tuple[str, bytes]:
            try:
                length = int(self.headers.get("Content-Length") or 0)
            except ValueError as exc:
                raise GatewayRequestError(400, "invalid_length") from exc
            if length > max_entry_bytes:
                raise GatewayRequestError(413, "payload_too_large")
            return parse_entry(self.rfile.read(length) if length > 0 else b"")

        def _route(self, method: str) -> dict[str, Any]:
            parsed = urlparse(self.path)
            if method == "GET" and parsed.path == "/v1/status":
                with contextlib.closing(SqliteLedger(resolved_db)) as ledger:
                    available = ledger.is_available()
                return {"available": available, "protocol_version": PROTOCOL_VERSION}
            if parsed.path != "/v1/data":
                raise GatewayRequestError(404, "not_found")
            if method == "POST":
                key, value = self._entry()
                with contextlib.closing(SqliteLedger(resolved_db)) as ledger:
                    return dict(ledger.set_data(key, value))
            key = parse_qs(parsed.query).get("key", [""])[0]
            if not key:
                raise GatewayRequestError(400, "missing_key")
            with contextlib.closing(SqliteLedger(resolved_db)) as ledger:
                value = ledger.get_data(key)
            return {"key": key, "value": base64.b64encode(value).decode("ascii")}

        def _dispatch(self, method: str) -> None:
            try:
                payload = self._route(method)
            except GatewayRequestError as exc:
                self._reply({"error": exc.code}, status=exc.status)
                return
            except Exception:
                logger.exception("gateway %s %s failed", method, self.path)
                self._reply({"error": "internal_error"}, status=500)
                return
            self._reply(payload)

        def do_GET(self) -> None:  # noqa: N802
            self._dispatch("GET")

        def do_POST(self) -> None:  # noqa: N802
            self._dispatch("POST")

    return GatewayHandler


class GatewayServer(HTTPServer):
    """Serves one ledger file; ``port=0`` picks a free port."""

    def __init__(self, host: str, port: int, *, db_path: Path | None = None) -> None:
        if ":" in host:
            self.address_family = socket.AF_INET6
        super().__init__((host, port), build_gateway_handler(db_path))


def serve_gateway(
    host: str,
    port: int,
    *,
    db_path: Path | None = None,
    stop_event: threading.Event | None = None,
) -> None:
    server = GatewayServer(host, port, db_path=db_path)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    logger.info("ledger gateway listening on %s:%s", host, server.server_address[1])
    stop = stop_event or threading.Event()
    try:
        while not stop.wait(1.0):
            pass
    finally:
        server.shutdown()
        server.server_close()
