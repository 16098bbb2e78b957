from __future__ import annotations

import threading
from pathlib import Path

from rich import print
from rich.markup import escape

from incidentledger.config import load_config
from incidentledger.ledger.gateway import serve_gateway


def gateway_serve_cmd(
    *,
    host: str | None,
    port: int | None,
    db_path: str | None,
    stop_event: threading.Event | None = None,
) -> None:
    """Serve a local sqlite ledger over the gateway HTTP protocol."""

    config = load_config()
    resolved = Path(db_path or config.ledger_path).expanduser()
    bind_host = host or config.gateway_host
    bind_port = port if port is not None else config.gateway_port
    print(f"Serving ledger {escape(str(resolved))} on {escape(bind_host)}:{bind_port}")
    try:
        serve_gateway(bind_host, bind_port, db_path=resolved, stop_event=stop_event)
    except KeyboardInterrupt:
        print("Gateway stopped")
