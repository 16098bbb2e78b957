from __future__ import annotations

from typing import Any

import typer
from rich import print
from rich.markup import escape

from incidentledger.config import (
    IncidentLedgerConfig,
    load_config,
    read_config_file,
    write_config_file,
)
from incidentledger.session import LedgerSession, open_session
from incidentledger.submission import Signer


def read_config_or_exit() -> dict[str, Any]:
    try:
        return read_config_file()
    except ValueError as exc:
        print(f"[red]Invalid config file: {escape(str(exc))}[/red]")
        raise typer.Exit(code=1) from exc


def write_config_or_exit(data: dict[str, Any]) -> None:
    try:
        write_config_file(data)
    except OSError as exc:
        print(f"[red]Failed to write config: {escape(str(exc))}[/red]")
        raise typer.Exit(code=1) from exc


def resolve_config(
    *,
    ledger_path: str | None = None,
    ledger_url: str | None = None,
    identity: str | None = None,
) -> IncidentLedgerConfig:
    config = load_config()
    if ledger_url:
        config.ledger_backend = "http"
        config.ledger_url = ledger_url
    elif ledger_path:
        config.ledger_backend = "sqlite"
        config.ledger_path = ledger_path
    if identity:
        config.identity = identity
    return config


def session_or_exit(config: IncidentLedgerConfig, signer: Signer | None = None) -> LedgerSession:
    try:
        return open_session(config, signer)
    except ValueError as exc:
        print(f"[red]{escape(str(exc))}[/red]")
        raise typer.Exit(code=1) from exc
