from __future__ import annotations

import logging

import typer
from rich import print

from . import __version__
from .commands.common import resolve_config, session_or_exit
from .commands.config_cmds import config_set_cmd, config_show_cmd
from .commands.gateway_cmds import gateway_serve_cmd
from .commands.ledger_cmds import list_cmd, stats_cmd, submit_cmd, sync_cmd
from .models import Draft
from .submission import ConfirmingSigner, StaticSigner
from .views import Tab

app = typer.Typer(help="incidentledger: encrypted incident reports on a key-value ledger")
config_app = typer.Typer(help="Inspect and edit configuration")
gateway_app = typer.Typer(help="Serve a local ledger over HTTP")
app.add_typer(config_app, name="config")
app.add_typer(gateway_app, name="gateway")


def _version_callback(value: bool) -> None:
    if value:
        print(__version__)
        raise typer.Exit()


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log ledger activity"),
    version: bool = typer.Option(
        False, "--version", callback=_version_callback, is_eager=True, help="Show version"
    ),
) -> None:
    if verbose:
        logging.basicConfig(
            level=logging.INFO,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )


@app.command()
def sync(
    ledger_path: str = typer.Option(None, help="Path to a local SQLite ledger"),
    ledger_url: str = typer.Option(None, help="Ledger gateway URL"),
) -> None:
    """Synchronize with the ledger and report skipped records."""

    session = session_or_exit(resolve_config(ledger_path=ledger_path, ledger_url=ledger_url))
    try:
        sync_cmd(session)
    finally:
        session.close()


@app.command("list")
def list_reports(
    search: str = typer.Option("", help="Match location or impact category"),
    tab: Tab = typer.Option(Tab.ALL, help="all or mine"),
    identity: str = typer.Option(None, help="Submitter identity for the 'mine' tab"),
    json_output: bool = typer.Option(False, "--json", help="Emit JSON"),
    ledger_path: str = typer.Option(None, help="Path to a local SQLite ledger"),
    ledger_url: str = typer.Option(None, help="Ledger gateway URL"),
) -> None:
    """List synchronized reports, newest first."""

    config = resolve_config(ledger_path=ledger_path, ledger_url=ledger_url, identity=identity)
    session = session_or_exit(config)
    try:
        list_cmd(session, search=search, tab=tab, as_json=json_output)
    finally:
        session.close()


@app.command()
def stats(
    json_output: bool = typer.Option(False, "--json", help="Emit JSON"),
    ledger_path: str = typer.Option(None, help="Path to a local SQLite ledger"),
    ledger_url: str = typer.Option(None, help="Ledger gateway URL"),
) -> None:
    """Show totals, high-severity count and per-category counts."""

    session = session_or_exit(resolve_config(ledger_path=ledger_path, ledger_url=ledger_url))
    try:
        stats_cmd(session, as_json=json_output)
    finally:
        session.close()


@app.command()
def submit(
    severity: int = typer.Option(..., help="Severity from 1 to 5"),
    category: str = typer.Option(..., help="Impact category, e.g. 'Power Grid'"),
    location: str = typer.Option(..., help="Affected location"),
    details: str = typer.Option("", help="Details (stored only inside the protected payload)"),
    identity: str = typer.Option(None, help="Submitter identity"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Authorize writes without prompting"),
    ledger_path: str = typer.Option(None, help="Path to a local SQLite ledger"),
    ledger_url: str = typer.Option(None, help="Ledger gateway URL"),
) -> None:
    """Publish a new encrypted report."""

    config = resolve_config(ledger_path=ledger_path, ledger_url=ledger_url, identity=identity)
    if not config.identity:
        print("[red]An identity is required to submit (--identity or config 'identity')[/red]")
        raise typer.Exit(code=1)
    if yes:
        signer = StaticSigner(config.identity)
    else:
        signer = ConfirmingSigner(
            config.identity,
            lambda key: typer.confirm(f"Authorize write to {key}?", default=True),
        )
    session = session_or_exit(config, signer)
    try:
        submit_cmd(
            session,
            Draft(severity=severity, impact_category=category, location=location, details=details),
        )
    finally:
        session.close()


@config_app.command("show")
def config_show() -> None:
    """Print the effective configuration."""

    config_show_cmd()


@config_app.command("set")
def config_set(
    key: str = typer.Argument(..., help="Config key"),
    value: str = typer.Argument(..., help="Config value"),
) -> None:
    """Persist a configuration value."""

    config_set_cmd(key, value)


@gateway_app.command("serve")
def gateway_serve(
    host: str = typer.Option(None, help="Bind host"),
    port: int = typer.Option(None, help="Bind port"),
    db_path: str = typer.Option(None, help="Path to the SQLite ledger to serve"),
) -> None:
    """Serve a SQLite ledger over the gateway protocol until interrupted."""

    gateway_serve_cmd(host=host, port=port, db_path=db_path)


if __name__ == "__main__":
    app()
