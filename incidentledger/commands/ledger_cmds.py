from __future__ import annotations

import datetime as dt
import json

import typer
from rich import print
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.text import Text

from incidentledger.errors import SyncError
from incidentledger.models import Draft, Snapshot
from incidentledger.session import LedgerSession
from incidentledger.submission import SubmissionEvent, SubmissionState
from incidentledger.views import Tab, count_matching_category

CHART_CATEGORIES = ("Power", "Communication")

_STATE_STYLES = {
    SubmissionState.PENDING: "yellow",
    SubmissionState.SUCCESS: "green",
    SubmissionState.ERROR: "red",
}


def _format_ts(timestamp: int) -> str:
    try:
        return dt.datetime.fromtimestamp(timestamp, dt.UTC).strftime("%Y-%m-%d %H:%M")
    except (OverflowError, OSError, ValueError):
        return str(timestamp)


def _refresh_or_exit(session: LedgerSession) -> Snapshot:
    try:
        return session.refresh()
    except SyncError as exc:
        print(f"[red]Sync failed: {escape(str(exc))}[/red]")
        raise typer.Exit(code=1) from exc


def sync_cmd(session: LedgerSession) -> None:
    """Synchronize and report what was loaded."""

    snapshot = _refresh_or_exit(session)
    print(
        f"Loaded {len(snapshot.records)} of {snapshot.index_size} indexed reports "
        f"(skipped {snapshot.skipped_count})"
    )
    for item in snapshot.skipped:
        print(f"[yellow]- skipped {escape(item.record_id)}: {escape(item.reason)}[/yellow]")


def list_cmd(session: LedgerSession, *, search: str, tab: Tab, as_json: bool) -> None:
    """Show reports matching the search term and tab."""

    _refresh_or_exit(session)
    if tab is Tab.MINE and not session.identity:
        print("[red]An identity is required for the 'mine' tab (--identity)[/red]")
        raise typer.Exit(code=1)
    model = session.view(search, tab)
    if as_json:
        typer.echo(json.dumps([record.to_dict() for record in model.records], indent=2))
        return
    if not model.records:
        print("No reports found")
        return
    table = Table(title=f"Incident reports ({tab.value})")
    table.add_column("ID")
    table.add_column("Sev", justify="right")
    table.add_column("Impact")
    table.add_column("Location")
    table.add_column("Submitter")
    table.add_column("When")
    for record in model.records:
        table.add_row(
            Text(record.id),
            str(record.severity),
            Text(record.impact_category),
            Text(record.location),
            Text(record.submitter_id),
            _format_ts(record.timestamp),
        )
    Console().print(table)


def stats_cmd(session: LedgerSession, *, as_json: bool) -> None:
    """Show aggregate counts over every synchronized report."""

    snapshot = _refresh_or_exit(session)
    stats = session.stats()
    if as_json:
        payload = stats.to_dict()
        payload["chart"] = {
            needle: count_matching_category(snapshot, needle) for needle in CHART_CATEGORIES
        }
        typer.echo(json.dumps(payload, indent=2))
        return
    print(f"Total reports: {stats.total}")
    print(f"High severity (>=4): {stats.high_severity_count} ({stats.high_severity_share:.0%})")
    for category, count in sorted(stats.per_category_counts.items()):
        print(f"- {escape(category)}: {count} ({stats.category_share(category):.0%})")


def _print_event(event: SubmissionEvent) -> None:
    style = _STATE_STYLES.get(event.state)
    if style is None or not event.message:
        return
    print(f"[{style}]{escape(event.message)}[/{style}]")


def submit_cmd(session: LedgerSession, draft: Draft) -> None:
    """Publish a report: data record first, then the index update."""

    session.pipeline.subscribe(_print_event)
    outcome = session.submit(draft)
    if not outcome.ok:
        raise typer.Exit(code=1)
    assert outcome.record is not None
    print(f"Report id: {escape(outcome.record.id)}")
    if outcome.refresh_error is not None:
        detail = escape(str(outcome.refresh_error))
        print(f"[yellow]Refresh after submit failed: {detail}[/yellow]")
        return
    print(f"Ledger now lists {len(session.snapshot.records)} reports")
