from __future__ import annotations

import json

import typer
from rich import print
from rich.markup import escape

from incidentledger.commands.common import read_config_or_exit, write_config_or_exit
from incidentledger.config import IncidentLedgerConfig, load_config


def config_show_cmd() -> None:
    """Print the effective configuration (file + environment)."""

    typer.echo(json.dumps(load_config().to_dict(), indent=2))


def config_set_cmd(key: str, value: str) -> None:
    """Persist one configuration key to the config file."""

    if key not in IncidentLedgerConfig.__dataclass_fields__:
        print(f"[red]Unknown config key: {escape(key)}[/red]")
        raise typer.Exit(code=1)
    data = read_config_or_exit()
    data[key] = value
    write_config_or_exit(data)
    print(f"Set {escape(key)}")
