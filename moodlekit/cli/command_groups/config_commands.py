"""Config command group (show/path/get/set)."""

from __future__ import annotations

import json

import typer
from rich.console import Console
from rich.table import Table

from moodlekit.config.loader import get_config_path, load_config
from moodlekit.cli.shared.config_utils import (
    deep_get,
    deep_set,
    load_config_json,
    parse_value,
    save_config_json,
)


def register_config_commands(app: typer.Typer, console: Console) -> None:
    """Register config command group."""
    config_app = typer.Typer(help="Config helpers (show/path/get/set)")
    app.add_typer(config_app, name="config")

    @config_app.command("path")
    def config_path() -> None:
        """Print the config file location."""
        console.print(str(get_config_path()))

    @config_app.command("show")
    def config_show() -> None:
        """Show the effective configuration (secrets masked)."""
        cfg = load_config()
        table = Table(title="moodlekit config")
        table.add_column("Key", style="cyan")
        table.add_column("Value")
        for section, values in cfg.model_dump().items():
            for key, value in values.items():
                if key in {"sesskey", "session_cookie"} and value:
                    value = "********"
                table.add_row(f"{section}.{key}", str(value))
        console.print(table)

    @config_app.command("get")
    def config_get(
        key: str = typer.Argument(..., help="Dotted key path, e.g. site.wwwroot"),
    ) -> None:
        data = load_config_json()
        try:
            value = deep_get(data, key)
        except KeyError:
            console.print(f"[red]Key not found:[/red] {key}")
            raise typer.Exit(1)
        console.print(json.dumps(value, indent=2, ensure_ascii=False))

    @config_app.command("set")
    def config_set(
        key: str = typer.Argument(..., help="Dotted key path"),
        value: str = typer.Argument(..., help="JSON value or plain string"),
    ) -> None:
        data = load_config_json()
        deep_set(data, key, parse_value(value))
        path = save_config_json(data)
        try:
            load_config(path)
        except ValueError as exc:
            console.print(f"[red]Config no longer valid:[/red] {exc}")
            raise typer.Exit(1)
        console.print(f"[green]✓[/green] Set {key}")
