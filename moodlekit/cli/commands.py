"""CLI commands for moodlekit.

Top-level commands: render (render a template against the live site), call
(send one batch of web service calls), keepalive (hold a session open), plus
the config command group.
"""

import asyncio
import json

import typer
from rich.console import Console
from rich.markup import escape
from rich.syntax import Syntax

from moodlekit import __logo__, __version__
from moodlekit.cli.command_groups.config_commands import register_config_commands
from moodlekit.cli.shared.config_utils import parse_call
from moodlekit.cli.shared.console_notifier import ConsoleNotifier
from moodlekit.cli.shared.logging_utils import ensure_rotating_log_file
from moodlekit.client import create_client
from moodlekit.config.access import get_config
from moodlekit.templates.renderer import embed_template_js
from moodlekit.utils.exceptions import MoodleKitError, format_error

app = typer.Typer(
    name="moodlekit",
    help=f"{__logo__} moodlekit - Moodle AJAX, templates and session tools",
    no_args_is_help=True,
)

console = Console()

register_config_commands(app, console)


def version_callback(value: bool):
    if value:
        console.print(f"{__logo__} moodlekit v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None, "--version", "-v", callback=version_callback, is_eager=True
    ),
):
    """moodlekit - Moodle AJAX, templates and session tools."""
    pass


def _load_context(raw: str) -> dict:
    try:
        context = json.loads(raw) if raw.strip() else {}
    except json.JSONDecodeError as exc:
        console.print(f"[red]--context is not valid JSON:[/red] {exc}")
        raise typer.Exit(2)
    if not isinstance(context, dict):
        console.print("[red]--context must be a JSON object[/red]")
        raise typer.Exit(2)
    return context


@app.command()
def render(
    name: str = typer.Argument(..., help="Template name, e.g. core/loading"),
    context: str = typer.Option("{}", "--context", "-c", help="JSON object used as the template context"),
    embed_js: bool = typer.Option(False, "--embed-js", help="Append the script block as a <script> element"),
) -> None:
    """Render a template from the site and print the markup."""
    ensure_rotating_log_file("render")
    data = _load_context(context)
    client = create_client(get_config(), notifier=ConsoleNotifier(console))

    try:
        result = asyncio.run(client.renderer.render(name, data))
    except MoodleKitError as exc:
        console.print(f"[red]{escape(format_error(exc, include_details=True))}[/red]")
        raise typer.Exit(1)

    if embed_js:
        console.print(f"{result.html}\n{embed_template_js(result.js)}".rstrip(), markup=False, highlight=False)
        return
    console.print(result.html, markup=False, highlight=False)
    if result.js:
        console.print("[dim]-- js --[/dim]")
        console.print(Syntax(result.js, "javascript"))


@app.command()
def call(
    calls: list[str] = typer.Argument(..., help='Calls as methodname or methodname=\'{"arg": 1}\''),
    nologin: bool = typer.Option(False, "--nologin", help="Use the no-login endpoint"),
) -> None:
    """Send the calls as one batch and print each result."""
    ensure_rotating_log_file("call")
    try:
        requests = [dict(zip(("methodname", "args"), parse_call(text))) for text in calls]
    except (ValueError, json.JSONDecodeError) as exc:
        console.print(f"[red]Invalid call:[/red] {exc}")
        raise typer.Exit(2)
    client = create_client(get_config(), notifier=ConsoleNotifier(console))

    async def _run() -> list:
        handles = await client.dispatcher.call(requests, login_required=not nologin)
        return await asyncio.gather(*handles, return_exceptions=True)

    failed = False
    for request, outcome in zip(requests, asyncio.run(_run())):
        if isinstance(outcome, BaseException):
            failed = True
            console.print(f"[red]✗ {request['methodname']}:[/red] {escape(format_error(outcome, include_details=True))}")
        else:
            console.print(f"[green]✓ {request['methodname']}[/green]")
            console.print_json(json.dumps(outcome, ensure_ascii=False))
    if failed:
        raise typer.Exit(1)


@app.command()
def keepalive(
    frequency: int = typer.Option(
        None, "--frequency", "-f", help="Touch the session every N seconds (default: config; 0 = check mode)"
    ),
) -> None:
    """Keep the session alive (touch mode) or warn before it expires (check mode)."""
    ensure_rotating_log_file("keepalive")
    client = create_client(get_config(), notifier=ConsoleNotifier(console))

    async def _run() -> None:
        session = client.start_keepalive(frequency)
        console.print(
            f"{__logo__} keepalive running in [cyan]{session.mode.value}[/cyan] mode; Ctrl+C to stop"
        )
        await session.wait()

    try:
        asyncio.run(_run())
    except KeyboardInterrupt:
        console.print("\nStopped.")


if __name__ == "__main__":
    app()
