"""streamrec CLI — Typer-based command-line interface.

Read-only commands look at schedules.json and settings.json directly.
Schedule and settings changes go through the running server's HTTP API,
which owns the live job registry.
"""

from __future__ import annotations

import json
from contextlib import contextmanager

import typer
from rich.console import Console
from rich.table import Table

from streamrec import __version__

app = typer.Typer(
    name="streamrec",
    help="streamrec - scheduled recorder for network audio streams",
    no_args_is_help=True,
)

console = Console()


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"streamrec v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None, "--version", "-v", callback=_version_callback, is_eager=True
    ),
) -> None:
    """streamrec - scheduled recorder for network audio streams."""


def _restore_jobs(config):
    """Persisted jobs, read-only."""
    from streamrec.memory.store import ScheduleStore

    jobs = ScheduleStore(config.schedules_path).restore().values()
    return sorted(jobs, key=lambda j: (len(j.job_id), j.job_id))


def _server_url(config) -> str:
    host = config.server.host
    if host in ("0.0.0.0", "::", ""):
        host = "127.0.0.1"
    return f"http://{host}:{config.server.port}"


@contextmanager
def _client(server: str | None):
    """API client for the running server; ``server`` overrides the config address."""
    from streamrec.cli.client import StreamrecClient
    from streamrec.core.config.loader import load_config

    client = StreamrecClient(base_url=server or _server_url(load_config()))
    try:
        yield client
    finally:
        client.close()


def _call(method, *args):
    """Invoke a client method, turning API and connection errors into exit code 1."""
    import httpx
    from rich.markup import escape

    from streamrec.cli.client import APIError

    try:
        return method(*args)
    except APIError as e:
        console.print(f"[red]{escape(e.detail)}[/red]")
        raise typer.Exit(code=1)
    except httpx.HTTPError as e:
        console.print(f"[red]Cannot reach streamrec server:[/red] {escape(str(e))}")
        raise typer.Exit(code=1)


def _settings_store(config):
    from streamrec.core.config.settings import SettingsStore

    return SettingsStore(config.settings_path, default_storage_path=config.recordings_path)


# ════════════════════════════════════════════════════════════
# run — start API server
# ════════════════════════════════════════════════════════════


@app.command()
def run(
    port: int | None = typer.Option(None, "--port", "-p", help="Port number (default: config)"),
    host: str | None = typer.Option(None, "--host", "-h", help="Host address (default: config)"),
    reload: bool = typer.Option(False, "--reload", help="Enable auto-reload"),
) -> None:
    """Start the API server (uvicorn)."""
    import uvicorn

    from streamrec.core.config.loader import load_config

    config = load_config()
    host = host or config.server.host
    port = port or config.server.port
    console.print(f"[green]Starting streamrec API on {host}:{port}[/green]")
    uvicorn.run(
        "streamrec.api.app:create_app", factory=True, host=host, port=port, reload=reload
    )


# ════════════════════════════════════════════════════════════
# status — config + schedule info
# ════════════════════════════════════════════════════════════


@app.command()
def status() -> None:
    """Show configuration and schedule status."""
    from streamrec.core.config.loader import load_config

    config = load_config()
    jobs = _restore_jobs(config)
    settings = _settings_store(config).read()

    table = Table(title="streamrec status")
    table.add_column("Key", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Version", __version__)
    table.add_row("Schedules File", str(config.schedules_path))
    table.add_row("Settings File", str(config.settings_path))
    table.add_row("Storage Path", settings.storage_path)
    table.add_row("Time Zone", settings.time_zone)
    table.add_row("Quality", settings.audio_quality)
    table.add_row("Schedules", str(len(jobs)))

    console.print(table)


# ════════════════════════════════════════════════════════════
# schedule — recording job management (sub-command group)
# ════════════════════════════════════════════════════════════

schedule_app = typer.Typer(help="Manage scheduled recordings")
app.add_typer(schedule_app, name="schedule")


@schedule_app.command("list")
def schedule_list() -> None:
    """List all scheduled recordings."""
    from streamrec.core.config.loader import load_config
    from streamrec.core.cron.trigger import validate

    config = load_config()
    jobs = _restore_jobs(config)

    if not jobs:
        console.print("[dim]No scheduled recordings found.[/dim]")
        return

    table = Table(title="Scheduled Recordings")
    table.add_column("ID", style="cyan")
    table.add_column("Name", style="blue")
    table.add_column("Cron", style="yellow")
    table.add_column("Minutes", style="white")
    table.add_column("Last Recording", style="green")

    for job in jobs:
        cron = job.schedule if validate(job.schedule) else f"{job.schedule} (inert)"
        table.add_row(job.job_id, job.name, cron, str(job.duration), job.last_recording or "-")

    console.print(table)


@schedule_app.command("add")
def schedule_add(
    name: str = typer.Argument(help="Show name"),
    url: str = typer.Argument(help="Stream URL"),
    cron: str = typer.Argument(help="Cron expression, e.g. '0 9 * * 1'"),
    duration: int = typer.Argument(help="Duration in minutes"),
    server: str | None = typer.Option(None, "--server", "-s", help="API server URL (default: config)"),
) -> None:
    """Add a scheduled recording on the running server."""
    with _client(server) as client:
        result = _call(client.add_schedule, name, url, cron, duration)
    console.print(f"[green]Scheduled:[/green] {name} ({result['id']})")


@schedule_app.command("remove")
def schedule_remove(
    job_id: str = typer.Argument(help="Schedule ID to remove"),
    server: str | None = typer.Option(None, "--server", "-s", help="API server URL (default: config)"),
) -> None:
    """Remove a scheduled recording by ID on the running server."""
    with _client(server) as client:
        _call(client.remove_schedule, job_id)
    console.print(f"[green]Removed schedule:[/green] {job_id}")


# ════════════════════════════════════════════════════════════
# settings — recording settings (sub-command group)
# ════════════════════════════════════════════════════════════

settings_app = typer.Typer(help="Show or change recording settings")
app.add_typer(settings_app, name="settings")


@settings_app.command("show")
def settings_show() -> None:
    """Print settings.json."""
    from streamrec.core.config.loader import load_config

    config = load_config()
    console.print_json(json.dumps(_settings_store(config).read().to_dict()))


@settings_app.command("set")
def settings_set(
    key: str = typer.Argument(help="recordingFormat, audioQuality, storagePath or timeZone"),
    value: str = typer.Argument(help="New value"),
    server: str | None = typer.Option(None, "--server", "-s", help="API server URL (default: config)"),
) -> None:
    """Change one settings field on the running server."""
    with _client(server) as client:
        current = _call(client.get_settings)
        if key not in current:
            console.print(f"[red]Unknown setting:[/red] {key}")
            raise typer.Exit(code=1)
        current[key] = value
        _call(client.save_settings, current)
    console.print(f"[green]Updated[/green] {key} = {value}")
