#!/usr/bin/env python3
"""
Notes Application CLI.

Primary entry point for all application operations.
Use --service to select what to run, --action to control the server lifecycle.

Usage:
    python cli.py --help
    python cli.py --service server --verbose
    python cli.py --service server --action stop
    python cli.py --service health --debug
    python cli.py --service config
    python cli.py --service notes --token $ID_TOKEN
    python cli.py --service notes --token $ID_TOKEN --note-action add --title Hi --content There
"""

import asyncio
import mimetypes
import os
import signal
import subprocess
import sys
from pathlib import Path

import click
import structlog

PROJECT_ROOT = Path(__file__).parent
sys.path.insert(0, str(PROJECT_ROOT))

from notesapp.backend.core.logging import get_logger, setup_logging


def validate_project_root() -> Path:
    """Validate that we're running from the project root."""
    if not (PROJECT_ROOT / ".project_root").exists():
        click.echo(
            click.style("Error: .project_root not found. Run from project root.", fg="red"),
            err=True,
        )
        sys.exit(1)
    return PROJECT_ROOT


def _find_process_on_port(port: int) -> list[int]:
    """Find PIDs listening on a port."""
    result = subprocess.run(
        ["lsof", "-ti", f":{port}"],
        capture_output=True, text=True,
    )
    pids = result.stdout.strip().split("\n")
    return [int(p) for p in pids if p.strip()]


def _server_stop(logger, port: int) -> None:
    """Stop the server by finding its process on the port."""
    pids = _find_process_on_port(port)
    if not pids:
        click.echo(f"No server running on port {port}.")
        return

    for pid in pids:
        os.kill(pid, signal.SIGINT)
        logger.info("Sent SIGINT", extra={"pid": pid, "port": port})

    click.echo(f"Server on port {port} stopped (PID: {', '.join(str(p) for p in pids)}).")


def _server_status(port: int) -> None:
    """Check if the server is running on a port."""
    pids = _find_process_on_port(port)
    if pids:
        click.echo(f"Server is running on port {port} (PID: {', '.join(str(p) for p in pids)}).")
    else:
        click.echo(f"Server is not running on port {port}.")


@click.command()
@click.option(
    "--service", "-s",
    type=click.Choice(["server", "health", "config", "info", "migrate", "notes"]),
    default="info",
    help="Service or command to run.",
)
@click.option(
    "--action", "-a",
    type=click.Choice(["start", "stop", "restart", "status"]),
    default="start",
    help="Lifecycle action for the server.",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output (INFO level logging).")
@click.option("--debug", "-d", is_flag=True, help="Enable debug output (DEBUG level logging).")
@click.option("--host", default=None, help="Server host.")
@click.option("--port", default=None, type=int, help="Server port.")
@click.option("--reload", is_flag=True, help="Enable auto-reload (server only).")
@click.option(
    "--migrate-action",
    type=click.Choice(["upgrade", "downgrade", "current", "history", "autogenerate"]),
    default="current",
    help="Migration action.",
)
@click.option("--revision", default="head", help="Target revision for upgrade/downgrade.")
@click.option("-m", "--message", default=None, help="Migration message (for autogenerate).")
@click.option("--token", envvar="NOTES_ID_TOKEN", default=None, help="Identity provider token (notes only).")
@click.option(
    "--note-action",
    type=click.Choice(["list", "add", "update", "delete"]),
    default="list",
    help="Note operation (notes only).",
)
@click.option("--note-id", type=int, default=None, help="Note id for update/delete.")
@click.option("--title", default="", help="Note title for add/update.")
@click.option("--content", default="", help="Note content for add/update.")
@click.option(
    "--image-action",
    type=click.Choice(["keep", "clear", "update"]),
    default="keep",
    help="Image action for update.",
)
@click.option(
    "--image",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Image file for add/update.",
)
def main(
    service: str,
    action: str,
    verbose: bool,
    debug: bool,
    host: str | None,
    port: int | None,
    reload: bool,
    migrate_action: str,
    revision: str,
    message: str | None,
    token: str | None,
    note_action: str,
    note_id: int | None,
    title: str,
    content: str,
    image_action: str,
    image: Path | None,
) -> None:
    """
    Notes Application CLI.

    \b
    Examples:
        python cli.py --service server --reload --verbose
        python cli.py --service server --action status
        python cli.py --service health
        python cli.py --service migrate --migrate-action upgrade
        python cli.py --service notes --token $ID_TOKEN
        python cli.py --service notes --note-action update --note-id 3 \\
            --title Groceries --content "Milk, eggs" --image-action clear
    """
    validate_project_root()

    if debug:
        log_level = "DEBUG"
    elif verbose:
        log_level = "INFO"
    else:
        log_level = "WARNING"

    setup_logging(level=log_level, format_type="console")

    structlog.contextvars.bind_contextvars(source="cli")

    logger = get_logger(__name__)

    logger.debug("CLI invoked", extra={"service": service, "action": action, "log_level": log_level})

    if service == "server" and action != "start":
        from notesapp.backend.core.config import get_app_config
        server_port = port or get_app_config().application.server.port

        if action == "stop":
            _server_stop(logger, server_port)
            return
        elif action == "status":
            _server_status(server_port)
            return
        elif action == "restart":
            _server_stop(logger, server_port)
            import time
            time.sleep(2)

    if service == "server":
        run_server(logger, host, port, reload)
    elif service == "health":
        check_health(logger)
    elif service == "config":
        show_config(logger)
    elif service == "info":
        show_info(logger)
    elif service == "migrate":
        run_migrations(logger, migrate_action, revision, message)
    elif service == "notes":
        run_notes(logger, token, note_action, note_id, title, content, image_action, image)


def run_server(logger, host: str | None, port: int | None, reload: bool) -> None:
    """Start the FastAPI development server."""
    from notesapp.backend.core.config import get_app_config

    try:
        server_config = get_app_config().application.server
    except Exception as e:
        logger.error("Failed to load configuration.", extra={"error": str(e)})
        click.echo(
            click.style("Error: Could not load config/settings/application.yaml.", fg="red"),
            err=True,
        )
        sys.exit(1)

    server_host = host or server_config.host
    server_port = port or server_config.port

    logger.info(
        "Starting server",
        extra={"host": server_host, "port": server_port, "reload": reload},
    )

    cmd = [
        sys.executable, "-m", "uvicorn",
        "notesapp.backend.main:app",
        "--host", server_host,
        "--port", str(server_port),
    ]

    if reload:
        cmd.append("--reload")

    click.echo(f"Starting server at http://{server_host}:{server_port}")
    click.echo("Press Ctrl+C to stop\n")

    try:
        subprocess.run(cmd, check=True)
    except KeyboardInterrupt:
        logger.info("Server stopped")
    except subprocess.CalledProcessError as e:
        logger.error("Server failed to start", extra={"exit_code": e.returncode})
        sys.exit(e.returncode)


def check_health(logger) -> None:
    """Probe the running server's readiness endpoint."""
    import httpx

    from notesapp.backend.core.config import get_server_base_url

    base_url, timeout = get_server_base_url()
    click.echo(f"Checking {base_url}/health/detailed ...\n")

    try:
        response = httpx.get(
            f"{base_url}/health/detailed",
            timeout=timeout,
            headers={"X-Frontend-ID": "cli"},
        )
        body = response.json()
    except (httpx.HTTPError, ValueError) as e:
        logger.error("Health check request failed", extra={"error": str(e)})
        click.echo(click.style(f"Server unreachable: {e}", fg="red"), err=True)
        sys.exit(1)

    click.echo("Health Check Results:")
    click.echo("-" * 50)
    for name, check in body.get("checks", {}).items():
        passed = check.get("status") == "healthy"
        status = click.style("✓ PASS", fg="green") if passed else click.style("✗ FAIL", fg="red")
        detail = check.get("error") or (f"{check['latency_ms']} ms" if "latency_ms" in check else "")
        click.echo(f"  {status}  {name} {detail}".rstrip())
    click.echo("-" * 50)

    if body.get("status") != "healthy":
        click.echo(click.style("\nSome checks failed. See details above.", fg="yellow"))
        sys.exit(1)
    click.echo(click.style("\nAll checks passed!", fg="green"))


def show_config(logger) -> None:
    """Display loaded configuration."""
    click.echo("Application Configuration:\n")

    try:
        from notesapp.backend.core.config import get_app_config

        app_config = get_app_config()
        sections = {
            "Application": app_config.application,
            "Database": app_config.database,
            "Logging": app_config.logging,
            "Feature Flags": app_config.features,
            "Identity": app_config.security.identity,
            "Storage": app_config.storage,
        }

        for title, section in sections.items():
            click.echo(f"{title} Settings (from YAML):")
            click.echo("-" * 40)
            for key, value in section.model_dump().items():
                if isinstance(value, dict):
                    click.echo(f"  {key}:")
                    for k, v in value.items():
                        click.echo(f"    {k}: {v}")
                else:
                    click.echo(f"  {key}: {value}")
            click.echo()

        logger.info("Configuration displayed successfully")

    except Exception as e:
        logger.error("Failed to load configuration", extra={"error": str(e)})
        click.echo(click.style(f"Error loading configuration: {e}", fg="red"))
        sys.exit(1)


def run_migrations(
    logger,
    migrate_action: str,
    revision: str,
    message: str | None,
) -> None:
    """Run database migrations using Alembic."""
    logger.info(
        "Running migrations",
        extra={"action": migrate_action, "revision": revision},
    )

    alembic_ini = PROJECT_ROOT / "alembic.ini"

    if not alembic_ini.exists():
        click.echo(click.style("Error: alembic.ini not found.", fg="red"), err=True)
        sys.exit(1)

    cmd = [sys.executable, "-m", "alembic", "-c", str(alembic_ini)]

    if migrate_action == "upgrade":
        cmd.extend(["upgrade", revision])
        click.echo(f"Upgrading database to revision: {revision}")
    elif migrate_action == "downgrade":
        cmd.extend(["downgrade", revision])
        click.echo(f"Downgrading database to revision: {revision}")
    elif migrate_action == "current":
        cmd.append("current")
        click.echo("Showing current database revision...")
    elif migrate_action == "history":
        cmd.extend(["history", "--verbose"])
        click.echo("Showing migration history...")
    elif migrate_action == "autogenerate":
        if not message:
            click.echo(
                click.style("Error: --message/-m required for autogenerate.", fg="red"),
                err=True,
            )
            sys.exit(1)
        cmd.extend(["revision", "--autogenerate", "-m", message])
        click.echo(f"Generating migration: {message}")

    click.echo()

    try:
        result = subprocess.run(cmd, cwd=PROJECT_ROOT)
        if result.returncode != 0:
            logger.error("Migration failed", extra={"exit_code": result.returncode})
            sys.exit(result.returncode)
        logger.info("Migration completed successfully")
    except FileNotFoundError:
        logger.error("alembic not found. Install with: pip install alembic")
        sys.exit(1)


def run_notes(
    logger,
    token: str | None,
    note_action: str,
    note_id: int | None,
    title: str,
    content: str,
    image_action: str,
    image_path: Path | None,
) -> None:
    """Run one note operation through the client synchronization layer."""
    from notesapp.client import ImageFile, NotesApiClient, NotesSync, NotificationLevel

    if not token:
        click.echo(click.style("Error: --token (or NOTES_ID_TOKEN) is required.", fg="red"), err=True)
        sys.exit(1)
    if note_action in ("update", "delete") and note_id is None:
        click.echo(click.style(f"Error: --note-id is required for {note_action}.", fg="red"), err=True)
        sys.exit(1)

    image = None
    if image_path is not None:
        content_type = mimetypes.guess_type(image_path.name)[0] or "application/octet-stream"
        image = ImageFile(image_path.name, image_path.read_bytes(), content_type)

    async def _run() -> bool:
        api = NotesApiClient(token=token)
        sync = NotesSync(api)
        sync.notifier.subscribe(
            lambda n: click.echo(
                click.style(n.message, fg="red" if n.level is NotificationLevel.ERROR else "green")
            )
        )
        try:
            if note_action == "list":
                await sync.load()
                ok = not sync.is_error
            elif note_action == "add":
                ok = await sync.add_note(title, content, image)
            elif note_action == "update":
                await sync.load()
                ok = await sync.update_note(note_id, title, content, image_action, image)
            else:
                ok = await sync.delete_note(note_id)

            if sync.query.error is not None:
                click.echo(click.style(f"Could not load notes: {sync.query.error}", fg="red"), err=True)
            for note in sync.notes or []:
                marker = " [image]" if note.image_url else ""
                click.echo(f"{note.id:>5}  {note.created_at:%Y-%m-%d %H:%M}  {note.title}{marker}")
            return ok
        finally:
            await api.close()

    logger.info("Running note operation", extra={"note_action": note_action, "note_id": note_id})
    if not asyncio.run(_run()):
        sys.exit(1)


def show_info(logger) -> None:
    """Display application information."""
    click.echo("Notes Application")
    click.echo("=" * 40)

    try:
        from notesapp.backend.core.config import get_app_config
        app_settings = get_app_config().application
        click.echo(f"Name: {app_settings.name}")
        click.echo(f"Version: {app_settings.version}")
        click.echo(f"Description: {app_settings.description}")
    except Exception as e:
        logger.error(
            "Failed to load application configuration",
            extra={"error": str(e)},
        )
        click.echo(
            click.style("Error: Could not load application.yaml configuration.", fg="red"),
            err=True,
        )
        sys.exit(1)

    click.echo()
    click.echo("Services (--service):")
    click.echo("  server         FastAPI development server")
    click.echo("  health         Probe the running server's dependencies")
    click.echo("  config         Display configuration")
    click.echo("  migrate        Database migrations")
    click.echo("  notes          List, add, update or delete notes")
    click.echo("  info           Show this information")
    click.echo()
    click.echo("Options:")
    click.echo("  --verbose, -v  Enable INFO level logging")
    click.echo("  --debug, -d    Enable DEBUG level logging")

    logger.debug("Info displayed")


if __name__ == "__main__":
    main()
