"""
ui-rotator CLI - run the rotation service or replay recordings locally.
"""
import asyncio
import json
import logging
import sys
from functools import partial
from typing import Any, Dict, List, Optional

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .automation.mapping import SelectorMappings
from .automation.monitor import AvailabilityMonitor
from .automation.rewriter import rewrite_recording
from .automation.runner import execute_recording
from .core.config import DEFAULT_BROWSER_ARGS, DEFAULT_CHROMIUM_PATH, LOG_LEVEL_ALIASES, LOG_LEVELS, Settings, normalize_log_level
from .core.errors import ConfigError, PasswordPolicyError, PayloadError, RecordingExecutionError, RotatorError
from .core.models import Recording, StepResult, StepStatus
from .core.passwords import generate_password

logger = logging.getLogger("uirotator")

# Create console for rich output
console = Console()


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True)],
        force=True,
    )


def _log_level_option(ctx: click.Context, param: click.Parameter, value: str) -> str:
    try:
        return normalize_log_level(value)
    except ConfigError as e:
        choices = ", ".join(LOG_LEVELS + sorted(LOG_LEVEL_ALIASES))
        raise click.BadParameter(f"{e}; expected one of {choices}")


def _log_uncaught(exc_type, exc, tb) -> None:
    logger.critical("Uncaught exception", exc_info=(exc_type, exc, tb))


def _playwright_factory(chromium_path: Optional[str], headless: bool = True):
    from .automation.playwright_engine import PlaywrightEngine

    return partial(PlaywrightEngine, executable_path=chromium_path, args=DEFAULT_BROWSER_ARGS, headless=headless)


def print_results(results: List[StepResult]) -> None:
    table = Table(title="Execution results")
    table.add_column("#", justify="right")
    table.add_column("Step")
    table.add_column("Status")
    table.add_column("Duration (ms)", justify="right")
    table.add_column("Error")
    for i, r in enumerate(results, 1):
        status = "[green]Success[/]" if r.status == StepStatus.SUCCESS else "[red]Failure[/]"
        table.add_row(str(i), r.step_type, status, str(r.duration_ms), r.error or "")
    console.print(table)


@click.group()
@click.option(
    "--log-level",
    callback=_log_level_option,
    envvar="LOG_LEVEL",
    default="info",
    show_default=True,
    help="Log verbosity",
)
def cli(log_level: str) -> None:
    """ui-rotator - rotate web-only credentials by replaying browser recordings."""
    configure_logging(log_level)
    sys.excepthook = _log_uncaught


@cli.command()
@click.option("--host", default=None, help="Interface to bind (defaults to HOST or 0.0.0.0)")
@click.option("--port", type=int, default=None, help="Port to listen on (defaults to PORT or 3000)")
def serve(host: Optional[str], port: Optional[int]) -> None:
    """Start the HTTP rotation service."""
    import uvicorn
    from .api.app import create_app

    logger.info("Starting application")
    try:
        settings = Settings.from_env()
    except ConfigError as e:
        logger.error("%s", e)
        sys.exit(1)

    if host:
        settings.host = host
    if port:
        settings.port = port

    app = create_app(settings)
    uvicorn.run(app, host=settings.host, port=settings.port, log_config=None, log_level=settings.log_level)


def _load_json(path: str) -> Any:
    with open(path, encoding="utf-8") as f:
        return json.load(f)


@cli.command()
@click.argument("recording_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--username", default=None, help="Value injected into username fields")
@click.option("--password", default=None, help="Value injected into current-password fields")
@click.option("--new-password", default=None, help="Value injected into new-password fields")
@click.option(
    "--mappings",
    "mappings_file",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="JSON file with usernameMappings, passwordMappings and newPasswordMappings",
)
@click.option("--chromium-path", envvar="CHROMIUM_EXECUTABLE_PATH", default=DEFAULT_CHROMIUM_PATH, show_default=True)
@click.option("--headed", is_flag=True, default=False, help="Show the browser window")
@click.option("--step-timeout", type=int, default=30000, show_default=True, help="Per-step timeout in ms")
def replay(
    recording_file: str,
    username: Optional[str],
    password: Optional[str],
    new_password: Optional[str],
    mappings_file: Optional[str],
    chromium_path: str,
    headed: bool,
    step_timeout: int,
) -> None:
    """Replay a recording locally and report per-step results."""
    try:
        recording = Recording.from_dict(_load_json(recording_file))
        if mappings_file:
            data: Dict[str, Any] = _load_json(mappings_file)
            mappings = SelectorMappings.from_lists(
                data.get("usernameMappings"),
                data.get("passwordMappings"),
                data.get("newPasswordMappings"),
            )
            recording = rewrite_recording(recording, username or "", password or "", new_password or "", mappings)
    except (OSError, ValueError, PayloadError) as e:
        raise click.ClickException(f"Failed to load recording: {e}")

    factory = _playwright_factory(chromium_path, headless=not headed)
    try:
        results = asyncio.run(execute_recording(recording, factory, step_timeout_ms=step_timeout))
    except RecordingExecutionError as e:
        print_results(e.results)
        console.print(f"[red]✗[/] Replay failed: {e}")
        sys.exit(1)
    except RotatorError as e:
        console.print(f"[red]✗[/] {e}")
        sys.exit(1)

    print_results(results)
    console.print(f"[green]✓[/] Replayed {len(results)} steps")


@cli.command("check-browser")
@click.option("--chromium-path", envvar="CHROMIUM_EXECUTABLE_PATH", default=DEFAULT_CHROMIUM_PATH, show_default=True)
def check_browser(chromium_path: str) -> None:
    """Launch and close Chromium once, like the readiness monitor does."""
    monitor = AvailabilityMonitor(_playwright_factory(chromium_path))
    if asyncio.run(monitor.check_once()):
        console.print("[green]✓[/] Chromium is ready")
    else:
        console.print("[red]✗[/] Chromium is not available")
        sys.exit(1)


@cli.command("generate-password")
@click.option("--options", "options_json", default="{}", show_default=True, help="passwordOptions as JSON")
def generate_password_cmd(options_json: str) -> None:
    """Print a password generated from passwordOptions."""
    try:
        options = json.loads(options_json)
        if not isinstance(options, dict):
            raise click.ClickException("--options must be a JSON object")
        click.echo(generate_password(options))
    except (ValueError, PasswordPolicyError) as e:
        raise click.ClickException(str(e))


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
