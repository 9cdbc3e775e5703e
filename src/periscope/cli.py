# src/periscope/cli.py
"""Periscope Command Line Interface.

Entry point for the periscope CLI tool.
"""

from __future__ import annotations

import json
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Literal

import typer
from dynaconf.vendor.ruamel.yaml.parser import ParserError as YamlParserError
from dynaconf.vendor.ruamel.yaml.scanner import ScannerError as YamlScannerError
from pydantic import ValidationError

from periscope import __version__
from periscope.contracts.enums import EventCategory
from periscope.core.clock import ManualClock
from periscope.core.config import LoggingSettings, PeriscopeSettings, load_settings
from periscope.core.events import EventBus
from periscope.core.logging import get_logger
from periscope.deadletters import (
    InvalidCapacityError,
    Snapshot,
    UnclassifiableEventError,
    WindowSnapshot,
    parse_raw_event,
    start_monitoring,
    stop_monitoring,
)

__all__ = ["app"]

logger = get_logger(__name__)

app = typer.Typer(
    name="periscope",
    help="Periscope: dead letter, unhandled and dropped message diagnostics.",
    no_args_is_help=True,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"periscope version {__version__}")
        raise typer.Exit()


def _load_dotenv(env_file: Path | None = None) -> bool:
    """Load PERISCOPE_* overrides from a .env file.

    Raises:
        typer.Exit: If explicit env_file path doesn't exist.
    """
    from dotenv import load_dotenv

    if env_file is not None:
        if not env_file.exists():
            typer.secho(f"Error: .env file not found: {env_file}", fg=typer.colors.RED, err=True)
            raise typer.Exit(1)
        return load_dotenv(env_file, override=False)

    return load_dotenv(override=False)


@dataclass(frozen=True)
class _LogFlags:
    """Logging flags given on the command line; they win over settings."""

    verbose: bool = False
    json_logs: bool = False


def _configure_logging(flags: _LogFlags | None, settings: LoggingSettings | None = None) -> None:
    """Apply logging settings, with command line flags taking priority.

    Logs always go to stderr; stdout carries command output only.
    """
    from periscope.core.logging import configure_logging

    flags = flags if flags is not None else _LogFlags()
    settings = settings if settings is not None else LoggingSettings()
    configure_logging(
        json_output=flags.json_logs or settings.json_output,
        level="DEBUG" if flags.verbose else settings.level,
        stream=sys.stderr,
    )


@app.callback()
def main(
    ctx: typer.Context,
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    no_dotenv: bool = typer.Option(
        False,
        "--no-dotenv",
        help="Skip loading .env file.",
    ),
    env_file: Path | None = typer.Option(
        None,
        "--env-file",
        help="Path to .env file (skips automatic search).",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose/debug logging.",
    ),
    json_logs: bool = typer.Option(
        False,
        "--json-logs",
        help="Output structured JSON logs (for machine processing).",
    ),
) -> None:
    """Periscope: dead letter, unhandled and dropped message diagnostics."""
    ctx.obj = _LogFlags(verbose=verbose, json_logs=json_logs)
    _configure_logging(ctx.obj)

    if not no_dotenv:
        _load_dotenv(env_file=env_file)
    elif env_file is not None:
        typer.secho("Warning: --env-file ignored because --no-dotenv is set.", fg=typer.colors.YELLOW, err=True)


def _format_error(
    title: str,
    message: str,
    hint: str | None = None,
    details: list[str] | None = None,
) -> None:
    """Display a formatted error panel on stderr."""
    from rich.console import Console
    from rich.panel import Panel
    from rich.text import Text

    content = Text()
    content.append(message, style="white")

    if details:
        content.append("\n\n")
        for detail in details:
            content.append(f"  • {detail}\n", style="dim")

    if hint:
        content.append("\n")
        content.append("Hint: ", style="yellow bold")
        content.append(hint, style="yellow")

    Console(stderr=True).print(Panel(content, title=f"[red bold]{title}[/]", border_style="red", padding=(0, 1)))


def _load_settings_or_exit(settings_path: Path) -> PeriscopeSettings:
    try:
        return load_settings(settings_path)
    except (YamlParserError, YamlScannerError) as e:
        _format_error(
            title="YAML Syntax Error",
            message=f"Failed to parse {settings_path.name}",
            details=[str(e.problem)] if hasattr(e, "problem") else None,
            hint="Check for unclosed brackets, incorrect indentation, or invalid characters.",
        )
        raise typer.Exit(1) from None
    except FileNotFoundError:
        _format_error(
            title="File Not Found",
            message=f"Settings file does not exist: {settings_path}",
            hint="Check the path and ensure the file exists.",
        )
        raise typer.Exit(1) from None
    except ValidationError as e:
        details = []
        for error in e.errors():
            loc = ".".join(str(x) for x in error["loc"])
            details.append(f"{loc}: {error['msg']}")
        _format_error(
            title="Configuration Validation Failed",
            message=f"Invalid settings in {settings_path.name}",
            details=details,
            hint="Check field names, types, and required values.",
        )
        raise typer.Exit(1) from None


@app.command()
def validate(
    ctx: typer.Context,
    settings: str = typer.Option(
        ...,
        "--settings",
        "-s",
        help="Path to settings YAML file.",
    ),
) -> None:
    """Validate collector configuration without starting anything."""
    config = _load_settings_or_exit(Path(settings).expanduser())
    _configure_logging(ctx.obj, config.logging)
    typer.echo("✅ Configuration valid!")
    typer.echo(f"  Capacity per category: {config.collector.capacity}")
    typer.echo(f"  Query timeout: {config.collector.query_timeout_seconds}s")
    typer.echo(f"  Log level: {config.logging.level}")


@app.command()
def replay(
    ctx: typer.Context,
    events: str = typer.Option(
        ...,
        "--events",
        "-e",
        help="JSON Lines file of recorded delivery-failure events.",
    ),
    settings: str | None = typer.Option(
        None,
        "--settings",
        "-s",
        help="Path to settings YAML file.",
    ),
    capacity: int | None = typer.Option(
        None,
        "--capacity",
        "-c",
        help="Override collector capacity per category.",
    ),
    window_ms: int = typer.Option(
        60_000,
        "--window-ms",
        "-w",
        help="Trailing window, in milliseconds, ending at the last event.",
    ),
    output_format: Literal["console", "json"] = typer.Option(
        "console",
        "--format",
        "-f",
        help="Output format: 'console' (human-readable) or 'json' (structured JSON).",
    ),
) -> None:
    """Replay recorded events through a collector and report what it retained.

    Each line is an object such as
    {"kind": "unhandled", "message": "ping", "recipient": "worker-1", "at": 12.5}.
    "at" is monotonic seconds and must never decrease.
    """
    config = _load_settings_or_exit(Path(settings).expanduser()) if settings else PeriscopeSettings()
    _configure_logging(ctx.obj, config.logging)
    collector_settings = config.collector
    if capacity is not None:
        collector_settings = collector_settings.model_copy(update={"capacity": capacity})

    events_path = Path(events).expanduser()
    if not events_path.exists():
        _format_error(title="File Not Found", message=f"Events file does not exist: {events_path}")
        raise typer.Exit(1)

    clock = ManualClock()
    bus = EventBus()
    try:
        collector, adapter = start_monitoring(bus, collector_settings, clock=clock)
    except InvalidCapacityError as e:
        _format_error(title="Invalid Capacity", message=str(e), hint="Capacity must be a positive integer.")
        raise typer.Exit(1) from None

    replayed = 0
    skipped = 0
    try:
        # Binary so that one undecodable line is skipped instead of aborting the replay
        with events_path.open("rb") as handle:
            for line_number, raw_line in enumerate(handle, start=1):
                if not raw_line.strip():
                    continue
                try:
                    event = parse_raw_event(json.loads(raw_line.decode("utf-8")))
                except (UnicodeDecodeError, json.JSONDecodeError, UnclassifiableEventError) as e:
                    logger.warning("Skipping malformed replay event", line=line_number, reason=str(e))
                    skipped += 1
                    continue

                if event.occurred_at is not None:
                    try:
                        clock.set(event.occurred_at)
                    except ValueError:
                        _format_error(
                            title="Out Of Order Event",
                            message=f"Line {line_number}: 'at' {event.occurred_at} is earlier than {clock.monotonic()}",
                            hint="Replay files must be sorted by 'at'.",
                        )
                        raise typer.Exit(1) from None

                bus.emit(event)
                # Entries are stamped by the worker; keep it in step with the clock
                collector.flush()
                replayed += 1

        timeout = collector_settings.query_timeout_seconds
        snapshot = collector.get_snapshot(timeout=timeout)
        window = collector.calculate_for_window(window_ms, timeout=timeout)
    finally:
        stop_monitoring(adapter, collector)

    if output_format == "json":
        report: dict[str, Any] = {
            "replayed": replayed,
            "skipped": skipped,
            "capacity": collector_settings.capacity,
            "at": clock.monotonic(),
            "snapshot": snapshot.to_dict(),
            "window": window.to_dict(),
        }
        typer.echo(json.dumps(report, default=str))
    else:
        _print_console_report(snapshot, window, replayed=replayed, skipped=skipped, at=clock.monotonic())


def _print_console_report(snapshot: Snapshot, window: WindowSnapshot, *, replayed: int, skipped: int, at: float) -> None:
    from rich.console import Console
    from rich.table import Table

    table = Table(title=f"Last {window.window_ms} ms ending at t={at:g}s")
    table.add_column("Category")
    table.add_column("Retained", justify="right")
    table.add_column("In window", justify="right")
    table.add_column("Precision")
    for category in EventCategory:
        result = window.for_category(category)
        table.add_row(
            category.value,
            str(len(snapshot.for_category(category))),
            str(result.count),
            "minimum estimate" if result.is_minimum_estimate else "exact",
        )

    console = Console()
    console.print(table)
    console.print(f"Replayed {replayed} events, skipped {skipped} malformed lines")
