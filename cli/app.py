from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

import typer

from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import render_status, render_view


class WindowChoice(str, Enum):
    hour = "hour"
    day = "day"
    week = "week"
    all = "all"


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Utilities for interacting with the glacial-lake telemetry pipeline.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        typer.secho("CLI state is uninitialized.", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
    return state


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Pipeline API base URL (defaults to API_BASE_URL env or http://localhost:8000).",
    ),
    installation: Optional[str] = typer.Option(
        None,
        "--installation",
        "-i",
        help="Installation identifier (defaults to GLOF_INSTALLATION_ID env or 'default').",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Seconds to wait for each API request.",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(base_url=base_url, installation_id=installation, timeout=timeout)
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("start")
def start_command(
    ctx: typer.Context,
    window: Optional[WindowChoice] = typer.Option(
        None, "--window", "-w", help="Series window to activate."
    ),
) -> None:
    """Subscribe the installation's pipeline to the telemetry feed."""
    state = _get_state(ctx)
    payload = state.client.start(window.value if window else None)
    typer.secho(f"Pipeline started for {state.config.installation_id}.", fg=typer.colors.GREEN)
    render_status(payload)


@app.command("stop")
def stop_command(ctx: typer.Context) -> None:
    """Release the feed subscription."""
    state = _get_state(ctx)
    payload = state.client.stop()
    render_status(payload)


@app.command("window")
def window_command(
    ctx: typer.Context,
    window: WindowChoice = typer.Argument(..., help="Series window to activate."),
) -> None:
    """Switch the active series window and show the re-projected view."""
    state = _get_state(ctx)
    payload = state.client.set_window(window.value)
    render_view(payload)


@app.command("view")
def view_command(ctx: typer.Context) -> None:
    """Show the latest readings, risk assessment and trend summary."""
    state = _get_state(ctx)
    render_view(state.client.get_view())


@app.command("push")
def push_command(
    ctx: typer.Context,
    file: Path = typer.Argument(
        ..., exists=True, dir_okay=False, readable=True, help="JSON object of timestamp -> fields."
    ),
) -> None:
    """Write readings from a JSON file into the telemetry feed."""
    state = _get_state(ctx)
    typer.echo(f"Pushing readings from {file} to {state.config.base_url} ...")
    count = state.client.push_readings(file)
    typer.secho(f"Pushed {count} readings.", fg=typer.colors.GREEN)
