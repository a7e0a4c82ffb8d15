from __future__ import annotations

from typing import Any, Dict, Iterable, List

import typer

_RISK_COLORS = {
    "low": typer.colors.GREEN,
    "medium": typer.colors.YELLOW,
    "high": typer.colors.RED,
}

_LATEST_ROWS = (
    ("Altitude", "floatAltitude", "m"),
    ("Humidity", "floatHumidity", "%"),
    ("Temperature", "floatTemperature", "°C"),
    ("Water Temp", "floatWaterTemperature", "°C"),
    ("X-axis", "floatX-Axis", ""),
    ("Y-axis", "floatY-Axis", ""),
    ("Z-axis", "floatZ-Axis", ""),
    ("Shore Humidity", "shoreHumidity", "%"),
    ("Shore Temperature", "shoreTemperature", "°C"),
    ("Shore Vibration", "shoreVibration", ""),
    ("Velocity", "floatVelocity", ""),
)


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def render_status(payload: Dict[str, Any]) -> None:
    echo_key_values(
        [
            ("installation_id", payload.get("installation_id")),
            ("state", payload.get("state")),
            ("window", payload.get("window")),
        ]
    )


def _trend_summary(points: List[Dict[str, Any]], key: str) -> str:
    values = [point.get(key) for point in points if isinstance(point.get(key), (int, float))]
    if not values:
        return "no points"
    return f"{len(values)} points, min {min(values):.3f}, max {max(values):.3f}, last {values[-1]:.3f}"


def render_view(payload: Dict[str, Any]) -> None:
    echo_heading("Pipeline")
    render_status(payload)
    echo_key_values(
        [
            ("location", payload.get("location_name") or "unknown"),
            ("generation", payload.get("generation")),
            ("updated_at", payload.get("updated_at")),
        ]
    )

    risk = payload.get("risk") or {}
    level = risk.get("level", "low")
    typer.echo()
    echo_heading("Risk Assessment")
    typer.secho(f"{str(level).capitalize()} Risk", fg=_RISK_COLORS.get(level), bold=True)
    probabilities = risk.get("probabilities") or []
    if probabilities:
        typer.echo("probabilities: " + ", ".join(f"{p:.3f}" for p in probabilities))

    typer.echo()
    echo_heading("Latest Reading")
    latest = payload.get("latest")
    if latest:
        display = latest.get("display") or {}
        typer.echo(f"timestamp: {latest.get('timestamp')}")
        for label, key, unit in _LATEST_ROWS:
            value = display.get(key, "N/A")
            typer.echo(f"  - {label}: {value}{unit if value != 'N/A' else ''}")
    else:
        typer.echo("No readings received yet.")

    typer.echo()
    echo_heading("Trends")
    echo_key_values(
        [
            ("temperature", _trend_summary(payload.get("float_trend") or [], "temperature")),
            ("shore vibration", _trend_summary(payload.get("shore_trend") or [], "vibration")),
            ("gyro magnitude", _trend_summary(payload.get("gyro_trend") or [], "magnitude")),
        ]
    )
