from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Optional

import httpx
import typer

from cli.config import CLIConfig


class ApiClient:
    """Minimal HTTP client for the telemetry pipeline service."""

    def __init__(self, config: CLIConfig) -> None:
        self._config = config
        self._client = httpx.Client(base_url=config.base_url, timeout=config.timeout)

    def close(self) -> None:
        self._client.close()

    def _pipeline_path(self, suffix: str) -> str:
        return f"/installations/{self._config.installation_id}{suffix}"

    def start(self, window: Optional[str] = None) -> Dict[str, Any]:
        body = {"window": window} if window else None
        return self._request("POST", self._pipeline_path("/pipeline/start"), payload=body)

    def stop(self) -> Dict[str, Any]:
        return self._request("POST", self._pipeline_path("/pipeline/stop"))

    def set_window(self, window: str) -> Dict[str, Any]:
        return self._request("PUT", self._pipeline_path("/pipeline/window"), payload={"window": window})

    def get_view(self) -> Dict[str, Any]:
        return self._request("GET", self._pipeline_path("/view"))

    def push_readings(self, path: Path) -> int:
        """Write every ``timestamp -> fields`` entry of a JSON file into the feed."""
        try:
            entries = json.loads(path.read_text())
        except (OSError, json.JSONDecodeError) as exc:
            raise typer.BadParameter(f"Could not read readings from {path}: {exc}") from exc
        if not isinstance(entries, dict):
            raise typer.BadParameter("Readings file must contain a JSON object keyed by timestamp.")

        for timestamp, fields in entries.items():
            self._request("PUT", self._pipeline_path(f"/readings/{timestamp}"), payload=fields)
        return len(entries)

    def _request(self, method: str, url: str, payload: Any = None) -> Dict[str, Any]:
        try:
            response = self._client.request(method, url, json=payload)
            if response.status_code == 404:
                raise typer.BadParameter(
                    f"Installation {self._config.installation_id} has no pipeline; run 'start' first."
                )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        except httpx.HTTPError as exc:
            typer.secho(f"Could not reach {self._config.base_url}: {exc}", fg=typer.colors.RED, err=True)
            raise typer.Exit(code=1)
        return response.json()

    @staticmethod
    def _handle_http_error(exc: httpx.HTTPStatusError) -> None:
        detail: str | None = None
        try:
            data = exc.response.json()
            detail = data.get("detail")
        except Exception:  # noqa: BLE001 - best effort parsing
            detail = exc.response.text.strip()
        message = (
            f"Request failed with status {exc.response.status_code}: {detail or 'no detail provided.'}"
        )
        typer.secho(message, fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
