"""Reverse geocoding of the float's reported position."""

from __future__ import annotations

from typing import Optional

import httpx

from models.readings import Coordinates
from services.errors import LocationLookupError

LOCATION_NOT_FOUND = "Location not found"
LOCATION_ERROR = "Error fetching location"

REVERSE_PATH = "/reverse"
USER_AGENT = "glof-telemetry/0.1"


class LocationLookup:
    """Nominatim-compatible reverse lookup returning a short place name."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._client = httpx.Client(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
            headers={"User-Agent": USER_AGENT},
        )

    def close(self) -> None:
        self._client.close()

    def lookup(self, coordinates: Coordinates) -> str:
        try:
            response = self._client.get(
                REVERSE_PATH,
                params={
                    "format": "json",
                    "lat": coordinates.latitude,
                    "lon": coordinates.longitude,
                },
            )
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise LocationLookupError(f"Reverse geocoding failed: {exc}") from exc

        display_name = payload.get("display_name") if isinstance(payload, dict) else None
        if not isinstance(display_name, str) or not display_name.strip():
            return LOCATION_NOT_FOUND
        return display_name.split(",")[0].strip()
