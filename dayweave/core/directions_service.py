"""
Google Directions API integration for per-mode routing.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any

import httpx

from dayweave.core.errors import AuthenticationFailure, ProviderUnavailable
from dayweave.core.schemas import RouteStep
from dayweave.core.travel_time_utils import TravelMode, round_half_up

logger = logging.getLogger(__name__)

DIRECTIONS_API_BASE = "https://maps.googleapis.com/maps/api/directions"
METERS_TO_MILES = 0.000621371

# Directions API calls cycling "bicycling"
_API_MODES: dict[str, str] = {
    "walking": "walking",
    "driving": "driving",
    "cycling": "bicycling",
    "transit": "transit",
}

_HTML_TAG = re.compile(r"<[^>]*>")


@dataclass
class RouteResult:
    mode: TravelMode
    distance_miles: float
    duration_minutes: int
    steps: list[RouteStep] = field(default_factory=list)
    polyline: str | None = None


def strip_html(text: str) -> str:
    return _HTML_TAG.sub("", text or "")


class DirectionsClient:
    """Thin async wrapper around the Directions JSON endpoint."""

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = DIRECTIONS_API_BASE,
        timeout_s: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not api_key:
            raise AuthenticationFailure("GOOGLE_MAPS_API_KEY is not set")
        self.api_key = api_key
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers={"accept": "application/json"},
            timeout=httpx.Timeout(timeout_s, connect=5.0),
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "DirectionsClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self._client.aclose()

    async def route(
        self,
        origin: str,
        destination: str,
        mode: TravelMode,
        avoid_highways: bool = False,
        avoid_tolls: bool = False,
    ) -> RouteResult:
        """
        Fetch the first route between two free-text places.

        Raises:
            AuthenticationFailure: the API key was rejected
            ProviderUnavailable: transport error or any non-OK status
        """
        params: dict[str, Any] = {
            "origin": origin,
            "destination": destination,
            "mode": _API_MODES.get(mode, "walking"),
            "units": "imperial",
            "key": self.api_key,
        }
        avoid = [
            name
            for name, flag in (("highways", avoid_highways), ("tolls", avoid_tolls))
            if flag
        ]
        if avoid:
            params["avoid"] = "|".join(avoid)

        try:
            response = await self._client.get("/json", params=params)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as exc:
            raise ProviderUnavailable(
                f"Directions request failed for {mode}", details=str(exc)
            ) from exc

        status = data.get("status")
        if status == "REQUEST_DENIED":
            raise AuthenticationFailure(
                "Directions API rejected the key", details=data.get("error_message")
            )
        if status != "OK" or not data.get("routes"):
            raise ProviderUnavailable(
                f"Directions returned {status} for {mode}",
                details=data.get("error_message"),
            )

        result = self._parse_route(data["routes"][0], mode)
        logger.debug(
            f"[DirectionsClient] {mode} {origin} -> {destination}: "
            f"{result.duration_minutes} min, {result.distance_miles:.2f} mi"
        )
        return result

    @staticmethod
    def _parse_route(route: dict[str, Any], mode: TravelMode) -> RouteResult:
        legs = route.get("legs") or [{}]
        leg = legs[0]

        meters = (leg.get("distance") or {}).get("value")
        seconds = (leg.get("duration") or {}).get("value")
        distance_miles = meters * METERS_TO_MILES if meters is not None else 0.5
        duration_minutes = round_half_up(seconds / 60) if seconds is not None else 15

        steps = [
            RouteStep(
                instruction=strip_html(step.get("html_instructions", "")),
                distance=(step.get("distance") or {}).get("text", ""),
                duration=(step.get("duration") or {}).get("text", ""),
            )
            for step in leg.get("steps") or []
        ]
        polyline = (route.get("overview_polyline") or {}).get("points")

        return RouteResult(
            mode=mode,
            distance_miles=distance_miles,
            duration_minutes=duration_minutes,
            steps=steps,
            polyline=polyline,
        )
