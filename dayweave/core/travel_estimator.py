"""
Travel segment estimation between two activities.

Each preferred mode is routed concurrently through the Directions API; the
best candidate wins. When routing is unavailable, slow, or fails for every
mode, a speed-based fallback estimate is synthesized instead.
"""

from __future__ import annotations

import asyncio
import logging
import random
from enum import Enum
from typing import Any, Awaitable, Callable, Sequence
from urllib.parse import quote

from dayweave.core.directions_service import DirectionsClient, RouteResult
from dayweave.core.errors import AuthenticationFailure, InvalidInput
from dayweave.core.schemas import (
    ActivityItem,
    RouteDetail,
    TravelEvent,
    TravelItem,
    TravelOptions,
)
from dayweave.core.travel_time_utils import (
    MODE_SPEEDS_MPH,
    TravelMode,
    add_minutes_to_time,
    calculate_travel_cost,
    estimate_travel_time,
    parse_time_to_minutes,
    round_half_up,
)

logger = logging.getLogger(__name__)

TRANSIT_BOOKING_ADVICE = "Check local transit apps for real-time schedules"
SIMILAR_DURATION_MINUTES = 5


class ClientState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTED = "connected"
    UNAVAILABLE = "unavailable"


def transit_booking_link(start_location: str, end_location: str) -> str:
    origin = quote(start_location, safe="")
    destination = quote(end_location, safe="")
    return (
        "https://www.google.com/maps/dir/?api=1"
        f"&origin={origin}&destination={destination}&travelmode=transit"
    )


def is_short_walk(option: TravelEvent, max_walking_distance: float) -> bool:
    return option.mode == "walking" and option.distance <= max_walking_distance


def is_better_option(
    new: TravelEvent, current: TravelEvent, max_walking_distance: float = 1.5
) -> bool:
    """
    Decide whether `new` should replace `current` as the best travel option.

    A walk within the walking limit always wins. Otherwise the faster option
    wins, and among options within five minutes of each other the cheaper one.
    Ties keep the current option.
    """
    if is_short_walk(new, max_walking_distance):
        return True
    if is_short_walk(current, max_walking_distance):
        return False
    if new.duration < current.duration:
        return True
    if abs(new.duration - current.duration) <= SIMILAR_DURATION_MINUTES:
        return new.cost < current.cost
    return False


def build_travel_event(
    start_location: str,
    end_location: str,
    start_time: str,
    mode: TravelMode,
    duration: int,
    distance_miles: float,
    route_detail: RouteDetail | None = None,
) -> TravelEvent:
    cost = calculate_travel_cost(mode, distance_miles)
    is_transit = mode == "transit"
    return TravelEvent(
        start_location=start_location,
        end_location=end_location,
        start_time=start_time,
        end_time=add_minutes_to_time(start_time, duration),
        duration=duration,
        mode=mode,
        cost=cost,
        distance=round_half_up(distance_miles * 10) / 10,
        booking_required=is_transit and cost > 0,
        booking_link=transit_booking_link(start_location, end_location) if is_transit else None,
        booking_advice=TRANSIT_BOOKING_ADVICE if is_transit else None,
        route_detail=route_detail,
    )


class TravelEstimator:
    """
    Estimates travel between places, one instance per process.

    The directions client is created on first use. A missing or rejected
    Maps key leaves the estimator UNAVAILABLE, in which case every estimate
    comes from the fallback model.
    """

    def __init__(
        self,
        api_key: str | None = None,
        *,
        directions_factory: Callable[[], Any] | None = None,
        rng: random.Random | None = None,
        timeout_seconds: float = 5.0,
        batch_size: int = 3,
        batch_pause_seconds: float = 0.5,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.api_key = api_key
        self._directions_factory = directions_factory
        self._rng = rng or random.Random()
        self.timeout_seconds = timeout_seconds
        self.batch_size = max(1, batch_size)
        self.batch_pause_seconds = batch_pause_seconds
        self._sleep = sleep

        self._directions: Any | None = None
        self.state = ClientState.DISCONNECTED

    def _ensure_connected(self) -> Any | None:
        if self.state is ClientState.CONNECTED:
            return self._directions
        if self.state is ClientState.UNAVAILABLE:
            return None

        try:
            if self._directions_factory is not None:
                self._directions = self._directions_factory()
            elif self.api_key:
                self._directions = DirectionsClient(self.api_key)
            else:
                self._directions = None
        except Exception as exc:
            logger.warning(f"[TravelEstimator] Directions client init failed: {exc}")
            self._directions = None

        if self._directions is None:
            self.state = ClientState.UNAVAILABLE
            logger.info("[TravelEstimator] Routing unavailable, using fallback estimates")
        else:
            self.state = ClientState.CONNECTED
        return self._directions

    async def aclose(self) -> None:
        if self._directions is not None:
            await self._directions.aclose()
        self._directions = None
        self.state = ClientState.DISCONNECTED

    async def _route_mode(
        self,
        directions: Any,
        start_location: str,
        end_location: str,
        mode: TravelMode,
        options: TravelOptions,
    ) -> RouteResult | None:
        try:
            return await directions.route(
                start_location,
                end_location,
                mode,
                avoid_highways=options.avoid_highways,
                avoid_tolls=options.avoid_tolls,
            )
        except AuthenticationFailure as exc:
            logger.warning(f"[TravelEstimator] Directions key rejected: {exc}")
            self.state = ClientState.UNAVAILABLE
            return None
        except Exception as exc:
            logger.warning(f"[TravelEstimator] Directions request failed for {mode}: {exc}")
            return None

    async def estimate(
        self,
        start_location: str,
        end_location: str,
        depart_at: str,
        options: TravelOptions | None = None,
    ) -> TravelEvent:
        """
        Estimate one travel segment departing at `depart_at`.

        Args:
            start_location: Free-text origin
            end_location: Free-text destination
            depart_at: Departure time, "HH:MM"
            options: Mode preferences and routing restrictions

        Returns:
            A TravelEvent from real routing when available, else a fallback

        Raises:
            InvalidInput: a location or the departure time is missing or invalid
        """
        if not start_location or not end_location or not depart_at:
            raise InvalidInput(
                "Missing required parameters for travel segment generation",
                details={
                    "startLocation": start_location,
                    "endLocation": end_location,
                    "startTime": depart_at,
                },
            )
        try:
            parse_time_to_minutes(depart_at)
        except ValueError as exc:
            raise InvalidInput(str(exc)) from exc

        options = options or TravelOptions()
        directions = self._ensure_connected()
        if directions is None:
            return self.fallback_estimate(start_location, end_location, depart_at, options)

        tasks = [
            asyncio.create_task(
                self._route_mode(directions, start_location, end_location, mode, options)
            )
            for mode in options.preferred_modes
        ]
        _, pending = await asyncio.wait(tasks, timeout=self.timeout_seconds)
        if pending:
            for task in pending:
                task.cancel()
            logger.warning(
                f"[TravelEstimator] Routing timed out after {self.timeout_seconds}s "
                f"({len(pending)} pending), using fallback"
            )
            return self.fallback_estimate(start_location, end_location, depart_at, options)

        best: TravelEvent | None = None
        for task in tasks:
            result = task.result()
            if result is None:
                continue
            candidate = build_travel_event(
                start_location,
                end_location,
                depart_at,
                result.mode,
                result.duration_minutes,
                result.distance_miles,
                RouteDetail(steps=result.steps, polyline=result.polyline),
            )
            if best is None or is_better_option(candidate, best, options.max_walking_distance):
                best = candidate

        if best is None:
            logger.warning("[TravelEstimator] All directions requests failed, using fallback")
            return self.fallback_estimate(start_location, end_location, depart_at, options)

        logger.info(
            f"[TravelEstimator] {start_location} -> {end_location}: "
            f"{best.mode} {best.duration} min"
        )
        return best

    def fallback_estimate(
        self,
        start_location: str,
        end_location: str,
        depart_at: str,
        options: TravelOptions | None = None,
    ) -> TravelEvent:
        """Synthesize a plausible segment from a random short distance. Never raises."""
        options = options or TravelOptions()
        modes: Sequence[str] = options.preferred_modes
        distance = round_half_up((self._rng.random() * 2 + 0.1) * 10) / 10

        mode: TravelMode = "walking"
        if distance > options.max_walking_distance and "driving" in modes:
            mode = "driving"
        elif distance > 0.8 and "cycling" in modes:
            mode = "cycling"
        elif distance > 2 and "transit" in modes:
            mode = "transit"

        duration = estimate_travel_time(distance, mode)
        logger.debug(
            f"[TravelEstimator] Fallback {mode} {distance} mi "
            f"({MODE_SPEEDS_MPH[mode]} mph) -> {duration} min"
        )
        return build_travel_event(
            start_location, end_location, depart_at, mode, duration, distance
        )

    async def _enhance_one(
        self, travel: TravelEvent, options: TravelOptions
    ) -> TravelEvent:
        estimate = await self.estimate(
            travel.start_location, travel.end_location, travel.start_time, options
        )
        return estimate.model_copy(update={"id": travel.id})

    async def enhance_itinerary(
        self,
        events: list[ActivityItem | TravelItem],
        options: TravelOptions | None = None,
    ) -> list[ActivityItem | TravelItem]:
        """
        Re-estimate every travel event of an itinerary with real routing data.

        Travel events are processed in small concurrent batches with a pause
        between batches. Each enhanced event keeps its original id; an event
        whose enhancement fails is returned unchanged.
        """
        options = options or TravelOptions()
        enhanced = list(events)
        travel_indices = [i for i, event in enumerate(events) if event.type == "travel"]

        for offset in range(0, len(travel_indices), self.batch_size):
            if offset:
                await self._sleep(self.batch_pause_seconds)
            batch = travel_indices[offset : offset + self.batch_size]
            results = await asyncio.gather(
                *(self._enhance_one(events[i].data, options) for i in batch),
                return_exceptions=True,
            )
            for index, result in zip(batch, results):
                if isinstance(result, BaseException):
                    logger.warning(
                        f"[TravelEstimator] Failed to enhance travel segment {index}: {result}"
                    )
                    continue
                enhanced[index] = TravelItem(data=result)

        return enhanced
