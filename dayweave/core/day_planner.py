"""
End-to-end day planning: prompt, generate, extract, reconcile, assemble.
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError

from dayweave.core.errors import GenerationExhausted, MalformedResponse
from dayweave.core.itinerary_generator import ItineraryGenerator, build_itinerary_prompt
from dayweave.core.itinerary_reconciler import (
    assemble_itinerary,
    fit_to_schedule,
    reconcile,
)
from dayweave.core.schemas import (
    DEFAULT_PREFERRED_MODES,
    ActivityEvent,
    Itinerary,
    PlanRequest,
    TravelOptions,
)
from dayweave.core.travel_estimator import TravelEstimator
from dayweave.core.travel_time_utils import add_minutes_to_time

logger = logging.getLogger(__name__)


def travel_options_for(request: PlanRequest, max_walking_distance: float = 1.5) -> TravelOptions:
    if request.travel_options is not None:
        return request.travel_options
    return TravelOptions(
        preferred_modes=request.preferences.transport_modes or list(DEFAULT_PREFERRED_MODES),
        max_walking_distance=max_walking_distance,
    )


def extract_activities(draft: dict[str, Any]) -> list[ActivityEvent]:
    """
    Pull schedulable activities out of a draft itinerary.

    Travel entries are dropped (they are recomputed) and so is any activity
    that fails validation or lacks a location, start or end time.
    """
    activities: list[ActivityEvent] = []
    for index, event in enumerate(draft.get("events") or []):
        if not isinstance(event, dict):
            continue
        kind = event.get("type", "activity")
        if kind != "activity":
            continue
        data = event.get("data", event)
        try:
            activity = ActivityEvent.model_validate(data)
        except (ValidationError, ValueError, TypeError) as e:
            logger.warning(f"[DayPlanner] Skipping invalid activity {index}: {e}")
            continue
        if not (activity.location and activity.start_time and activity.end_time):
            logger.warning(
                f"[DayPlanner] Skipping unschedulable activity {index} ('{activity.name}')"
            )
            continue
        activities.append(activity)
    return activities


def build_fallback_itinerary(
    request: PlanRequest, estimator: TravelEstimator, options: TravelOptions
) -> Itinerary:
    """A static but valid plan used when generation fails or yields nothing usable."""
    start = request.preferences.start_time
    city = request.location
    plan = [
        (f"Morning stroll around {request.preferences.start_location}",
         request.preferences.start_location, 0, 120, ["outdoor"]),
        (f"Lunch in {city} centre", f"{city} city centre", 150, 90, ["food"]),
        (f"Afternoon at a {city} museum", f"{city} museum", 270, 120, ["culture"]),
    ]
    activities = [
        ActivityEvent(
            name=name,
            description="Suggested while the planner is unavailable",
            location=location,
            start_time=add_minutes_to_time(start, offset),
            duration=duration,
            activity_type=tags,
        )
        for name, location, offset, duration, tags in plan
    ]
    travels = [
        fit_to_schedule(
            estimator.fallback_estimate(
                current.location, following.location, current.end_time, options
            ),
            current,
            following,
        )
        for current, following in zip(activities, activities[1:])
    ]
    return assemble_itinerary(
        activities,
        travels,
        title=f"A day in {city}",
        date=request.date,
        location=city,
        is_fallback=True,
    )


class DayPlanner:
    def __init__(
        self,
        generator: ItineraryGenerator,
        estimator: TravelEstimator,
        max_walking_distance: float = 1.5,
    ) -> None:
        self.generator = generator
        self.estimator = estimator
        self.max_walking_distance = max_walking_distance

    async def plan_day(self, request: PlanRequest) -> Itinerary:
        """
        Produce a finalized itinerary for one day.

        Raises:
            AuthenticationFailure: the generation provider rejected its key
            GenerationExhausted: generation failed and fallback is not allowed
            MalformedResponse: the draft held no schedulable activity and
                fallback is not allowed
        """
        options = travel_options_for(request, self.max_walking_distance)
        prompt = build_itinerary_prompt(request)

        try:
            draft = await self.generator.generate(prompt)
        except GenerationExhausted as e:
            if not request.allow_fallback:
                raise
            logger.warning(f"[DayPlanner] Generation exhausted, serving fallback plan: {e}")
            return build_fallback_itinerary(request, self.estimator, options)

        activities = extract_activities(draft)
        if not activities:
            if not request.allow_fallback:
                raise MalformedResponse("AI response contained no usable activities")
            logger.warning("[DayPlanner] Draft had no usable activities, serving fallback plan")
            return build_fallback_itinerary(request, self.estimator, options)

        travels = await reconcile(activities, self.estimator, options)
        itinerary = assemble_itinerary(
            activities,
            travels,
            title=str(draft.get("title") or f"A day in {request.location}"),
            date=request.date,
            location=request.location,
        )
        logger.info(
            f"[DayPlanner] Planned {len(activities)} activities in {request.location}, "
            f"total cost {itinerary.total_cost}"
        )
        return itinerary
