"""
Splice travel segments into a list of scheduled activities.
"""

from __future__ import annotations

import logging
from typing import Sequence

from dayweave.core.errors import InvalidInput
from dayweave.core.schemas import (
    ActivityEvent,
    ActivityItem,
    Itinerary,
    TravelEvent,
    TravelItem,
    TravelOptions,
)
from dayweave.core.travel_estimator import TravelEstimator
from dayweave.core.travel_time_utils import time_difference_minutes

logger = logging.getLogger(__name__)

# Estimates this far from the next activity's start are snapped to the schedule
SCHEDULE_DRIFT_MINUTES = 5


def _check_schedulable(activities: Sequence[ActivityEvent]) -> None:
    for index, activity in enumerate(activities):
        missing = [
            name
            for name, value in (
                ("location", activity.location),
                ("startTime", activity.start_time),
                ("endTime", activity.end_time),
            )
            if not value
        ]
        if missing:
            raise InvalidInput(
                f"Activity {index} ('{activity.name}') is missing {', '.join(missing)}",
                details={"index": index, "missing": missing},
            )


def fit_to_schedule(
    travel: TravelEvent, current: ActivityEvent, following: ActivityEvent
) -> TravelEvent:
    """
    Stretch or shrink `travel` to fill the gap before `following`.

    Only applied when the estimate drifts at least five minutes from the
    next start and the real gap is positive.
    """
    drift = time_difference_minutes(travel.end_time, following.start_time)
    if abs(drift) < SCHEDULE_DRIFT_MINUTES:
        return travel

    gap = time_difference_minutes(current.end_time, following.start_time)
    if gap <= 0:
        logger.debug(
            f"[ItineraryReconciler] No room between '{current.name}' and "
            f"'{following.name}' ({gap} min), keeping estimate"
        )
        return travel

    return travel.model_copy(update={"duration": gap, "end_time": following.start_time})


async def reconcile(
    activities: Sequence[ActivityEvent],
    estimator: TravelEstimator,
    options: TravelOptions | None = None,
) -> list[TravelEvent]:
    """
    Build one travel segment per adjacent pair of activities, in order.

    Args:
        activities: Scheduled activities, chronologically ordered
        estimator: Source of travel estimates
        options: Mode preferences passed through to the estimator

    Returns:
        len(activities) - 1 travel events

    Raises:
        InvalidInput: an activity has no location, start time or end time
    """
    _check_schedulable(activities)
    options = options or TravelOptions()

    travels: list[TravelEvent] = []
    for index in range(len(activities) - 1):
        current = activities[index]
        following = activities[index + 1]
        try:
            travel = await estimator.estimate(
                current.location, following.location, current.end_time, options
            )
        except Exception as exc:
            logger.error(f"[ItineraryReconciler] Error generating travel segment {index}: {exc}")
            travel = estimator.fallback_estimate(
                current.location, following.location, current.end_time, options
            )
        travels.append(fit_to_schedule(travel, current, following))

    return travels


def assemble_itinerary(
    activities: Sequence[ActivityEvent],
    travels: Sequence[TravelEvent],
    title: str = "",
    date: str = "",
    location: str = "",
    is_fallback: bool = False,
) -> Itinerary:
    """Interleave activities and travel into an Itinerary with fresh totals."""
    if len(travels) != max(len(activities) - 1, 0):
        raise InvalidInput(
            f"Expected {max(len(activities) - 1, 0)} travel segments, got {len(travels)}"
        )

    events: list[ActivityItem | TravelItem] = []
    for index, activity in enumerate(activities):
        events.append(ActivityItem(data=activity))
        if index < len(travels):
            events.append(TravelItem(data=travels[index]))

    return Itinerary(
        title=title,
        date=date,
        location=location,
        events=events,
        is_fallback=is_fallback,
    )
