"""
Turn model-proposed activity suggestions into concrete venues.
"""

import logging
from typing import Any

from dayweave.core.places_service import PlacesService
from dayweave.core.schemas import ActivityEvent, ActivitySuggestion

logger = logging.getLogger(__name__)

# Google price_level tier -> typical spend per person
PRICE_LEVEL_COSTS: dict[int, int] = {
    0: 10,
    1: 20,
    2: 35,
    3: 60,
    4: 100,
}
DEFAULT_ACTIVITY_COST = 25


def estimate_cost_from_price_level(price_level: Any) -> int:
    return PRICE_LEVEL_COSTS.get(price_level, DEFAULT_ACTIVITY_COST)


def create_fallback_activity(suggestion: ActivitySuggestion) -> ActivityEvent:
    """Build an unscheduled activity straight from the suggestion text."""
    name, _, near = suggestion.search_query.partition(" near ")
    name = name.strip() or suggestion.search_query
    return ActivityEvent(
        id=suggestion.id,
        name=name,
        description=suggestion.description,
        location=near.strip() or name,
        duration=suggestion.suggested_duration,
        cost=suggestion.estimated_cost,
        activity_type=suggestion.activity_type,
    )


class ActivityResolver:
    """Resolves suggestions against the places service. Never raises."""

    def __init__(self, places_service: PlacesService | None, radius: int = 5000):
        self.places_service = places_service
        self.radius = radius

    def _photo_url(self, photo_reference: str | None) -> str | None:
        if not photo_reference:
            return None
        try:
            return self.places_service.get_proxy_photo_url(photo_reference)
        except Exception as e:
            logger.warning(f"[ActivityResolver] Failed to get place photo: {e}")
            return None

    def resolve(self, suggestion: ActivitySuggestion, user_location: str) -> ActivityEvent:
        """
        Resolve one suggestion to the top matching place near `user_location`.

        Falls back to an activity built from the suggestion itself when the
        places service is missing, finds nothing, or fails.
        """
        if self.places_service is None:
            return create_fallback_activity(suggestion)

        try:
            places = self.places_service.search_places(
                suggestion.search_query, user_location, radius=self.radius
            )
            if not places:
                logger.info(
                    f"[ActivityResolver] No places for '{suggestion.search_query}', using fallback"
                )
                return create_fallback_activity(suggestion)

            details = self.places_service.get_place_details(places[0]["place_id"])
            if not details or not details.get("name"):
                return create_fallback_activity(suggestion)

            return ActivityEvent(
                id=suggestion.id,
                name=details["name"],
                description=suggestion.description,
                location=details["name"],
                duration=suggestion.suggested_duration,
                cost=estimate_cost_from_price_level(details.get("price_level")),
                activity_type=suggestion.activity_type,
                address=details.get("address") or "",
                rating=details.get("rating"),
                image_url=self._photo_url(details.get("photo_reference")),
                booking_link=details.get("website"),
            )
        except Exception as e:
            logger.warning(
                f"[ActivityResolver] Failed to resolve '{suggestion.search_query}': {e}"
            )
            return create_fallback_activity(suggestion)

    def resolve_all(
        self, suggestions: list[ActivitySuggestion], user_location: str
    ) -> list[ActivityEvent]:
        return [self.resolve(suggestion, user_location) for suggestion in suggestions]
