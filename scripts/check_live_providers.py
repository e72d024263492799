"""
Quick manual check of the live Directions and Places integrations.

Needs GOOGLE_MAPS_API_KEY in the environment or .env.
"""

import asyncio

from dayweave.core.activity_resolver import ActivityResolver
from dayweave.core.places_service import PlacesService
from dayweave.core.schemas import ActivitySuggestion, TravelOptions
from dayweave.core.settings import get_settings
from dayweave.core.travel_estimator import TravelEstimator


async def check_travel(api_key: str) -> None:
    print("\n--- Travel: Tate Modern -> Borough Market at 10:00 ---")
    estimator = TravelEstimator(api_key)
    try:
        for modes in (["walking", "driving", "transit"], ["cycling"]):
            event = await estimator.estimate(
                "Tate Modern, London",
                "Borough Market, London",
                "10:00",
                TravelOptions(preferred_modes=modes),
            )
            print(f"{modes}: {event.mode} {event.duration} min, {event.distance} mi, cost {event.cost}")
            if event.route_detail:
                for step in event.route_detail.steps[:3]:
                    print(f"   {step.instruction} ({step.distance}, {step.duration})")
        print(f"Client state: {estimator.state.value}")
    finally:
        await estimator.aclose()


def check_places(api_key: str) -> None:
    print("\n--- Places: resolving two suggestions near Southwark ---")
    resolver = ActivityResolver(PlacesService(api_key))
    suggestions = [
        ActivitySuggestion(search_query="Tate Modern near Southwark, London", estimated_cost=0),
        ActivitySuggestion(search_query="zzqx nonexistent venue near Southwark, London", estimated_cost=9),
    ]
    for activity in resolver.resolve_all(suggestions, "Southwark, London"):
        print(f"{activity.name} @ {activity.location}")
        print(f"   Address: {activity.address or 'N/A'}  Rating: {activity.rating}  Cost: {activity.cost}")
        print(f"   Image: {activity.image_url or 'none'}")


def main() -> None:
    api_key = get_settings().google_maps_api_key
    if not api_key:
        print("GOOGLE_MAPS_API_KEY is not set; nothing to check.")
        return
    print(f"API Key configured: {api_key[:10]}...")
    asyncio.run(check_travel(api_key))
    check_places(api_key)


if __name__ == "__main__":
    main()
