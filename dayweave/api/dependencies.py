import logging
from contextlib import asynccontextmanager
from functools import lru_cache
from typing import AsyncGenerator

from fastapi import FastAPI

from dayweave.core.activity_resolver import ActivityResolver
from dayweave.core.activity_suggestions import ActivitySuggester, parse_suggestions
from dayweave.core.day_planner import DayPlanner
from dayweave.core.itinerary_generator import ItineraryGenerator
from dayweave.core.llm_provider import LLMProvider
from dayweave.core.places_service import PlacesService
from dayweave.core.settings import get_settings
from dayweave.core.travel_estimator import TravelEstimator

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_travel_estimator() -> TravelEstimator:
    settings = get_settings()
    return TravelEstimator(
        settings.google_maps_api_key or None,
        timeout_seconds=settings.travel_timeout_seconds,
        batch_size=settings.travel_batch_size,
        batch_pause_seconds=settings.travel_batch_pause_seconds,
    )


@lru_cache(maxsize=1)
def get_places_service() -> PlacesService | None:
    settings = get_settings()
    if not settings.google_maps_api_key:
        logger.warning("[Dependencies] GOOGLE_MAPS_API_KEY not set, activities will not be resolved")
        return None
    return PlacesService(settings.google_maps_api_key)


def get_activity_resolver() -> ActivityResolver:
    settings = get_settings()
    return ActivityResolver(get_places_service(), radius=settings.places_search_radius)


@lru_cache(maxsize=1)
def get_llm_provider() -> LLMProvider:
    """Raises AuthenticationFailure or ProviderUnavailable when the model cannot be set up."""
    settings = get_settings()
    return LLMProvider(settings.aisuite_model, api_key=settings.google_api_key or None)


@lru_cache(maxsize=1)
def get_itinerary_generator() -> ItineraryGenerator:
    settings = get_settings()
    return ItineraryGenerator(
        get_llm_provider(),
        max_attempts=settings.generation_max_attempts,
        backoff_seconds=settings.generation_backoff_seconds,
    )


def get_activity_suggester() -> ActivitySuggester:
    settings = get_settings()
    generator = ItineraryGenerator(
        get_llm_provider(),
        max_attempts=settings.generation_max_attempts,
        backoff_seconds=settings.generation_backoff_seconds,
        parse=parse_suggestions,
        name="ActivitySuggester",
    )
    return ActivitySuggester(generator)


def get_day_planner() -> DayPlanner:
    settings = get_settings()
    return DayPlanner(
        get_itinerary_generator(),
        get_travel_estimator(),
        max_walking_distance=settings.max_walking_distance,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    try:
        yield
    finally:
        if get_travel_estimator.cache_info().currsize:
            await get_travel_estimator().aclose()
