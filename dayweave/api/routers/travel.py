from fastapi import APIRouter, Depends

from dayweave.api.dependencies import get_travel_estimator
from dayweave.core.schemas import (
    EnhanceTravelRequest,
    ItineraryEvent,
    TravelEvent,
    TravelSegmentRequest,
)
from dayweave.core.travel_estimator import TravelEstimator

router = APIRouter(prefix="/travel", tags=["travel"])


@router.post("/segment", response_model=TravelEvent)
async def travel_segment(
    request: TravelSegmentRequest,
    estimator: TravelEstimator = Depends(get_travel_estimator),
) -> TravelEvent:
    return await estimator.estimate(
        request.start_location, request.end_location, request.start_time, request.options
    )


@router.post("/enhance", response_model=list[ItineraryEvent])
async def enhance_travel(
    request: EnhanceTravelRequest,
    estimator: TravelEstimator = Depends(get_travel_estimator),
) -> list:
    """Re-estimate every travel event with real routing data, keeping ids."""
    return await estimator.enhance_itinerary(request.events, request.options)
