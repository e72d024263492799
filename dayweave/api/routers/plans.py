import logging

from fastapi import APIRouter, Depends

from dayweave.api.dependencies import get_day_planner, get_travel_estimator
from dayweave.core.day_planner import DayPlanner
from dayweave.core.itinerary_reconciler import assemble_itinerary, reconcile
from dayweave.core.schemas import Itinerary, PlanRequest, ReconcileRequest
from dayweave.core.travel_estimator import TravelEstimator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/plans", tags=["plans"])


@router.post("/generate", response_model=Itinerary)
async def generate_plan(
    request: PlanRequest, planner: DayPlanner = Depends(get_day_planner)
) -> Itinerary:
    """Generate a full day itinerary with travel between activities."""
    logger.info(f"[Plans] Generating plan for {request.location} on {request.date}")
    return await planner.plan_day(request)


@router.post("/reconcile", response_model=Itinerary)
async def reconcile_plan(
    request: ReconcileRequest,
    estimator: TravelEstimator = Depends(get_travel_estimator),
) -> Itinerary:
    """Rebuild the travel between already scheduled activities."""
    travels = await reconcile(request.activities, estimator, request.options)
    return assemble_itinerary(
        request.activities,
        travels,
        title=request.title,
        date=request.date,
        location=request.location,
    )
