from urllib.parse import unquote

from fastapi import APIRouter, Depends, HTTPException, Query, Response

from dayweave.api.dependencies import (
    get_activity_resolver,
    get_activity_suggester,
    get_places_service,
)
from dayweave.core.activity_resolver import ActivityResolver
from dayweave.core.activity_suggestions import ActivitySuggester
from dayweave.core.errors import ProviderUnavailable
from dayweave.core.places_service import PlacesService
from dayweave.core.schemas import (
    ActivityEvent,
    ActivitySuggestion,
    ResolveActivitiesRequest,
    SuggestionRequest,
)

router = APIRouter(prefix="/places", tags=["places"])


@router.post("/resolve", response_model=list[ActivityEvent])
def resolve_activities(
    request: ResolveActivitiesRequest,
    resolver: ActivityResolver = Depends(get_activity_resolver),
) -> list[ActivityEvent]:
    """Match each suggestion to a real venue, falling back to the suggestion text."""
    return resolver.resolve_all(request.suggestions, request.user_location)


@router.post("/suggestions", response_model=list[ActivitySuggestion])
async def suggest_activities(
    request: SuggestionRequest,
    suggester: ActivitySuggester = Depends(get_activity_suggester),
) -> list[ActivitySuggestion]:
    """Suggest activities for a location; a static list is served if the model fails."""
    return await suggester.suggest(request)


@router.get("/photo")
def get_place_photo(
    ref: str = Query(..., description="Google Places photo reference"),
    w: int = Query(1080, ge=1, le=1600, description="Maximum width in pixels"),
    places_service: PlacesService | None = Depends(get_places_service),
) -> Response:
    """
    Proxy endpoint for Google Places photos.
    Fetches the photo server-side so the Maps key never reaches the client.
    """
    if places_service is None:
        raise ProviderUnavailable("Places service is not configured")

    photo_reference = unquote(ref).strip()
    if not photo_reference:
        raise HTTPException(status_code=400, detail="Invalid photo reference")

    try:
        content, content_type = places_service.fetch_photo(photo_reference, max_width=w)
    except ProviderUnavailable as e:
        raise HTTPException(status_code=502, detail=f"Failed to fetch photo: {e.details}")

    return Response(
        content=content,
        media_type=content_type,
        headers={
            "Cache-Control": "public, max-age=31536000",  # Cache for 1 year
        },
    )
