import uuid
from datetime import datetime, timezone
from typing import Annotated, Any, Literal, Union

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from dayweave.core.travel_time_utils import (
    TravelMode,
    add_minutes_to_time,
    duration_between,
    minutes_to_time_string,
    parse_time_to_minutes,
)

DEFAULT_PREFERRED_MODES: list[TravelMode] = ["walking", "driving", "transit"]


def _normalize_clock(value: Any) -> str | None:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return minutes_to_time_string(parse_time_to_minutes(str(value)))


class CamelModel(BaseModel):
    """Snake-case attributes, camelCase JSON."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# =============================================================================
# Itinerary events
# =============================================================================


class ActivityEvent(CamelModel):
    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    name: str
    description: str = ""
    location: str = Field("", description="Free-text place name")
    start_time: str | None = Field(None, description="Local time, e.g. '09:00'")
    end_time: str | None = Field(None, description="Local time, e.g. '10:30'")
    duration: int = Field(0, ge=0, description="Minutes")
    cost: float = Field(0.0, ge=0)
    activity_type: list[str] = Field(default_factory=list)
    address: str = ""
    rating: float | None = Field(
        None,
        ge=0,
        le=5,
        validation_alias=AliasChoices("rating", "ratings"),
    )
    image_url: str | None = None
    booking_required: bool = False
    booking_link: str | None = None
    booking_advice: str | None = None

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def _validate_clock(cls, value: Any) -> str | None:
        return _normalize_clock(value)

    @field_validator("cost", "duration", mode="before")
    @classmethod
    def _none_is_zero(cls, value: Any) -> Any:
        return 0 if value is None else value

    @field_validator("activity_type", mode="before")
    @classmethod
    def _single_tag_to_list(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [value]
        return value or []

    @model_validator(mode="after")
    def _sync_duration(self) -> "ActivityEvent":
        # Fixed start/end times win over whatever duration was supplied
        if self.start_time and self.end_time:
            self.duration = duration_between(self.start_time, self.end_time)
        elif self.start_time and self.duration:
            self.end_time = add_minutes_to_time(self.start_time, self.duration)
        return self


class RouteStep(CamelModel):
    instruction: str
    distance: str = ""
    duration: str = ""


class RouteDetail(CamelModel):
    steps: list[RouteStep] = Field(default_factory=list)
    polyline: str | None = Field(None, description="Encoded overview polyline")


class TravelEvent(CamelModel):
    id: str = Field(default_factory=lambda: f"travel-{uuid.uuid4().hex}")
    start_location: str
    end_location: str
    start_time: str
    end_time: str
    duration: int = Field(..., ge=0, description="Minutes")
    mode: TravelMode = "walking"
    cost: float = Field(0.0, ge=0)
    distance: float = Field(0.0, ge=0, description="Miles")
    booking_required: bool = False
    booking_link: str | None = None
    booking_advice: str | None = None
    route_detail: RouteDetail | None = None

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def _validate_clock(cls, value: Any) -> str:
        normalized = _normalize_clock(value)
        if normalized is None:
            raise ValueError("travel times are required")
        return normalized


class ActivityItem(CamelModel):
    type: Literal["activity"] = "activity"
    data: ActivityEvent


class TravelItem(CamelModel):
    type: Literal["travel"] = "travel"
    data: TravelEvent


ItineraryEvent = Annotated[Union[ActivityItem, TravelItem], Field(discriminator="type")]


class Itinerary(CamelModel):
    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    title: str = ""
    date: str = ""
    location: str = ""
    events: list[ItineraryEvent] = Field(default_factory=list)
    total_cost: float = 0.0
    total_duration: int = 0
    is_fallback: bool = False

    @model_validator(mode="after")
    def _check_sequence_and_totals(self) -> "Itinerary":
        if not self.events:
            raise ValueError("an itinerary needs at least one activity")

        for index, event in enumerate(self.events):
            expected = "activity" if index % 2 == 0 else "travel"
            if event.type != expected:
                raise ValueError(
                    f"event {index} should be '{expected}' but is '{event.type}'"
                )
        if self.events[-1].type != "activity":
            raise ValueError("an itinerary must end with an activity")

        self.total_cost = round(sum(e.data.cost for e in self.events), 2)
        self.total_duration = sum(e.data.duration for e in self.events)
        return self

    def activities(self) -> list[ActivityEvent]:
        return [e.data for e in self.events if e.type == "activity"]

    def travels(self) -> list[TravelEvent]:
        return [e.data for e in self.events if e.type == "travel"]


# =============================================================================
# Planning inputs
# =============================================================================


class TravelOptions(CamelModel):
    preferred_modes: list[TravelMode] = Field(
        default_factory=lambda: list(DEFAULT_PREFERRED_MODES),
        min_length=1,
        description="Candidate transport modes, in order of preference",
    )
    max_walking_distance: float = Field(
        1.5, gt=0, description="Miles before a faster mode is favoured"
    )
    avoid_highways: bool = False
    avoid_tolls: bool = False


class ActivitySuggestion(CamelModel):
    """An abstract activity proposed by the model, not yet tied to a venue."""

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    category: str = ""
    search_query: str = Field(
        ..., min_length=1, description="e.g. 'Tate Modern near Southwark, London'"
    )
    description: str = ""
    suggested_duration: int = Field(60, ge=0, description="Minutes")
    estimated_cost: float = Field(0.0, ge=0)
    time_of_day: str = ""
    activity_type: list[str] = Field(default_factory=list)


class MealPreferences(CamelModel):
    include_coffee: bool = False
    include_lunch: bool = True
    include_dinner: bool = False


class PlanPreferences(CamelModel):
    start_location: str = Field(..., min_length=1)
    group_size: int = Field(1, ge=1)
    budget_range: str = "moderate"
    activity_types: list[str] = Field(default_factory=list)
    transport_modes: list[TravelMode] = Field(default_factory=list)
    start_time: str = "09:00"
    end_time: str = "21:00"
    meal_preferences: MealPreferences | None = None

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def _validate_clock(cls, value: Any) -> str:
        normalized = _normalize_clock(value)
        if normalized is None:
            raise ValueError("time is required")
        return normalized


class PlanRequest(CamelModel):
    location: str = Field(..., min_length=1)
    date: str = Field(..., min_length=1, description="ISO date, e.g. '2025-06-14'")
    preferences: PlanPreferences
    surprise_mode: bool = False
    allow_fallback: bool = Field(
        True, description="Return a static plan instead of failing when generation is exhausted"
    )
    travel_options: TravelOptions | None = None


class ReconcileRequest(CamelModel):
    title: str = ""
    date: str = ""
    location: str = ""
    activities: list[ActivityEvent] = Field(..., min_length=1)
    options: TravelOptions = Field(default_factory=TravelOptions)


class TravelSegmentRequest(CamelModel):
    start_location: str = Field(..., min_length=1)
    end_location: str = Field(..., min_length=1)
    start_time: str = Field(..., min_length=1)
    options: TravelOptions = Field(default_factory=TravelOptions)


class EnhanceTravelRequest(CamelModel):
    events: list[ItineraryEvent] = Field(..., min_length=1)
    options: TravelOptions = Field(default_factory=TravelOptions)


class ResolveActivitiesRequest(CamelModel):
    user_location: str = Field(..., min_length=1)
    suggestions: list[ActivitySuggestion] = Field(..., min_length=1)


class ErrorResponse(BaseModel):
    error: str
    details: Any | None = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class SuggestionRequest(CamelModel):
    location: str = Field(..., min_length=1)
    activity_types: list[str] = Field(default_factory=list)
    budget_range: str = "moderate"
    group_size: int = Field(1, ge=1)
    count: int = Field(5, ge=1, le=10, description="Number of suggestions to ask for")
