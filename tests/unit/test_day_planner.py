import pytest

from dayweave.core.day_planner import DayPlanner, extract_activities, travel_options_for
from dayweave.core.errors import GenerationExhausted, MalformedResponse
from dayweave.core.schemas import PlanRequest
from dayweave.core.travel_estimator import TravelEstimator


class FixedRandom:
    def random(self):
        return 0.0


class StubGenerator:
    def __init__(self, draft=None, error=None):
        self.draft = draft
        self.error = error
        self.prompts = []

    async def generate(self, prompt, max_attempts=None):
        self.prompts.append(prompt)
        if self.error:
            raise self.error
        return self.draft


def plan_request(**overrides):
    data = {
        "location": "Bath, UK",
        "date": "2025-06-14",
        "preferences": {"startLocation": "Bath Spa station", "transportModes": ["walking"]},
    }
    data.update(overrides)
    return PlanRequest.model_validate(data)


DRAFT = {
    "title": "Georgian Bath",
    "events": [
        {
            "type": "activity",
            "data": {
                "name": "Roman Baths",
                "location": "Roman Baths",
                "startTime": "09:00",
                "endTime": "10:30",
                "cost": 27,
            },
        },
        {"type": "travel", "data": {"startLocation": "x", "mode": "rocket"}},
        {
            "type": "activity",
            "data": {
                "name": "Sally Lunn's",
                "location": "Sally Lunn's",
                "startTime": "10:45",
                "endTime": "11:45",
                "cost": 15,
            },
        },
        {"type": "activity", "data": {"name": "Somewhere", "location": "Nowhere"}},
        {"type": "activity", "data": {"name": "Bad", "startTime": "99:99"}},
    ],
}


def planner_with(generator):
    return DayPlanner(generator, TravelEstimator(None, rng=FixedRandom()))


def test_extract_activities_skips_travel_and_unschedulable_entries():
    activities = extract_activities(DRAFT)
    assert [a.name for a in activities] == ["Roman Baths", "Sally Lunn's"]


def test_travel_options_follow_preferences():
    options = travel_options_for(plan_request(), max_walking_distance=2.0)
    assert options.preferred_modes == ["walking"]
    assert options.max_walking_distance == 2.0

    explicit = plan_request(travelOptions={"preferredModes": ["driving"]})
    assert travel_options_for(explicit).preferred_modes == ["driving"]


@pytest.mark.asyncio
async def test_plan_day_reconciles_draft():
    generator = StubGenerator(draft=DRAFT)

    itinerary = await planner_with(generator).plan_day(plan_request())

    assert "Bath, UK" in generator.prompts[0]
    assert itinerary.title == "Georgian Bath"
    assert itinerary.location == "Bath, UK"
    assert [e.type for e in itinerary.events] == ["activity", "travel", "activity"]
    trip = itinerary.events[1].data
    assert (trip.start_time, trip.end_time, trip.duration) == ("10:30", "10:45", 15)
    assert trip.start_location == "Roman Baths"
    assert itinerary.total_cost == 42
    assert itinerary.total_duration == 90 + 15 + 60
    assert itinerary.is_fallback is False


@pytest.mark.asyncio
async def test_exhausted_generation_serves_fallback_plan():
    generator = StubGenerator(error=GenerationExhausted("failed", attempts=3))

    itinerary = await planner_with(generator).plan_day(plan_request())

    assert itinerary.is_fallback is True
    assert len(itinerary.activities()) == 3
    assert itinerary.activities()[0].start_time == "09:00"
    for trip, following in zip(itinerary.travels(), itinerary.activities()[1:]):
        assert trip.end_time == following.start_time


@pytest.mark.asyncio
async def test_exhausted_generation_raises_without_fallback():
    generator = StubGenerator(error=GenerationExhausted("failed", attempts=3))

    with pytest.raises(GenerationExhausted):
        await planner_with(generator).plan_day(plan_request(allowFallback=False))


@pytest.mark.asyncio
async def test_draft_without_usable_activities_serves_fallback():
    generator = StubGenerator(draft={"events": [{"type": "travel", "data": {}}]})

    itinerary = await planner_with(generator).plan_day(plan_request())

    assert itinerary.is_fallback is True
    assert len([e for e in itinerary.events if e.type == "activity"]) == 3


@pytest.mark.asyncio
async def test_draft_without_usable_activities_is_malformed_without_fallback():
    generator = StubGenerator(draft={"events": [{"type": "travel", "data": {}}]})

    with pytest.raises(MalformedResponse):
        await planner_with(generator).plan_day(plan_request(allowFallback=False))
