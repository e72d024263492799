import asyncio

import pytest

from dayweave.core.directions_service import RouteResult
from dayweave.core.errors import AuthenticationFailure, InvalidInput, ProviderUnavailable
from dayweave.core.schemas import ActivityEvent, ActivityItem, TravelEvent, TravelItem, TravelOptions
from dayweave.core.travel_estimator import (
    ClientState,
    TravelEstimator,
    is_better_option,
)


class FixedRandom:
    def __init__(self, value: float):
        self.value = value

    def random(self) -> float:
        return self.value


class FakeDirections:
    """Routes by mode from a table; values may be RouteResult, Exception or (delay, RouteResult)."""

    def __init__(self, table):
        self.table = table
        self.calls = []
        self.cancelled = []
        self.closed = False

    async def route(self, origin, destination, mode, avoid_highways=False, avoid_tolls=False):
        self.calls.append((origin, destination, mode, avoid_highways, avoid_tolls))
        outcome = self.table.get(mode, ProviderUnavailable(f"no {mode}"))
        if isinstance(outcome, tuple):
            delay, outcome = outcome
            try:
                await asyncio.sleep(delay)
            except asyncio.CancelledError:
                self.cancelled.append(mode)
                raise
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    async def aclose(self):
        self.closed = True


def route(mode, minutes, miles):
    return RouteResult(mode=mode, distance_miles=miles, duration_minutes=minutes)


def travel(mode, duration, cost=0, distance=1.0):
    return TravelEvent(
        start_location="A",
        end_location="B",
        start_time="10:00",
        end_time="10:30",
        duration=duration,
        mode=mode,
        cost=cost,
        distance=distance,
    )


def estimator_with(directions, **kwargs):
    return TravelEstimator(directions_factory=lambda: directions, **kwargs)


def test_short_walk_beats_faster_drive():
    walk = travel("walking", 12, distance=0.6)
    drive = travel("driving", 4, cost=1, distance=0.6)
    assert is_better_option(walk, drive, 1.5)
    assert not is_better_option(drive, walk, 1.5)


def test_faster_option_wins_outside_tolerance():
    drive = travel("driving", 20, cost=4, distance=8)
    transit = travel("transit", 28, cost=2, distance=8)
    assert is_better_option(drive, transit)
    assert not is_better_option(transit, drive)


def test_cheaper_option_wins_within_tolerance():
    drive = travel("driving", 20, cost=4, distance=8)
    transit = travel("transit", 23, cost=2, distance=8)
    assert is_better_option(transit, drive)


def test_equal_options_keep_current():
    first = travel("driving", 20, cost=2)
    second = travel("transit", 20, cost=2)
    assert not is_better_option(second, first)


@pytest.mark.asyncio
async def test_picks_short_walk_from_provider():
    directions = FakeDirections(
        {
            "walking": route("walking", 12, 0.6),
            "driving": route("driving", 4, 0.7),
            "transit": ProviderUnavailable("ZERO_RESULTS"),
        }
    )
    estimator = estimator_with(directions)

    event = await estimator.estimate("Tate Modern", "Borough Market", "10:00")

    assert event.mode == "walking"
    assert event.duration == 12
    assert event.start_time == "10:00"
    assert event.end_time == "10:12"
    assert event.distance == 0.6
    assert event.id.startswith("travel-")
    assert estimator.state is ClientState.CONNECTED
    assert [call[2] for call in directions.calls] == ["walking", "driving", "transit"]


@pytest.mark.asyncio
async def test_transit_choice_carries_booking_details():
    directions = FakeDirections({"transit": route("transit", 25, 3.0)})
    estimator = estimator_with(directions)
    options = TravelOptions(preferred_modes=["transit"], avoid_tolls=True)

    event = await estimator.estimate("Kings Cross", "Greenwich", "23:50", options)

    assert event.mode == "transit"
    assert event.cost == 5
    assert event.booking_required is True
    assert "travelmode=transit" in event.booking_link
    assert "origin=Kings%20Cross" in event.booking_link
    assert event.booking_advice == "Check local transit apps for real-time schedules"
    assert event.end_time == "00:15"
    assert directions.calls[0][4] is True


@pytest.mark.asyncio
async def test_all_modes_failing_uses_fallback():
    directions = FakeDirections({})
    estimator = estimator_with(directions, rng=FixedRandom(0.0))

    event = await estimator.estimate("A", "B", "09:00")

    assert event.mode == "walking"
    assert event.distance == 0.1
    assert event.duration == 5
    assert event.route_detail is None


@pytest.mark.asyncio
async def test_timeout_uses_fallback_and_cancels_stragglers():
    directions = FakeDirections(
        {
            "walking": route("walking", 10, 0.5),
            "driving": (10, route("driving", 3, 0.5)),
        }
    )
    estimator = estimator_with(directions, rng=FixedRandom(0.95), timeout_seconds=0.05)
    options = TravelOptions(preferred_modes=["walking", "driving"])

    event = await estimator.estimate("A", "B", "09:00", options)
    await asyncio.sleep(0.01)

    # fallback: 2.0 miles is past the walking limit, so it drives
    assert event.mode == "driving"
    assert event.distance == 2.0
    assert event.cost == 1
    assert directions.cancelled == ["driving"]


@pytest.mark.asyncio
async def test_rejected_key_marks_routing_unavailable():
    directions = FakeDirections({"walking": AuthenticationFailure("REQUEST_DENIED")})
    estimator = estimator_with(directions, rng=FixedRandom(0.0))
    options = TravelOptions(preferred_modes=["walking"])

    await estimator.estimate("A", "B", "09:00", options)
    assert estimator.state is ClientState.UNAVAILABLE

    await estimator.estimate("A", "B", "09:00", options)
    assert len(directions.calls) == 1


@pytest.mark.asyncio
async def test_no_api_key_means_fallback_only():
    estimator = TravelEstimator(None, rng=FixedRandom(0.5))

    event = await estimator.estimate("A", "B", "09:00")

    assert estimator.state is ClientState.UNAVAILABLE
    assert event.mode == "walking"
    assert event.distance == 1.1
    assert event.duration == 22


@pytest.mark.asyncio
async def test_aclose_disconnects():
    directions = FakeDirections({"walking": route("walking", 10, 0.5)})
    estimator = estimator_with(directions)
    assert estimator.state is ClientState.DISCONNECTED

    await estimator.estimate("A", "B", "09:00")
    await estimator.aclose()

    assert directions.closed
    assert estimator.state is ClientState.DISCONNECTED


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "start,end,depart_at",
    [("", "B", "09:00"), ("A", "", "09:00"), ("A", "B", ""), ("A", "B", "25:00")],
)
async def test_missing_inputs_raise(start, end, depart_at):
    estimator = TravelEstimator(None)
    with pytest.raises(InvalidInput):
        await estimator.estimate(start, end, depart_at)


@pytest.mark.parametrize("value", [0.0, 0.3, 0.45, 0.7, 0.99])
def test_fallback_never_below_five_minutes(value):
    estimator = TravelEstimator(None, rng=FixedRandom(value))
    for modes in (["walking"], ["walking", "cycling"], ["transit"], ["driving", "transit"]):
        event = estimator.fallback_estimate("A", "B", "12:00", TravelOptions(preferred_modes=modes))
        assert event.duration >= 5
        assert 0.1 <= event.distance <= 2.1


def test_fallback_prefers_cycling_over_walking_when_allowed():
    estimator = TravelEstimator(None, rng=FixedRandom(0.5))
    options = TravelOptions(preferred_modes=["walking", "cycling"])

    event = estimator.fallback_estimate("A", "B", "12:00", options)

    assert event.mode == "cycling"
    assert event.duration == 6
    assert event.cost == 0


def _activity(name, start, end):
    return ActivityItem(data=ActivityEvent(name=name, location=name, start_time=start, end_time=end))


@pytest.mark.asyncio
async def test_enhance_itinerary_preserves_ids_and_batches():
    directions = FakeDirections({"walking": route("walking", 9, 0.4)})
    sleeps = []

    async def fake_sleep(seconds):
        sleeps.append(seconds)

    estimator = estimator_with(directions, batch_size=1, batch_pause_seconds=0.5, sleep=fake_sleep)
    broken = TravelEvent(
        id="travel-broken",
        start_location="",
        end_location="Pub",
        start_time="13:00",
        end_time="13:10",
        duration=10,
    )
    events = [
        _activity("Museum", "09:00", "10:00"),
        TravelItem(data=travel("driving", 30).model_copy(update={"id": "travel-keep"})),
        _activity("Cafe", "10:30", "11:00"),
        TravelItem(data=broken),
        _activity("Pub", "13:10", "14:00"),
    ]

    enhanced = await estimator.enhance_itinerary(events, TravelOptions(preferred_modes=["walking"]))

    assert [e.type for e in enhanced] == ["activity", "travel", "activity", "travel", "activity"]
    assert enhanced[1].data.id == "travel-keep"
    assert enhanced[1].data.mode == "walking"
    assert enhanced[1].data.duration == 9
    assert enhanced[3].data == broken
    assert enhanced[0] is events[0]
    assert sleeps == [0.5]
