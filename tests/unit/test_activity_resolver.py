import pytest

from dayweave.core.activity_resolver import (
    ActivityResolver,
    create_fallback_activity,
    estimate_cost_from_price_level,
)
from dayweave.core.errors import ProviderUnavailable
from dayweave.core.schemas import ActivitySuggestion


class FakePlaces:
    def __init__(self, places=(), details=None, search_error=None, photo_error=None):
        self.places = list(places)
        self.details = details
        self.search_error = search_error
        self.photo_error = photo_error
        self.searches = []

    def search_places(self, query, location, radius=5000):
        self.searches.append((query, location, radius))
        if self.search_error:
            raise self.search_error
        return self.places

    def get_place_details(self, place_id):
        return self.details

    def get_proxy_photo_url(self, photo_reference, max_width=1080):
        if self.photo_error:
            raise self.photo_error
        return f"/places/photo?ref={photo_reference}&w={max_width}"


def suggestion(query="Tate Modern near Southwark, London", **overrides):
    data = {
        "id": "s1",
        "category": "museum",
        "searchQuery": query,
        "description": "Modern art by the river",
        "suggestedDuration": 120,
        "estimatedCost": 12.5,
        "activityType": ["culture"],
    }
    data.update(overrides)
    return ActivitySuggestion.model_validate(data)


DETAILS = {
    "place_id": "p1",
    "name": "Tate Modern",
    "address": "Bankside, London SE1 9TG",
    "rating": 4.6,
    "price_level": 2,
    "photo_reference": "photo-1",
    "website": "https://www.tate.org.uk",
}


@pytest.mark.parametrize(
    "level,cost", [(0, 10), (1, 20), (2, 35), (3, 60), (4, 100), (None, 25), (7, 25)]
)
def test_price_level_ladder(level, cost):
    assert estimate_cost_from_price_level(level) == cost


def test_zero_results_fall_back_to_suggestion_text():
    places = FakePlaces(places=[])
    resolver = ActivityResolver(places, radius=5000)

    activity = resolver.resolve(suggestion(), "Southwark, London")

    assert activity.id == "s1"
    assert activity.name == "Tate Modern"
    assert activity.location == "Southwark, London"
    assert activity.cost == 12.5
    assert activity.duration == 120
    assert activity.image_url is None
    assert activity.start_time is None
    assert places.searches == [("Tate Modern near Southwark, London", "Southwark, London", 5000)]


def test_resolves_top_match_with_details():
    resolver = ActivityResolver(FakePlaces(places=[{"place_id": "p1"}], details=DETAILS))

    activity = resolver.resolve(suggestion(), "London")

    assert activity.name == "Tate Modern"
    assert activity.location == "Tate Modern"
    assert activity.cost == 35
    assert activity.address == "Bankside, London SE1 9TG"
    assert activity.rating == 4.6
    assert activity.image_url == "/places/photo?ref=photo-1&w=1080"
    assert activity.booking_link == "https://www.tate.org.uk"
    assert activity.description == "Modern art by the river"
    assert activity.activity_type == ["culture"]


def test_photo_failure_leaves_image_unset():
    places = FakePlaces(
        places=[{"place_id": "p1"}], details=DETAILS, photo_error=RuntimeError("quota")
    )

    activity = ActivityResolver(places).resolve(suggestion(), "London")

    assert activity.name == "Tate Modern"
    assert activity.image_url is None


def test_missing_details_fall_back():
    activity = ActivityResolver(FakePlaces(places=[{"place_id": "p1"}], details=None)).resolve(
        suggestion(), "London"
    )
    assert activity.location == "Southwark, London"
    assert activity.cost == 12.5


def test_lookup_errors_fall_back():
    places = FakePlaces(search_error=ProviderUnavailable("OVER_QUERY_LIMIT"))

    activity = ActivityResolver(places).resolve(suggestion(), "London")

    assert activity.name == "Tate Modern"


def test_no_places_service_always_falls_back():
    activities = ActivityResolver(None).resolve_all(
        [suggestion(), suggestion("Borough Market", id="s2")], "London"
    )

    assert [a.id for a in activities] == ["s1", "s2"]
    assert activities[1].name == "Borough Market"
    assert activities[1].location == "Borough Market"


def test_fallback_activity_keeps_tags():
    activity = create_fallback_activity(suggestion(activityType=["food", "outdoor"]))
    assert activity.activity_type == ["food", "outdoor"]
