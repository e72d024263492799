"""
AI activity suggestions for a location, with a static fallback list.

Suggestions are abstract ("Tate Modern near Southwark, London"); the
ActivityResolver ties them to real venues.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from pydantic import ValidationError

from dayweave.core.errors import GenerationExhausted, MalformedResponse
from dayweave.core.itinerary_generator import ItineraryGenerator
from dayweave.core.response_sanitizer import sanitize, strip_code_fences
from dayweave.core.schemas import ActivitySuggestion, SuggestionRequest

logger = logging.getLogger(__name__)

# (name, category, minutes, cost, tags)
FALLBACK_SUGGESTIONS: list[tuple[str, str, int, float, list[str]]] = [
    ("Local Walk", "outdoor", 60, 0, ["outdoor"]),
    ("Independent Coffee Shop", "cafe", 45, 5, ["food"]),
    ("Local Museum", "museum", 90, 10, ["culture"]),
    ("Central Park", "park", 60, 0, ["outdoor", "relaxation"]),
    ("Local Market", "market", 60, 15, ["food", "shopping"]),
]


def parse_suggestions(raw_text: str) -> list[dict[str, Any]]:
    """
    Sanitize and parse model output into a list of suggestion objects.

    Accepts a bare JSON array or an object with a `suggestions` list.

    Raises:
        MalformedResponse: no JSON could be recovered
        ValueError: JSON parsed but holds no non-empty suggestion list
    """
    text = strip_code_fences(raw_text or "")
    array_start = text.find("[")
    object_start = text.find("{")
    if array_start != -1 and (object_start == -1 or array_start < object_start):
        array_end = text.rfind("]")
        if array_end > array_start:
            text = '{"suggestions": ' + text[array_start : array_end + 1] + "}"

    cleaned = sanitize(text)
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        raise MalformedResponse(
            f"AI response is not valid JSON: {exc}", details=cleaned[:200]
        ) from exc

    items = data.get("suggestions") if isinstance(data, dict) else None
    if not isinstance(items, list) or not items:
        raise ValueError("AI response has no 'suggestions' list")
    return items


def to_suggestions(items: list[Any]) -> list[ActivitySuggestion]:
    suggestions: list[ActivitySuggestion] = []
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            continue
        data = dict(item)
        # Older prompt shape: a named venue with a location instead of a query
        if not data.get("searchQuery") and data.get("name"):
            location = data.get("location")
            data["searchQuery"] = f"{data['name']} near {location}" if location else data["name"]
        try:
            suggestions.append(ActivitySuggestion.model_validate(data))
        except ValidationError as e:
            logger.warning(f"[ActivitySuggester] Skipping invalid suggestion {index}: {e}")
    return suggestions


def fallback_suggestions(request: SuggestionRequest) -> list[ActivitySuggestion]:
    return [
        ActivitySuggestion(
            id=f"fallback-{index}",
            category=category,
            search_query=f"{name} near {request.location}",
            description=f"{name} around {request.location}",
            suggested_duration=minutes,
            estimated_cost=cost,
            activity_type=tags,
        )
        for index, (name, category, minutes, cost, tags) in enumerate(
            FALLBACK_SUGGESTIONS[: request.count], start=1
        )
    ]


def build_suggestion_prompt(request: SuggestionRequest) -> str:
    return f"""Generate {request.count} activity suggestions for {request.location} based on these preferences:
- Budget: {request.budget_range}
- Activities: {', '.join(request.activity_types) or 'Any'}
- Group Size: {request.group_size}

Return ONLY a JSON array with this structure:
[
  {{
    "id": "unique_id",
    "category": "museum",
    "searchQuery": "Specific venue name near {request.location}",
    "description": "Why it is worth visiting",
    "suggestedDuration": minutes_as_number,
    "estimatedCost": cost_in_pounds,
    "timeOfDay": "morning",
    "activityType": ["culture"]
  }}
]
Use only double quotes and no additional text."""


class ActivitySuggester:
    """Asks the model for suggestions; degrades to a static list."""

    def __init__(self, generator: ItineraryGenerator) -> None:
        self.generator = generator

    async def suggest(self, request: SuggestionRequest) -> list[ActivitySuggestion]:
        """
        Raises:
            AuthenticationFailure: the generation provider rejected its key
        """
        try:
            items = await self.generator.generate(build_suggestion_prompt(request))
        except GenerationExhausted as e:
            logger.warning(f"[ActivitySuggester] Generation exhausted, using fallback list: {e}")
            return fallback_suggestions(request)

        suggestions = to_suggestions(items)[: request.count]
        if not suggestions:
            logger.warning("[ActivitySuggester] No valid suggestions, using fallback list")
            return fallback_suggestions(request)
        return suggestions
