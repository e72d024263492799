"""
Draft itinerary generation with sanitizing and a bounded retry loop.
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Literal, Protocol

from dayweave.core.errors import (
    AuthenticationFailure,
    GenerationExhausted,
    MalformedResponse,
)
from dayweave.core.response_sanitizer import sanitize
from dayweave.core.schemas import PlanRequest

logger = logging.getLogger(__name__)

FailureReason = Literal["provider", "parse", "validation"]


class TextGenerator(Protocol):
    async def generate_text_async(self, prompt: str) -> str: ...


@dataclass
class AttemptFailure:
    attempt: int
    reason: FailureReason
    error: Exception


def parse_draft(raw_text: str) -> dict[str, Any]:
    """
    Sanitize and parse model output into a draft itinerary.

    Raises:
        MalformedResponse: no JSON object could be recovered
        ValueError: JSON parsed but has no ordered `events` list
    """
    cleaned = sanitize(raw_text)
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        raise MalformedResponse(
            f"AI response is not valid JSON: {exc}", details=cleaned[:200]
        ) from exc

    if not isinstance(data, dict) or not isinstance(data.get("events"), list):
        raise ValueError("AI response has no 'events' list")
    return data


class ItineraryGenerator:
    """
    Calls the text generator until its output parses.

    `parse` turns raw text into the result; it raises MalformedResponse for
    unrecoverable JSON and ValueError for JSON of the wrong shape. The default
    expects a draft itinerary.
    """

    def __init__(
        self,
        provider: TextGenerator,
        max_attempts: int = 3,
        backoff_seconds: float = 1.0,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        parse: Callable[[str], Any] = parse_draft,
        name: str = "ItineraryGenerator",
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.provider = provider
        self.max_attempts = max_attempts
        self.backoff_seconds = backoff_seconds
        self._sleep = sleep
        self._parse = parse
        self.name = name

    async def _attempt(self, prompt: str, attempt: int) -> Any:
        try:
            raw_text = await self.provider.generate_text_async(prompt)
        except AuthenticationFailure:
            raise
        except Exception as exc:
            return AttemptFailure(attempt, "provider", exc)

        try:
            return self._parse(raw_text)
        except MalformedResponse as exc:
            return AttemptFailure(attempt, "parse", exc)
        except ValueError as exc:
            return AttemptFailure(attempt, "validation", exc)

    async def generate(self, prompt: str, max_attempts: int | None = None) -> Any:
        """
        Generate and parse one response.

        Network and parse failures share one attempt budget. An authentication
        failure is raised at once since a bad credential cannot recover.

        Returns:
            The parsed result, unmodified

        Raises:
            AuthenticationFailure: the provider rejected its credential
            GenerationExhausted: every attempt failed; carries each failure
        """
        max_attempts = self.max_attempts if max_attempts is None else max_attempts
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

        failures: list[AttemptFailure] = []
        for attempt in range(1, max_attempts + 1):
            outcome = await self._attempt(prompt, attempt)
            if not isinstance(outcome, AttemptFailure):
                if attempt > 1:
                    logger.info(f"[{self.name}] Succeeded on attempt {attempt}")
                return outcome

            failures.append(outcome)
            logger.warning(
                f"[{self.name}] Attempt {attempt}/{max_attempts} failed "
                f"({outcome.reason}): {outcome.error}"
            )
            if attempt < max_attempts:
                await self._sleep(self.backoff_seconds)

        raise GenerationExhausted(
            f"Generation failed after {max_attempts} attempts",
            attempts=max_attempts,
            last_error=failures[-1].error,
            failures=failures,
        )


def build_itinerary_prompt(request: PlanRequest) -> str:
    prefs = request.preferences
    meals = ""
    if prefs.meal_preferences:
        meals = (
            "\n- Meal Preferences:"
            f"\n  * Morning Coffee: {prefs.meal_preferences.include_coffee}"
            f"\n  * Lunch: {prefs.meal_preferences.include_lunch}"
            f"\n  * Dinner: {prefs.meal_preferences.include_dinner}"
        )

    return f"""You are an expert local travel guide creating a day itinerary for {request.location} on {request.date}.

User Preferences:
- Start Location: {prefs.start_location}
- Group Size: {prefs.group_size} people
- Budget: {prefs.budget_range}
- Activities: {', '.join(prefs.activity_types) or 'Any'}
- Transport: {', '.join(prefs.transport_modes) or 'Any'}
- Time: {prefs.start_time} to {prefs.end_time}
- Surprise Mode: {request.surprise_mode}{meals}

Generate a JSON response with this exact structure:
{{
  "title": "Engaging day plan title",
  "events": [
    {{
      "type": "activity",
      "data": {{
        "id": "unique_id",
        "name": "Activity name",
        "description": "Detailed description",
        "location": "Specific venue name",
        "startTime": "HH:MM",
        "endTime": "HH:MM",
        "duration": minutes_as_number,
        "cost": cost_in_pounds,
        "activityType": ["outdoor", "culture"],
        "address": "Full address",
        "rating": 4.5
      }}
    }},
    {{
      "type": "travel",
      "data": {{
        "startLocation": "Previous location",
        "endLocation": "Next location",
        "startTime": "HH:MM",
        "endTime": "HH:MM",
        "duration": minutes_as_number,
        "mode": "walking",
        "cost": cost_in_pounds,
        "distance": distance_in_miles
      }}
    }}
  ]
}}

REQUIREMENTS:
- Include 4-6 activities with travel between them, in chronological order
- Leave realistic gaps between activities for travel
- Use real venue names and accurate addresses for {request.location}
- For surprise mode: focus on hidden gems and unique experiences
- Ensure activities are open on {request.date}
- Keep within the specified budget
- Use only double quotes; return ONLY valid JSON, no additional text"""
