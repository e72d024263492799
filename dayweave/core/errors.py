"""
Error taxonomy shared by the planning core and the HTTP layer.
"""

from __future__ import annotations

from typing import Any


class DayWeaveError(RuntimeError):
    """Base class for planning errors that cross a component boundary."""

    error = "Planning failed"

    def __init__(self, message: str, details: Any | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class MalformedResponse(DayWeaveError):
    """The generation provider's text holds no recoverable JSON object."""

    error = "Malformed AI response"


class GenerationExhausted(DayWeaveError):
    """Every generation attempt failed; carries the last failure."""

    error = "Failed to generate itinerary"

    def __init__(
        self,
        message: str,
        attempts: int,
        last_error: Exception | None = None,
        failures: list[Any] | None = None,
    ) -> None:
        super().__init__(message, details=str(last_error) if last_error else None)
        self.attempts = attempts
        self.last_error = last_error
        self.failures = failures or []


class ProviderUnavailable(DayWeaveError):
    """A routing, places or generation provider could not be reached."""

    error = "Provider unavailable"


class InvalidInput(DayWeaveError):
    """A core entry point was called without its required fields."""

    error = "Invalid input"


class AuthenticationFailure(DayWeaveError):
    """A provider rejected (or never received) its credential."""

    error = "AI service unavailable"
