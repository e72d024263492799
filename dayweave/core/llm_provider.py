from __future__ import annotations

import asyncio
import logging
import os
from typing import Any

import aisuite as ai  # type: ignore
import httpx

try:
    import google.generativeai as genai  # type: ignore
    from google.api_core import exceptions as google_exceptions  # type: ignore
except Exception:
    genai = None  # optional
    google_exceptions = None

from dayweave.core.errors import AuthenticationFailure, ProviderUnavailable

logger = logging.getLogger(__name__)

_AUTH_STATUS_CODES = {401, 403}
_AUTH_MARKERS = ("api key", "api_key", "unauthorized", "unauthenticated", "permission denied")


def is_auth_error(exc: Exception) -> bool:
    """True when a provider exception means the credential was rejected."""
    if google_exceptions is not None and isinstance(
        exc, (google_exceptions.Unauthenticated, google_exceptions.PermissionDenied)
    ):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code in _AUTH_STATUS_CODES
    status = getattr(exc, "status_code", None) or getattr(exc, "code", None)
    if status in _AUTH_STATUS_CODES:
        return True
    message = str(exc).lower()
    return any(marker in message for marker in _AUTH_MARKERS)


class LLMProvider:
    def __init__(self, model: str, api_key: str | None = None) -> None:
        self.model = model
        self._client = None
        self._genai_model: Any | None = None

        # Route to google-generativeai if model starts with google-genai:
        if self.model.startswith("google-genai:"):
            if genai is None:
                raise ProviderUnavailable("google-generativeai is not installed")
            api_key = api_key or os.getenv("GOOGLE_API_KEY")
            if not api_key:
                raise AuthenticationFailure("GOOGLE_API_KEY is not set")
            genai.configure(api_key=api_key)
            model_id = self.model.split(":", 1)[1]
            self._genai_model = genai.GenerativeModel(model_id)
        else:
            try:
                self._client = ai.Client()
            except Exception as exc:  # fail fast if aisuite cannot initialize
                raise ProviderUnavailable("Failed to initialize aisuite client") from exc

    def chat(self, messages: list[dict[str, Any]], temperature: float = 1.0) -> str:
        """Send a chat completion request. messages: list of dicts with keys: role (system|user|assistant), content (str)"""
        if self._genai_model is not None:
            # Map OpenAI-style messages to a single prompt for simplicity
            prompt = "\n".join(
                f"{m.get('role','user')}: {m.get('content','')}" for m in messages
            )
            response = self._genai_model.generate_content(
                prompt, generation_config={"temperature": temperature}
            )
            return response.text or ""
        else:
            resp = self._client.chat.completions.create(
                model=self.model,
                messages=messages,
                temperature=temperature,
            )
            return resp.choices[0].message.content or ""

    def generate_text(self, prompt: str, temperature: float = 0.7) -> str:
        """
        Single-prompt generation with provider errors translated.

        Raises:
            AuthenticationFailure: credential missing or rejected (not retryable)
            ProviderUnavailable: any other provider failure (retryable)
        """
        try:
            return self.chat([{"role": "user", "content": prompt}], temperature)
        except Exception as exc:
            if is_auth_error(exc):
                raise AuthenticationFailure(
                    "Generation provider rejected the credential", details=str(exc)
                ) from exc
            logger.warning(f"[LLMProvider] {self.model} request failed: {exc}")
            raise ProviderUnavailable(
                "Generation provider request failed", details=str(exc)
            ) from exc

    async def generate_text_async(self, prompt: str, temperature: float = 0.7) -> str:
        """Async version of generate_text. Runs the blocking SDK call in a worker thread."""
        return await asyncio.to_thread(self.generate_text, prompt, temperature)
