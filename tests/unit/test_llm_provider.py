import httpx
import pytest

from dayweave.core.errors import AuthenticationFailure, ProviderUnavailable
from dayweave.core.llm_provider import LLMProvider, is_auth_error


def provider_raising(error=None, reply="ok"):
    """An LLMProvider with no SDK client; `chat` raises `error` or returns `reply`."""
    provider = object.__new__(LLMProvider)
    provider.model = "openai:gpt-4o-mini"
    provider._client = None
    provider._genai_model = None
    provider.prompts = []

    def chat(messages, temperature=1.0):
        provider.prompts.append(messages[-1]["content"])
        if error is not None:
            raise error
        return reply

    provider.chat = chat
    return provider


def status_error(code):
    request = httpx.Request("POST", "https://llm.example/v1/chat")
    response = httpx.Response(code, request=request)
    return httpx.HTTPStatusError(f"HTTP {code}", request=request, response=response)


class CodedError(Exception):
    def __init__(self, message, status_code):
        super().__init__(message)
        self.status_code = status_code


@pytest.mark.parametrize("code", [401, 403])
def test_http_auth_statuses_are_authentication_failures(code):
    provider = provider_raising(status_error(code))

    with pytest.raises(AuthenticationFailure) as exc:
        provider.generate_text("plan my day")

    assert isinstance(exc.value.__cause__, httpx.HTTPStatusError)


def test_google_unauthenticated_is_authentication_failure():
    google_exceptions = pytest.importorskip("google.api_core.exceptions")
    provider = provider_raising(google_exceptions.Unauthenticated("key expired"))

    with pytest.raises(AuthenticationFailure):
        provider.generate_text("plan my day")


def test_invalid_api_key_message_is_authentication_failure():
    provider = provider_raising(Exception("API key not valid. Please pass a valid API key."))

    with pytest.raises(AuthenticationFailure) as exc:
        provider.generate_text("plan my day")

    assert "API key not valid" in exc.value.details


def test_status_code_attribute_is_checked():
    provider = provider_raising(CodedError("forbidden", status_code=403))

    with pytest.raises(AuthenticationFailure):
        provider.generate_text("plan my day")


def test_server_error_is_provider_unavailable():
    provider = provider_raising(status_error(500))

    with pytest.raises(ProviderUnavailable):
        provider.generate_text("plan my day")


def test_timeout_is_provider_unavailable():
    provider = provider_raising(httpx.ReadTimeout("timed out"))

    with pytest.raises(ProviderUnavailable) as exc:
        provider.generate_text("plan my day")

    assert exc.value.details == "timed out"


def test_is_auth_error_ignores_ordinary_failures():
    assert not is_auth_error(ValueError("rate limited, try later"))
    assert not is_auth_error(CodedError("overloaded", status_code=529))


def test_generate_text_returns_reply():
    provider = provider_raising(reply='{"events": []}')

    assert provider.generate_text("plan my day") == '{"events": []}'
    assert provider.prompts == ["plan my day"]


@pytest.mark.asyncio
async def test_generate_text_async_translates_errors():
    provider = provider_raising(status_error(401))

    with pytest.raises(AuthenticationFailure):
        await provider.generate_text_async("plan my day")
