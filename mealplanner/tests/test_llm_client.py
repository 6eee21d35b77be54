# tests/test_llm_client.py
import httpx
import pytest
from openai import APIConnectionError, APITimeoutError, AuthenticationError, BadRequestError, RateLimitError

from mealplanner.services.errors import ModelError
from mealplanner.services.llm_client import OpenAICompletionClient, _extract_content, _mask_key

REQUEST = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")


def api_status_error(cls, status):
    return cls("error", response=httpx.Response(status, request=REQUEST), body=None)


@pytest.fixture
def make_client(test_settings, dummy_openai):
    def _make(*outcomes):
        client = OpenAICompletionClient(test_settings, client=dummy_openai(outcomes))
        client.backoff = 0
        return client

    return _make


@pytest.mark.asyncio
async def test_complete_returns_text(make_client):
    client = make_client('{"ok": true}')
    text = await client.complete("hello", temperature=0.5, system="be brief", max_tokens=100)
    assert text == '{"ok": true}'

    req = client.openai_client.requests[0]
    assert req["model"] == "gpt-4o-mini"
    assert req["temperature"] == 0.5
    assert req["max_tokens"] == 100
    assert req["messages"] == [
        {"role": "system", "content": "be brief"},
        {"role": "user", "content": "hello"},
    ]


@pytest.mark.asyncio
async def test_default_max_tokens(make_client, test_settings):
    client = make_client("x")
    await client.complete("hello", temperature=0.7)
    req = client.openai_client.requests[0]
    assert req["max_tokens"] == test_settings.openai_max_tokens
    assert [m["role"] for m in req["messages"]] == ["user"]


@pytest.mark.asyncio
async def test_retries_transient_errors(make_client):
    client = make_client(
        api_status_error(RateLimitError, 429),
        APITimeoutError(request=REQUEST),
        "finally",
    )
    assert await client.complete("p", temperature=0.1) == "finally"
    assert len(client.openai_client.requests) == 3


@pytest.mark.asyncio
async def test_gives_up_after_max_attempts(make_client):
    client = make_client(*[APIConnectionError(request=REQUEST)] * 3)
    with pytest.raises(ModelError) as ei:
        await client.complete("p", temperature=0.1)
    assert ei.value.context["attempts"] == 3
    assert isinstance(ei.value.__cause__, APIConnectionError)


@pytest.mark.asyncio
async def test_auth_error_not_retried(make_client):
    client = make_client(api_status_error(AuthenticationError, 401), "unused")
    with pytest.raises(ModelError):
        await client.complete("p", temperature=0.1)
    assert len(client.openai_client.requests) == 1


@pytest.mark.asyncio
async def test_other_api_errors_not_retried(make_client):
    client = make_client(api_status_error(BadRequestError, 400), "unused")
    with pytest.raises(ModelError) as ei:
        await client.complete("p", temperature=0.1)
    assert ei.value.user_message == "Service temporarily unavailable. Please try again later."
    assert len(client.openai_client.requests) == 1


@pytest.mark.asyncio
async def test_empty_content_is_error(make_client):
    client = make_client("   ")
    with pytest.raises(ModelError):
        await client.complete("p", temperature=0.1)


@pytest.mark.asyncio
async def test_unconfigured_client_raises(test_settings):
    client = OpenAICompletionClient(test_settings)
    assert not client.configured
    with pytest.raises(ModelError):
        await client.complete("p", temperature=0.1)


def test_azure_settings_pick_deployment(test_settings, dummy_openai):
    azure = test_settings.model_copy(
        update={
            "azure_openai_endpoint": "https://example.openai.azure.com",
            "azure_openai_deployment_name": "meal-gpt",
        }
    )
    client = OpenAICompletionClient(azure, client=dummy_openai([]))
    assert azure.use_azure
    assert client.model == "meal-gpt"


def test_extract_content_from_dict():
    assert _extract_content({"choices": [{"message": {"content": "hi"}}]}) == "hi"
    assert _extract_content({"choices": []}) is None


def test_mask_key():
    assert _mask_key(None) == "(none)"
    assert _mask_key("sk-1234567890abcd") == "sk-1...abcd"
