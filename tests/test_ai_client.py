import json

import httpx
import pytest

from coach.ai_client import (
    PROVIDERS,
    AIClient,
    Credential,
    ProviderError,
    is_usable_key,
    read_chat_reply,
    read_generated_text,
    select_credential,
)
from coach.config import Settings
from coach.domain import AISettings


def chat_body(content):
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


class Recorder:
    """MockTransport handler that records requests and replies per host."""

    def __init__(self, replies):
        self.replies = replies
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        status, body = self.replies[request.url.host]
        return httpx.Response(status, json=body)

    @property
    def hosts(self):
        return [r.url.host for r in self.requests]


def make_client(recorder, env_keys=None, ai_settings=AISettings(), default_provider="groq"):
    settings = Settings(env_keys=env_keys or {}, default_provider=default_provider)
    return AIClient(settings, ai_settings, transport=httpx.MockTransport(recorder))


def test_placeholder_keys_are_not_usable():
    assert not is_usable_key("")
    assert not is_usable_key(None)
    assert not is_usable_key("your_groq_api_key")
    assert not is_usable_key("gsk_paste_here")
    assert is_usable_key("gsk_abc123")


def test_credential_precedence():
    settings = Settings(env_keys={"groq": "gsk_env"})
    user = AISettings(provider="openai", api_key="sk-user")
    cred = select_credential(settings, user).get_or_else(None)
    assert cred.source == "environment"
    assert cred.api_key == "gsk_env"

    cred = select_credential(Settings(env_keys={"groq": "your_key_here"}), user).get_or_else(None)
    assert cred.source == "user"
    assert cred.provider.key == "openai"

    assert select_credential(Settings(), AISettings()).is_none()


def test_credentials_dedupe_and_disable():
    recorder = Recorder({})
    same = make_client(recorder, {"groq": "gsk_same"}, AISettings(provider="groq", api_key="gsk_same"))
    assert len(same.credentials()) == 1

    disabled = make_client(recorder, {"groq": "gsk_env"}, AISettings(enabled=False))
    assert disabled.credentials() == ()
    assert disabled.api_status().type == "fallback"


@pytest.mark.asyncio
async def test_no_request_without_usable_key():
    recorder = Recorder({})
    client = make_client(recorder, {"groq": "your_groq_api_key_here"}, AISettings(api_key="your_key"))

    assert client.strategies() == ()
    assert await client.test_connection() == (False, "No valid API key configured")
    assert client.api_status().type == "fallback"
    assert recorder.requests == []


@pytest.mark.asyncio
async def test_chat_request_shape():
    recorder = Recorder({"api.groq.com": (200, chat_body('{"story": "ok"}'))})
    client = make_client(recorder, {"groq": "gsk_env"})

    result = await client.strategies()[0]("Analyze this")

    assert result.get_or_else(None) == '{"story": "ok"}'
    request = recorder.requests[0]
    assert request.method == "POST"
    assert request.headers["Authorization"] == "Bearer gsk_env"
    payload = json.loads(request.content)
    assert payload["model"] == PROVIDERS["groq"].model
    assert payload["messages"][0]["role"] == "system"
    assert payload["messages"][1] == {"role": "user", "content": "Analyze this"}
    assert payload["max_tokens"] == 600
    assert payload["temperature"] == 0.7


@pytest.mark.asyncio
async def test_http_error_becomes_left_after_one_attempt():
    recorder = Recorder({"api.groq.com": (500, {"error": "boom"})})
    client = make_client(recorder, {"groq": "gsk_env"})

    result = await client.strategies()[0]("prompt")

    assert result.is_left()
    error = result.get_error()
    assert error["error"] == "provider_failed"
    assert error["status_code"] == 500
    assert error["source"] == "environment:groq"
    assert "API Error: 500" in error["message"]
    assert len(recorder.requests) == 1


@pytest.mark.asyncio
async def test_single_prompt_provider():
    recorder = Recorder({"api-inference.huggingface.co": (200, [{"generated_text": "hello there"}])})
    client = make_client(recorder, ai_settings=AISettings(provider="huggingface", api_key="hf_user"))

    result = await client.strategies()[0]("Say hi")

    assert result.get_or_else(None) == "hello there"
    payload = json.loads(recorder.requests[0].content)
    assert payload["inputs"] == "Say hi"
    assert payload["parameters"]["max_length"] == 600


def test_read_replies():
    assert read_generated_text([{"generated_text": "a"}]) == "a"
    assert read_generated_text({"generated_text": "b"}) == "b"
    assert read_generated_text([]) == ""
    assert read_generated_text("odd") == ""
    assert read_chat_reply(chat_body("c")) == "c"
    with pytest.raises(ProviderError):
        read_chat_reply({"choices": []})


@pytest.mark.asyncio
async def test_test_connection_tries_user_key_after_shared_failure():
    recorder = Recorder({
        "api.groq.com": (401, {"error": "bad key"}),
        "api.openai.com": (200, chat_body("Connection successful!")),
    })
    client = make_client(recorder, {"groq": "gsk_env"}, AISettings(provider="openai", api_key="sk-user"))

    ok, message = await client.test_connection()

    assert ok is True
    assert message == "Your API connection successful!"
    assert recorder.hosts == ["api.groq.com", "api.openai.com"]


@pytest.mark.asyncio
async def test_test_connection_reports_failure():
    recorder = Recorder({"api.openai.com": (429, {"error": "slow down"})})
    client = make_client(recorder, ai_settings=AISettings(provider="openai", api_key="sk-user"))

    ok, message = await client.test_connection()

    assert ok is False
    assert message.startswith("Connection failed: API Error: 429")


@pytest.mark.asyncio
async def test_complete_rejects_placeholder_credential():
    recorder = Recorder({})
    client = make_client(recorder)
    with pytest.raises(ProviderError):
        await client.complete(Credential(PROVIDERS["groq"], "your_key_here", "user"), "prompt")
    assert recorder.requests == []


def test_api_status_sources():
    recorder = Recorder({})
    env = make_client(recorder, {"groq": "gsk_env"})
    assert env.api_status().type == "environment"

    user = make_client(recorder, ai_settings=AISettings(provider="openai", api_key="sk-user"))
    status = user.api_status()
    assert status.type == "user"
    assert status.provider == PROVIDERS["openai"].name


def test_non_text_reply_fields_are_provider_errors():
    with pytest.raises(ProviderError):
        read_generated_text([{"generated_text": 42}])
    with pytest.raises(ProviderError):
        read_generated_text({"generated_text": ["a"]})
    with pytest.raises(ProviderError):
        read_chat_reply(chat_body({"story": "not a string"}))
    assert read_chat_reply(chat_body(None)) == ""


@pytest.mark.asyncio
async def test_non_text_reply_becomes_left():
    recorder = Recorder({"api-inference.huggingface.co": (200, [{"generated_text": 42}])})
    client = make_client(recorder, ai_settings=AISettings(provider="huggingface", api_key="hf_user"))

    result = await client.strategies()[0]("Say hi")

    assert result.get_error()["error"] == "provider_failed"
