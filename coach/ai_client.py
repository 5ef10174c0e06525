"""HTTP access to the language-model providers.

Every usable credential becomes one ``ProviderStrategy``. A strategy makes a
single request and reports ``Right(text)`` or ``Left(error dict)``; it never
retries. Ordering the strategies and falling back to local analysis is the
orchestrator's job (see ``coach.services.AnalysisChain``).
"""

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

import httpx

from coach.config import Settings
from coach.domain import AISettings, ApiStatus
from coach.functional import Either, Left, Maybe, Nothing, Right, Some, first_some
from coach.normalizer import normalize_connection_test
from coach.prompts import CONNECTION_TEST_PROMPT, SYSTEM_PROMPT

logger = logging.getLogger(__name__)

CHAT = "chat"
SINGLE_PROMPT = "single_prompt"

MAX_TOKENS = 600
TEMPERATURE = 0.7

PLACEHOLDER_MARKERS = ("your_", "_here")


@dataclass(frozen=True)
class Provider:
    key: str
    name: str
    api_url: str
    model: str
    key_prefix: str
    signup_url: str
    description: str
    style: str = CHAT


PROVIDERS = {
    "groq": Provider(
        key="groq",
        name="Groq (Free for All Users)",
        api_url="https://api.groq.com/openai/v1/chat/completions",
        model="llama3-8b-8192",
        key_prefix="gsk_",
        signup_url="https://console.groq.com/keys",
        description="Free AI analysis powered by Groq",
    ),
    "openai": Provider(
        key="openai",
        name="OpenAI (Bring Your Own Key)",
        api_url="https://api.openai.com/v1/chat/completions",
        model="gpt-3.5-turbo",
        key_prefix="sk-",
        signup_url="https://platform.openai.com/api-keys",
        description="$5 free credit for new users",
    ),
    "huggingface": Provider(
        key="huggingface",
        name="Hugging Face (Bring Your Own Key)",
        api_url="https://api-inference.huggingface.co/models/microsoft/DialoGPT-medium",
        model="microsoft/DialoGPT-medium",
        key_prefix="hf_",
        signup_url="https://huggingface.co/settings/tokens",
        description="Free tier with rate limits",
        style=SINGLE_PROMPT,
    ),
}


class ProviderError(Exception):
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


def is_placeholder(api_key: str) -> bool:
    return any(marker in api_key for marker in PLACEHOLDER_MARKERS)


def is_usable_key(api_key: Optional[str]) -> bool:
    return bool(api_key) and not is_placeholder(api_key)


@dataclass(frozen=True)
class Credential:
    provider: Provider
    api_key: str
    source: str  # "environment" or "user"


def shared_credential(settings: Settings) -> Maybe[Credential]:
    provider = PROVIDERS.get(settings.default_provider)
    api_key = settings.env_keys.get(settings.default_provider, "")
    if provider is None or not is_usable_key(api_key):
        return Nothing()
    return Some(Credential(provider=provider, api_key=api_key, source="environment"))


def user_credential(ai_settings: AISettings) -> Maybe[Credential]:
    provider = PROVIDERS.get(ai_settings.provider)
    if provider is None or not is_usable_key(ai_settings.api_key):
        return Nothing()
    return Some(Credential(provider=provider, api_key=ai_settings.api_key, source="user"))


def select_credential(settings: Settings, ai_settings: AISettings) -> Maybe[Credential]:
    """Environment key first, then the user's stored key."""
    return first_some([shared_credential(settings), user_credential(ai_settings)])


def chat_payload(provider: Provider, prompt: str) -> dict:
    return {
        "model": provider.model,
        "messages": [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": prompt},
        ],
        "max_tokens": MAX_TOKENS,
        "temperature": TEMPERATURE,
    }


def single_prompt_payload(prompt: str) -> dict:
    return {
        "inputs": prompt,
        "parameters": {"max_length": MAX_TOKENS, "temperature": TEMPERATURE},
    }


def _reply_text(value, field: str) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ProviderError(f"Expected text in {field}, got {type(value).__name__}")
    return value


def read_chat_reply(data) -> str:
    try:
        content = data["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError) as e:
        raise ProviderError(f"Unexpected chat completion body: {e!r}") from e
    return _reply_text(content, "message content")


def read_generated_text(data) -> str:
    if isinstance(data, list):
        first = data[0] if data else {}
        return _reply_text(first.get("generated_text") if isinstance(first, dict) else None, "generated_text")
    if isinstance(data, dict):
        return _reply_text(data.get("generated_text"), "generated_text")
    return ""


class ProviderStrategy:
    """One attempt against one provider with one credential."""

    def __init__(self, credential: Credential, client: "AIClient"):
        self.credential = credential
        self._client = client

    @property
    def name(self) -> str:
        return f"{self.credential.source}:{self.credential.provider.key}"

    async def __call__(self, prompt: str) -> Either[dict, str]:
        try:
            text = await self._client.complete(self.credential, prompt)
        except (ProviderError, httpx.HTTPError, ValueError) as e:
            logger.warning("AI provider %s failed: %s", self.name, e)
            return Left({
                "error": "provider_failed",
                "message": str(e),
                "source": self.name,
                "status_code": getattr(e, "status_code", None),
            })
        return Right(text)

    def __repr__(self) -> str:
        return f"ProviderStrategy({self.name})"


class AIClient:
    def __init__(
        self,
        settings: Settings,
        ai_settings: AISettings = AISettings(),
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings
        self.ai_settings = ai_settings
        self._transport = transport

    def configure(self, ai_settings: AISettings) -> None:
        self.ai_settings = ai_settings

    def credentials(self) -> Tuple[Credential, ...]:
        """At most one shared and one user credential, in attempt order."""
        if not self.ai_settings.enabled:
            return ()
        found = []
        for candidate in (shared_credential(self.settings), user_credential(self.ai_settings)):
            cred = candidate.get_or_else(None)
            if cred is None:
                continue
            if any(c.provider == cred.provider and c.api_key == cred.api_key for c in found):
                continue
            found.append(cred)
        return tuple(found)

    def strategies(self) -> Tuple[ProviderStrategy, ...]:
        return tuple(ProviderStrategy(cred, self) for cred in self.credentials())

    async def complete(self, credential: Credential, prompt: str) -> str:
        if not is_usable_key(credential.api_key):
            raise ProviderError("No valid API key available")

        provider = credential.provider
        if provider.style == SINGLE_PROMPT:
            payload = single_prompt_payload(prompt)
        else:
            payload = chat_payload(provider, prompt)
        headers = {"Authorization": f"Bearer {credential.api_key}"}

        async with httpx.AsyncClient(transport=self._transport, timeout=self.settings.request_timeout) as client:
            response = await client.post(provider.api_url, json=payload, headers=headers)

        if response.is_error:
            raise ProviderError(
                f"API Error: {response.status_code} - {response.reason_phrase}. {response.text}",
                status_code=response.status_code,
            )

        data = response.json()
        if provider.style == SINGLE_PROMPT:
            return read_generated_text(data)
        return read_chat_reply(data)

    def api_status(self) -> ApiStatus:
        cred = select_credential(self.settings, self.ai_settings).get_or_else(None)
        if cred is None or not self.ai_settings.enabled:
            return ApiStatus(
                type="fallback",
                provider="Local Analysis",
                status="Basic Analysis Only",
                message="Add your API key to .env file or settings for AI insights",
            )
        if cred.source == "environment":
            return ApiStatus(
                type="environment",
                provider=cred.provider.name,
                status="Environment API Active",
                message=f"Using your {cred.provider.name} API from environment",
            )
        return ApiStatus(
            type="user",
            provider=cred.provider.name,
            status="Your API Connected",
            message=f"Using your {cred.provider.name} API",
        )

    async def test_connection(self) -> Tuple[bool, str]:
        strategies = self.strategies()
        if not strategies:
            return False, "No valid API key configured"

        errors = []
        for strategy in strategies:
            result = (await strategy(CONNECTION_TEST_PROMPT)).bind(normalize_connection_test)
            if result.is_right():
                if strategy.credential.source == "user":
                    return True, "Your API connection successful!"
                return True, "API connection successful!"
            errors.append(result.get_error()["message"])
        return False, f"Connection failed: {errors[-1]}"
