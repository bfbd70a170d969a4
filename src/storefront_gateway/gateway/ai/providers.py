"""Completion provider adapters.

Each adapter knows one upstream API: endpoint, body shape, auth header and
where the text sits in the response. The dispatcher only talks to the
uniform interface (`build_request`, `send`, `extract_text`, `complete`,
`test_connection`) and looks adapters up by provider id.

| provider    | endpoint                                                      | auth                      | text at                             |
|-------------|---------------------------------------------------------------|---------------------------|-------------------------------------|
| anthropic   | https://api.anthropic.com/v1/messages                         | x-api-key + version       | content[0].text                     |
| openai      | https://api.openai.com/v1/chat/completions                    | Bearer (OpenAI SDK)       | choices[0].message.content          |
| deepseek    | https://api.deepseek.com/v1/chat/completions                  | Bearer (OpenAI SDK)       | choices[0].message.content          |
| openrouter  | https://openrouter.ai/api/v1/chat/completions                 | Bearer (OpenAI SDK)       | choices[0].message.content          |
| gemini      | .../v1beta/models/{model}:generateContent                     | ?key= query parameter     | candidates[0].content.parts[0].text |
| huggingface | https://api-inference.huggingface.co/models/{model}           | Bearer                    | generated_text / [0].generated_text |
| ollama      | {base_url}/api/generate                                       | none (credential is URL)  | response                            |
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx
import requests
from openai import APIConnectionError, APIStatusError, APITimeoutError, OpenAI

from ...errors import UpstreamFailure
from ...logging import get_logger

LOG = get_logger("ai-providers")

TEST_PROMPT = "Hello"
TEST_MAX_TOKENS = 10
DEFAULT_MAX_TOKENS = 400


@dataclass
class ProviderRequest:
    url: str
    json: Dict[str, Any]
    headers: Dict[str, str] = field(default_factory=dict)
    params: Dict[str, str] = field(default_factory=dict)


@dataclass
class ProviderTestResult:
    success: bool
    message: str = ""
    error: str = ""
    response: str = ""


def _error_message(exc: Exception) -> str:
    """Best-effort human message from an upstream error body."""
    resp = getattr(exc, "response", None)
    if resp is not None:
        try:
            body = resp.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            err = body.get("error")
            if isinstance(err, dict) and err.get("message"):
                return str(err["message"])
            if isinstance(err, str) and err:
                return err
    return str(exc)


class ProviderAdapter(ABC):
    """Base adapter posting JSON with `requests`."""

    name = ""
    default_model = ""

    def resolve_model(self, model: Optional[str]) -> str:
        return (model or "").strip() or self.default_model

    @abstractmethod
    def build_request(self, prompt: str, model: str, credential: str, max_tokens: int) -> ProviderRequest:
        raise NotImplementedError

    @abstractmethod
    def extract_text(self, body: Any) -> str:
        raise NotImplementedError

    def send(self, request: ProviderRequest, timeout: float) -> Any:
        try:
            r = requests.post(
                request.url,
                json=request.json,
                headers=request.headers,
                params=request.params or None,
                timeout=timeout,
            )
            r.raise_for_status()
            return r.json()
        except requests.RequestException as exc:
            raise UpstreamFailure(f"{self.name} request failed: {_error_message(exc)}") from exc
        except ValueError as exc:
            raise UpstreamFailure(f"{self.name} returned a non-JSON body") from exc

    def complete(
        self,
        prompt: str,
        model: Optional[str],
        credential: str,
        *,
        timeout: float,
        max_tokens: int = DEFAULT_MAX_TOKENS,
    ) -> str:
        """Return completion text; any failure raises UpstreamFailure."""
        request = self.build_request(prompt, self.resolve_model(model), credential, max_tokens)
        body = self.send(request, timeout)
        try:
            text = self.extract_text(body)
        except (KeyError, IndexError, TypeError, AttributeError) as exc:
            raise UpstreamFailure(f"{self.name} returned an unexpected response shape") from exc
        if not isinstance(text, str) or not text.strip():
            raise UpstreamFailure(f"{self.name} returned empty content")
        return text.strip()

    def test_connection(self, model: Optional[str], credential: str, *, timeout: float) -> ProviderTestResult:
        try:
            text = self.complete(TEST_PROMPT, model, credential, timeout=timeout, max_tokens=TEST_MAX_TOKENS)
        except UpstreamFailure as exc:
            return ProviderTestResult(success=False, error=exc.message)
        return ProviderTestResult(success=True, message=f"{self.name} connection successful", response=text)


class AnthropicAdapter(ProviderAdapter):
    name = "anthropic"
    default_model = "claude-3-haiku-20240307"
    url = "https://api.anthropic.com/v1/messages"

    def build_request(self, prompt: str, model: str, credential: str, max_tokens: int) -> ProviderRequest:
        return ProviderRequest(
            url=self.url,
            json={"model": model, "max_tokens": max_tokens, "messages": [{"role": "user", "content": prompt}]},
            headers={
                "Content-Type": "application/json",
                "x-api-key": credential,
                "anthropic-version": "2023-06-01",
            },
        )

    def extract_text(self, body: Any) -> str:
        return body["content"][0]["text"]


class OpenAICompatibleAdapter(ProviderAdapter):
    """Chat-completions providers, called through the OpenAI SDK with a base_url."""

    name = "openai"
    default_model = "gpt-4o-mini"
    base_url = "https://api.openai.com/v1"

    def build_request(self, prompt: str, model: str, credential: str, max_tokens: int) -> ProviderRequest:
        return ProviderRequest(
            url=f"{self.base_url}/chat/completions",
            json={"model": model, "messages": [{"role": "user", "content": prompt}], "max_tokens": max_tokens},
            headers={"Authorization": f"Bearer {credential}"},
        )

    def send(self, request: ProviderRequest, timeout: float) -> Any:
        credential = request.headers.get("Authorization", "").replace("Bearer ", "", 1)
        http_client = httpx.Client(timeout=httpx.Timeout(timeout))
        client = OpenAI(api_key=credential, base_url=self.base_url, http_client=http_client, max_retries=0)
        try:
            completion = client.chat.completions.create(**request.json)
            return completion.model_dump()
        except (APIConnectionError, APITimeoutError) as exc:
            raise UpstreamFailure(f"{self.name} network/timeout error: {exc}") from exc
        except APIStatusError as exc:
            raise UpstreamFailure(f"{self.name} returned HTTP {exc.status_code}: {_error_message(exc)}") from exc
        finally:
            http_client.close()

    def extract_text(self, body: Any) -> str:
        return body["choices"][0]["message"]["content"]


class DeepSeekAdapter(OpenAICompatibleAdapter):
    name = "deepseek"
    default_model = "deepseek-chat"
    base_url = "https://api.deepseek.com/v1"


class OpenRouterAdapter(OpenAICompatibleAdapter):
    name = "openrouter"
    default_model = "openai/gpt-4o-mini"
    base_url = "https://openrouter.ai/api/v1"


class GeminiAdapter(ProviderAdapter):
    name = "gemini"
    default_model = "gemini-1.5-flash"
    base_url = "https://generativelanguage.googleapis.com/v1beta/models"

    def build_request(self, prompt: str, model: str, credential: str, max_tokens: int) -> ProviderRequest:
        return ProviderRequest(
            url=f"{self.base_url}/{model}:generateContent",
            json={
                "contents": [{"parts": [{"text": prompt}]}],
                "generationConfig": {"maxOutputTokens": max_tokens},
            },
            headers={"Content-Type": "application/json"},
            params={"key": credential},
        )

    def extract_text(self, body: Any) -> str:
        return body["candidates"][0]["content"]["parts"][0]["text"]


class HuggingFaceAdapter(ProviderAdapter):
    name = "huggingface"
    default_model = "mistralai/Mistral-7B-Instruct-v0.2"
    base_url = "https://api-inference.huggingface.co/models"

    def build_request(self, prompt: str, model: str, credential: str, max_tokens: int) -> ProviderRequest:
        return ProviderRequest(
            url=f"{self.base_url}/{model}",
            json={"inputs": prompt, "parameters": {"max_length": max_tokens, "temperature": 0.7}},
            headers={"Authorization": f"Bearer {credential}"},
        )

    def extract_text(self, body: Any) -> str:
        if isinstance(body, list):
            return body[0]["generated_text"]
        return body["generated_text"]


class OllamaAdapter(ProviderAdapter):
    name = "ollama"
    default_model = "llama3"

    def build_request(self, prompt: str, model: str, credential: str, max_tokens: int) -> ProviderRequest:
        base = credential.rstrip("/")
        return ProviderRequest(
            url=f"{base}/api/generate",
            json={"model": model, "prompt": prompt, "stream": False, "options": {"num_predict": max_tokens}},
        )

    def send(self, request: ProviderRequest, timeout: float) -> Any:
        try:
            return super().send(request, timeout)
        except UpstreamFailure as exc:
            if isinstance(exc.__cause__, requests.ConnectionError):
                raise UpstreamFailure(
                    f"Cannot reach Ollama at {request.url}; make sure Ollama is running."
                ) from exc.__cause__
            raise

    def extract_text(self, body: Any) -> str:
        return body["response"]


class ProviderRegistry:
    """Adapters keyed by provider id; adding a provider means registering one here."""

    def __init__(self) -> None:
        self._adapters: Dict[str, ProviderAdapter] = {}

    def register(self, adapter: ProviderAdapter) -> None:
        self._adapters[adapter.name] = adapter

    def get(self, name: str) -> Optional[ProviderAdapter]:
        return self._adapters.get(name)

    def names(self) -> List[str]:
        return list(self._adapters)


def default_registry() -> ProviderRegistry:
    registry = ProviderRegistry()
    for adapter in (
        AnthropicAdapter(),
        OpenAICompatibleAdapter(),
        GeminiAdapter(),
        HuggingFaceAdapter(),
        OllamaAdapter(),
        DeepSeekAdapter(),
        OpenRouterAdapter(),
    ):
        registry.register(adapter)
    return registry
