from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Dict, Optional
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen
import time

DEFAULT_ANTHROPIC_MODEL = "claude-sonnet-4-20250514"
DEFAULT_ANTHROPIC_VERSION = "2023-06-01"
DEFAULT_MAX_TOKENS = 1024
_RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504, 529}


@dataclass
class LLMResponse:
    content: str


class LLMProviderError(Exception):
    pass


class LLMProvider:
    timeout_s: float = 30.0

    def generate(
        self, prompt: str, max_tokens: Optional[int] = None
    ) -> LLMResponse:  # pragma: no cover - interface
        raise NotImplementedError


class MockLLMProvider(LLMProvider):
    """Offline provider: answers every prompt with an empty JSON object."""

    def generate(self, prompt: str, max_tokens: Optional[int] = None) -> LLMResponse:
        return LLMResponse(content="{}")


class _HTTPProvider(LLMProvider):
    provider_label = "LLM"

    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: str,
        temperature: Optional[float] = None,
        max_output_tokens: Optional[int] = None,
        timeout_s: float = 30.0,
        max_retries: int = 0,
        system_prompt: Optional[str] = None,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.temperature = temperature
        self.max_output_tokens = max_output_tokens
        self.timeout_s = timeout_s
        self.max_retries = max_retries
        self.system_prompt = system_prompt

    def _endpoint(self) -> str:  # pragma: no cover - interface
        raise NotImplementedError

    def _headers(self) -> Dict[str, str]:  # pragma: no cover - interface
        raise NotImplementedError

    def _build_payload(self, prompt: str, max_tokens: Optional[int]) -> Dict[str, Any]:
        raise NotImplementedError  # pragma: no cover - interface

    def _extract_text(self, data: Dict[str, Any]) -> str:  # pragma: no cover - interface
        raise NotImplementedError

    def generate(self, prompt: str, max_tokens: Optional[int] = None) -> LLMResponse:
        payload = self._build_payload(prompt, max_tokens)
        attempts = self.max_retries + 1
        attempt = 0
        while attempt < attempts:
            request = Request(
                self._endpoint(),
                data=json.dumps(payload).encode("utf-8"),
                headers=self._headers(),
                method="POST",
            )
            try:
                with urlopen(request, timeout=self.timeout_s) as response:
                    body = response.read().decode("utf-8")
                data = json.loads(body)
                text = self._extract_text(data)
                if not text:
                    raise LLMProviderError(f"{self.provider_label} API returned empty output")
                return LLMResponse(content=text)
            except HTTPError as exc:
                detail = exc.read().decode("utf-8") if exc.fp else str(exc)
                if exc.code in _RETRYABLE_STATUS_CODES and attempt < attempts - 1:
                    time.sleep(min(2**attempt, 8))
                    attempt += 1
                    continue
                raise LLMProviderError(
                    f"{self.provider_label} API error ({exc.code}): {detail}"
                ) from exc
            except (URLError, TimeoutError) as exc:
                if attempt < attempts - 1:
                    time.sleep(min(2**attempt, 8))
                    attempt += 1
                    continue
                raise LLMProviderError(
                    f"{self.provider_label} API connection error: {exc}"
                ) from exc
            except json.JSONDecodeError as exc:
                raise LLMProviderError(
                    f"{self.provider_label} API returned a non-JSON body"
                ) from exc
        raise LLMProviderError(f"{self.provider_label} API request failed after retries")


class OpenAIProvider(_HTTPProvider):
    provider_label = "OpenAI"

    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: str = "https://api.openai.com",
        **kwargs: Any,
    ) -> None:
        super().__init__(api_key=api_key, model=model, base_url=base_url, **kwargs)

    def _endpoint(self) -> str:
        return f"{self.base_url}/v1/responses"

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    def _build_payload(self, prompt: str, max_tokens: Optional[int]) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"model": self.model, "input": prompt}
        if self.system_prompt:
            payload["instructions"] = self.system_prompt
        if self.temperature is not None and _model_supports_temperature(self.model):
            payload["temperature"] = self.temperature
        limit = max_tokens if max_tokens is not None else self.max_output_tokens
        if limit is not None:
            payload["max_output_tokens"] = limit
        return payload

    def _extract_text(self, data: Dict[str, Any]) -> str:
        return _extract_openai_output_text(data)


class AnthropicProvider(_HTTPProvider):
    provider_label = "Anthropic"

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_ANTHROPIC_MODEL,
        base_url: str = "https://api.anthropic.com",
        **kwargs: Any,
    ) -> None:
        super().__init__(api_key=api_key, model=model, base_url=base_url, **kwargs)

    def _endpoint(self) -> str:
        return f"{self.base_url}/v1/messages"

    def _headers(self) -> Dict[str, str]:
        return {
            "x-api-key": self.api_key,
            "anthropic-version": DEFAULT_ANTHROPIC_VERSION,
            "Content-Type": "application/json",
        }

    def _build_payload(self, prompt: str, max_tokens: Optional[int]) -> Dict[str, Any]:
        limit = max_tokens if max_tokens is not None else self.max_output_tokens
        payload: Dict[str, Any] = {
            "model": self.model,
            "max_tokens": limit or DEFAULT_MAX_TOKENS,
            "messages": [{"role": "user", "content": prompt}],
        }
        if self.system_prompt:
            payload["system"] = self.system_prompt
        if self.temperature is not None:
            payload["temperature"] = self.temperature
        return payload

    def _extract_text(self, data: Dict[str, Any]) -> str:
        parts: list[str] = []
        for block in data.get("content", []):
            if isinstance(block, dict) and block.get("type") == "text":
                parts.append(block.get("text", ""))
        return "".join(parts).strip()


def resolve_provider(
    provider_name: str,
    *,
    api_key: Optional[str] = None,
    model: Optional[str] = None,
    base_url: Optional[str] = None,
    temperature: Optional[float] = None,
    max_output_tokens: Optional[int] = None,
    timeout_s: Optional[float] = None,
    max_retries: Optional[int] = None,
    system_prompt: Optional[str] = None,
) -> LLMProvider:
    name = (provider_name or "mock").lower()
    common: Dict[str, Any] = {
        "temperature": temperature,
        "max_output_tokens": max_output_tokens,
        "timeout_s": timeout_s or 30.0,
        "max_retries": max_retries or 0,
        "system_prompt": system_prompt,
    }
    if name == "openai":
        if not api_key:
            raise ValueError("OPENAI_API_KEY is required when LLM_PROVIDER=openai")
        if not model:
            raise ValueError("OPENAI_MODEL is required when LLM_PROVIDER=openai")
        return OpenAIProvider(
            api_key=api_key,
            model=model,
            base_url=base_url or "https://api.openai.com",
            **common,
        )
    if name == "anthropic":
        if not api_key:
            raise ValueError("ANTHROPIC_API_KEY is required when LLM_PROVIDER=anthropic")
        return AnthropicProvider(
            api_key=api_key,
            model=model or DEFAULT_ANTHROPIC_MODEL,
            base_url=base_url or "https://api.anthropic.com",
            **common,
        )
    return MockLLMProvider()


def _extract_openai_output_text(response: Dict[str, Any]) -> str:
    parts: list[str] = []
    for item in response.get("output", []):
        if item.get("type") != "message":
            continue
        for content in item.get("content", []):
            if content.get("type") == "output_text":
                parts.append(content.get("text", ""))
    return "".join(parts).strip()


def _model_supports_temperature(model: str) -> bool:
    normalized = (model or "").strip().lower()
    # GPT-5 responses currently reject temperature.
    return not normalized.startswith("gpt-5")
