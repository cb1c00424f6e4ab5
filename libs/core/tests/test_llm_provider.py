from __future__ import annotations

import io
import json
from urllib.error import HTTPError, URLError

import pytest

from libs.core import llm_provider as llm_provider_module
from libs.core.llm_provider import (
    AnthropicProvider,
    LLMProviderError,
    MockLLMProvider,
    OpenAIProvider,
    resolve_provider,
)


class _FakeHTTPResponse:
    def __init__(self, payload: dict) -> None:
        self._raw = json.dumps(payload).encode("utf-8")

    def read(self) -> bytes:
        return self._raw

    def __enter__(self) -> "_FakeHTTPResponse":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        return False


def _openai_payload(text: str = '{"ok":true}') -> dict:
    return {
        "output": [
            {
                "type": "message",
                "content": [{"type": "output_text", "text": text}],
            }
        ]
    }


def _anthropic_payload(text: str = '{"ok":true}') -> dict:
    return {"content": [{"type": "text", "text": text}]}


def _http_error(code: int, body: str = "boom") -> HTTPError:
    return HTTPError(
        url="https://example.invalid",
        code=code,
        msg="error",
        hdrs=None,
        fp=io.BytesIO(body.encode("utf-8")),
    )


def test_openai_provider_omits_temperature_for_gpt5(monkeypatch) -> None:
    captured_payloads: list[dict] = []

    def _fake_urlopen(request, timeout=0):  # type: ignore[no-untyped-def]
        captured_payloads.append(json.loads(request.data.decode("utf-8")))
        return _FakeHTTPResponse(_openai_payload())

    monkeypatch.setattr(llm_provider_module, "urlopen", _fake_urlopen)

    provider = OpenAIProvider(api_key="test-key", model="gpt-5-mini", temperature=0.7)
    response = provider.generate("hello")
    assert response.content == '{"ok":true}'
    assert len(captured_payloads) == 1
    assert "temperature" not in captured_payloads[0]


def test_openai_provider_sends_instructions_and_token_limit(monkeypatch) -> None:
    captured: dict = {}

    def _fake_urlopen(request, timeout=0):  # type: ignore[no-untyped-def]
        captured["url"] = request.full_url
        captured["timeout"] = timeout
        captured["body"] = json.loads(request.data.decode("utf-8"))
        return _FakeHTTPResponse(_openai_payload())

    monkeypatch.setattr(llm_provider_module, "urlopen", _fake_urlopen)

    provider = OpenAIProvider(
        api_key="test-key",
        model="gpt-4o-mini",
        temperature=0.7,
        timeout_s=12.0,
        system_prompt="Return JSON only.",
    )
    provider.generate("hello", max_tokens=4096)

    assert captured["url"] == "https://api.openai.com/v1/responses"
    assert captured["timeout"] == 12.0
    assert captured["body"]["instructions"] == "Return JSON only."
    assert captured["body"]["max_output_tokens"] == 4096
    assert captured["body"]["temperature"] == 0.7


def test_anthropic_provider_builds_messages_request(monkeypatch) -> None:
    captured: dict = {}

    def _fake_urlopen(request, timeout=0):  # type: ignore[no-untyped-def]
        captured["url"] = request.full_url
        captured["headers"] = {key.lower(): value for key, value in request.header_items()}
        captured["body"] = json.loads(request.data.decode("utf-8"))
        return _FakeHTTPResponse(_anthropic_payload("  {\"a\": 1}  "))

    monkeypatch.setattr(llm_provider_module, "urlopen", _fake_urlopen)

    provider = AnthropicProvider(api_key="secret", system_prompt="be terse")
    response = provider.generate("analyze this", max_tokens=2048)

    assert response.content == '{"a": 1}'
    assert captured["url"] == "https://api.anthropic.com/v1/messages"
    assert captured["headers"]["x-api-key"] == "secret"
    assert captured["headers"]["anthropic-version"] == "2023-06-01"
    assert captured["body"]["model"] == llm_provider_module.DEFAULT_ANTHROPIC_MODEL
    assert captured["body"]["max_tokens"] == 2048
    assert captured["body"]["system"] == "be terse"
    assert captured["body"]["messages"] == [{"role": "user", "content": "analyze this"}]


def test_http_provider_retries_retryable_status(monkeypatch) -> None:
    state = {"count": 0}
    sleeps: list[float] = []

    def _fake_urlopen(request, timeout=0):  # type: ignore[no-untyped-def]
        state["count"] += 1
        if state["count"] == 1:
            raise _http_error(529, "overloaded")
        return _FakeHTTPResponse(_anthropic_payload())

    monkeypatch.setattr(llm_provider_module, "urlopen", _fake_urlopen)
    monkeypatch.setattr(llm_provider_module.time, "sleep", sleeps.append)

    provider = AnthropicProvider(api_key="secret", max_retries=1)
    assert provider.generate("hi").content == '{"ok":true}'
    assert state["count"] == 2
    assert sleeps == [1]


def test_http_provider_does_not_retry_client_errors(monkeypatch) -> None:
    state = {"count": 0}

    def _fake_urlopen(request, timeout=0):  # type: ignore[no-untyped-def]
        state["count"] += 1
        raise _http_error(400, "bad request")

    monkeypatch.setattr(llm_provider_module, "urlopen", _fake_urlopen)

    provider = OpenAIProvider(api_key="k", model="gpt-4o", max_retries=3)
    with pytest.raises(LLMProviderError, match=r"\(400\): bad request"):
        provider.generate("hi")
    assert state["count"] == 1


def test_http_provider_wraps_connection_errors(monkeypatch) -> None:
    def _fake_urlopen(request, timeout=0):  # type: ignore[no-untyped-def]
        raise URLError("connection refused")

    monkeypatch.setattr(llm_provider_module, "urlopen", _fake_urlopen)

    provider = OpenAIProvider(api_key="k", model="gpt-4o")
    with pytest.raises(LLMProviderError, match="connection error"):
        provider.generate("hi")


def test_http_provider_rejects_empty_output(monkeypatch) -> None:
    monkeypatch.setattr(
        llm_provider_module,
        "urlopen",
        lambda request, timeout=0: _FakeHTTPResponse({"output": []}),
    )
    provider = OpenAIProvider(api_key="k", model="gpt-4o")
    with pytest.raises(LLMProviderError, match="empty output"):
        provider.generate("hi")


def test_resolve_provider_requires_credentials() -> None:
    with pytest.raises(ValueError, match="OPENAI_API_KEY"):
        resolve_provider("openai", model="gpt-4o")
    with pytest.raises(ValueError, match="OPENAI_MODEL"):
        resolve_provider("openai", api_key="k")
    with pytest.raises(ValueError, match="ANTHROPIC_API_KEY"):
        resolve_provider("anthropic")


def test_resolve_provider_defaults_to_mock() -> None:
    provider = resolve_provider("unknown")
    assert isinstance(provider, MockLLMProvider)
    assert provider.generate("anything").content == "{}"


def test_resolve_provider_passes_tuning() -> None:
    provider = resolve_provider(
        "anthropic", api_key="k", timeout_s=5.0, max_retries=2, temperature=0.2
    )
    assert isinstance(provider, AnthropicProvider)
    assert provider.timeout_s == 5.0
    assert provider.max_retries == 2
    assert provider.temperature == 0.2
