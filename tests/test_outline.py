from unittest.mock import Mock

import pytest
import requests

from scribe.config import LLMConfig
from scribe.services.llm import LLMProvider, LLMProviderError, OllamaProvider, OpenAIProvider
from scribe.services.llm import ollama_provider, openai_provider
from scribe.services.outline import OutlineService


class FakeProvider(LLMProvider):
    def __init__(self, reply="# Outline\n- point"):
        self.reply = reply
        self.calls = []

    def outline(self, transcript, language):
        self.calls.append((transcript, language))
        return self.reply


def _response(status_code, payload):
    response = Mock()
    response.status_code = status_code
    response.json.return_value = payload
    return response


def test_generate_uses_injected_provider():
    provider = FakeProvider()
    service = OutlineService(LLMConfig(language="English"), provider=provider)
    assert service.configured
    assert service.generate("Alice: hello") == "# Outline\n- point"
    assert provider.calls == [("Alice: hello", "English")]


def test_blank_transcript_rejected():
    service = OutlineService(LLMConfig(), provider=FakeProvider())
    with pytest.raises(LLMProviderError, match="Transcript is empty"):
        service.generate("   ")


def test_unconfigured_service():
    service = OutlineService(LLMConfig())
    assert not service.configured
    with pytest.raises(LLMProviderError, match="No AI model configured"):
        service.generate("Alice: hello")


def test_openai_requires_api_key():
    service = OutlineService(LLMConfig(provider="openai", model="gpt-4o-mini"))
    with pytest.raises(LLMProviderError, match="API key"):
        service.generate("Alice: hello")


def test_unknown_provider():
    service = OutlineService(LLMConfig(provider="carrier-pigeon", model="v1"))
    with pytest.raises(LLMProviderError, match="Unknown provider"):
        service.generate("Alice: hello")


def test_openai_provider_request_and_fence_stripping(monkeypatch):
    post = Mock(
        return_value=_response(
            200, {"choices": [{"message": {"content": "```markdown\n# Outline\n- budget\n```"}}]}
        )
    )
    monkeypatch.setattr(openai_provider.requests, "post", post)

    text = OpenAIProvider(api_key="sk-test", model="gpt-4o-mini", base_url="https://llm.test/").outline(
        "Alice: budget", "English"
    )

    assert text == "# Outline\n- budget"
    url = post.call_args.args[0]
    body = post.call_args.kwargs["json"]
    assert url == "https://llm.test/v1/chat/completions"
    assert post.call_args.kwargs["headers"]["Authorization"] == "Bearer sk-test"
    assert body["model"] == "gpt-4o-mini"
    assert "English" in body["messages"][0]["content"]
    assert "Alice: budget" in body["messages"][1]["content"]


def test_openai_provider_http_error(monkeypatch):
    monkeypatch.setattr(openai_provider.requests, "post", Mock(return_value=_response(500, {})))
    with pytest.raises(LLMProviderError, match="500"):
        OpenAIProvider(api_key="k", model="m").outline("text", "English")


def test_lmstudio_routes_through_openai_compatible_api(monkeypatch):
    post = Mock(return_value=_response(200, {"choices": [{"message": {"content": "outline"}}]}))
    monkeypatch.setattr(openai_provider.requests, "post", post)
    service = OutlineService(LLMConfig(provider="lmstudio", model="qwen"))
    assert service.generate("Alice: hi") == "outline"
    assert post.call_args.args[0] == "http://127.0.0.1:1234/v1/chat/completions"


def test_ollama_provider(monkeypatch):
    post = Mock(return_value=_response(200, {"response": "  # Outline  "}))
    monkeypatch.setattr(ollama_provider.requests, "post", post)

    text = OllamaProvider(base_url="http://ollama.test:11434", model="llama3").outline("Bob: hi", "English")

    assert text == "# Outline"
    assert post.call_args.args[0] == "http://ollama.test:11434/api/generate"
    body = post.call_args.kwargs["json"]
    assert body["stream"] is False
    assert "English" in body["system"]


def test_ollama_unreachable(monkeypatch):
    monkeypatch.setattr(
        ollama_provider.requests, "post", Mock(side_effect=requests.ConnectionError("refused"))
    )
    with pytest.raises(LLMProviderError, match="Failed to reach Ollama"):
        OllamaProvider(base_url="http://ollama.test", model="llama3").outline("text", "English")


def test_empty_model_output_is_an_error(monkeypatch):
    monkeypatch.setattr(ollama_provider.requests, "post", Mock(return_value=_response(200, {"response": ""})))
    with pytest.raises(LLMProviderError, match="empty outline"):
        OllamaProvider(base_url="http://ollama.test", model="llama3").outline("text", "English")
