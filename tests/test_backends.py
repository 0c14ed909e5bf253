from unittest.mock import MagicMock

import httpx
import openai
import pytest

from agent_actions.backends import (
    AVAILABILITY_TIMEOUT,
    OllamaBackend,
    OpenAICompatibleBackend,
    backend_from_env,
)
from agent_actions.errors import BackendError

# ---------------------------------------------------------------------------
# Ollama
# ---------------------------------------------------------------------------


def _ollama(response=None, side_effect=None) -> OllamaBackend:
    backend = OllamaBackend(model="llama3.2")
    backend._client = MagicMock()
    if side_effect is not None:
        backend._client.post.side_effect = side_effect
    else:
        backend._client.post.return_value = response
    return backend


def _http_response(status_code: int, payload=None) -> httpx.Response:
    return httpx.Response(
        status_code,
        json=payload,
        request=httpx.Request("POST", "http://localhost:11434/api/generate"),
    )


def test_ollama_generate_posts_prompts():
    backend = _ollama(_http_response(200, {"response": '{"action": "none", "answer": "hi"}'}))

    text = backend.generate("user text", "system text")

    assert text == '{"action": "none", "answer": "hi"}'
    path = backend._client.post.call_args.args[0]
    body = backend._client.post.call_args.kwargs["json"]
    assert path == "/api/generate"
    assert body["model"] == "llama3.2"
    assert body["prompt"] == "user text"
    assert body["system"] == "system text"
    assert body["stream"] is False
    assert body["format"] == "json"
    assert body["options"]["temperature"] == 0.1


def test_ollama_generate_without_json_mode_omits_format():
    backend = _ollama(_http_response(200, {"response": "plain"}))
    backend.generate("u", "s", json_mode=False)
    assert "format" not in backend._client.post.call_args.kwargs["json"]


def test_ollama_missing_response_field_is_empty_text():
    backend = _ollama(_http_response(200, {"done": True}))
    assert backend.generate("u", "s") == ""


def test_ollama_http_error_status_is_backend_error():
    backend = _ollama(_http_response(500, {"error": "boom"}))
    with pytest.raises(BackendError, match="Ollama API error: 500"):
        backend.generate("u", "s")


def test_ollama_connection_failure_is_backend_error():
    backend = _ollama(side_effect=httpx.ConnectError("connection refused"))
    with pytest.raises(BackendError, match="connection refused"):
        backend.generate("u", "s")


def test_ollama_is_available():
    backend = OllamaBackend()
    backend._client = MagicMock()
    backend._client.get.return_value = _http_response(200, {"models": []})

    assert backend.is_available() is True
    backend._client.get.assert_called_once_with("/api/tags", timeout=AVAILABILITY_TIMEOUT)


def test_ollama_unreachable_is_unavailable():
    backend = OllamaBackend()
    backend._client = MagicMock()
    backend._client.get.side_effect = httpx.ConnectTimeout("timed out")
    assert backend.is_available() is False


def test_ollama_name():
    assert OllamaBackend().name() == "Ollama"


# ---------------------------------------------------------------------------
# OpenAI-compatible
# ---------------------------------------------------------------------------


def _openai() -> OpenAICompatibleBackend:
    backend = OpenAICompatibleBackend("https://api.example.com/", "sk-test", "gpt-4o-mini")
    backend._client = MagicMock()
    return backend


def test_openai_generate_sends_system_and_user_messages():
    backend = _openai()
    completion = MagicMock()
    completion.choices = [MagicMock()]
    completion.choices[0].message.content = '{"navigate": "/settings/"}'
    backend._client.chat.completions.create.return_value = completion

    assert backend.generate("user text", "system text") == '{"navigate": "/settings/"}'

    kwargs = backend._client.chat.completions.create.call_args.kwargs
    assert kwargs["model"] == "gpt-4o-mini"
    assert kwargs["messages"] == [
        {"role": "system", "content": "system text"},
        {"role": "user", "content": "user text"},
    ]
    assert kwargs["response_format"] == {"type": "json_object"}


def test_openai_empty_choices_is_empty_text():
    backend = _openai()
    backend._client.chat.completions.create.return_value = MagicMock(choices=[])
    assert backend.generate("u", "s") == ""


def test_openai_api_error_is_backend_error():
    backend = _openai()
    backend._client.chat.completions.create.side_effect = openai.APIConnectionError(
        request=httpx.Request("POST", "https://api.example.com/v1/chat/completions")
    )
    with pytest.raises(BackendError, match="OpenAI API error"):
        backend.generate("u", "s")


def test_openai_is_available():
    backend = _openai()
    assert backend.is_available() is True
    backend._client.with_options.assert_called_once_with(timeout=AVAILABILITY_TIMEOUT)


def test_openai_unreachable_is_unavailable():
    backend = _openai()
    backend._client.with_options.return_value.models.list.side_effect = openai.APIConnectionError(
        request=httpx.Request("GET", "https://api.example.com/v1/models")
    )
    assert backend.is_available() is False


def test_openai_client_targets_v1_without_retries():
    backend = OpenAICompatibleBackend("https://api.example.com/", "sk-test", "gpt-4o-mini")
    assert str(backend._client.base_url).rstrip("/") == "https://api.example.com/v1"
    assert backend._client.max_retries == 0


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


def test_backend_from_env_defaults_to_ollama(monkeypatch):
    monkeypatch.delenv("AGENT_ACTIONS_BACKEND", raising=False)
    assert isinstance(backend_from_env(), OllamaBackend)


def test_backend_from_env_selects_openai(monkeypatch):
    monkeypatch.setenv("AGENT_ACTIONS_BACKEND", "OpenAI")
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    backend = backend_from_env()
    assert isinstance(backend, OpenAICompatibleBackend)
    assert backend.name() == "OpenAI"


def test_backend_from_env_rejects_unknown(monkeypatch):
    monkeypatch.setenv("AGENT_ACTIONS_BACKEND", "bard")
    with pytest.raises(ValueError, match="bard"):
        backend_from_env()
