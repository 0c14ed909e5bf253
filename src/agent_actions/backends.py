# backends.py
# Generation backends for the planner.
#
# The planner is backend-agnostic: anything that satisfies GenerationBackend
# can be plugged in. Transport and API failures are surfaced as BackendError
# so the planner can tell "the service is down" from "the model misbehaved".

import json
import os
from typing import Protocol

import httpx
import openai
from dotenv import load_dotenv
from openai import OpenAI

from agent_actions.errors import BackendError

load_dotenv()

AVAILABILITY_TIMEOUT = 3.0  # seconds
TEMPERATURE = 0.1


class GenerationBackend(Protocol):
    def generate(self, user_prompt: str, system_prompt: str, *, json_mode: bool = True) -> str: ...

    def is_available(self) -> bool: ...

    def name(self) -> str: ...


# ---------------------------------------------------------------------------
# Ollama (local daemon)
# ---------------------------------------------------------------------------


class OllamaBackend:
    """Local daemon backend speaking Ollama's /api/generate contract."""

    def __init__(self, base_url: str = "http://localhost:11434", model: str = "llama3.2") -> None:
        self._base_url = base_url.rstrip("/")
        self._model = model
        # No timeout on generation; callers needing deadlines wrap the backend.
        self._client = httpx.Client(base_url=self._base_url, timeout=None)

    def generate(self, user_prompt: str, system_prompt: str, *, json_mode: bool = True) -> str:
        body: dict = {
            "model": self._model,
            "prompt": user_prompt,
            "system": system_prompt,
            "stream": False,
            "options": {"temperature": TEMPERATURE},
        }
        if json_mode:
            body["format"] = "json"

        try:
            response = self._client.post("/api/generate", json=body)
        except httpx.HTTPError as exc:
            raise BackendError(f"Ollama API error: {exc}") from exc

        if response.status_code >= 400:
            raise BackendError(f"Ollama API error: {response.status_code} {response.reason_phrase}")

        try:
            data = response.json()
        except json.JSONDecodeError as exc:
            raise BackendError(f"Ollama API error: malformed response body ({exc})") from exc
        return data.get("response", "")

    def is_available(self) -> bool:
        try:
            response = self._client.get("/api/tags", timeout=AVAILABILITY_TIMEOUT)
        except httpx.HTTPError:
            return False
        return response.is_success

    def name(self) -> str:
        return "Ollama"


# ---------------------------------------------------------------------------
# OpenAI-compatible HTTP endpoint
# ---------------------------------------------------------------------------


class OpenAICompatibleBackend:
    """
    Backend for any OpenAI-compatible /v1/chat/completions endpoint
    (OpenAI, OpenRouter, Groq, vLLM, LM Studio, ...).
    """

    def __init__(self, base_url: str, api_key: str, model: str) -> None:
        self._model = model
        # Transport retries are not this layer's concern.
        self._client = OpenAI(
            base_url=f"{base_url.rstrip('/')}/v1",
            api_key=api_key,
            max_retries=0,
        )

    def generate(self, user_prompt: str, system_prompt: str, *, json_mode: bool = True) -> str:
        kwargs: dict = {}
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}
        try:
            response = self._client.chat.completions.create(
                model=self._model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                temperature=TEMPERATURE,
                **kwargs,
            )
        except openai.OpenAIError as exc:
            raise BackendError(f"OpenAI API error: {exc}") from exc

        if not response.choices:
            return ""
        return response.choices[0].message.content or ""

    def is_available(self) -> bool:
        try:
            self._client.with_options(timeout=AVAILABILITY_TIMEOUT).models.list()
        except openai.OpenAIError:
            return False
        return True

    def name(self) -> str:
        return "OpenAI"


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


def backend_from_env() -> GenerationBackend:
    """Select and configure a backend from AGENT_ACTIONS_BACKEND and friends."""
    kind = os.getenv("AGENT_ACTIONS_BACKEND", "ollama").strip().lower()
    if kind == "ollama":
        return OllamaBackend(
            base_url=os.getenv("OLLAMA_BASE_URL", "http://localhost:11434"),
            model=os.getenv("OLLAMA_MODEL", "llama3.2"),
        )
    if kind == "openai":
        return OpenAICompatibleBackend(
            base_url=os.getenv("OPENAI_BASE_URL", "https://api.openai.com"),
            api_key=os.getenv("OPENAI_API_KEY", ""),
            model=os.getenv("OPENAI_MODEL", "gpt-4o-mini"),
        )
    raise ValueError(f"Unknown AGENT_ACTIONS_BACKEND {kind!r} (expected 'ollama' or 'openai')")
