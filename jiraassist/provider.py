"""LLM completion backends and helpers for handling their JSON replies."""

from __future__ import annotations

import json
import logging
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import httpx

logger = logging.getLogger(__name__)

DEFAULT_OLLAMA_BASE_URL = "http://localhost:11434"
DEFAULT_VERTEX_MODEL = "claude-sonnet-4-6"
VERTEX_ANTHROPIC_VERSION = "vertex-2023-10-16"
GOOGLE_OAUTH_ENDPOINT = "https://oauth2.googleapis.com/token"

_OPENAI_ENV_VAR = "LLM_API_KEY"
_GOOGLE_OAUTH_ENV_VAR = "GOOGLE_OAUTH_ACCESS_TOKEN"
_REFRESH_FIELDS = ("client_id", "client_secret", "refresh_token")


class LLMError(Exception):
    """Raised when a provider cannot be set up or a completion fails."""


@dataclass
class Settings:
    """Application settings the LLM helpers need."""

    jira_project: str = ""
    vertex_project_id: str = ""
    vertex_region: str = "us-east5"
    assignee: str = "currentUser()"


def get_env_or_secret(name: str) -> str:
    """Return the named setting from the environment, or an empty string."""
    return os.environ.get(name, "")


class Provider(ABC):
    """A backend that turns a system prompt and a user prompt into text."""

    @abstractmethod
    def complete(self, system: str, prompt: str, max_tokens: int) -> str:
        """Return the model's reply to ``prompt`` under ``system``."""


def _truncate(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return text[:limit] + "..."


@dataclass
class OpenAIProvider(Provider):
    """Any OpenAI-compatible chat completions API (Ollama, vLLM, OpenAI...)."""

    base_url: str
    model: str
    api_key: str | None = None
    timeout: float = 120.0

    def complete(self, system: str, prompt: str, max_tokens: int) -> str:
        logger.info("openai completion base_url=%s model=%s max_tokens=%d",
                    self.base_url, self.model, max_tokens)
        payload: dict[str, Any] = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": prompt},
            ],
            "temperature": 0,
        }
        if max_tokens:
            payload["max_tokens"] = max_tokens

        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        url = self.base_url + "/v1/chat/completions"
        try:
            response = httpx.post(url, json=payload, headers=headers, timeout=self.timeout)
        except httpx.HTTPError as exc:
            raise LLMError(f"openai api: {exc}") from exc

        if response.status_code >= 400:
            raise LLMError(
                f"openai api {url}: {_truncate(response.text, 300)} "
                f"(status {response.status_code})"
            )

        try:
            result = response.json()
        except ValueError as exc:
            raise LLMError(f"decode response: {exc}") from exc
        if not isinstance(result, dict):
            raise LLMError("decode response: expected a JSON object")

        error = result.get("error")
        if error:
            message = error.get("message", "") if isinstance(error, dict) else str(error)
            raise LLMError(f"openai api error: {message}")

        choices = result.get("choices") or []
        if not choices:
            raise LLMError("no choices in openai response")

        usage = result.get("usage") or {}
        logger.info("openai response prompt_tokens=%s completion_tokens=%s",
                    usage.get("prompt_tokens", 0), usage.get("completion_tokens", 0))
        message = (choices[0] or {}).get("message") or {}
        return message.get("content") or ""


def _adc_path() -> Path:
    explicit = os.environ.get("GOOGLE_APPLICATION_CREDENTIALS")
    if explicit:
        return Path(explicit)
    appdata = os.environ.get("APPDATA")
    if os.name == "nt" and appdata:
        return Path(appdata) / "gcloud" / "application_default_credentials.json"
    return Path.home() / ".config" / "gcloud" / "application_default_credentials.json"


@dataclass
class VertexProvider(Provider):
    """Claude served through Google Cloud Vertex AI."""

    project_id: str
    region: str
    model: str = DEFAULT_VERTEX_MODEL
    access_token: str | None = None
    timeout: float = 600.0

    @property
    def endpoint(self) -> str:
        """The rawPredict URL for this project, region and model."""
        host = ("https://aiplatform.googleapis.com" if self.region == "global"
                else f"https://{self.region}-aiplatform.googleapis.com")
        return (f"{host}/v1/projects/{self.project_id}/locations/{self.region}"
                f"/publishers/anthropic/models/{self.model}:rawPredict")

    def _fetch_access_token(self) -> str:
        from_env = os.environ.get(_GOOGLE_OAUTH_ENV_VAR)
        if from_env:
            return from_env
        path = _adc_path()
        try:
            credentials = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise LLMError(f"vertex api: cannot load Google credentials from {path}: {exc}") from exc
        if credentials.get("type") != "authorized_user":
            raise LLMError(
                f"vertex api: unsupported Google credentials type {credentials.get('type')!r}"
            )
        form = {field: credentials.get(field) or "" for field in _REFRESH_FIELDS}
        form["grant_type"] = "refresh_token"
        try:
            response = httpx.post(GOOGLE_OAUTH_ENDPOINT, data=form, timeout=30.0)
            response.raise_for_status()
            return response.json()["access_token"]
        except (httpx.HTTPError, ValueError, KeyError) as exc:
            raise LLMError(f"vertex api: refresh Google access token: {exc}") from exc

    def complete(self, system: str, prompt: str, max_tokens: int) -> str:
        logger.info("vertex completion model=%s max_tokens=%d", self.model, max_tokens)
        if not self.access_token:
            self.access_token = self._fetch_access_token()

        payload = {
            "anthropic_version": VERTEX_ANTHROPIC_VERSION,
            "max_tokens": max_tokens,
            "system": [{"type": "text", "text": system}],
            "messages": [
                {"role": "user", "content": [{"type": "text", "text": prompt}]},
            ],
        }
        headers = {"Authorization": f"Bearer {self.access_token}"}
        try:
            response = httpx.post(self.endpoint, json=payload, headers=headers,
                                  timeout=self.timeout)
        except httpx.HTTPError as exc:
            raise LLMError(f"vertex api: {exc}") from exc
        if response.status_code >= 400:
            raise LLMError(
                f"vertex api: {_truncate(response.text, 300)} (status {response.status_code})"
            )
        try:
            result = response.json()
        except ValueError as exc:
            raise LLMError(f"vertex api: decode response: {exc}") from exc

        usage = result.get("usage") or {}
        logger.info("vertex response input_tokens=%s output_tokens=%s",
                    usage.get("input_tokens", 0), usage.get("output_tokens", 0))
        for block in result.get("content") or []:
            if block.get("type") == "text":
                return block.get("text", "")
        raise LLMError("no text in vertex response")


def new_provider(settings: Settings) -> Provider:
    """Choose and build a provider from ``LLM_PROVIDER`` and related settings."""
    kind = get_env_or_secret("LLM_PROVIDER")

    if kind == "openai":
        base_url = get_env_or_secret("LLM_BASE_URL")
        if not base_url:
            raise LLMError("LLM_BASE_URL required when LLM_PROVIDER=openai")
        model = get_env_or_secret("LLM_MODEL")
        if not model:
            raise LLMError("LLM_MODEL required when LLM_PROVIDER=openai")
        logger.info("using OpenAI-compatible provider base_url=%s model=%s", base_url, model)
        return OpenAIProvider(base_url=base_url, model=model,
                              api_key=get_env_or_secret(_OPENAI_ENV_VAR), timeout=120.0)

    if kind == "ollama":
        base_url = get_env_or_secret("OLLAMA_BASE_URL") or DEFAULT_OLLAMA_BASE_URL
        model = get_env_or_secret("LLM_MODEL")
        if not model:
            raise LLMError("LLM_MODEL required when LLM_PROVIDER=ollama")
        logger.info("using Ollama provider base_url=%s model=%s", base_url, model)
        return OpenAIProvider(base_url=base_url, model=model, timeout=300.0)

    if kind in ("vertex", ""):
        if not settings.vertex_project_id:
            if kind == "vertex":
                raise LLMError("ANTHROPIC_VERTEX_PROJECT_ID required for vertex provider")
            raise LLMError(
                "no LLM provider configured — set LLM_PROVIDER (openai, ollama, vertex)"
            )
        model = get_env_or_secret("LLM_MODEL") or DEFAULT_VERTEX_MODEL
        logger.info("using Vertex AI provider project=%s region=%s model=%s",
                    settings.vertex_project_id, settings.vertex_region, model)
        return VertexProvider(project_id=settings.vertex_project_id,
                              region=settings.vertex_region, model=model)

    raise LLMError(f"unknown LLM_PROVIDER {kind!r} — use openai, ollama, or vertex")


def clean_json(text: str) -> str:
    """Strip surrounding whitespace and a markdown code fence, if any."""
    text = text.strip()
    if text.startswith("```"):
        _, newline, rest = text.partition("\n")
        if newline:
            text = rest
        if text.endswith("```"):
            text = text[:-3]
        text = text.strip()
    return text


def parse_json_response(text: str) -> dict[str, Any]:
    """Parse an LLM reply that should hold one JSON object."""
    try:
        data = json.loads(clean_json(text))
    except ValueError as exc:
        raise LLMError(f"failed to parse LLM response as JSON: {exc}\nResponse:\n{text}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise LLMError(
            f"failed to parse LLM response as JSON: expected an object\nResponse:\n{text}"
        )
    return data