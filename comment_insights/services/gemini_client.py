from __future__ import annotations

import logging

import requests

from comment_insights.config.settings import Settings, get_settings
from comment_insights.services.errors import (
    ConfigurationError,
    ProviderError,
    QuotaError,
    is_quota_message,
    should_try_next_model,
)

logger = logging.getLogger(__name__)


def _error_detail(r: requests.Response) -> str:
    try:
        payload = r.json()
    except ValueError:
        return r.text[:500]
    if isinstance(payload, dict) and isinstance(payload.get("error"), dict):
        return str(payload["error"].get("message", ""))
    return r.text[:500]


def _response_text(payload) -> str:
    # any unexpected shape reads as "no text"
    if not isinstance(payload, dict):
        return ""
    candidates = payload.get("candidates")
    if not isinstance(candidates, list) or not candidates or not isinstance(candidates[0], dict):
        return ""
    content = candidates[0].get("content")
    if not isinstance(content, dict):
        return ""
    parts = content.get("parts")
    if not isinstance(parts, list):
        return ""
    return "".join(str(p.get("text", "")) for p in parts if isinstance(p, dict))


class GeminiClient:
    """
    REST client for Gemini generateContent with model-name fallback.
    """

    def __init__(self, settings: Settings | None = None, session: requests.Session | None = None) -> None:
        s = settings or get_settings()
        self.api_key = s.gemini_api_key
        self.base_url = s.gemini_base_url.rstrip("/")
        self.timeout = s.gemini_timeout_seconds or None
        self.models = self._dedupe([s.gemini_model, *s.gemini_fallback_models])
        self.session = session or requests.Session()

    @staticmethod
    def _dedupe(names: list[str]) -> list[str]:
        out: list[str] = []
        for n in names:
            n = (n or "").strip()
            if n and n not in out:
                out.append(n)
        return out

    def candidate_models(self) -> list[str]:
        return list(self.models)

    def generate_once(self, model: str, prompt: str) -> str:
        url = f"{self.base_url}/models/{model}:generateContent"
        payload = {"contents": [{"parts": [{"text": prompt}]}]}
        try:
            r = self.session.post(
                url,
                json=payload,
                headers={"x-goog-api-key": self.api_key},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise ProviderError(f"Gemini request to {model} failed: {e}", model=model) from e

        if not r.ok:
            message = (
                f"Gemini request to {model} failed with status "
                f"{r.status_code} {r.reason}: {_error_detail(r)}"
            )
            if r.status_code == 429 or is_quota_message(message):
                raise QuotaError(message, status=r.status_code, model=model)
            raise ProviderError(message, status=r.status_code, model=model)

        try:
            text = _response_text(r.json())
        except ValueError as e:
            raise ProviderError(f"Gemini returned invalid JSON for {model}", model=model) from e
        if not text:
            raise ProviderError(f"Gemini returned no text for {model}", model=model)
        return text

    def generate(self, prompt: str) -> str:
        """
        Try each candidate model in order. Unknown/unsupported models fall
        through to the next candidate; any other failure is raised at once.
        """
        if not self.api_key:
            raise ConfigurationError("Missing GEMINI_API_KEY")

        last_error: Exception | None = None
        for model in self.models:
            try:
                return self.generate_once(model, prompt)
            except ProviderError as e:
                last_error = e
                if not should_try_next_model(e):
                    raise
                logger.warning("Model %s unavailable, trying next candidate: %s", model, e)

        if last_error is None:
            raise ConfigurationError("No Gemini model configured")
        raise last_error
