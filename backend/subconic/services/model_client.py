"""Clients for the upstream text-generation service."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Dict, Optional

import httpx

from subconic.core.config import settings
from subconic.core.errors import ModelTimeoutError, UpstreamError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_MS = 90000


@dataclass(frozen=True)
class GenerationOptions:
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    temperature: Optional[float] = 0.7
    top_p: Optional[float] = None
    max_output_tokens: Optional[int] = 2000

    @classmethod
    def from_settings(cls) -> "GenerationOptions":
        return cls(
            timeout_ms=settings.llm_timeout_ms,
            temperature=settings.llm_temperature,
            top_p=settings.llm_top_p,
            max_output_tokens=settings.llm_max_output_tokens,
        )


class ModelClient:
    """Base interface for text-generation providers.

    ``generate`` owns the deadline: subclasses implement ``_request`` and are
    cancelled when ``options.timeout_ms`` expires.
    """

    name = "base"

    async def generate(self, prompt: str, options: GenerationOptions) -> str:
        try:
            text = await asyncio.wait_for(self._request(prompt, options), timeout=options.timeout_ms / 1000)
        except ModelTimeoutError:
            raise
        except asyncio.TimeoutError:
            logger.warning("Model call to %s cancelled after %sms", self.name, options.timeout_ms)
            raise ModelTimeoutError(options.timeout_ms) from None
        if not text or not text.strip():
            raise UpstreamError("empty response")
        return text

    async def _request(self, prompt: str, options: GenerationOptions) -> str:
        raise NotImplementedError


class GeminiModelClient(ModelClient):
    """Calls the Gemini ``generateContent`` REST endpoint."""

    name = "gemini"

    def __init__(
        self,
        api_key: str | None,
        model: str,
        base_url: str,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self._transport = transport

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/models/{self.model}:generateContent"

    async def _request(self, prompt: str, options: GenerationOptions) -> str:
        if not self.api_key:
            raise UpstreamError("GEMINI_API_KEY is not configured")

        payload = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": _generation_config(options),
        }
        headers = {
            "x-goog-api-key": self.api_key,
            "Content-Type": "application/json",
        }
        # The outer wait_for is the real deadline; this only bounds socket waits.
        timeout = httpx.Timeout(options.timeout_ms / 1000)

        async with httpx.AsyncClient(timeout=timeout, transport=self._transport) as client:
            try:
                resp = await client.post(self.endpoint, json=payload, headers=headers)
            except httpx.TimeoutException:
                raise ModelTimeoutError(options.timeout_ms) from None
            except httpx.HTTPError as exc:
                raise UpstreamError(f"Gemini transport error: {exc}") from exc

        if resp.status_code != 200:
            raise UpstreamError(
                f"Gemini error: status={resp.status_code}, body={resp.text[:500]}",
                upstream_status=resp.status_code,
            )

        try:
            data = resp.json()
        except ValueError as exc:
            raise UpstreamError("Gemini returned a non-JSON body", upstream_status=resp.status_code) from exc
        return extract_candidate_text(data)


def extract_candidate_text(data: Any) -> str:
    """Return the text parts of the first candidate, or '' when there is none."""
    if not isinstance(data, dict):
        return ""
    candidates = data.get("candidates")
    if not isinstance(candidates, list) or not candidates or not isinstance(candidates[0], dict):
        return ""
    content = candidates[0].get("content")
    if not isinstance(content, dict):
        return ""
    parts = content.get("parts")
    if not isinstance(parts, list):
        return ""
    texts = [part.get("text") for part in parts if isinstance(part, dict) and isinstance(part.get("text"), str)]
    return "".join(texts)


def _generation_config(options: GenerationOptions) -> Dict[str, Any]:
    config: Dict[str, Any] = {}
    if options.temperature is not None:
        config["temperature"] = options.temperature
    if options.top_p is not None:
        config["topP"] = options.top_p
    if options.max_output_tokens is not None:
        config["maxOutputTokens"] = options.max_output_tokens
    return config


@lru_cache
def get_model_client() -> ModelClient:
    """Return the configured model client; overridden in tests via FastAPI dependencies."""
    return GeminiModelClient(
        api_key=settings.gemini_api_key,
        model=settings.gemini_model,
        base_url=settings.gemini_base_url,
    )
