"""
External inference clients.

One operation: prompt text in, raw response text out. Clients raise
``InferenceError`` subclasses for every failure mode; they never retry on
their own (the blender moves on to the next model variant instead).

Backends:
- GeminiInferenceClient: Google Generative AI, JSON response mode
- HttpInferenceClient: self-hosted ``/api/generate`` endpoint via httpx
"""

from __future__ import annotations

import asyncio
import re
from typing import Protocol

import httpx
from loguru import logger

from config import Settings, get_settings
from uaps.exceptions import (
    InferenceError,
    InferenceRateLimitError,
    InferenceTimeoutError,
    InferenceUnavailableError,
)

_RATE_LIMIT_MARKERS = ("429", "quota", "resource_exhausted", "rate limit")


def strip_code_fences(text: str) -> str:
    """Remove surrounding markdown code fences from a model response."""
    text = text.strip()
    if text.startswith("```"):
        text = re.sub(r"^```(?:json)?\s*\n?", "", text)
        text = re.sub(r"\n?```\s*$", "", text)
    return text.strip()


def _classify_error(exc: Exception, model: str) -> InferenceError:
    message = str(exc)
    if any(marker in message.lower() for marker in _RATE_LIMIT_MARKERS):
        return InferenceRateLimitError(f"Rate limited: {message}", model=model)
    return InferenceError(f"Inference failed: {message}", model=model)


class InferenceClient(Protocol):
    """Anything that can turn a prompt into response text."""

    async def generate(self, prompt: str, model: str, timeout: float) -> str: ...


class GeminiInferenceClient:
    """Gemini client; the SDK is imported and configured on first use."""

    def __init__(self, api_key: str | None, temperature: float = 0.3):
        self.api_key = api_key
        self.temperature = temperature
        self._genai = None

    @property
    def genai(self):
        """Lazy-load and configure the Gemini SDK."""
        if self._genai is None:
            if not self.api_key:
                raise InferenceUnavailableError("No Gemini API key configured")
            import google.generativeai as genai

            genai.configure(api_key=self.api_key)
            self._genai = genai
        return self._genai

    async def generate(self, prompt: str, model: str, timeout: float) -> str:
        genai = self.genai
        client = genai.GenerativeModel(model_name=model)

        try:
            response = await asyncio.wait_for(
                client.generate_content_async(
                    prompt,
                    generation_config={
                        "temperature": self.temperature,
                        "response_mime_type": "application/json",
                    },
                ),
                timeout=timeout,
            )
        except asyncio.TimeoutError as e:
            raise InferenceTimeoutError(f"{model} timed out after {timeout:g}s", model=model) from e
        except Exception as e:
            raise _classify_error(e, model) from e

        try:
            text = response.text
        except ValueError as e:
            # Blocked or empty candidates make .text raise
            raise InferenceError(f"{model} returned no text: {e}", model=model) from e
        if not text:
            raise InferenceError(f"{model} returned an empty response", model=model)
        return text


class HttpInferenceClient:
    """Client for a self-hosted JSON generation endpoint (``POST /api/generate``)."""

    def __init__(self, base_url: str, transport: httpx.AsyncBaseTransport | None = None):
        self.base_url = base_url.rstrip("/")
        self._transport = transport

    async def generate(self, prompt: str, model: str, timeout: float) -> str:
        payload = {"model": model, "prompt": prompt, "format": "json", "stream": False}
        try:
            async with httpx.AsyncClient(
                timeout=httpx.Timeout(timeout),
                transport=self._transport,
            ) as client:
                response = await client.post(f"{self.base_url}/api/generate", json=payload)
                response.raise_for_status()
                data = response.json()
        except httpx.TimeoutException as e:
            raise InferenceTimeoutError(f"{model} timed out after {timeout:g}s", model=model) from e
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 429:
                raise InferenceRateLimitError(f"{model} rate limited", model=model) from e
            raise InferenceError(f"{model} returned HTTP {e.response.status_code}", model=model) from e
        except (httpx.HTTPError, ValueError) as e:
            raise InferenceError(f"{model} request failed: {e}", model=model) from e

        text = data.get("response") if isinstance(data, dict) else None
        if not text:
            raise InferenceError(f"{model} returned an empty response", model=model)
        return text


def build_inference_client(settings: Settings | None = None) -> InferenceClient | None:
    """Client for the configured backend, or None when nothing is configured."""
    settings = settings or get_settings()
    if not settings.has_ai_configured():
        logger.info("No inference backend configured; predictions use statistics only")
        return None
    if settings.inference_backend == "http":
        return HttpInferenceClient(settings.inference_base_url)
    return GeminiInferenceClient(settings.gemini_api_key)
