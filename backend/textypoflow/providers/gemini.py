"""
Gemini provider - text and image generation over the Generative Language REST API.

API Reference: https://ai.google.dev/api/generate-content
"""
import logging
from typing import Any

import httpx

from .base import GenerationProvider, ProviderError

logger = logging.getLogger(__name__)

EMPTY_TEXT_MESSAGE = "No response generated."


class GeminiProvider(GenerationProvider):
    """Calls ``models/{model}:generateContent`` for both text and images."""

    def __init__(
        self,
        api_key: str,
        text_model: str = "gemini-3-pro-preview",
        image_model: str = "gemini-2.5-flash-image",
        api_base: str = "https://generativelanguage.googleapis.com/v1beta",
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        self.api_key = api_key
        self.text_model = text_model
        self.image_model = image_model
        self.api_base = api_base.rstrip("/")
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def generate_text(self, prompt: str, system_instruction: str) -> str:
        if not self.api_key:
            raise ProviderError(
                "API Key is missing. Please set TEXTYPOFLOW_GEMINI_API_KEY or check environment variables."
            )
        body: dict[str, Any] = {"contents": [{"role": "user", "parts": [{"text": prompt}]}]}
        if system_instruction:
            body["systemInstruction"] = {"parts": [{"text": system_instruction}]}

        data = await self._generate(self.text_model, body)
        text = "".join(part.get("text", "") for part in self._first_parts(data))
        if not text:
            raise ProviderError(EMPTY_TEXT_MESSAGE)
        return text

    async def generate_image(self, prompt: str, aspect_ratio: str) -> str:
        if not self.api_key:
            raise ProviderError("API Key is missing.")
        # The image model follows aspect ratio instructions given in the prompt
        enhanced_prompt = f"Aspect Ratio: {aspect_ratio}\n\n{prompt}"
        body = {
            "contents": [{"parts": [{"text": enhanced_prompt}]}],
            "generationConfig": {"responseModalities": ["IMAGE"]},
        }

        data = await self._generate(self.image_model, body)
        for part in self._first_parts(data):
            inline = part.get("inlineData") or {}
            if inline.get("data"):
                return inline["data"]
        raise ProviderError("No image data returned from the model.")

    async def _generate(self, model: str, body: dict[str, Any]) -> dict[str, Any]:
        url = f"{self.api_base}/models/{model}:generateContent"
        try:
            response = await self._client.post(
                url, headers={"x-goog-api-key": self.api_key}, json=body,
            )
        except httpx.TimeoutException:
            logger.warning("Gemini request to %s timed out", model)
            raise ProviderError("Request timed out") from None
        except httpx.RequestError as e:
            logger.warning("Gemini request to %s failed: %s", model, e)
            raise ProviderError(f"Network error: {e}") from e
        return self._handle_response(model, response)

    def _handle_response(self, model: str, response: httpx.Response) -> dict[str, Any]:
        if response.status_code != 200:
            message = self._error_message(response)
            logger.warning("Gemini API error (%s, HTTP %s): %s", model, response.status_code, message)
            raise ProviderError(message)
        try:
            data = response.json()
        except ValueError:
            raise ProviderError("Invalid JSON in Gemini response") from None
        if not isinstance(data, dict):
            raise ProviderError("Invalid Gemini response")
        return data

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            detail = response.json().get("error", {}).get("message")
        except (ValueError, AttributeError):
            detail = None
        if detail:
            return detail
        if response.status_code in (401, 403):
            return "Invalid or unauthorized API key"
        if response.status_code == 429:
            return "Rate limit exceeded. Try again later."
        return f"Gemini API error (HTTP {response.status_code})"

    @staticmethod
    def _first_parts(data: dict[str, Any]) -> list[dict[str, Any]]:
        candidates = data.get("candidates") or []
        if not candidates:
            return []
        return (candidates[0].get("content") or {}).get("parts") or []

    async def aclose(self) -> None:
        await self._client.aclose()
