"""
Gemini provider family (Google AI Generative Language API).
Uses generativelanguage.googleapis.com with api_key; primary family.
"""
import logging
from typing import Any

import httpx

from app.services.generation.base import (
    GenerationKind,
    GenerationRequest,
    ProviderCallError,
    ProviderFamily,
    redact_secrets,
)

logger = logging.getLogger(__name__)

DEFAULT_ENDPOINT = "https://generativelanguage.googleapis.com"
DEFAULT_TEMPERATURE = 0.7
DEFAULT_TEXT_MODEL = "gemini-1.5-flash"
DEFAULT_IMAGE_MODEL = "gemini-2.5-flash-image"


class GeminiFamily(ProviderFamily):
    """Gemini models via generateContent."""

    name = "gemini"

    def __init__(self, config: dict, transport: httpx.BaseTransport | None = None) -> None:
        super().__init__(config)
        self.api_key = (config.get("api_key") or "").strip()
        endpoint = (config.get("api_endpoint") or DEFAULT_ENDPOINT).rstrip("/")
        self.base_url = f"{endpoint}/v1beta/models"
        self.timeout = float(config.get("timeout", 60.0))
        self.temperature = float(config.get("temperature", DEFAULT_TEMPERATURE))
        self._transport = transport

    def is_available(self) -> bool:
        return bool(self.api_key)

    def default_model(self, kind: GenerationKind) -> str:
        if kind == GenerationKind.IMAGE:
            return self.config.get("image_model") or DEFAULT_IMAGE_MODEL
        return self.config.get("text_model") or DEFAULT_TEXT_MODEL

    def secrets(self) -> tuple[str, ...]:
        return (self.api_key,) if self.api_key else ()

    def _client(self) -> httpx.Client:
        return httpx.Client(timeout=self.timeout, transport=self._transport)

    def list_models(self) -> list[dict[str, Any]]:
        if not self.is_available():
            raise ValueError("Gemini provider not configured (missing api_key)")
        result = self._request("GET", self.base_url)
        models = result.get("models") or []
        names = [m.get("name") for m in models if isinstance(m, dict)]
        logger.info("gemini_models_listed", extra={"family": self.name, "candidates": names})
        return [m for m in models if isinstance(m, dict)]

    def invoke(self, model_id: str, request: GenerationRequest) -> dict[str, Any]:
        if not self.is_available():
            raise ProviderCallError("Gemini provider not configured (missing api_key)")

        generation_config: dict[str, Any] = {"temperature": self.temperature}
        if request.kind == GenerationKind.IMAGE:
            generation_config["responseModalities"] = ["TEXT", "IMAGE"]
        payload = {
            "contents": [{"role": "user", "parts": [{"text": request.raw_prompt}]}],
            "generationConfig": generation_config,
        }
        return self._request("POST", f"{self.base_url}/{model_id}:generateContent", json=payload)

    def _request(self, method: str, url: str, json: dict | None = None) -> dict[str, Any]:
        params = {"key": self.api_key}
        try:
            with self._client() as client:
                resp = client.request(method, url, params=params, json=json)
                resp.raise_for_status()
                result = resp.json()
        except httpx.TimeoutException as e:
            raise ProviderCallError(
                f"Request timed out after {self.timeout}s", timed_out=True
            ) from e
        except httpx.HTTPStatusError as e:
            try:
                err_body = e.response.json()
            except ValueError:
                err_body = {}
            error = err_body.get("error") if isinstance(err_body, dict) else None
            msg = (error or {}).get("message") if isinstance(error, dict) else None
            status = (error or {}).get("status") if isinstance(error, dict) else None
            text = msg or e.response.reason_phrase or "request failed"
            if status:
                text = f"{status}: {text}"
            message = redact_secrets(f"HTTP {e.response.status_code}: {text}", self.secrets())
            raise ProviderCallError(message, status_code=e.response.status_code) from e
        except httpx.HTTPError as e:
            raise ProviderCallError(redact_secrets(str(e) or type(e).__name__, self.secrets())) from e
        except ValueError as e:
            raise ProviderCallError(f"Invalid JSON in Gemini response: {e}") from e
        if not isinstance(result, dict):
            raise ProviderCallError("Unexpected Gemini response format")
        return result
