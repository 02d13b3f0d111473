"""
Replicate API sketch renderer.
Turns a generated sketch prompt into an anime-style line-art image URL.
"""
import logging
import time
from typing import Callable

import httpx

from app.services.generation.base import ProviderUnavailableError, SketchRenderError, redact_secrets

logger = logging.getLogger(__name__)

DEFAULT_SKETCH_MODEL = "andite/anything-v5"
SKETCH_STYLE_SUFFIX = ", anime pencil sketch, clean line-art, manga style, high detail"
SKETCH_NEGATIVE_PROMPT = "blurry, low quality, extra limbs, distorted face"


class ReplicateSketchRenderer:
    """Replicate predictions API: create, poll, return first output URL."""

    def __init__(
        self,
        config: dict,
        transport: httpx.BaseTransport | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.config = config
        self.api_token = (config.get("api_token") or "").strip()
        self.api_url = (config.get("api_url") or "https://api.replicate.com/v1").rstrip("/")
        self.model = config.get("model") or DEFAULT_SKETCH_MODEL
        self.timeout = float(config.get("timeout", 120.0))
        self.poll_interval = float(config.get("poll_interval", 2.0))
        self.max_wait = float(config.get("max_wait", 300.0))
        self._transport = transport
        self._sleep = sleep

    def is_available(self) -> bool:
        """Check if Replicate is configured."""
        return bool(self.api_token)

    def render(self, prompt: str) -> str:
        """Render a sketch prompt; returns the image URL."""
        if not self.is_available():
            raise ProviderUnavailableError("Replicate provider not configured (missing api_token)")

        headers = {
            "Authorization": f"Bearer {self.api_token}",
            "Content-Type": "application/json",
        }
        payload: dict = {
            "input": {
                "prompt": f"{prompt}{SKETCH_STYLE_SUFFIX}",
                "negative_prompt": SKETCH_NEGATIVE_PROMPT,
            }
        }
        # owner/name:version pins a version; bare owner/name uses the model's latest
        if ":" in self.model:
            payload["version"] = self.model.split(":", 1)[1]
            create_url = f"{self.api_url}/predictions"
        else:
            create_url = f"{self.api_url}/models/{self.model}/predictions"

        logger.info("sketch_render_started", extra={"model": self.model})
        try:
            with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
                response = client.post(create_url, headers=headers, json=payload)
                response.raise_for_status()
                image_url = self._wait_for_completion(client, self._prediction(response), headers)
        except httpx.HTTPStatusError as e:
            raise SketchRenderError(
                redact_secrets(f"Replicate API returned HTTP {e.response.status_code}", (self.api_token,))
            ) from e
        except httpx.HTTPError as e:
            raise SketchRenderError(redact_secrets(f"Replicate request failed: {e}", (self.api_token,))) from e

        logger.info("sketch_render_succeeded", extra={"model": self.model})
        return image_url

    def _wait_for_completion(self, client: httpx.Client, prediction: dict, headers: dict) -> str:
        """Poll prediction until complete and return image URL."""
        start_time = time.monotonic()
        while True:
            status = prediction.get("status")
            if status == "succeeded":
                return self._first_output(prediction.get("output"))
            if status in ("failed", "canceled"):
                error = prediction.get("error") or "Unknown error"
                raise SketchRenderError(f"Replicate prediction failed: {error}")
            if time.monotonic() - start_time >= self.max_wait:
                raise SketchRenderError(f"Replicate prediction timed out after {self.max_wait}s")

            # Still processing
            self._sleep(self.poll_interval)
            urls = prediction.get("urls")
            prediction_url = urls.get("get") if isinstance(urls, dict) else None
            if not prediction_url:
                raise SketchRenderError("Replicate prediction has no polling URL")
            response = client.get(prediction_url, headers=headers)
            response.raise_for_status()
            prediction = self._prediction(response)

    @staticmethod
    def _prediction(response: httpx.Response) -> dict:
        try:
            prediction = response.json()
        except ValueError as e:
            raise SketchRenderError(f"Replicate API returned invalid JSON (HTTP {response.status_code})") from e
        if not isinstance(prediction, dict):
            raise SketchRenderError("Unexpected prediction payload from Replicate API")
        return prediction

    @staticmethod
    def _first_output(output) -> str:
        image_url = output[0] if isinstance(output, list) and output else output
        if not image_url:
            raise SketchRenderError("Replicate API returned empty image URL")
        if not isinstance(image_url, str):
            raise SketchRenderError("Invalid image URL format from Replicate API")
        return image_url
