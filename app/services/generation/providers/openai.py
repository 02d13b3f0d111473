"""
OpenAI provider family; used as the fallback family.
Text kinds go through chat completions, images through images.generate.
"""
import logging
from typing import Any

from openai import APIStatusError, APITimeoutError, OpenAI, OpenAIError

from app.services.generation.base import (
    GenerationKind,
    GenerationRequest,
    ProviderCallError,
    ProviderFamily,
    redact_secrets,
)

logger = logging.getLogger(__name__)

DEFAULT_TEXT_MODEL = "gpt-3.5-turbo"
DEFAULT_IMAGE_MODEL = "dall-e-3"


class OpenAIFamily(ProviderFamily):
    """OpenAI chat and image models."""

    name = "openai"

    def __init__(self, config: dict, client: Any = None):
        super().__init__(config)
        self.api_key = (config.get("api_key") or "").strip()
        self.timeout = float(config.get("timeout", 60.0))
        self.temperature = float(config.get("temperature", 0.7))
        self.max_tokens = int(config.get("max_tokens", 1000))
        self.image_size = config.get("image_size") or "1024x1024"

        if client is not None:
            self.client = client
        elif self.api_key:
            # Retries are owned by the runner's policy
            self.client = OpenAI(api_key=self.api_key, timeout=self.timeout, max_retries=0)
        else:
            self.client = None

    def is_available(self) -> bool:
        """Check if OpenAI is configured."""
        return bool(self.api_key and self.client)

    def default_model(self, kind: GenerationKind) -> str:
        if kind == GenerationKind.IMAGE:
            return self.config.get("image_model") or DEFAULT_IMAGE_MODEL
        return self.config.get("text_model") or DEFAULT_TEXT_MODEL

    def secrets(self) -> tuple[str, ...]:
        return (self.api_key,) if self.api_key else ()

    def list_models(self) -> list[dict[str, Any]]:
        if not self.is_available():
            raise ValueError("OpenAI provider not configured")
        try:
            return [{"name": m.id} for m in self.client.models.list()]
        except OpenAIError as e:
            raise self._call_error(e) from e

    def invoke(self, model_id: str, request: GenerationRequest) -> dict[str, Any]:
        if not self.is_available():
            raise ProviderCallError("OpenAI provider not configured (missing api_key)")
        try:
            if request.kind == GenerationKind.IMAGE:
                response = self.client.images.generate(
                    model=model_id,
                    prompt=request.raw_prompt,
                    size=self.image_size,
                    n=1,
                    response_format="b64_json",
                )
            else:
                response = self.client.chat.completions.create(
                    model=model_id,
                    messages=[{"role": "user", "content": request.raw_prompt}],
                    temperature=self.temperature,
                    max_tokens=self.max_tokens,
                )
        except OpenAIError as e:
            raise self._call_error(e) from e
        return response.model_dump()

    def _call_error(self, e: OpenAIError) -> ProviderCallError:
        if isinstance(e, APITimeoutError):
            return ProviderCallError(f"Request timed out after {self.timeout}s", timed_out=True)
        if isinstance(e, APIStatusError):
            message = redact_secrets(f"HTTP {e.status_code}: {e.message}", self.secrets())
            return ProviderCallError(message, status_code=e.status_code)
        return ProviderCallError(redact_secrets(str(e) or type(e).__name__, self.secrets()))
