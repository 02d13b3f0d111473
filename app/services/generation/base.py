"""
Base classes and types for generation provider families.
Used by the runner, orchestrator, factory and all providers (gemini, openai).
"""
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Any, Iterable, Mapping


class GenerationKind(str, Enum):
    """What the caller asked for."""

    IMAGE = "image"
    STORY = "story"
    SKETCH = "sketch"


class ArtifactType(str, Enum):
    IMAGE_URI = "image_uri"  # data URI or remote URL
    TEXT_BLOCK = "text_block"  # story or prompt text


@dataclass(frozen=True)
class GenerationRequest:
    """Request for one generation; built fresh per call and never mutated."""
    kind: GenerationKind
    subject: Mapping[str, str]
    raw_prompt: str

    @classmethod
    def build(cls, kind: GenerationKind, subject: Mapping[str, Any], raw_prompt: str) -> "GenerationRequest":
        frozen = MappingProxyType({k: str(v) for k, v in subject.items() if v is not None})
        return cls(kind=kind, subject=frozen, raw_prompt=raw_prompt)

    @property
    def subject_name(self) -> str:
        return self.subject.get("name", "")


@dataclass(frozen=True)
class GeneratedArtifact:
    type: ArtifactType
    value: str
    mime_type: str | None = None

    @property
    def is_image(self) -> bool:
        return self.type == ArtifactType.IMAGE_URI


class GenerationError(Exception):
    """Base for all generation failures surfaced to callers."""


class InvalidInputError(GenerationError):
    """Malformed subject description; raised before any provider call."""


class ProviderUnavailableError(GenerationError):
    """Provider credential (or other required config) is missing."""


class ProviderCallError(GenerationError):
    """
    Raised by a provider family when one outbound call fails.
    status_code is the HTTP status when the provider answered; timed_out marks
    per-call timeout expiry. Message must already be scrubbed of credentials.
    """
    def __init__(self, message: str, status_code: int | None = None, timed_out: bool = False):
        super().__init__(message)
        self.status_code = status_code
        self.timed_out = timed_out


class ExhaustedAllOptionsError(GenerationError):
    """Terminal failure: primary and fallback families both failed."""
    def __init__(
        self,
        message: str,
        primary_error: str | None = None,
        secondary_error: str | None = None,
        quota_exhausted: bool = False,
    ):
        super().__init__(message)
        self.primary_error = primary_error
        self.secondary_error = secondary_error
        self.quota_exhausted = quota_exhausted


class SketchRenderError(GenerationError):
    """Sketch prompt was generated but rendering it into an image failed."""


_QUERY_KEY_RE = re.compile(r"(key=)[^&\s\"']+", re.IGNORECASE)


def redact_secrets(text: str, secrets: Iterable[str | None] = ()) -> str:
    """Replace credential values (and any ?key= query param) with a placeholder."""
    if not text:
        return text
    out = _QUERY_KEY_RE.sub(r"\1[REDACTED]", text)
    for secret in secrets:
        if secret:
            out = out.replace(secret, "[REDACTED]")
    return out


def _sanitize_value(value: Any) -> Any:
    """Recursively replace base64 data with placeholder."""
    if value is None:
        return None
    if isinstance(value, dict):
        if "data" in value and "mimeType" in value:
            return {"mimeType": value.get("mimeType"), "data": "[REDACTED]"}
        return {
            k: "[REDACTED]" if k in ("b64_json", "bytesBase64Encoded", "imageBase64", "bytes") else _sanitize_value(v)
            for k, v in value.items()
        }
    if isinstance(value, list):
        return [_sanitize_value(v) for v in value]
    return value


def sanitize_response_for_log(result: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of a raw provider response safe for logging (no base64 image data)."""
    if not result:
        return {}
    out = _sanitize_value(result)
    return out if isinstance(out, dict) else {}


def describe_empty_response(result: dict[str, Any]) -> str:
    """
    Explain why a 2xx response yielded no artifact.
    Looks at Gemini-style promptFeedback.blockReason and candidate finishReason.
    """
    if not result:
        return "Empty response body"
    prompt_feedback = result.get("promptFeedback")
    if isinstance(prompt_feedback, dict) and prompt_feedback.get("blockReason"):
        return f"Request blocked: {prompt_feedback['blockReason']}"
    candidates = result.get("candidates")
    if isinstance(candidates, list) and candidates and isinstance(candidates[0], dict):
        c0 = candidates[0]
        finish_reason = c0.get("finishReason")
        if finish_reason and finish_reason != "STOP":
            return str(c0.get("finishMessage") or f"Generation stopped: {finish_reason}")
    return "No usable content in response"


class ProviderFamily(ABC):
    """One vendor's API surface: a credential plus a set of candidate models."""

    name: str = ""

    def __init__(self, config: dict) -> None:
        self.config = config

    @abstractmethod
    def is_available(self) -> bool:
        """Check if the family is configured (credential present)."""
        pass

    @abstractmethod
    def list_models(self) -> list[dict[str, Any]]:
        """Return raw model descriptors ({"name": ..., ...}). May raise."""
        pass

    @abstractmethod
    def invoke(self, model_id: str, request: GenerationRequest) -> dict[str, Any]:
        """Send the prompt to one model and return the raw JSON body. Raises ProviderCallError."""
        pass

    @abstractmethod
    def default_model(self, kind: GenerationKind) -> str:
        """Single well-known model used when this family acts as fallback."""
        pass

    def secrets(self) -> tuple[str, ...]:
        """Credential values to scrub from error messages."""
        return ()
