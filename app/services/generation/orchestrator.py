"""
Generation orchestrator: primary family with resolved candidates, then one
well-known model on the fallback family. Stateless across calls.
"""
import logging
import time
from dataclasses import dataclass
from typing import Callable

from app.services.generation.base import (
    ExhaustedAllOptionsError,
    GeneratedArtifact,
    GenerationRequest,
    ProviderFamily,
    redact_secrets,
)
from app.services.generation.candidates import resolve_candidates
from app.services.generation.failure_types import AttemptOutcome, is_quota_message
from app.services.generation.runner import RetryPolicy, run_family
from app.utils.metrics import generation_fallback_total

logger = logging.getLogger(__name__)

DEFAULT_FALLBACK_DELAY_SECONDS = 3.0
DEFAULT_ERROR_SNIPPET_CHARS = 150

QUOTA_HINT = (
    "Both providers have exceeded their quota limits. Please wait 5-10 minutes before trying again; "
    "free tier limits reset periodically."
)
GENERIC_HINT = "Check provider credentials and model availability, then try again."


@dataclass(frozen=True)
class GenerationResult:
    artifact: GeneratedArtifact
    family_used: str
    model_used: str | None
    used_fallback_family: bool = False


def _truncate(text: str | None, limit: int) -> str:
    text = text or "Unknown error"
    return text if len(text) <= limit else text[:limit] + "..."


class GenerationOrchestrator:
    """Tries the primary family, then the fallback family; returns the first success."""

    def __init__(
        self,
        primary: ProviderFamily,
        secondary: ProviderFamily,
        retry_policy: RetryPolicy | None = None,
        fallback_delay_seconds: float = DEFAULT_FALLBACK_DELAY_SECONDS,
        error_snippet_chars: int = DEFAULT_ERROR_SNIPPET_CHARS,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.primary = primary
        self.secondary = secondary
        self.retry_policy = retry_policy or RetryPolicy()
        self.fallback_delay_seconds = fallback_delay_seconds
        self.error_snippet_chars = error_snippet_chars
        self.sleep = sleep

    def generate(self, request: GenerationRequest) -> GenerationResult:
        """
        Run the primary family, then the fallback family.

        Returns:
            GenerationResult of the first successful attempt

        Raises:
            ExhaustedAllOptionsError: both families failed
        """
        candidates = resolve_candidates(self.primary, request.kind)
        primary_outcome = run_family(self.primary, candidates, request, self.retry_policy, self.sleep)
        if primary_outcome.ok:
            return GenerationResult(
                artifact=primary_outcome.artifact,
                family_used=self.primary.name,
                model_used=primary_outcome.model,
            )

        logger.warning(
            "generation_fallback_family",
            extra={
                "family": self.secondary.name,
                "kind": request.kind.value,
                "error": _truncate(primary_outcome.error, self.error_snippet_chars),
            },
        )
        if primary_outcome.last_error_transient:
            logger.info(
                "generation_fallback_delay",
                extra={"family": self.secondary.name, "delay_seconds": self.fallback_delay_seconds},
            )
            self.sleep(self.fallback_delay_seconds)

        generation_fallback_total.labels(kind=request.kind.value).inc()
        fallback_model = self.secondary.default_model(request.kind)
        secondary_outcome = run_family(
            self.secondary, [fallback_model], request, self.retry_policy, self.sleep
        )
        if secondary_outcome.ok:
            return GenerationResult(
                artifact=secondary_outcome.artifact,
                family_used=self.secondary.name,
                model_used=secondary_outcome.model,
                used_fallback_family=True,
            )

        raise self._compose_error(request, primary_outcome, secondary_outcome)

    def _compose_error(
        self,
        request: GenerationRequest,
        primary: AttemptOutcome,
        secondary: AttemptOutcome,
    ) -> ExhaustedAllOptionsError:
        secrets = self.primary.secrets() + self.secondary.secrets()
        primary_error = _truncate(redact_secrets(primary.error or "", secrets), self.error_snippet_chars)
        secondary_error = _truncate(redact_secrets(secondary.error or "", secrets), self.error_snippet_chars)

        quota_exhausted = (
            primary.last_error_transient and is_quota_message(primary.error or "")
            and secondary.last_error_transient and is_quota_message(secondary.error or "")
        )
        hint = QUOTA_HINT if quota_exhausted else GENERIC_HINT
        message = (
            f"Failed to generate {request.kind.value} with both {self.primary.name} and {self.secondary.name}. "
            f"{self.primary.name} error: {primary_error}. "
            f"{self.secondary.name} error: {secondary_error}. "
            f"{hint}"
        )
        logger.error(
            "generation_exhausted",
            extra={"kind": request.kind.value, "error": "quota" if quota_exhausted else "generic"},
        )
        return ExhaustedAllOptionsError(
            message,
            primary_error=primary_error,
            secondary_error=secondary_error,
            quota_exhausted=quota_exhausted,
        )
