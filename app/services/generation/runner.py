"""
Generation runner: single-model invocation and the per-family retry driver.
Retry budget is a policy value (max 1 retry by default, fixed delay); every attempt is
classified and logged.
"""
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable

from app.services.generation.base import (
    GenerationRequest,
    ProviderCallError,
    ProviderFamily,
    describe_empty_response,
    redact_secrets,
    sanitize_response_for_log,
)
from app.services.generation.failure_types import AttemptOutcome, OutcomeKind, classify_failure
from app.services.generation.shapes import parse_response, shapes_for
from app.utils.metrics import generation_attempts_total

logger = logging.getLogger(__name__)

# Keys for structured logging
LOG_KEYS = (
    "family",
    "model",
    "kind",
    "attempt",
    "outcome",
    "status_code",
    "error",
)


@dataclass(frozen=True)
class RetryPolicy:
    """How often one model may be attempted and how long to wait before the retry."""
    max_attempts: int = 2
    delay_seconds: float = 5.0

    def should_retry(self, outcome: AttemptOutcome, attempt: int) -> bool:
        return outcome.kind == OutcomeKind.TRANSIENT and attempt < self.max_attempts

    @classmethod
    def from_settings(cls, settings: Any) -> "RetryPolicy":
        return cls(
            max_attempts=max(1, int(getattr(settings, "generation_retry_max_attempts", 2))),
            delay_seconds=float(getattr(settings, "generation_retry_delay_seconds", 5.0)),
        )


def invoke_model(family: ProviderFamily, model_id: str, request: GenerationRequest) -> AttemptOutcome:
    """Send the request to one model and classify the result. Never raises ProviderCallError."""
    try:
        body = family.invoke(model_id, request)
    except ProviderCallError as e:
        message = redact_secrets(str(e), family.secrets())
        kind = classify_failure(e.status_code, message, e.timed_out)
        return AttemptOutcome(kind=kind, family=family.name, model=model_id, error=message)

    artifact = parse_response(body, shapes_for(request.kind))
    if artifact is not None:
        return AttemptOutcome(kind=OutcomeKind.SUCCESS, family=family.name, model=model_id, artifact=artifact)

    reason = describe_empty_response(body if isinstance(body, dict) else {})
    logger.debug(
        "generation_unmatched_response",
        extra={"family": family.name, "model": model_id, "response": sanitize_response_for_log(body or {})},
    )
    return AttemptOutcome(kind=OutcomeKind.FATAL, family=family.name, model=model_id, error=f"{model_id}: {reason}")


def run_family(
    family: ProviderFamily,
    candidates: list[str],
    request: GenerationRequest,
    policy: RetryPolicy | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> AttemptOutcome:
    """
    Try candidates in order; return the first success or a fatal outcome carrying
    the last recorded error. A transient model gets at most policy.max_attempts - 1 retries.
    """
    policy = policy or RetryPolicy()

    if not family.is_available():
        message = f"{family.name} provider not configured (missing credential)"
        logger.warning("generation_family_unavailable", extra={"family": family.name})
        return AttemptOutcome(
            kind=OutcomeKind.FATAL, family=family.name, error=message, last_error_kind=OutcomeKind.FATAL
        )

    last: AttemptOutcome | None = None
    for model_id in candidates:
        attempt = 0
        while True:
            attempt += 1
            outcome = invoke_model(family, model_id, request)
            generation_attempts_total.labels(family=family.name, outcome=outcome.kind.value).inc()
            _log_structured(
                family=family.name,
                model=model_id,
                kind=request.kind.value,
                attempt=attempt,
                outcome=outcome.kind.value,
                error=outcome.error,
            )
            if outcome.ok:
                return outcome
            last = outcome
            if not policy.should_retry(outcome, attempt):
                break
            logger.info(
                "generation_retry_scheduled",
                extra={
                    "family": family.name,
                    "model": model_id,
                    "attempt": attempt,
                    "delay_seconds": policy.delay_seconds,
                },
            )
            sleep(policy.delay_seconds)

    if last is None:
        return AttemptOutcome(
            kind=OutcomeKind.FATAL,
            family=family.name,
            error=f"No candidate models for {family.name}",
            last_error_kind=OutcomeKind.FATAL,
        )
    return AttemptOutcome(
        kind=OutcomeKind.FATAL,
        family=family.name,
        model=last.model,
        error=last.error,
        last_error_kind=last.kind,
    )


def _log_structured(**kwargs: Any) -> None:
    """Emit one structured log line per attempt."""
    extra = {k: v for k, v in kwargs.items() if k in LOG_KEYS and v is not None}
    logger.info("generation_attempt", extra=extra)
