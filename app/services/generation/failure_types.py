"""
Failure normalization for provider calls.
Classifies HTTP status and error text into attempt outcomes for the retry policy.
"""
from dataclasses import dataclass
from enum import Enum

from app.services.generation.base import GeneratedArtifact


class OutcomeKind(str, Enum):
    SUCCESS = "success"
    NOT_FOUND = "not_found"  # try next model
    TRANSIENT = "transient"  # 429 / quota / timeout, one delayed retry
    FATAL = "fatal"  # anything else


NOT_FOUND_MARKERS = ("not found", "not supported")
QUOTA_MARKERS = ("429", "quota", "resource_exhausted", "rate limit")


@dataclass(frozen=True)
class AttemptOutcome:
    kind: OutcomeKind
    family: str
    model: str | None = None
    artifact: GeneratedArtifact | None = None
    error: str | None = None
    # For exhausted families: classification of the last recorded error.
    last_error_kind: OutcomeKind | None = None

    @property
    def ok(self) -> bool:
        return self.kind == OutcomeKind.SUCCESS

    @property
    def last_error_transient(self) -> bool:
        return (self.last_error_kind or self.kind) == OutcomeKind.TRANSIENT


def is_quota_message(message: str) -> bool:
    text = (message or "").lower()
    return any(marker in text for marker in QUOTA_MARKERS)


def classify_failure(
    http_status: int | None,
    message: str = "",
    timed_out: bool = False,
) -> OutcomeKind:
    """Classify one failed call from its HTTP status, message and timeout flag."""
    if http_status == 404:
        return OutcomeKind.NOT_FOUND
    if http_status == 429 or timed_out:
        return OutcomeKind.TRANSIENT
    if is_quota_message(message):
        return OutcomeKind.TRANSIENT
    text = (message or "").lower()
    if any(marker in text for marker in NOT_FOUND_MARKERS):
        return OutcomeKind.NOT_FOUND
    return OutcomeKind.FATAL
