"""
Character generation with multi-provider fallback.
"""
from .base import (
    ArtifactType,
    ExhaustedAllOptionsError,
    GeneratedArtifact,
    GenerationError,
    GenerationKind,
    GenerationRequest,
    InvalidInputError,
    ProviderCallError,
    ProviderFamily,
    ProviderUnavailableError,
    SketchRenderError,
)
from .candidates import resolve_candidates
from .factory import GenerationContext, ProviderFactory
from .failure_types import AttemptOutcome, OutcomeKind, classify_failure
from .orchestrator import GenerationOrchestrator, GenerationResult
from .runner import RetryPolicy, invoke_model, run_family

__all__ = [
    "ArtifactType",
    "ExhaustedAllOptionsError",
    "GeneratedArtifact",
    "GenerationError",
    "GenerationKind",
    "GenerationRequest",
    "InvalidInputError",
    "ProviderCallError",
    "ProviderFamily",
    "ProviderUnavailableError",
    "SketchRenderError",
    "resolve_candidates",
    "GenerationContext",
    "ProviderFactory",
    "AttemptOutcome",
    "OutcomeKind",
    "classify_failure",
    "GenerationOrchestrator",
    "GenerationResult",
    "RetryPolicy",
    "invoke_model",
    "run_family",
]
