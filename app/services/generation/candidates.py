"""
Candidate model resolution.
Discovers models from the primary family and falls back to a static, most-capable-first list.
"""
import logging
from typing import Any

from app.services.generation.base import GenerationKind, ProviderFamily

logger = logging.getLogger(__name__)

# Static defaults, most capable first
DEFAULT_CANDIDATES: dict[GenerationKind, tuple[str, ...]] = {
    GenerationKind.IMAGE: (
        "gemini-3-pro-image-preview",
        "gemini-2.5-flash-exp",
        "gemini-2.0-flash-exp",
        "gemini-1.5-flash-latest",
        "gemini-1.5-pro-latest",
    ),
    GenerationKind.STORY: ("gemini-1.5-flash",),
    GenerationKind.SKETCH: ("gemini-1.5-flash",),
}

# Name hints: (include any, exclude all)
_TEXT_EXCLUDE = ("image", "imagen", "embedding", "tts", "audio", "aqa")
MODEL_NAME_HINTS: dict[GenerationKind, tuple[tuple[str, ...], tuple[str, ...]]] = {
    GenerationKind.IMAGE: (("image", "imagen"), ()),
    GenerationKind.STORY: (("flash",), _TEXT_EXCLUDE),
    GenerationKind.SKETCH: (("flash",), _TEXT_EXCLUDE),
}


def _model_id(descriptor: dict[str, Any]) -> str:
    name = str(descriptor.get("name") or "").strip()
    return name[len("models/"):] if name.startswith("models/") else name


def is_relevant(descriptor: dict[str, Any], kind: GenerationKind) -> bool:
    """Name-substring relevance heuristic for a request kind."""
    name = _model_id(descriptor).lower()
    if not name:
        return False
    include, exclude = MODEL_NAME_HINTS[kind]
    if not any(hint in name for hint in include):
        return False
    if any(hint in name for hint in exclude):
        return False
    methods = descriptor.get("supportedGenerationMethods")
    if kind != GenerationKind.IMAGE and methods is not None:
        return "generateContent" in methods
    return True


def resolve_candidates(family: ProviderFamily, kind: GenerationKind) -> list[str]:
    """
    Return the ordered candidate list for a request kind. Never raises.

    A discovered relevant model is returned alone (best first match); otherwise
    the static default list for the kind.
    """
    try:
        listed = family.list_models() or []
    except Exception as e:
        logger.warning(
            "model_discovery_failed",
            extra={"family": family.name, "kind": kind.value, "error": type(e).__name__},
        )
        listed = []

    matches = [_model_id(m) for m in listed if isinstance(m, dict) and is_relevant(m, kind)]
    if matches:
        logger.info(
            "model_discovery_match",
            extra={"family": family.name, "kind": kind.value, "model": matches[0]},
        )
        return [matches[0]]

    defaults = list(DEFAULT_CANDIDATES[kind])
    logger.info(
        "model_discovery_defaults",
        extra={"family": family.name, "kind": kind.value, "candidates": defaults},
    )
    return defaults
