import logging
import re
import time
from dataclasses import dataclass
from typing import Callable
from urllib.parse import urlparse

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session as DBSession

from app.models.character_artifact import CharacterArtifact
from app.schemas.characters import CharacterDescription
from app.services.generation import (
    GenerationContext,
    GenerationKind,
    GenerationResult,
    InvalidInputError,
    ProviderUnavailableError,
)
from app.services.prompts.service import build_cache_summary, build_request
from app.utils.metrics import (
    cache_operations_total,
    generation_duration_seconds,
    generation_requests_total,
)

logger = logging.getLogger(__name__)

_TRAILING_ID_RE = re.compile(r"/(\d+)/?$")
_WHITESPACE_RE = re.compile(r"\s+")


class CacheUnavailableError(Exception):
    """No cache database is configured."""


def derive_character_id(name: str, url: str | None = None) -> str:
    """
    Character id from the reference URL's trailing numeric segment, else from the name.

    "https://swapi.info/api/people/1/" -> "1"; "Leia Organa" -> "leia-organa".
    """
    if url:
        path = urlparse(url).path
        match = _TRAILING_ID_RE.search(path)
        if match:
            return match.group(1)
        segments = [s for s in path.split("/") if s]
        return segments[-1] if segments else "unknown"
    return _WHITESPACE_RE.sub("-", name.strip().lower())


class CharacterArtifactService:
    """Cache of generated artifacts. Every failure degrades to a logged no-op."""

    def __init__(self, db: DBSession | None):
        self.db = db

    @property
    def available(self) -> bool:
        return self.db is not None

    def find(self, kind: GenerationKind, character_id: str) -> CharacterArtifact | None:
        if self.db is None:
            logger.warning("cache_unavailable", extra={"kind": kind.value, "character_id": character_id})
            cache_operations_total.labels(operation="find", result="unavailable").inc()
            return None
        try:
            record = (
                self.db.query(CharacterArtifact)
                .filter(
                    CharacterArtifact.kind == kind.value,
                    CharacterArtifact.character_id == character_id,
                )
                .one_or_none()
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.warning(
                "cache_lookup_failed",
                extra={"kind": kind.value, "character_id": character_id, "error": type(e).__name__},
            )
            cache_operations_total.labels(operation="find", result="error").inc()
            return None
        cache_operations_total.labels(operation="find", result="hit" if record else "miss").inc()
        return record

    def insert(
        self,
        kind: GenerationKind,
        character_id: str,
        character_name: str,
        artifact: str,
        prompt: str,
        provider: str | None = None,
        model: str | None = None,
    ) -> bool:
        """Create the record once; an existing record is left untouched."""
        if self.db is None:
            logger.warning("cache_unavailable", extra={"kind": kind.value, "character_id": character_id})
            cache_operations_total.labels(operation="insert", result="unavailable").inc()
            return False
        try:
            exists = (
                self.db.query(CharacterArtifact.id)
                .filter(
                    CharacterArtifact.kind == kind.value,
                    CharacterArtifact.character_id == character_id,
                )
                .first()
            )
            if exists:
                cache_operations_total.labels(operation="insert", result="skipped").inc()
                return False
            self.db.add(
                CharacterArtifact(
                    kind=kind.value,
                    character_id=character_id,
                    character_name=character_name,
                    artifact=artifact,
                    prompt=prompt,
                    provider=provider,
                    model=model,
                )
            )
            self.db.commit()
        except IntegrityError:
            # Concurrent insert for the same key won
            self.db.rollback()
            cache_operations_total.labels(operation="insert", result="skipped").inc()
            return False
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.warning(
                "cache_insert_failed",
                extra={"kind": kind.value, "character_id": character_id, "error": type(e).__name__},
            )
            cache_operations_total.labels(operation="insert", result="error").inc()
            return False
        cache_operations_total.labels(operation="insert", result="stored").inc()
        return True


@dataclass(frozen=True)
class CharacterGenerationOutcome:
    kind: GenerationKind
    character_id: str
    character_name: str
    artifact: str
    prompt: str
    cached: bool = False
    provider: str | None = None
    model: str | None = None
    used_fallback_family: bool = False


class CharacterGenerationService:
    """Cache lookup, generation with fallback, sketch rendering, cache insert."""

    def __init__(
        self,
        db: DBSession | None,
        context: GenerationContext,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.cache = CharacterArtifactService(db)
        self.context = context
        self.sleep = sleep

    def generate(self, kind: GenerationKind, description: CharacterDescription) -> CharacterGenerationOutcome:
        """
        Return a cached artifact or generate a new one.

        Raises:
            InvalidInputError: subject has no usable name
            ExhaustedAllOptionsError: both provider families failed
            ProviderUnavailableError / SketchRenderError: sketch rendering failed
        """
        subject = description.attributes()
        if not subject.get("name", "").strip():
            raise InvalidInputError("Character name is required")
        name = subject["name"]
        url = str(description.url) if description.url else None
        character_id = derive_character_id(name, url)

        cached = self.cache.find(kind, character_id)
        if cached is not None:
            logger.info("generation_cache_hit", extra={"kind": kind.value, "character_id": character_id})
            generation_requests_total.labels(kind=kind.value, status="cached").inc()
            return CharacterGenerationOutcome(
                kind=kind,
                character_id=character_id,
                character_name=cached.character_name,
                artifact=cached.artifact,
                prompt=cached.prompt,
                cached=True,
                provider=cached.provider,
                model=cached.model,
            )

        if kind == GenerationKind.SKETCH and not self.context.sketch_renderer.is_available():
            generation_requests_total.labels(kind=kind.value, status="failed").inc()
            raise ProviderUnavailableError("Replicate provider not configured (missing api_token)")

        request = build_request(kind, subject)
        started = time.monotonic()
        try:
            result = self.context.orchestrator(sleep=self.sleep).generate(request)
            artifact, prompt = self._finish(kind, subject, result)
        except Exception:
            generation_requests_total.labels(kind=kind.value, status="failed").inc()
            raise
        generation_duration_seconds.labels(kind=kind.value).observe(time.monotonic() - started)
        generation_requests_total.labels(kind=kind.value, status="succeeded").inc()
        logger.info(
            "generation_succeeded",
            extra={
                "kind": kind.value,
                "character_id": character_id,
                "family": result.family_used,
                "model": result.model_used,
                "used_fallback_family": result.used_fallback_family,
            },
        )

        self.cache.insert(
            kind,
            character_id,
            name,
            artifact,
            prompt,
            provider=result.family_used,
            model=result.model_used,
        )
        return CharacterGenerationOutcome(
            kind=kind,
            character_id=character_id,
            character_name=name,
            artifact=artifact,
            prompt=prompt,
            provider=result.family_used,
            model=result.model_used,
            used_fallback_family=result.used_fallback_family,
        )

    def _finish(self, kind: GenerationKind, subject: dict[str, str], result: GenerationResult) -> tuple[str, str]:
        """Turn an orchestrator result into (artifact, prompt) for the response and cache."""
        if kind == GenerationKind.SKETCH:
            sketch_prompt = result.artifact.value
            return self.context.sketch_renderer.render(sketch_prompt), sketch_prompt
        return result.artifact.value, build_cache_summary(kind, subject)

    def get_cached(self, kind: GenerationKind, character_id: str) -> CharacterArtifact | None:
        """Read-only lookup; never triggers generation."""
        if not self.cache.available:
            raise CacheUnavailableError("Caching not available - database not configured")
        return self.cache.find(kind, character_id)
