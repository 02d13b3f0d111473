"""
Shared FastAPI dependencies and error translation for the generation routes.
"""
import logging

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.models.character_artifact import CharacterArtifact
from app.schemas.characters import CachedArtifactOut, GenerationOut
from app.services.characters.service import (
    CacheUnavailableError,
    CharacterGenerationOutcome,
    CharacterGenerationService,
)
from app.services.generation import (
    ExhaustedAllOptionsError,
    GenerationContext,
    GenerationError,
    GenerationKind,
    InvalidInputError,
    ProviderUnavailableError,
    SketchRenderError,
)

logger = logging.getLogger(__name__)


def get_generation_context(request: Request) -> GenerationContext:
    """Context built once in the app lifespan."""
    context = getattr(request.app.state, "generation_context", None)
    if context is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Generation not initialized")
    return context


def get_character_service(
    db: Session | None = Depends(get_db),
    context: GenerationContext = Depends(get_generation_context),
) -> CharacterGenerationService:
    return CharacterGenerationService(db, context)


def generation_http_error(e: GenerationError) -> HTTPException:
    """Map generation failures to HTTP errors; detail is the bounded message."""
    if isinstance(e, InvalidInputError):
        code = status.HTTP_400_BAD_REQUEST
    elif isinstance(e, ExhaustedAllOptionsError):
        code = status.HTTP_503_SERVICE_UNAVAILABLE if e.quota_exhausted else status.HTTP_502_BAD_GATEWAY
    elif isinstance(e, ProviderUnavailableError):
        code = status.HTTP_503_SERVICE_UNAVAILABLE
    elif isinstance(e, SketchRenderError):
        code = status.HTTP_502_BAD_GATEWAY
    else:
        code = status.HTTP_500_INTERNAL_SERVER_ERROR
    return HTTPException(status_code=code, detail=str(e))


def to_generation_out(outcome: CharacterGenerationOutcome) -> GenerationOut:
    is_story = outcome.kind == GenerationKind.STORY
    return GenerationOut(
        kind=outcome.kind.value,
        character_id=outcome.character_id,
        character_name=outcome.character_name,
        image_url=None if is_story else outcome.artifact,
        story=outcome.artifact if is_story else None,
        prompt=outcome.prompt,
        cached=outcome.cached,
        used_fallback_family=outcome.used_fallback_family,
        provider=outcome.provider,
        model=outcome.model,
    )


def cached_artifact_out(
    service: CharacterGenerationService,
    kind: GenerationKind,
    character_id: str,
) -> CachedArtifactOut:
    try:
        record: CharacterArtifact | None = service.get_cached(kind, character_id)
    except CacheUnavailableError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    if record is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"{kind.value.capitalize()} not found for this character",
        )
    is_story = kind == GenerationKind.STORY
    return CachedArtifactOut(
        kind=kind.value,
        character_id=record.character_id,
        character_name=record.character_name,
        image_url=None if is_story else record.artifact,
        story=record.artifact if is_story else None,
        prompt=record.prompt,
        created_at=record.created_at,
    )
