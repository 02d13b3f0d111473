from fastapi import APIRouter, Depends

from app.api.deps import cached_artifact_out, generation_http_error, get_character_service, to_generation_out
from app.schemas.characters import CachedArtifactOut, CharacterDescription, GenerationOut
from app.services.characters.service import CharacterGenerationService
from app.services.generation import GenerationError, GenerationKind


router = APIRouter(prefix="/api/stories", tags=["stories"])


@router.post("/generate", response_model=GenerationOut)
def generate_story(
    payload: CharacterDescription,
    service: CharacterGenerationService = Depends(get_character_service),
) -> GenerationOut:
    """Generate (or return the cached) short story for a character."""
    try:
        outcome = service.generate(GenerationKind.STORY, payload)
    except GenerationError as e:
        raise generation_http_error(e) from e
    return to_generation_out(outcome)


@router.get("/{character_id}", response_model=CachedArtifactOut)
def get_cached_story(
    character_id: str,
    service: CharacterGenerationService = Depends(get_character_service),
) -> CachedArtifactOut:
    return cached_artifact_out(service, GenerationKind.STORY, character_id)
