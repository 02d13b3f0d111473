from fastapi import APIRouter, Depends

from app.api.deps import cached_artifact_out, generation_http_error, get_character_service, to_generation_out
from app.schemas.characters import CachedArtifactOut, CharacterDescription, GenerationOut
from app.services.characters.service import CharacterGenerationService
from app.services.generation import GenerationError, GenerationKind


router = APIRouter(prefix="/api/images", tags=["images"])


@router.post("/generate", response_model=GenerationOut)
def generate_image(
    payload: CharacterDescription,
    service: CharacterGenerationService = Depends(get_character_service),
) -> GenerationOut:
    """Generate (or return the cached) image for a character."""
    try:
        outcome = service.generate(GenerationKind.IMAGE, payload)
    except GenerationError as e:
        raise generation_http_error(e) from e
    return to_generation_out(outcome)


@router.get("/{character_id}", response_model=CachedArtifactOut)
def get_cached_image(
    character_id: str,
    service: CharacterGenerationService = Depends(get_character_service),
) -> CachedArtifactOut:
    return cached_artifact_out(service, GenerationKind.IMAGE, character_id)
