from fastapi import APIRouter, Depends

from app.api.deps import cached_artifact_out, generation_http_error, get_character_service, to_generation_out
from app.schemas.characters import CachedArtifactOut, CharacterDescription, GenerationOut
from app.services.characters.service import CharacterGenerationService
from app.services.generation import GenerationError, GenerationKind


router = APIRouter(prefix="/api/anime-sketch", tags=["sketches"])


@router.post("/generate", response_model=GenerationOut)
def generate_sketch(
    payload: CharacterDescription,
    service: CharacterGenerationService = Depends(get_character_service),
) -> GenerationOut:
    """Generate a sketch prompt with the text families, then render it on Replicate."""
    try:
        outcome = service.generate(GenerationKind.SKETCH, payload)
    except GenerationError as e:
        raise generation_http_error(e) from e
    return to_generation_out(outcome)


@router.get("/{character_id}", response_model=CachedArtifactOut)
def get_cached_sketch(
    character_id: str,
    service: CharacterGenerationService = Depends(get_character_service),
) -> CachedArtifactOut:
    return cached_artifact_out(service, GenerationKind.SKETCH, character_id)
