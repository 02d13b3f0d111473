from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, HttpUrl, field_validator


class CharacterDescription(BaseModel):
    """Flat character record; extra descriptive string fields are allowed."""
    model_config = ConfigDict(extra="allow")

    name: str = Field(min_length=1)
    height: str | None = None
    mass: str | None = None
    hair_color: str | None = None
    skin_color: str | None = None
    eye_color: str | None = None
    gender: str | None = None
    birth_year: str | None = None
    url: HttpUrl | None = None

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Character name is required")
        return v

    def attributes(self) -> dict[str, str]:
        """All descriptive fields except url, as strings, unset ones dropped."""
        data = self.model_dump(exclude={"url"}, exclude_none=True)
        return {k: str(v) for k, v in data.items()}


class GenerationOut(BaseModel):
    success: bool = True
    kind: str
    character_id: str
    character_name: str
    image_url: str | None = None
    story: str | None = None
    prompt: str | None = None
    cached: bool = False
    used_fallback_family: bool = False
    provider: str | None = None
    model: str | None = None


class CachedArtifactOut(BaseModel):
    success: bool = True
    kind: str
    character_id: str
    character_name: str
    image_url: str | None = None
    story: str | None = None
    prompt: str | None = None
    created_at: datetime | None = None
