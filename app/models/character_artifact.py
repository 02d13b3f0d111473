from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import Column, DateTime, String, Text, UniqueConstraint

from app.db.base import Base


class CharacterArtifact(Base):
    """Cached generation result; one record per (kind, character_id), never overwritten."""
    __tablename__ = "character_artifacts"
    __table_args__ = (
        UniqueConstraint("kind", "character_id", name="uq_character_artifacts_kind_character_id"),
    )

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    kind = Column(String(16), nullable=False, index=True)  # image | story | sketch
    character_id = Column(String, nullable=False, index=True)
    character_name = Column(String, nullable=False, index=True)
    artifact = Column(Text, nullable=False)  # data URI, remote URL or story text
    prompt = Column(Text, nullable=False)
    provider = Column(String(32), nullable=True)
    model = Column(String(128), nullable=True)
    created_at = Column(DateTime, nullable=False, default=lambda: datetime.now(timezone.utc))
