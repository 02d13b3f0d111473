"""HTTP surface: request validation, response shape and error mapping."""
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from app.api.deps import get_character_service
from app.main import app
from app.services.characters.service import (
    CacheUnavailableError,
    CharacterGenerationOutcome,
)
from app.services.generation import (
    ExhaustedAllOptionsError,
    GenerationKind,
    ProviderUnavailableError,
)


@pytest.fixture
def service():
    svc = MagicMock()
    app.dependency_overrides[get_character_service] = lambda: svc
    try:
        yield svc
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def client():
    return TestClient(app)


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_generate_image(client, service):
    service.generate.return_value = CharacterGenerationOutcome(
        kind=GenerationKind.IMAGE,
        character_id="1",
        character_name="Luke Skywalker",
        artifact="data:image/png;base64,AA==",
        prompt="AI-generated animated image of Luke Skywalker",
        provider="openai",
        model="dall-e-3",
        used_fallback_family=True,
    )

    resp = client.post("/api/images/generate", json={"name": "Luke Skywalker", "url": "https://x/people/1/"})

    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["image_url"] == "data:image/png;base64,AA=="
    assert body["story"] is None
    assert body["used_fallback_family"] is True
    assert body["cached"] is False
    kind, description = service.generate.call_args.args
    assert kind == GenerationKind.IMAGE
    assert description.name == "Luke Skywalker"


def test_generate_story_returns_story_field(client, service):
    service.generate.return_value = CharacterGenerationOutcome(
        kind=GenerationKind.STORY,
        character_id="leia-organa",
        character_name="Leia Organa",
        artifact="Once upon a time",
        prompt="Short story about Leia Organa",
        cached=True,
    )
    body = client.post("/api/stories/generate", json={"name": "Leia Organa"}).json()
    assert body["story"] == "Once upon a time"
    assert body["image_url"] is None
    assert body["cached"] is True


@pytest.mark.parametrize("payload", [{}, {"name": ""}, {"name": "   "}, {"name": "Luke", "url": "not a url"}])
def test_invalid_input_never_reaches_service(client, service, payload):
    resp = client.post("/api/images/generate", json=payload)
    assert resp.status_code == 422
    service.generate.assert_not_called()


def test_quota_exhaustion_maps_to_503(client, service):
    service.generate.side_effect = ExhaustedAllOptionsError("wait 5-10 minutes", quota_exhausted=True)
    resp = client.post("/api/stories/generate", json={"name": "Luke"})
    assert resp.status_code == 503
    assert "5-10 minutes" in resp.json()["detail"]


def test_generic_exhaustion_maps_to_502(client, service):
    service.generate.side_effect = ExhaustedAllOptionsError("both failed", quota_exhausted=False)
    assert client.post("/api/stories/generate", json={"name": "Luke"}).status_code == 502


def test_sketch_without_renderer_is_503(client, service):
    service.generate.side_effect = ProviderUnavailableError("Replicate provider not configured")
    resp = client.post("/api/anime-sketch/generate", json={"name": "Luke"})
    assert resp.status_code == 503
    assert service.generate.call_args.args[0] == GenerationKind.SKETCH


def test_get_cached_found(client, service):
    record = MagicMock(
        character_id="1",
        character_name="Luke Skywalker",
        artifact="A story",
        prompt="p",
        created_at=None,
    )
    service.get_cached.return_value = record
    resp = client.get("/api/stories/1")
    assert resp.status_code == 200
    assert resp.json()["story"] == "A story"
    service.get_cached.assert_called_once_with(GenerationKind.STORY, "1")
    service.generate.assert_not_called()


def test_get_cached_missing(client, service):
    service.get_cached.return_value = None
    assert client.get("/api/images/99").status_code == 404


def test_get_cached_without_database(client, service):
    service.get_cached.side_effect = CacheUnavailableError("Caching not available - database not configured")
    resp = client.get("/api/anime-sketch/luke")
    assert resp.status_code == 404
    assert "not configured" in resp.json()["detail"]
