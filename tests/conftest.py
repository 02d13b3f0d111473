"""Shared fakes for generation tests: scripted provider families and a recording sleep."""
from typing import Any

import pytest

from app.services.generation.base import GenerationKind, GenerationRequest, ProviderCallError, ProviderFamily


class FakeFamily(ProviderFamily):
    """
    Provider family driven by a script: model id -> list of results, consumed in order.
    A result is either a raw body dict or a ProviderCallError to raise.
    """

    def __init__(
        self,
        name: str,
        script: dict[str, list[Any]] | None = None,
        models: list[dict] | Exception | None = None,
        available: bool = True,
        default: str = "fallback-model",
        api_key: str = "",
    ):
        super().__init__({"api_key": api_key})
        self.name = name
        self.script = {k: list(v) for k, v in (script or {}).items()}
        self.models = models if models is not None else []
        self.available = available
        self.default = default
        self.api_key = api_key
        self.calls: list[str] = []
        self.list_calls = 0

    def is_available(self) -> bool:
        return self.available

    def list_models(self) -> list[dict]:
        self.list_calls += 1
        if isinstance(self.models, Exception):
            raise self.models
        return self.models

    def invoke(self, model_id: str, request: GenerationRequest) -> dict:
        self.calls.append(model_id)
        queue = self.script.get(model_id) or []
        if not queue:
            raise ProviderCallError(f"HTTP 404: models/{model_id} is not found", status_code=404)
        result = queue.pop(0)
        if isinstance(result, Exception):
            raise result
        return result

    def default_model(self, kind: GenerationKind) -> str:
        return self.default

    def secrets(self) -> tuple[str, ...]:
        return (self.api_key,) if self.api_key else ()


def text_body(text: str) -> dict:
    return {"candidates": [{"content": {"parts": [{"text": text}]}, "finishReason": "STOP"}]}


def chat_body(text: str) -> dict:
    return {"choices": [{"message": {"role": "assistant", "content": text}}]}


def quota_error(message: str = "HTTP 429: RESOURCE_EXHAUSTED: Resource has been exhausted (e.g. check quota).") -> ProviderCallError:
    return ProviderCallError(message, status_code=429)


class RecordingSleep:
    def __init__(self):
        self.delays: list[float] = []

    def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture
def fake_family():
    return FakeFamily


@pytest.fixture
def bodies():
    class Bodies:
        text = staticmethod(text_body)
        chat = staticmethod(chat_body)
        quota = staticmethod(quota_error)

    return Bodies


@pytest.fixture
def sleep():
    return RecordingSleep()


@pytest.fixture
def story_request():
    return GenerationRequest.build(
        GenerationKind.STORY,
        {"name": "Luke Skywalker", "hair_color": "blond"},
        "Write a short story about Luke Skywalker.",
    )


@pytest.fixture
def image_request():
    return GenerationRequest.build(
        GenerationKind.IMAGE,
        {"name": "Luke Skywalker"},
        "Create an illustration of Luke Skywalker.",
    )
