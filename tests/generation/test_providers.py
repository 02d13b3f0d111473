"""Provider families against mocked transports (httpx.MockTransport / fake OpenAI client)."""
import json
from unittest.mock import MagicMock

import httpx
import openai
import pytest

from app.services.generation.base import GenerationKind, ProviderCallError, ProviderUnavailableError, SketchRenderError
from app.services.generation.failure_types import OutcomeKind
from app.services.generation.providers.gemini import GeminiFamily
from app.services.generation.providers.openai import OpenAIFamily
from app.services.generation.providers.replicate import SKETCH_NEGATIVE_PROMPT, ReplicateSketchRenderer
from app.services.generation.runner import invoke_model


def _gemini(handler, **config):
    return GeminiFamily({"api_key": "AIza-test-key", **config}, transport=httpx.MockTransport(handler))


class TestGeminiFamily:
    def test_invoke_posts_generate_content(self, image_request):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"candidates": [{"content": {"parts": [
                {"inlineData": {"mimeType": "image/png", "data": "QUJD"}}
            ]}}]})

        family = _gemini(handler)
        outcome = invoke_model(family, "gemini-2.5-flash-image", image_request)

        assert outcome.ok
        assert outcome.artifact.value == "data:image/png;base64,QUJD"
        assert "/v1beta/models/gemini-2.5-flash-image:generateContent" in seen["url"]
        assert "key=AIza-test-key" in seen["url"]
        assert seen["body"]["contents"][0]["parts"][0]["text"] == image_request.raw_prompt
        assert seen["body"]["generationConfig"]["responseModalities"] == ["TEXT", "IMAGE"]

    def test_text_request_has_no_image_modality(self, story_request):
        seen = {}

        def handler(request):
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"candidates": [{"content": {"parts": [{"text": "A story"}]}}]})

        outcome = invoke_model(_gemini(handler), "gemini-1.5-flash", story_request)
        assert outcome.artifact.value == "A story"
        assert "responseModalities" not in seen["body"]["generationConfig"]

    def test_429_is_transient_and_key_is_scrubbed(self, story_request):
        def handler(request):
            return httpx.Response(429, json={"error": {
                "code": 429, "status": "RESOURCE_EXHAUSTED", "message": "Quota exceeded for key AIza-test-key",
            }})

        family = _gemini(handler)
        with pytest.raises(ProviderCallError) as exc_info:
            family.invoke("gemini-1.5-flash", story_request)
        assert exc_info.value.status_code == 429
        assert "AIza-test-key" not in str(exc_info.value)

        outcome = invoke_model(family, "gemini-1.5-flash", story_request)
        assert outcome.kind == OutcomeKind.TRANSIENT

    def test_404_is_not_found(self, story_request):
        def handler(request):
            return httpx.Response(404, json={"error": {"message": "models/nope is not found for API version v1beta"}})

        outcome = invoke_model(_gemini(handler), "nope", story_request)
        assert outcome.kind == OutcomeKind.NOT_FOUND

    def test_timeout_is_transient(self, story_request):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        family = _gemini(handler, timeout=1.5)
        with pytest.raises(ProviderCallError) as exc_info:
            family.invoke("gemini-1.5-flash", story_request)
        assert exc_info.value.timed_out is True
        assert invoke_model(family, "gemini-1.5-flash", story_request).kind == OutcomeKind.TRANSIENT

    def test_list_models(self):
        def handler(request):
            assert request.method == "GET"
            return httpx.Response(200, json={"models": [{"name": "models/gemini-1.5-flash"}]})

        assert _gemini(handler).list_models() == [{"name": "models/gemini-1.5-flash"}]

    def test_unconfigured(self, story_request):
        family = GeminiFamily({"api_key": ""})
        assert not family.is_available()
        with pytest.raises(ValueError):
            family.list_models()
        with pytest.raises(ProviderCallError):
            family.invoke("gemini-1.5-flash", story_request)

    def test_default_models(self):
        family = GeminiFamily({"api_key": "k", "text_model": "gemini-x", "image_model": "gemini-x-image"})
        assert family.default_model(GenerationKind.STORY) == "gemini-x"
        assert family.default_model(GenerationKind.IMAGE) == "gemini-x-image"


def _openai_request():
    return httpx.Request("POST", "https://api.openai.com/v1/chat/completions")


class TestOpenAIFamily:
    def test_chat_completion_for_story(self, story_request):
        client = MagicMock()
        client.chat.completions.create.return_value.model_dump.return_value = {
            "choices": [{"message": {"content": "Fallback story"}}]
        }
        family = OpenAIFamily({"api_key": "sk-test"}, client=client)

        outcome = invoke_model(family, "gpt-3.5-turbo", story_request)

        assert outcome.ok
        assert outcome.artifact.value == "Fallback story"
        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "gpt-3.5-turbo"
        assert kwargs["messages"] == [{"role": "user", "content": story_request.raw_prompt}]

    def test_images_generate_for_image(self, image_request):
        client = MagicMock()
        client.images.generate.return_value.model_dump.return_value = {"data": [{"b64_json": "AA=="}]}
        family = OpenAIFamily({"api_key": "sk-test"}, client=client)

        outcome = invoke_model(family, "dall-e-3", image_request)

        assert outcome.artifact.value == "data:image/png;base64,AA=="
        assert client.images.generate.call_args.kwargs["response_format"] == "b64_json"

    def test_rate_limit_is_transient(self, story_request):
        client = MagicMock()
        client.chat.completions.create.side_effect = openai.RateLimitError(
            "Rate limit reached",
            response=httpx.Response(429, request=_openai_request()),
            body=None,
        )
        family = OpenAIFamily({"api_key": "sk-test"}, client=client)
        outcome = invoke_model(family, "gpt-3.5-turbo", story_request)
        assert outcome.kind == OutcomeKind.TRANSIENT
        assert outcome.error.startswith("HTTP 429")

    def test_timeout_is_transient(self, story_request):
        client = MagicMock()
        client.chat.completions.create.side_effect = openai.APITimeoutError(request=_openai_request())
        family = OpenAIFamily({"api_key": "sk-test"}, client=client)
        assert invoke_model(family, "gpt-3.5-turbo", story_request).kind == OutcomeKind.TRANSIENT

    def test_auth_error_is_fatal(self, story_request):
        client = MagicMock()
        client.chat.completions.create.side_effect = openai.AuthenticationError(
            "Incorrect API key provided: sk-test",
            response=httpx.Response(401, request=_openai_request()),
            body=None,
        )
        family = OpenAIFamily({"api_key": "sk-test"}, client=client)
        outcome = invoke_model(family, "gpt-3.5-turbo", story_request)
        assert outcome.kind == OutcomeKind.FATAL
        assert "sk-test" not in outcome.error

    def test_missing_key_unavailable(self):
        family = OpenAIFamily({"api_key": ""})
        assert family.client is None
        assert not family.is_available()
        assert family.default_model(GenerationKind.STORY) == "gpt-3.5-turbo"
        assert family.default_model(GenerationKind.IMAGE) == "dall-e-3"


class TestReplicateSketchRenderer:
    def test_render_polls_until_succeeded(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append((request.method, request.url.path))
            if request.method == "POST":
                body = json.loads(request.content)
                assert body["input"]["prompt"].startswith("a jedi")
                assert body["input"]["negative_prompt"] == SKETCH_NEGATIVE_PROMPT
                return httpx.Response(201, json={
                    "status": "starting",
                    "urls": {"get": "https://api.replicate.com/v1/predictions/p1"},
                })
            return httpx.Response(200, json={
                "status": "succeeded",
                "output": ["https://replicate.delivery/p1/out.png"],
                "urls": {"get": "https://api.replicate.com/v1/predictions/p1"},
            })

        delays = []
        renderer = ReplicateSketchRenderer(
            {"api_token": "r8_test", "poll_interval": 0.25},
            transport=httpx.MockTransport(handler),
            sleep=delays.append,
        )

        assert renderer.render("a jedi") == "https://replicate.delivery/p1/out.png"
        assert calls == [
            ("POST", "/v1/models/andite/anything-v5/predictions"),
            ("GET", "/v1/predictions/p1"),
        ]
        assert delays == [0.25]

    def test_pinned_version_uses_predictions_endpoint(self):
        def handler(request):
            assert request.url.path == "/v1/predictions"
            assert json.loads(request.content)["version"] == "abc123"
            return httpx.Response(201, json={"status": "succeeded", "output": "https://x/out.png"})

        renderer = ReplicateSketchRenderer(
            {"api_token": "r8_test", "model": "andite/anything-v5:abc123"},
            transport=httpx.MockTransport(handler),
        )
        assert renderer.render("p") == "https://x/out.png"

    def test_failed_prediction(self):
        def handler(request):
            return httpx.Response(201, json={"status": "failed", "error": "NSFW content detected"})

        renderer = ReplicateSketchRenderer({"api_token": "r8_test"}, transport=httpx.MockTransport(handler))
        with pytest.raises(SketchRenderError, match="NSFW"):
            renderer.render("p")

    @pytest.mark.parametrize(
        "response",
        [
            httpx.Response(201, text="<html>bad gateway</html>"),
            httpx.Response(201, json=["not", "a", "prediction"]),
        ],
    )
    def test_unparseable_create_response(self, response):
        renderer = ReplicateSketchRenderer({"api_token": "r8_test"}, transport=httpx.MockTransport(lambda r: response))
        with pytest.raises(SketchRenderError):
            renderer.render("p")

    def test_unparseable_poll_response(self):
        def handler(request):
            if request.method == "POST":
                return httpx.Response(201, json={"status": "processing", "urls": {"get": "https://x/predictions/p1"}})
            return httpx.Response(200, text="<html>upstream error</html>")

        renderer = ReplicateSketchRenderer(
            {"api_token": "r8_test"}, transport=httpx.MockTransport(handler), sleep=lambda s: None
        )
        with pytest.raises(SketchRenderError, match="invalid JSON"):
            renderer.render("p")

    def test_missing_token(self):
        renderer = ReplicateSketchRenderer({"api_token": ""})
        assert not renderer.is_available()
        with pytest.raises(ProviderUnavailableError):
            renderer.render("p")
