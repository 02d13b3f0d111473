"""
Response shape matchers.
Each matcher is a pure function raw_body -> GeneratedArtifact | None; matchers are
applied in priority order and the first non-empty match wins.
"""
from typing import Any, Callable

from app.services.generation.base import ArtifactType, GeneratedArtifact, GenerationKind

ShapeMatcher = Callable[[dict[str, Any]], GeneratedArtifact | None]

DEFAULT_IMAGE_MIME = "image/png"
GENERATED_IMAGE_FIELDS = ("imageBase64", "bytesBase64Encoded", "bytes")


def _data_uri(b64: str, mime_type: str | None) -> GeneratedArtifact:
    mime = mime_type or DEFAULT_IMAGE_MIME
    return GeneratedArtifact(ArtifactType.IMAGE_URI, f"data:{mime};base64,{b64}", mime)


def _first_dict(value: Any) -> dict[str, Any] | None:
    if isinstance(value, list) and value and isinstance(value[0], dict):
        return value[0]
    return None


def _candidate_parts(body: dict[str, Any]) -> list[dict[str, Any]]:
    first = _first_dict(body.get("candidates"))
    if first is None:
        return []
    content = first.get("content")
    if not isinstance(content, dict):
        return []
    parts = content.get("parts")
    if not isinstance(parts, list):
        return []
    return [p for p in parts if isinstance(p, dict)]


def match_inline_data(body: dict[str, Any]) -> GeneratedArtifact | None:
    """Gemini generateContent: candidates[0].content.parts[].inlineData."""
    for part in _candidate_parts(body):
        inline = part.get("inlineData") or part.get("inline_data")
        if isinstance(inline, dict) and isinstance(inline.get("data"), str) and inline["data"]:
            return _data_uri(inline["data"], inline.get("mimeType") or inline.get("mime_type"))
    return None


def match_generated_images(body: dict[str, Any]) -> GeneratedArtifact | None:
    """generatedImages[0] with the base64 payload under one of several field names."""
    first = _first_dict(body.get("generatedImages"))
    if first is None:
        return None
    for field in GENERATED_IMAGE_FIELDS:
        value = first.get(field)
        if isinstance(value, str) and value:
            return _data_uri(value, first.get("mimeType"))
    return None


def match_imagen_predictions(body: dict[str, Any]) -> GeneratedArtifact | None:
    """Imagen :predict response: predictions[0].bytesBase64Encoded."""
    first = _first_dict(body.get("predictions"))
    if first is None:
        return None
    value = first.get("bytesBase64Encoded")
    if isinstance(value, str) and value:
        return _data_uri(value, first.get("mimeType"))
    return None


def match_openai_image(body: dict[str, Any]) -> GeneratedArtifact | None:
    """OpenAI images.generate: data[0].b64_json or data[0].url."""
    first = _first_dict(body.get("data"))
    if first is None:
        return None
    b64 = first.get("b64_json")
    if isinstance(b64, str) and b64:
        return _data_uri(b64, DEFAULT_IMAGE_MIME)
    url = first.get("url")
    if isinstance(url, str) and url:
        return GeneratedArtifact(ArtifactType.IMAGE_URI, url)
    return None


def match_candidate_text(body: dict[str, Any]) -> GeneratedArtifact | None:
    """Gemini generateContent text parts, joined."""
    texts = [p["text"] for p in _candidate_parts(body) if isinstance(p.get("text"), str)]
    text = "".join(texts).strip()
    if text:
        return GeneratedArtifact(ArtifactType.TEXT_BLOCK, text)
    return None


def match_chat_completion(body: dict[str, Any]) -> GeneratedArtifact | None:
    """OpenAI chat completion: choices[0].message.content."""
    first = _first_dict(body.get("choices"))
    if first is None:
        return None
    message = first.get("message")
    if not isinstance(message, dict):
        return None
    content = message.get("content")
    if isinstance(content, str) and content.strip():
        return GeneratedArtifact(ArtifactType.TEXT_BLOCK, content.strip())
    return None


IMAGE_SHAPES: tuple[ShapeMatcher, ...] = (
    match_inline_data,
    match_generated_images,
    match_imagen_predictions,
    match_openai_image,
)

TEXT_SHAPES: tuple[ShapeMatcher, ...] = (
    match_candidate_text,
    match_chat_completion,
)


def shapes_for(kind: GenerationKind) -> tuple[ShapeMatcher, ...]:
    return IMAGE_SHAPES if kind == GenerationKind.IMAGE else TEXT_SHAPES


def parse_response(body: dict[str, Any], matchers: tuple[ShapeMatcher, ...]) -> GeneratedArtifact | None:
    if not isinstance(body, dict):
        return None
    for matcher in matchers:
        artifact = matcher(body)
        if artifact is not None:
            return artifact
    return None
