"""
Prompt builders per generation kind.
Known attributes get fixed lines; any extra descriptive fields are appended as "- Key: value".
"""
from typing import Mapping

from app.services.generation.base import GenerationKind, GenerationRequest

_UNKNOWN = "unknown"

IMAGE_FIELDS = (
    ("height", "Height", " cm"),
    ("hair_color", "Hair color", ""),
    ("skin_color", "Skin color", ""),
    ("eye_color", "Eye color", ""),
    ("gender", "Gender", ""),
    ("birth_year", "Birth year", ""),
)

STORY_FIELDS = (
    ("name", "Name", ""),
    ("height", "Height", " cm"),
    ("mass", "Mass", " kg"),
    ("hair_color", "Hair color", ""),
    ("skin_color", "Skin color", ""),
    ("eye_color", "Eye color", ""),
    ("gender", "Gender", ""),
    ("birth_year", "Birth year", ""),
)

_KNOWN = {"name", "mass"} | {key for key, _, _ in IMAGE_FIELDS}


def _detail_lines(subject: Mapping[str, str], fields) -> list[str]:
    lines = [f"- {label}: {subject.get(key) or _UNKNOWN}{suffix}" for key, label, suffix in fields]
    for key, value in subject.items():
        if key in _KNOWN or not value:
            continue
        lines.append(f"- {key.replace('_', ' ').capitalize()}: {value}")
    return lines


def build_image_prompt(subject: Mapping[str, str]) -> str:
    details = "\n".join(_detail_lines(subject, IMAGE_FIELDS))
    return (
        f"Create a vibrant, animated-style illustration of a Star Wars character: {subject['name']}.\n"
        f"The character should have:\n{details}\n\n"
        "Style: Animated, colorful, sci-fi fantasy art style inspired by Star Wars aesthetic.\n"
        "The image should be dynamic, vibrant with rich colors, and capture the essence of the character.\n"
        "Make it visually striking with a Star Wars universe atmosphere."
    )


def build_story_prompt(subject: Mapping[str, str]) -> str:
    details = "\n".join(_detail_lines(subject, STORY_FIELDS))
    return (
        f"Write a short, engaging story (300-500 words) about {subject['name']}, a Star Wars character.\n\n"
        f"Character details:\n{details}\n\n"
        "Write an imaginative, Star Wars-themed short story that brings this character to life.\n"
        "The story should be engaging, well-written, and capture the essence of the Star Wars universe.\n"
        "Make it dramatic, adventurous, and true to the Star Wars style."
    )


def build_sketch_prompt(subject: Mapping[str, str]) -> str:
    name = subject["name"]
    return (
        f'Research the character "{name}" and create a detailed image generation prompt '
        "for an anime-style pencil sketch.\n\n"
        "Requirements:\n"
        "- Under 120 words\n"
        "- Focus ONLY on visual details\n"
        "- Style: Anime / manga / sketch style\n"
        "- Include: facial features, hair, clothing, pose, mood, background, art style\n"
        "- Format: Plain text prompt ready for image generation\n"
        "- Do not include any explanations or meta-commentary, only the prompt itself\n\n"
        f"Character: {name}"
    )


def build_cache_summary(kind: GenerationKind, subject: Mapping[str, str]) -> str:
    """Short human-readable description stored alongside cached images and stories."""
    name = subject["name"]
    hair = subject.get("hair_color") or _UNKNOWN
    skin = subject.get("skin_color") or _UNKNOWN
    eyes = subject.get("eye_color") or _UNKNOWN
    looks = f"a Star Wars character with {hair} hair, {skin} skin, and {eyes} eyes."
    if kind == GenerationKind.STORY:
        return f"Short story about {name}, {looks}"
    return f"AI-generated animated image of {name}, {looks}"


_BUILDERS = {
    GenerationKind.IMAGE: build_image_prompt,
    GenerationKind.STORY: build_story_prompt,
    GenerationKind.SKETCH: build_sketch_prompt,
}


def build_request(kind: GenerationKind, subject: Mapping[str, str]) -> GenerationRequest:
    """Build an immutable generation request for a subject."""
    return GenerationRequest.build(kind, subject, _BUILDERS[kind](subject))
