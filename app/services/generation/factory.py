"""
Factory for provider families and the generation context built from settings.
The context is constructed once at startup and passed to the orchestrator; families
are rebuilt only when their config (credential included) changes.
"""
import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Optional

from app.services.generation.base import ProviderFamily
from app.services.generation.orchestrator import GenerationOrchestrator
from app.services.generation.providers.gemini import GeminiFamily
from app.services.generation.providers.openai import OpenAIFamily
from app.services.generation.providers.replicate import ReplicateSketchRenderer
from app.services.generation.runner import RetryPolicy

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GenerationContext:
    """Everything a request needs to generate: families, renderer, policies."""
    primary: ProviderFamily
    secondary: ProviderFamily
    sketch_renderer: ReplicateSketchRenderer
    retry_policy: RetryPolicy = field(default_factory=RetryPolicy)
    fallback_delay_seconds: float = 3.0
    error_snippet_chars: int = 150

    def orchestrator(self, sleep: Callable[[float], None] = time.sleep) -> GenerationOrchestrator:
        return GenerationOrchestrator(
            self.primary,
            self.secondary,
            retry_policy=self.retry_policy,
            fallback_delay_seconds=self.fallback_delay_seconds,
            error_snippet_chars=self.error_snippet_chars,
            sleep=sleep,
        )

    def provider_status(self) -> dict[str, bool]:
        return {
            self.primary.name: self.primary.is_available(),
            self.secondary.name: self.secondary.is_available(),
            "replicate": self.sketch_renderer.is_available(),
        }


class ProviderFactory:
    """Factory for creating provider families."""

    PROVIDERS: dict[str, type[ProviderFamily]] = {
        "gemini": GeminiFamily,
        "openai": OpenAIFamily,
    }

    @classmethod
    def create(cls, provider_name: str, config: dict) -> ProviderFamily:
        """
        Create provider family by name.

        Raises:
            ValueError: If provider name is unknown
        """
        provider_class = cls.PROVIDERS.get(provider_name.strip().lower())
        if not provider_class:
            available = ", ".join(cls.PROVIDERS.keys())
            raise ValueError(
                f"Unknown provider: {provider_name}. "
                f"Available providers: {available}"
            )

        logger.info("Creating provider family: %s", provider_name)
        provider = provider_class(config)
        if not provider.is_available():
            logger.warning("Provider %s created but not fully configured", provider_name)
        return provider

    @classmethod
    def config_from_settings(cls, provider_name: str, settings) -> dict:
        """Build provider-specific config dict from application settings."""
        name = provider_name.strip().lower()
        if name == "gemini":
            return {
                "api_key": settings.gemini_api_key,
                "api_endpoint": settings.gemini_api_endpoint,
                "timeout": settings.gemini_timeout,
                "text_model": settings.gemini_text_model,
                "image_model": settings.gemini_image_model,
            }
        if name == "openai":
            return {
                "api_key": settings.openai_api_key,
                "timeout": settings.openai_request_timeout,
                "text_model": settings.openai_text_model,
                "image_model": settings.openai_image_model,
                "image_size": settings.image_size,
            }
        raise ValueError(f"Provider {provider_name} not supported in settings")

    @classmethod
    def _family(cls, provider_name: str, settings, previous: Optional[ProviderFamily]) -> ProviderFamily:
        config = cls.config_from_settings(provider_name, settings)
        if previous is not None and previous.name == provider_name and previous.config == config:
            return previous
        return cls.create(provider_name, config)

    @classmethod
    def build_context(cls, settings, previous: Optional[GenerationContext] = None) -> GenerationContext:
        """Build (or refresh) the generation context from settings."""
        primary = cls._family(settings.primary_provider, settings, previous.primary if previous else None)
        secondary = cls._family(settings.fallback_provider, settings, previous.secondary if previous else None)

        renderer_config = {
            "api_token": settings.replicate_api_token,
            "api_url": settings.replicate_api_url,
            "model": settings.replicate_sketch_model,
            "timeout": settings.replicate_timeout,
            "poll_interval": settings.replicate_poll_interval,
            "max_wait": settings.replicate_max_wait,
        }
        if previous is not None and previous.sketch_renderer.config == renderer_config:
            renderer = previous.sketch_renderer
        else:
            renderer = ReplicateSketchRenderer(renderer_config)

        return GenerationContext(
            primary=primary,
            secondary=secondary,
            sketch_renderer=renderer,
            retry_policy=RetryPolicy.from_settings(settings),
            fallback_delay_seconds=settings.generation_fallback_delay_seconds,
            error_snippet_chars=settings.generation_error_snippet_chars,
        )
