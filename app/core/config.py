"""
Application configuration.
All settings are loaded from environment variables (or .env).
Missing provider credentials are allowed: the affected provider family is simply unavailable.
"""
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Credentials have no defaults; an empty value disables that provider.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # ===========================================
    # APPLICATION
    # ===========================================
    app_env: str = "local"
    # Comma-separated origins; empty = default list in app.main
    cors_origins: str = ""

    # ===========================================
    # DATABASE (character artifact cache)
    # ===========================================
    # Empty = caching disabled, generation still works
    database_url: str = ""

    # ===========================================
    # PROVIDER SELECTION
    # ===========================================
    primary_provider: str = "gemini"
    fallback_provider: str = "openai"

    # ===========================================
    # GOOGLE GEMINI (primary)
    # ===========================================
    gemini_api_key: str = ""  # Get from https://aistudio.google.com/apikey
    gemini_api_endpoint: str = "https://generativelanguage.googleapis.com"
    gemini_text_model: str = "gemini-1.5-flash"
    gemini_image_model: str = "gemini-2.5-flash-image"
    gemini_timeout: float = 60.0

    # ===========================================
    # OPENAI (fallback)
    # ===========================================
    openai_api_key: str = ""
    openai_text_model: str = "gpt-3.5-turbo"
    openai_image_model: str = "dall-e-3"
    openai_request_timeout: float = 60.0
    image_size: str = "1024x1024"

    # ===========================================
    # REPLICATE (sketch rendering)
    # ===========================================
    replicate_api_token: str = ""
    replicate_api_url: str = "https://api.replicate.com/v1"
    replicate_sketch_model: str = "andite/anything-v5"
    replicate_timeout: float = 120.0
    replicate_poll_interval: float = 2.0
    replicate_max_wait: float = 300.0

    # ===========================================
    # GENERATION - RETRY / FALLBACK
    # ===========================================
    # Attempts per model (initial + retries); retries only on quota / rate limit / timeout
    generation_retry_max_attempts: int = 2
    generation_retry_delay_seconds: float = 5.0
    # Wait before switching to the fallback family when the primary ended on a quota error
    generation_fallback_delay_seconds: float = 3.0
    # Max chars per family error in the combined error message
    generation_error_snippet_chars: int = 150

    # ===========================================
    # LOGGING
    # ===========================================
    log_level: str = "INFO"
    log_file: str | None = None
    log_max_bytes: int = 10_000_000
    log_backup_count: int = 5

    @field_validator("primary_provider", "fallback_provider")
    @classmethod
    def normalize_provider(cls, v: str) -> str:
        return v.strip().lower()

    @field_validator("generation_retry_max_attempts")
    @classmethod
    def validate_max_attempts(cls, v: int) -> int:
        if v < 1:
            raise ValueError("generation_retry_max_attempts must be at least 1")
        return v

    @property
    def cache_enabled(self) -> bool:
        return bool(self.database_url.strip())

    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


settings = Settings()
