import json
import logging
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler

from app.core.config import settings
from app.services.generation.base import redact_secrets

# Client libraries that log full request URLs (Gemini takes its key as a query param)
NOISY_LOGGERS = ("httpx", "httpcore", "openai")


class SecretRedactionFilter(logging.Filter):
    """Scrubs provider credentials from the rendered message before any handler sees it."""

    def __init__(self, secrets: tuple[str, ...] = ()):
        super().__init__()
        self.secrets = tuple(s for s in secrets if s)

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        scrubbed = redact_secrets(message, self.secrets)
        if scrubbed != message:
            record.msg = scrubbed
            record.args = None
        error = getattr(record, "error", None)
        if isinstance(error, str):
            record.error = redact_secrets(error, self.secrets)
        return True


class JsonFormatter(logging.Formatter):
    """One JSON object per line; generation events carry their structured context."""

    EXTRA_FIELDS = (
        "kind", "character_id", "family", "model", "attempt", "outcome", "error",
        "delay_seconds", "candidates", "used_fallback_family", "response",
        "path", "method", "status_code", "latency_ms",
    )

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "event": record.getMessage(),
        }
        payload.update(
            {field: getattr(record, field) for field in self.EXTRA_FIELDS if getattr(record, field, None) is not None}
        )
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def _provider_secrets(config) -> tuple[str, ...]:
    return tuple(
        getattr(config, name, "") or ""
        for name in ("gemini_api_key", "openai_api_key", "replicate_api_token")
    )


def configure_logging(config=None) -> None:
    config = config or settings
    formatter = JsonFormatter()
    redaction = SecretRedactionFilter(_provider_secrets(config))

    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if config.log_file:
        handlers.append(
            RotatingFileHandler(
                config.log_file,
                maxBytes=config.log_max_bytes,
                backupCount=config.log_backup_count,
            )
        )
    for handler in handlers:
        handler.setFormatter(formatter)
        handler.addFilter(redaction)

    root = logging.getLogger()
    root.setLevel(config.log_level.upper())
    root.handlers = handlers
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
