"""
Configuration for the Kindlify service.
"""

import os
from dataclasses import dataclass
from typing import Mapping

API_KEY_ENV = "MISTRAL_API_KEY"


class ConfigError(ValueError):
    """Raised when required configuration is missing or invalid."""


@dataclass
class KindlifyConfig:
    """Configuration for OCR, EPUB packaging and the HTTP service.

    Attributes:
        api_key: Mistral API key (required)
        api_base_url: Base URL of the Mistral REST API
        ocr_model: OCR model name sent with every request
        table_format: How the OCR service renders tables in page markdown
        request_timeout: Seconds before an OCR API call is abandoned

        # EPUB metadata
        author: Creator written into the EPUB metadata
        language: Book language code (e.g., 'en', 'es', 'zh')
        default_title: Title used when a request gives none
        cover_size: Cover image size in pixels (width, height)

        # Service
        host: Interface the HTTP service binds to
        port: Port the HTTP service listens on
    """

    # Required
    api_key: str

    # OCR settings
    api_base_url: str = "https://api.mistral.ai/v1"
    ocr_model: str = "mistral-ocr-latest"
    table_format: str = "markdown"
    request_timeout: float = 120.0

    # EPUB metadata
    author: str = "Kindlify"
    language: str = "en"
    default_title: str = "Document"
    cover_size: tuple[int, int] = (600, 800)

    # Service
    host: str = "0.0.0.0"
    port: int = 8787

    def __post_init__(self) -> None:
        """Validate settings."""
        if not self.api_key or not self.api_key.strip():
            raise ConfigError(f"{API_KEY_ENV} is not set in environment variables")

        self.api_base_url = self.api_base_url.rstrip("/")

        if self.request_timeout <= 0:
            raise ConfigError(f"request_timeout must be > 0, got {self.request_timeout}")

        if not self.default_title.strip():
            raise ConfigError("default_title cannot be empty")

        width, height = self.cover_size
        if width <= 0 or height <= 0:
            raise ConfigError(f"cover_size must be positive, got {self.cover_size}")

        if not 0 < self.port < 65536:
            raise ConfigError(f"port must be in 1..65535, got {self.port}")

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "KindlifyConfig":
        """Build configuration from environment variables.

        Fails fast when the API key is missing so the process never starts
        in a state where every request would fail.
        """
        env = os.environ if environ is None else environ

        api_key = env.get(API_KEY_ENV, "")
        if not api_key.strip():
            raise ConfigError(f"{API_KEY_ENV} is not set in environment variables")

        kwargs: dict = {"api_key": api_key}
        if "MISTRAL_API_URL" in env:
            kwargs["api_base_url"] = env["MISTRAL_API_URL"]
        if "KINDLIFY_OCR_MODEL" in env:
            kwargs["ocr_model"] = env["KINDLIFY_OCR_MODEL"]
        if "KINDLIFY_AUTHOR" in env:
            kwargs["author"] = env["KINDLIFY_AUTHOR"]
        if "KINDLIFY_LANGUAGE" in env:
            kwargs["language"] = env["KINDLIFY_LANGUAGE"]
        if "KINDLIFY_HOST" in env:
            kwargs["host"] = env["KINDLIFY_HOST"]

        try:
            if "KINDLIFY_PORT" in env:
                kwargs["port"] = int(env["KINDLIFY_PORT"])
            if "KINDLIFY_TIMEOUT" in env:
                kwargs["request_timeout"] = float(env["KINDLIFY_TIMEOUT"])
        except ValueError as e:
            raise ConfigError(f"Invalid numeric setting: {e}") from e

        return cls(**kwargs)

    def resolve_title(self, title: str | None) -> str:
        """Return the given title, or the default one when blank."""
        if title and title.strip():
            return title.strip()
        return self.default_title


def safe_filename(title: str) -> str:
    """Generate safe filename stem from book title."""
    safe = "".join(c if c.isalnum() or c in " -_" else "_" for c in title)
    return safe.strip().replace(" ", "_")[:100] or "document"
