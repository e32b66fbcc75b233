"""Configuration and constants."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from .errors import ConfigError

# Load environment variables once
load_dotenv()

API_KEY_ENV_VARS = ("SUBTERM_API_KEY", "GEMINI_API_KEY")

DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/openai/"
DEFAULT_MODEL = "gemini-2.5-flash"


def _api_key_from_env() -> Optional[str]:
    for name in API_KEY_ENV_VARS:
        value = os.environ.get(name)
        if value:
            return value
    return None


@dataclass
class TranslatorConfig:
    """Configuration for subtitle translator."""

    # API settings
    api_key: Optional[str] = None
    base_url: str = DEFAULT_BASE_URL
    model_name: str = DEFAULT_MODEL
    analysis_model_name: str = DEFAULT_MODEL
    temperature: float = 0.3

    # Chunked translation settings
    chunk_size: int = 100
    concurrency: int = 3
    max_attempts: int = 3
    retry_base_delay: float = 1.0
    request_timeout: float = 120.0

    # Analysis settings
    analysis_tick_interval: float = 0.1

    # Program context passed to every request
    program_intro: str = ""

    # Output settings
    output_suffix: str = ".tw.srt"

    def __post_init__(self):
        """Load API key from environment if not provided."""
        if self.api_key is None:
            self.api_key = _api_key_from_env()

    @classmethod
    def from_args(cls, args) -> "TranslatorConfig":
        """Create config from argparse namespace."""
        api_key = getattr(args, 'api_key', None) or _api_key_from_env()
        model_name = getattr(args, 'model_name', None) or DEFAULT_MODEL

        return cls(
            api_key=api_key,
            base_url=getattr(args, 'base_url', None) or DEFAULT_BASE_URL,
            model_name=model_name,
            analysis_model_name=getattr(args, 'analysis_model_name', None) or model_name,
            chunk_size=getattr(args, 'chunk_size', 100),
            concurrency=getattr(args, 'concurrency', 3),
            max_attempts=getattr(args, 'max_attempts', 3),
            request_timeout=getattr(args, 'timeout', 120.0),
            program_intro=getattr(args, 'program_intro', "") or "",
        )

    def validate(self) -> Optional[str]:
        """
        Validate configuration.

        Returns:
            Error message if invalid, None if valid
        """
        if not self.api_key:
            return "API key is required. Set SUBTERM_API_KEY or use --api-key"

        if self.concurrency < 1 or self.concurrency > 20:
            return f"Concurrency must be 1-20, got {self.concurrency}"

        if self.chunk_size < 1 or self.chunk_size > 500:
            return f"Chunk size must be 1-500, got {self.chunk_size}"

        if self.max_attempts < 1:
            return f"Max attempts must be at least 1, got {self.max_attempts}"

        if self.request_timeout <= 0:
            return f"Timeout must be positive, got {self.request_timeout}"

        return None

    def require_api_key(self) -> str:
        """Return the API key or raise ConfigError when it is missing."""
        if not self.api_key:
            raise ConfigError("API key is not set. Check SUBTERM_API_KEY in your .env file")
        return self.api_key


# Glossary file suffix written next to the input by --analyze-only
GLOSSARY_SUFFIX = ".terms.txt"
