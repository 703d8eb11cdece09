"""Configuration for the chatrelay service.

All settings are read from environment variables, with a local ``.env`` file
loaded first for development.
"""
import logging
import os
from typing import List, Optional

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)


def _env(name: str, default: Optional[str] = None, *fallbacks: str) -> Optional[str]:
    value = os.getenv(name)
    for fallback in fallbacks:
        if value:
            break
        value = os.getenv(fallback)
    return value if value else default


class Settings:
    """Environment-backed application settings."""

    def __init__(self) -> None:
        # Database
        self.DATABASE_URL: str = _env("DATABASE_URL", "sqlite:///./chatrelay.db")

        # Identity provider (Supabase-compatible /auth/v1/user endpoint)
        self.AUTH_URL: str = (_env("AUTH_URL", "", "SUPABASE_URL") or "").rstrip("/")
        self.AUTH_API_KEY: str = _env("AUTH_API_KEY", "", "SUPABASE_ANON_KEY")
        self.AUTH_TIMEOUT: float = float(_env("AUTH_TIMEOUT", "10"))

        # Providers
        self.OPENAI_API_KEY: str = _env("OPENAI_API_KEY", "")
        self.OPENAI_MODEL: str = _env("OPENAI_MODEL", "gpt-3.5-turbo")
        self.OPENAI_BASE_URL: str = _env("OPENAI_BASE_URL", "https://api.openai.com/v1")

        self.GEMINI_API_KEY: str = _env("GEMINI_API_KEY", "")
        self.GEMINI_MODEL: str = _env("GEMINI_MODEL", "gemini-1.5-pro")
        self.GEMINI_BASE_URL: str = _env(
            "GEMINI_BASE_URL", "https://generativelanguage.googleapis.com/v1beta"
        )
        self.GEMINI_TEMPERATURE: float = float(_env("GEMINI_TEMPERATURE", "0.7"))

        self.ANTHROPIC_API_KEY: str = _env("ANTHROPIC_API_KEY", "")
        self.ANTHROPIC_MODEL: str = _env("ANTHROPIC_MODEL", "claude-3-haiku-20240307")
        self.ANTHROPIC_BASE_URL: str = _env("ANTHROPIC_BASE_URL", "https://api.anthropic.com/v1")
        self.ANTHROPIC_VERSION: str = _env("ANTHROPIC_VERSION", "2023-06-01")

        self.MISTRAL_API_KEY: str = _env("MISTRAL_API_KEY", "")
        self.MISTRAL_MODEL: str = _env("MISTRAL_MODEL", "mistral-tiny")
        self.MISTRAL_BASE_URL: str = _env("MISTRAL_BASE_URL", "https://api.mistral.ai/v1")

        # Per-call output cap and network bound shared by every provider
        self.PROVIDER_MAX_TOKENS: int = int(_env("PROVIDER_MAX_TOKENS", "500"))
        self.PROVIDER_TIMEOUT: float = float(_env("PROVIDER_TIMEOUT", "30"))

        # Analytics
        self.MIXPANEL_TOKEN: str = _env("MIXPANEL_TOKEN", "")

        # HTTP
        self.CORS_ORIGINS: List[str] = [
            origin.strip() for origin in _env("CORS_ORIGINS", "*").split(",") if origin.strip()
        ]

        self.LOG_LEVEL: str = _env("LOG_LEVEL", "INFO").upper()

    def missing_provider_keys(self) -> List[str]:
        """Return the names of provider API keys that are not configured."""
        keys = ["OPENAI_API_KEY", "GEMINI_API_KEY", "ANTHROPIC_API_KEY", "MISTRAL_API_KEY"]
        return [key for key in keys if not getattr(self, key)]


settings = Settings()


def setup_logging(level: Optional[str] = None) -> None:
    """Configure the root logger once."""
    level_name = (level or settings.LOG_LEVEL).upper()
    if not logging.getLogger().handlers:
        logging.basicConfig(
            format="[%(asctime)s] [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
            level=getattr(logging, level_name, logging.INFO),
        )


def check_provider_keys() -> None:
    """Warn about providers that will fail because their key is missing."""
    missing = settings.missing_provider_keys()
    if missing:
        logger.warning("Missing provider API keys: %s", ", ".join(missing))
