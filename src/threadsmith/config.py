"""Centralized, typed configuration using pydantic-settings.

Provides a single ``Settings`` class backed by ``.env`` file and environment
variables, a cached ``get_settings()`` accessor, and ``validate_credentials()``
which gates the commands that call the content generator.

IMPORTANT: This module has ZERO imports from the ``threadsmith`` package to
prevent circular imports.  Only stdlib, pydantic, pydantic_settings, and
structlog are used.
"""

from __future__ import annotations

import sys
from functools import lru_cache
from typing import Literal

import structlog
from pydantic import Field, SecretStr, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = structlog.get_logger()


class Settings(BaseSettings):
    """Application settings loaded from environment variables and ``.env`` file.

    ``SecretStr`` fields prevent accidental leaks in logs or error output.
    Values here are process-level defaults; a scenario file may override the
    generation knobs per run.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # -- General ---------------------------------------------------------------
    production: bool = False
    company_domain: str = "threadsmith.example"

    # -- LLM / Anthropic -------------------------------------------------------
    anthropic_api_key: SecretStr = SecretStr("")
    anthropic_model: str = "claude-sonnet-4-5-20250929"
    anthropic_max_tokens: int = Field(default=8192, ge=256)
    anthropic_call_attempts: int = Field(default=3, ge=1)

    # -- Generation ------------------------------------------------------------
    generation_seed: int = 0
    generation_mode: Literal["email", "thread"] = "email"
    parallel_threads: int = Field(default=3, ge=1)
    max_thread_attempts: int = Field(default=3, ge=1)
    max_email_repair_attempts: int = Field(default=1, ge=0)

    # -- Attachments -----------------------------------------------------------
    attachment_percentage: int = Field(default=20, ge=0, le=100)
    include_word: bool = True
    include_excel: bool = True
    include_powerpoint: bool = True
    include_images: bool = False
    image_percentage: int = Field(default=10, ge=0, le=100)
    include_voicemails: bool = False
    voicemail_percentage: int = Field(default=5, ge=0, le=100)
    include_calendar_invites: bool = True
    calendar_invite_percentage: int = Field(default=10, ge=0, le=100)


@lru_cache
def get_settings() -> Settings:
    """Return a cached ``Settings`` instance.

    The ``@lru_cache`` decorator ensures environment variables are parsed
    exactly once.  Call ``get_settings.cache_clear()`` in tests to reset.

    Returns:
        The application ``Settings``.
    """
    try:
        return Settings()
    except ValidationError as exc:
        # Log only the structured errors list -- never the full exception
        # which may contain raw SecretStr values.
        logger.error("settings_validation_failed", errors=exc.errors())
        sys.exit(1)


def validate_credentials(settings: Settings) -> bool:
    """Check that the content generator can authenticate.

    In **production** mode a missing ``ANTHROPIC_API_KEY`` is fatal and the
    process exits.  In development it is logged as a warning and the
    Anthropic client falls back to its own environment lookup.

    Args:
        settings: The loaded application settings.

    Returns:
        True if an API key is configured.
    """
    if settings.anthropic_api_key.get_secret_value():
        logger.info("credential_validation_passed")
        return True

    if settings.production:
        logger.error("credential_missing", detail="ANTHROPIC_API_KEY is empty or not set")
        print("\n=== STARTUP FAILED ===", file=sys.stderr)
        print("  - ANTHROPIC_API_KEY is empty or not set", file=sys.stderr)
        print("======================\n", file=sys.stderr)
        sys.exit(1)

    logger.warning("credential_missing_dev", detail="ANTHROPIC_API_KEY is empty or not set")
    return False
