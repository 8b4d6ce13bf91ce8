"""Configuration management using pydantic-settings."""

import importlib
from functools import lru_cache
from typing import Any

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from contactbridge.exceptions import ConfigurationError


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        populate_by_name=True,
    )

    # Platform API
    platform_base_url: str = Field(default="http://localhost:8080", alias="PLATFORM_BASE_URL")
    platform_timeout: float = Field(default=30.0, alias="PLATFORM_TIMEOUT")

    # Identity store (in-memory when no Redis URL is configured)
    redis_url: str | None = Field(default=None, alias="REDIS_URL")
    identity_key_prefix: str = Field(default="contactbridge", alias="IDENTITY_KEY_PREFIX")

    # Integration wiring, as "package.module:attribute" import paths
    consumer_path: str | None = Field(default=None, alias="CONSUMER")
    mappings_path: str | None = Field(default=None, alias="MAPPINGS")

    # Bulk import
    import_page_size: int = Field(default=30, alias="IMPORT_PAGE_SIZE", gt=0)
    import_on_install: bool = Field(default=False, alias="IMPORT_ON_INSTALL")

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def import_from_path(path: str) -> Any:
    """Resolve a ``package.module:attribute`` path to the object it names."""
    module_name, _, attribute = path.partition(":")
    if not module_name or not attribute:
        raise ConfigurationError(f"Expected 'module:attribute', got {path!r}")

    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise ConfigurationError(f"Cannot import {module_name!r}: {e}") from e

    target: Any = module
    for part in attribute.split("."):
        try:
            target = getattr(target, part)
        except AttributeError as e:
            raise ConfigurationError(f"{module_name!r} has no attribute {attribute!r}") from e
    return target
