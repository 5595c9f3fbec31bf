"""Configuration management for the BambooHR client."""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator, model_validator

from .images import MAX_INLINE_IMAGE_BYTES

SUBDOMAIN_PATTERN = re.compile(r"^[a-zA-Z0-9-]+$")

BASE_URL_TEMPLATE = "https://api.bamboohr.com/api/gateway.php/{subdomain}/v1"


class ClientConfig(BaseModel):
    """Immutable configuration for one BambooHR client instance."""

    model_config = ConfigDict(frozen=True)

    # Authentication
    api_key: SecretStr
    subdomain: str

    # Derived from the subdomain unless overridden
    base_url: str = Field(default="")

    # Timing (milliseconds)
    cache_timeout_ms: int = Field(default=300_000, ge=0)
    request_timeout_ms: int = Field(default=30_000, gt=0)
    max_retry_attempts: int = Field(default=3, ge=0)
    retry_base_delay_ms: int = Field(default=1_000, ge=0)
    retry_max_delay_ms: int = Field(default=30_000, ge=0)

    max_inline_image_bytes: int = Field(default=MAX_INLINE_IMAGE_BYTES, gt=0)

    @field_validator("api_key")
    @classmethod
    def _api_key_not_blank(cls, value: SecretStr) -> SecretStr:
        if not value.get_secret_value().strip():
            raise ValueError("BambooHR API key cannot be empty")
        return value

    @field_validator("subdomain")
    @classmethod
    def _subdomain_format(cls, value: str) -> str:
        value = value.strip()
        if not SUBDOMAIN_PATTERN.match(value):
            raise ValueError(
                "Invalid BambooHR subdomain. Must contain only letters, numbers, and hyphens."
            )
        return value

    @model_validator(mode="before")
    @classmethod
    def _derive_base_url(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("base_url"):
            subdomain = str(data.get("subdomain", "")).strip()
            data = {**data, "base_url": BASE_URL_TEMPLATE.format(subdomain=subdomain)}
        return data

    @field_validator("base_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @classmethod
    def from_environment(cls) -> "ClientConfig":
        """Create configuration from environment variables.

        ``BAMBOO_API_KEY`` and ``BAMBOO_SUBDOMAIN`` are required; the
        timing knobs fall back to their defaults when unset.
        """
        config_data: dict = {
            "api_key": os.getenv("BAMBOO_API_KEY", ""),
            "subdomain": os.getenv("BAMBOO_SUBDOMAIN", ""),
        }
        if base_url := os.getenv("BAMBOO_BASE_URL"):
            config_data["base_url"] = base_url

        for env_key, field_name in (
            ("CACHE_TIMEOUT_MS", "cache_timeout_ms"),
            ("REQUEST_TIMEOUT_MS", "request_timeout_ms"),
            ("MAX_RETRY_ATTEMPTS", "max_retry_attempts"),
            ("RETRY_BASE_DELAY_MS", "retry_base_delay_ms"),
            ("RETRY_MAX_DELAY_MS", "retry_max_delay_ms"),
        ):
            value = _get_int(env_key)
            if value is not None:
                config_data[field_name] = value

        return cls(**config_data)

    @property
    def request_timeout_seconds(self) -> float:
        return self.request_timeout_ms / 1000


def _get_int(key: str) -> Optional[int]:
    """Get integer environment variable, ``None`` when unset or blank."""
    value = os.getenv(key)
    if value is None or not value.strip():
        return None
    try:
        return int(value.strip())
    except ValueError:
        raise ValueError(f"{key} must be an integer, got {value!r}") from None


# Global configuration instance
_config: Optional[ClientConfig] = None


def get_config(*, reload: bool = False) -> ClientConfig:
    """Get the global configuration instance."""
    global _config

    if _config is None or reload:
        _config = ClientConfig.from_environment()

    return _config


def load_dotenv_for_sdk(path: Optional[Path] = None, *, override: bool = False) -> None:
    """Load environment variables from a .env file, if one exists."""
    if path is None:
        path = Path.cwd() / ".env"

    if path.exists():
        load_dotenv(path, override=override)
