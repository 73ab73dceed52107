"""Centralized application configuration via environment variables.

Process settings come from the environment (and ``.env``); the per-tenant
helpdesk credentials live in a separate YAML file referenced by
``helpdesk_config_path`` and are loaded once at startup.
"""

from enum import StrEnum
from functools import lru_cache
from pathlib import Path

import yaml
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    SecretStr,
    ValidationError,
    field_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

from helpdesk_ext.errors import ConfigurationError
from helpdesk_ext.restful import Revision


class Environment(StrEnum):
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TESTING = "testing"


class Settings(BaseSettings):
    """Worker settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # --- App ---
    environment: Environment = Environment.DEVELOPMENT
    log_level: str = "DEBUG"

    # --- Redis (arq) ---
    redis_url: str = "redis://localhost:6379/0"

    # --- Worker ---
    worker_max_jobs: int = 10
    worker_job_timeout: int = 300

    # --- Helpdesk ---
    helpdesk_config_path: Path = Path("config/helpdesk.ext.yaml")
    request_timeout: float = 10.0
    # Fixed pause between page requests, in seconds.
    pagination_backoff: float = 0.25

    # --- Convenience properties ---
    @property
    def is_dev(self) -> bool:
        return self.environment == Environment.DEVELOPMENT

    @property
    def is_prod(self) -> bool:
        return self.environment == Environment.PRODUCTION

    @property
    def is_testing(self) -> bool:
        return self.environment == Environment.TESTING


class TenantConfig(BaseModel):
    """Single helpdesk (tenant) entry.

    Keys use the camelCase names of the configuration file; snake_case
    names are accepted too.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    base_url: str = Field(alias="baseUrl", min_length=1)
    revision: Revision = Revision.V2
    public_key: SecretStr = Field(alias="publicKey")
    private_key: SecretStr = Field(alias="privateKey")

    @field_validator("revision", mode="before")
    @classmethod
    def default_revision(cls, value: object) -> object:
        """Unknown or missing revisions fall back to v2."""
        if not isinstance(value, str) or value not in {r.value for r in Revision}:
            return Revision.V2
        return value


class HelpdeskConfig(BaseModel):
    """Top-level tenant file: ``helpdesk: {name: TenantConfig}``."""

    helpdesk: dict[str, TenantConfig] = {}


def load_tenants(config_path: Path) -> dict[str, TenantConfig]:
    """Load and validate tenant configuration from YAML.

    Args:
        config_path: Path to the tenant file. Typically comes from
            Settings.helpdesk_config_path.

    Raises:
        FileNotFoundError: if the YAML file doesn't exist.
        ConfigurationError: if YAML parsing or validation fails.
    """
    if not config_path.exists():
        raise FileNotFoundError(f"Helpdesk config not found: {config_path}")

    try:
        raw = yaml.safe_load(config_path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ConfigurationError(
            f"Failed to parse helpdesk config '{config_path}': {e}"
        ) from e

    try:
        config = HelpdeskConfig.model_validate(raw or {})
    except ValidationError as e:
        raise ConfigurationError(
            f"Invalid helpdesk config '{config_path}': {e}"
        ) from e
    return config.helpdesk


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Cached settings singleton.

    Usage::

        from helpdesk_ext.config import get_settings
        settings = get_settings()
    """
    return Settings()
