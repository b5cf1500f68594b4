"""Client configuration using Pydantic Settings.

All configuration is loaded from environment variables.
No secrets are hardcoded.
"""

from enum import Enum
from functools import lru_cache
from urllib.parse import urlparse

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Application environment."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class ServiceSettings(BaseSettings):
    """Connection settings for the CyborgDB service."""

    model_config = SettingsConfigDict(env_prefix="CYBORGDB_")

    base_url: str = Field(
        default="http://localhost:8000",
        description="CyborgDB service base URL",
    )
    api_key: SecretStr | None = Field(
        default=None,
        description="API key sent as X-API-Key",
    )
    timeout: float = Field(
        default=30.0,
        description="Default request timeout in seconds",
    )
    verify_ssl: bool | None = Field(
        default=None,
        description="Verify TLS certificates (None = auto-detect from URL)",
    )

    def resolve_verify_ssl(self) -> bool:
        """Decide whether TLS certificates should be verified.

        An explicit setting wins. Otherwise plain http URLs and
        localhost targets skip verification; everything else verifies.
        """
        if self.verify_ssl is not None:
            return self.verify_ssl

        parsed = urlparse(self.base_url)
        if parsed.scheme == "http":
            return False
        return parsed.hostname not in ("localhost", "127.0.0.1")


class Settings(BaseSettings):
    """Main client settings.

    Aggregates all configuration sections.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    environment: Environment = Field(
        default=Environment.DEVELOPMENT,
        description="Application environment",
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )

    service: ServiceSettings = Field(default_factory=ServiceSettings)


@lru_cache
def get_settings() -> Settings:
    """Get cached client settings.

    Returns:
        Settings instance loaded from environment.
    """
    return Settings()
