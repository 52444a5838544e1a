"""Startup configuration for the Azure DevOps MCP server.

Settings are resolved once in main() and handed to the client; nothing else
in the package reads the environment.
"""
import logging
from typing import Literal, Optional, Sequence

from pydantic import AliasChoices, Field, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from .rate_limit import RATE_LIMIT_MAX_REQUESTS, RATE_LIMIT_WINDOW_MS
from .validation import ValidationError, validate_organization_name

logger = logging.getLogger("ado-mcp.config")


class ConfigurationError(Exception):
    """Raised when required startup settings are missing or malformed."""
    pass


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    organization: str = Field(default="", alias="AZURE_DEVOPS_ORG")
    pat: str = Field(
        default="",
        validation_alias=AliasChoices("AZURE_DEVOPS_PAT", "AZURE_DEVOPS_EXT_PAT"),
        repr=False,
    )

    base_url: str = Field(default="https://dev.azure.com", alias="AZURE_DEVOPS_BASE_URL")
    release_base_url: str = Field(default="https://vsrm.dev.azure.com", alias="AZURE_DEVOPS_RELEASE_BASE_URL")
    search_base_url: str = Field(default="https://almsearch.dev.azure.com", alias="AZURE_DEVOPS_SEARCH_BASE_URL")
    api_version: str = Field(default="7.0", alias="AZURE_DEVOPS_API_VERSION")
    request_timeout: float = Field(default=30.0, alias="AZURE_DEVOPS_TIMEOUT")

    # Rate limiting (fixed window)
    rate_limit_max_requests: int = Field(default=RATE_LIMIT_MAX_REQUESTS, alias="ADO_MCP_RATE_LIMIT")
    rate_limit_window_ms: int = Field(default=RATE_LIMIT_WINDOW_MS, alias="ADO_MCP_RATE_WINDOW_MS")

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", alias="ADO_MCP_LOG_LEVEL"
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v):
        return v.strip().upper() if isinstance(v, str) else v

    @property
    def organization_url(self) -> str:
        return f"{self.base_url.rstrip('/')}/{self.organization}"

    @property
    def release_url(self) -> str:
        return f"{self.release_base_url.rstrip('/')}/{self.organization}"

    @property
    def search_url(self) -> str:
        return f"{self.search_base_url.rstrip('/')}/{self.organization}"


def get_settings(argv: Optional[Sequence[str]] = None) -> Settings:
    """Build settings from argv and the environment.

    The organization may be given as the first positional argument, which
    takes precedence over AZURE_DEVOPS_ORG.

    Raises:
        ConfigurationError: if the organization or PAT is missing or invalid
    """
    overrides = {}
    if argv:
        overrides["AZURE_DEVOPS_ORG"] = argv[0]

    try:
        settings = Settings(**overrides)
    except PydanticValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e

    if not settings.organization:
        raise ConfigurationError(
            "Azure DevOps organization not provided. Pass it as argument or set AZURE_DEVOPS_ORG"
        )
    if not settings.pat:
        raise ConfigurationError(
            "Azure DevOps PAT not found. Set AZURE_DEVOPS_PAT or AZURE_DEVOPS_EXT_PAT environment variable"
        )

    try:
        validate_organization_name(settings.organization)
    except ValidationError as e:
        raise ConfigurationError(str(e)) from e

    if settings.rate_limit_max_requests <= 0 or settings.rate_limit_window_ms <= 0:
        raise ConfigurationError("Rate limit settings must be positive")

    logger.debug(f"Loaded settings for organization {settings.organization} (api-version {settings.api_version})")
    return settings
