"""Centralized configuration management for the cafsample application.

This module provides a Pydantic Settings-based configuration system that
consolidates server, token service, member and funds-confirmation settings
with environment variable integration, type validation, and clear error handling.
"""

import re
from decimal import Decimal
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

LOCAL_BACKEND = "local"


class ServerConfig(BaseModel):
    """HTTP server settings."""

    model_config = ConfigDict(frozen=True)

    host: str = Field(default="0.0.0.0", description="Interface to bind")  # noqa: S104
    port: int = Field(default=3000, ge=1, le=65535, description="Port to listen on")


class TokenConfig(BaseModel):
    """Token service (SDK) settings."""

    model_config = ConfigDict(frozen=True)

    environment: Literal["sandbox", "production"] = Field(
        default="sandbox", description="Token service environment"
    )
    backend: str = Field(
        default=LOCAL_BACKEND,
        description="'local' or an import path 'package.module:factory'",
    )
    keys_dir: Path = Field(
        default=Path("keys"), description="Directory holding member private keys"
    )
    authorize_path: str = Field(
        default="/sandbox/authorize/{request_id}",
        description="Authorization page template used by the local backend",
    )

    @field_validator("backend")
    @classmethod
    def validate_backend(cls, v: str) -> str:
        """Ensure the backend is 'local' or a 'module:attribute' path."""
        if v == LOCAL_BACKEND:
            return v
        module, sep, attr = v.partition(":")
        if not sep or not module or not attr:
            raise ValueError(
                f"Invalid backend '{v}'. Use 'local' or 'package.module:factory'"
            )
        return v

    @field_validator("authorize_path")
    @classmethod
    def validate_authorize_path(cls, v: str) -> str:
        """The authorization page template must carry the request id."""
        if "{request_id}" not in v:
            raise ValueError("authorize_path must contain '{request_id}'")
        return v


class MemberConfig(BaseModel):
    """Settings used when a new CBPII member is created."""

    model_config = ConfigDict(frozen=True)

    alias_prefix: str = Field(default="cafpython-", description="Email alias prefix")
    alias_domain: str = Field(default="example.com", description="Email alias domain")
    display_name: str = Field(
        default="CBPII Demo", description="Display name shown on the consent page"
    )
    profile_picture: Path | None = Field(
        default=None, description="PNG profile picture; bundled image when unset"
    )


class FundsConfig(BaseModel):
    """The account and amount used for the funds-confirmation request."""

    model_config = ConfigDict(frozen=True)

    bank_id: str = Field(default="ob-modelo", description="Bank to request access at")
    account_number: str = Field(default="70000004", description="Domestic account number")
    bank_code: str = Field(default="700001", description="Domestic bank (sort) code")
    country: str = Field(default="GB", description="Account country code")
    amount: Decimal = Field(default=Decimal("1.0"), gt=0, description="Amount to confirm")
    currency: str = Field(default="GBP", description="ISO 4217 currency code")

    @field_validator("currency")
    @classmethod
    def validate_currency(cls, v: str) -> str:
        """Currency codes are three upper-case letters."""
        if not re.match(r"^[A-Z]{3}$", v):
            raise ValueError("Currency must be a three-letter ISO 4217 code")
        return v


class SandboxConfig(BaseModel):
    """Balances reported by the local sandbox backend."""

    model_config = ConfigDict(frozen=True)

    available_balance: Decimal = Field(
        default=Decimal("100.00"), ge=0, description="Available balance of every account"
    )
    balance_currency: str = Field(default="GBP", description="Currency of the balance")


class LoggingConfig(BaseModel):
    """Logging configuration settings."""

    model_config = ConfigDict(frozen=True)

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )
    log_to_file: bool = Field(default=False, description="Enable file logging")
    log_file_path: Path = Field(
        default=Path("logs/cafsample.log"), description="Path to log file"
    )
    max_file_size_mb: int = Field(
        default=10, ge=1, le=1000, description="Maximum log file size in MB"
    )
    backup_count: int = Field(
        default=5, ge=1, le=50, description="Number of log file backups to keep"
    )


class CafSampleSettings(BaseSettings):
    """Main application settings with environment variable integration.

    Environment variables are loaded with the CAFSAMPLE_ prefix.
    For nested configs, use double underscores: CAFSAMPLE_SERVER__PORT
    """

    server: ServerConfig = Field(default_factory=ServerConfig)
    token: TokenConfig = Field(default_factory=TokenConfig)
    member: MemberConfig = Field(default_factory=MemberConfig)
    funds: FundsConfig = Field(default_factory=FundsConfig)
    sandbox: SandboxConfig = Field(default_factory=SandboxConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="CAFSAMPLE_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    @property
    def uses_local_backend(self) -> bool:
        """Whether the bundled local sandbox stands in for the token service."""
        return self.token.backend == LOCAL_BACKEND

    def validate_backend_environment(self) -> None:
        """The local sandbox cannot pose as the production token service."""
        if self.uses_local_backend and self.token.environment == "production":
            raise ValueError(
                "The local backend only supports the sandbox environment. "
                "Set CAFSAMPLE_TOKEN__BACKEND to a production SDK factory."
            )


_settings: CafSampleSettings | None = None


def get_settings() -> CafSampleSettings:
    """Get the settings instance.

    Settings are loaded once and cached for the lifetime of the process.

    Returns:
        CafSampleSettings: The configuration instance

    Raises:
        ValueError: If configuration is missing or invalid
    """
    global _settings

    if _settings is not None:
        return _settings

    try:
        settings = CafSampleSettings()
        settings.validate_backend_environment()
    except Exception as e:
        raise ValueError(f"Configuration error: {e}") from e

    _settings = settings
    return settings


def clear_settings_cache() -> None:
    """Forget the cached settings so the next access reloads them."""
    global _settings
    _settings = None


def reload_settings() -> CafSampleSettings:
    """Reload settings from environment variables.

    Useful for testing or when environment variables change at runtime.

    Returns:
        CafSampleSettings: The reloaded configuration instance
    """
    clear_settings_cache()
    return get_settings()
