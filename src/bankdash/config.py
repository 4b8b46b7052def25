"""Centralized configuration management for BankDash.

This module provides a Pydantic Settings-based configuration system that
consolidates API access, connector cache, synchronization and logging settings
with environment variable integration and per-profile ``.env`` files.
"""

import re
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, DotEnvSettingsSource, SettingsConfigDict

from .logging import LoggingConfig as RuntimeLoggingConfig
from .logging.config import COMPONENT_LOGGERS

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

_PROFILE_PATTERN = re.compile(r"^[a-zA-Z0-9_-]+$")


class ApiConfig(BaseModel):
    """Aggregation API access settings."""

    model_config = ConfigDict(frozen=True)

    mode: Literal["direct", "mock"] = Field(
        default="mock", description="'direct' calls the API, 'mock' uses demo data"
    )
    url: str = Field(
        default="",
        description="Full versioned API URL, e.g. https://demo-sandbox.biapi.pro/2.0/",
    )
    user_id: str = Field(default="", description="Aggregation API user ID")
    bearer_token: str = Field(default="", description="User bearer token")
    client_id: str = Field(default="", description="Application client ID")
    timeout_seconds: float = Field(
        default=30.0, gt=0, le=300, description="HTTP request timeout"
    )

    @field_validator("url")
    @classmethod
    def ensure_trailing_slash(cls, v: str) -> str:
        """Endpoint paths are appended directly to the URL."""
        v = v.strip()
        if v and not v.endswith("/"):
            v = f"{v}/"
        return v

    @property
    def domain(self) -> str:
        """Domain key scoping the connector cache."""
        return "mock" if self.mode == "mock" else self.url


class CacheConfig(BaseModel):
    """Connector metadata cache settings."""

    model_config = ConfigDict(frozen=True)

    path: Path = Field(
        default=Path("data/cache/connectors.json"),
        description="File holding the persisted connector catalog",
    )
    ttl_hours: float = Field(
        default=24.0, gt=0, le=24 * 30, description="Connector catalog lifetime"
    )

    @field_validator("path")
    @classmethod
    def validate_cache_path(cls, v: Path) -> Path:
        """Ensure the cache file is JSON."""
        if v.suffix != ".json":
            raise ValueError("Cache path must end with .json")
        return v


class SyncConfig(BaseModel):
    """Synchronization settings."""

    model_config = ConfigDict(frozen=True)

    max_workers: int = Field(
        default=8, ge=1, le=64, description="Concurrent syncs during a bulk sync"
    )
    timeout_seconds: float = Field(
        default=60.0, gt=0, le=600, description="Deadline for one remote sync/delete"
    )


class LoggingConfig(BaseModel):
    """Logging configuration settings."""

    model_config = ConfigDict(frozen=True)

    level: LogLevel = Field(default="INFO", description="Logging level")
    log_to_file: bool = Field(default=False, description="Enable file logging")
    log_file_path: Path = Field(
        default=Path("logs/bankdash.log"), description="Path to log file"
    )
    max_file_size_mb: int = Field(
        default=10, ge=1, le=1000, description="Maximum log file size in MB"
    )
    backup_count: int = Field(
        default=5, ge=1, le=50, description="Number of log file backups to keep"
    )
    component_levels: dict[str, LogLevel] = Field(
        default_factory=dict,
        description="Per-subsystem levels keyed by api, cache, reconciliation or sync",
    )

    @field_validator("component_levels")
    @classmethod
    def validate_components(cls, v: dict[str, LogLevel]) -> dict[str, LogLevel]:
        """Reject levels for subsystems that have no logger."""
        unknown = sorted(set(v) - set(COMPONENT_LOGGERS))
        if unknown:
            raise ValueError(f"Unknown logging components: {', '.join(unknown)}")
        return v

    def to_runtime_config(
        self, force_reconfigure: bool = False
    ) -> RuntimeLoggingConfig:
        """Build the config consumed by ``bankdash.logging.setup_logging``."""
        return RuntimeLoggingConfig(
            level=self.level,
            log_to_file=self.log_to_file,
            log_file_path=self.log_file_path,
            max_file_size_mb=self.max_file_size_mb,
            backup_count=self.backup_count,
            component_levels=dict(self.component_levels),
            force_reconfigure=force_reconfigure,
        )


class BankDashSettings(BaseSettings):
    """Main application settings with environment variable integration.

    Environment variables are loaded with the BANKDASH_ prefix.
    For nested configs, use double underscores: BANKDASH_API__BEARER_TOKEN

    Profile Support:
    - Loads from .env.{profile} files (e.g., .env.alice, .env.demo)
    - Falls back to .env
    """

    api: ApiConfig = Field(default_factory=ApiConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    sync: SyncConfig = Field(default_factory=SyncConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    profile: str = Field(
        default="default",
        description="User profile name (e.g., alice, bob, household)",
    )

    @field_validator("profile")
    @classmethod
    def validate_profile_name(cls, v: str) -> str:
        """Ensure profile name is safe for use as a filename."""
        if not v:
            raise ValueError("Profile name cannot be empty")
        if not _PROFILE_PATTERN.match(v):
            raise ValueError(
                "Profile name must contain only alphanumeric characters, "
                "dashes, and underscores"
            )
        return v

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: Any,
        env_settings: Any,
        dotenv_settings: Any,
        file_secret_settings: Any,
    ) -> tuple[Any, ...]:
        """Customize how settings are loaded to support profile-based env files."""
        init_dict = init_settings.init_kwargs if init_settings else {}
        profile = init_dict.get("profile", "default")  # type: ignore[reportUnknownMemberType]

        profile_env_file = Path(f".env.{profile}")
        if profile_env_file.exists():
            env_file = str(profile_env_file)
        else:
            env_file = ".env"

        custom_dotenv = DotEnvSettingsSource(
            settings_cls,
            env_file=env_file,
            env_file_encoding="utf-8",
        )

        # Later sources in the tuple have lower priority
        return (
            init_settings,
            env_settings,
            custom_dotenv,
            file_secret_settings,
        )

    model_config = SettingsConfigDict(
        env_file=".env",  # Overridden by settings_customise_sources
        env_file_encoding="utf-8",
        env_prefix="BANKDASH_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    def validate_required_credentials(self) -> None:
        """Validate that direct mode has everything needed to reach the API."""
        if self.api.mode == "mock":
            return

        errors: list[str] = []
        if not self.api.url:
            errors.append("API URL (BANKDASH_API__URL)")
        if not self.api.user_id:
            errors.append("user ID (BANKDASH_API__USER_ID)")
        if not self.api.bearer_token:
            errors.append("bearer token (BANKDASH_API__BEARER_TOKEN)")

        if errors:
            raise ValueError(
                f"API configuration is incomplete for direct mode. "
                f"Missing fields: {', '.join(errors)}"
            )


# Global settings instances - lazy loaded per profile
_settings_cache: dict[str, BankDashSettings] = {}
_current_profile: str = "default"


def get_settings(profile: str | None = None) -> BankDashSettings:
    """Get the settings instance for the specified user profile.

    Settings are loaded once per profile and cached.

    Args:
        profile: User profile name. Defaults to current profile.

    Returns:
        BankDashSettings: The configuration instance for the profile

    Raises:
        ValueError: If required configuration is missing or invalid
    """
    if profile is None:
        profile = _current_profile

    if profile in _settings_cache:
        return _settings_cache[profile]

    try:
        settings = BankDashSettings(profile=profile)
        settings.validate_required_credentials()
    except Exception as e:
        raise ValueError(f"Configuration error for profile '{profile}': {e}") from e

    _settings_cache[profile] = settings
    return settings


def set_current_profile(profile: str) -> None:
    """Set the current active user profile.

    Args:
        profile: User profile name (e.g., 'alice', 'bob', 'household')

    Raises:
        ValueError: If profile name contains invalid characters
    """
    global _current_profile

    if not profile:
        raise ValueError("Profile name cannot be empty")

    if not _PROFILE_PATTERN.match(profile):
        raise ValueError(
            f"Invalid profile: {profile}. "
            "Profile name must contain only alphanumeric characters, dashes, and underscores"
        )

    _current_profile = profile


def get_current_profile() -> str:
    """Get the current active user profile."""
    return _current_profile


def reload_settings(profile: str | None = None) -> BankDashSettings:
    """Reload settings from environment variables.

    Args:
        profile: Profile to reload. If None, reloads current profile.

    Returns:
        BankDashSettings: The reloaded configuration instance
    """
    if profile is None:
        profile = _current_profile

    _settings_cache.pop(profile, None)
    return get_settings(profile)


def clear_settings_cache() -> None:
    """Forget every cached settings instance."""
    _settings_cache.clear()
