"""
Documentation builder configuration using Pydantic Settings.

Provides centralized configuration for:
- Locating module configuration on disk
- Module enumeration order
- Logging

All settings support environment variable overrides and .env file loading.
Only the file-backed module source and ``create_api_factory`` read these
settings; the builder core receives its collaborators explicitly.
"""

from functools import lru_cache
from pathlib import Path
from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DocumentationSettings(BaseSettings):
    """
    Documentation builder settings loaded from environment variables.

    All settings can be overridden via environment variables with the
    prefix "APIDOC_" (e.g., APIDOC_MODULES_PATH).
    """

    # =========================================================================
    # Module Discovery
    # =========================================================================

    modules_path: Path = Field(
        default=Path("module"),
        description="Directory holding one sub-directory per API module"
    )
    modules: List[str] = Field(
        default_factory=list,
        description="Explicit module enumeration order (empty = sorted directory listing)"
    )
    config_subdirectory: str = Field(
        default="config",
        description="Directory inside a module that holds its configuration files"
    )
    module_config_filename: str = Field(
        default="module.config.json",
        description="Runtime configuration file name"
    )
    documentation_config_filename: str = Field(
        default="documentation.config.json",
        description="Documentation configuration file name, co-located with the module config"
    )

    # =========================================================================
    # Logging Settings
    # =========================================================================

    service_name: str = Field(
        default="api-documentation",
        description="Service name bound to every log entry"
    )
    log_level: str = Field(
        default="INFO",
        description="Log level: DEBUG|INFO|WARNING|ERROR|CRITICAL"
    )
    log_format: str = Field(
        default="json",
        description="Log format: json|text"
    )

    # =========================================================================
    # Validators
    # =========================================================================

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is one of the allowed values."""
        allowed = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in allowed:
            raise ValueError(f"log_level must be one of {allowed}, got: {v}")
        return v_upper

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        """Validate log format."""
        allowed = ["json", "text"]
        v_lower = v.lower()
        if v_lower not in allowed:
            raise ValueError(f"log_format must be one of {allowed}, got: {v}")
        return v_lower

    @property
    def json_logs(self) -> bool:
        return self.log_format == "json"

    model_config = SettingsConfigDict(
        env_prefix="APIDOC_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        validate_default=True,
    )


@lru_cache()
def get_settings() -> DocumentationSettings:
    """
    Get cached settings instance.

    Returns:
        DocumentationSettings: Cached settings instance
    """
    return DocumentationSettings()


def clear_settings_cache():
    """
    Clear the settings cache.

    Useful for testing when you need to reload settings with different
    environment variables.
    """
    get_settings.cache_clear()
