"""
Oversight Core Configuration - Settings management via Pydantic.

Settings for the governance infrastructure layer, read from environment
variables with the OVERSIGHT_ prefix.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class OversightSettings(BaseSettings):
    """
    Oversight infrastructure settings.

    Example:
        export OVERSIGHT_ENV=production
        export OVERSIGHT_AUDIT_LOG_ENABLED=false
    """

    model_config = SettingsConfigDict(
        env_prefix="OVERSIGHT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Environment
    env: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Deployment environment",
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode with verbose logging",
    )

    # Audit
    audit_log_enabled: bool = Field(
        default=True,
        description="Emit structured audit log lines for governance events",
    )
    audit_logger_name: str = Field(
        default="oversight_audit",
        description="Python logger name used by the audit logger",
    )


@lru_cache()
def get_settings() -> OversightSettings:
    """
    Get cached Oversight settings instance.

    Returns:
        OversightSettings instance (cached)
    """
    return OversightSettings()
