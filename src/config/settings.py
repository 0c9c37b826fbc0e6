"""
Application settings and configuration

Uses pydantic-settings for type-safe configuration via environment variables.
All settings use STENCIL_ prefix (e.g., STENCIL_EXCERPT_LENGTH=80).

Settings can also be loaded from a .env file in the project root.

These are process-level knobs only. Per-project template configuration
(syntaxes, escapers, search directories) lives in the project's
configuration document and is resolved by stencil.lib.config.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """
    Application configuration via environment variables.

    Environment variables use STENCIL_ prefix.

    Examples:
        STENCIL_CONFIG_FILE_NAME=templates.yaml
        STENCIL_TEMPLATES_DIR=tpl
        STENCIL_EXCERPT_LENGTH=80
    """

    model_config = SettingsConfigDict(
        env_prefix="STENCIL_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Configuration document
    config_file_name: str = Field(
        default="stencil.yaml",
        description="Name of the project configuration document, relative to the project root",
    )

    templates_dir: str = Field(
        default="templates",
        description="Search directory used when the configuration document declares none",
    )

    # Error reporting
    excerpt_length: int = Field(
        default=40,
        description="Number of source characters shown after a located error",
    )


# Singleton instance - import this in your code
appsettings = AppSettings()
