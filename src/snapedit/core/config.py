"""Configuration management for SnapEdit.

This module provides centralized configuration management using Pydantic Settings.
All configuration is loaded from environment variables with the SNAPEDIT_ prefix,
allowing easy customization without code changes.

Environment Variable Loading
-----------------------------
Configuration values are loaded in the following priority order:
1. Environment variables (SNAPEDIT_* prefix)
2. .env file in the project root
3. Default values defined in SnapEditConfig

The Gemini credential is the one exception to the prefix rule: it is read from
``SNAPEDIT_GEMINI_API_KEY`` or, failing that, the conventional ``GEMINI_API_KEY``.

Example .env file:
    GEMINI_API_KEY=your-key
    SNAPEDIT_ENVIRONMENT=production
    SNAPEDIT_ASPECT_RATIO=16:9
    SNAPEDIT_PUBLIC_BASE_URL=https://snapedit.example.com

Global Configuration Instance
------------------------------
A global `config` instance is created automatically at module import time and
is used by the uvicorn entry point.  Tests build their own instances and pass
them to :func:`snapedit.api.main.create_app`.

Storage Location
----------------
``environment`` selects where the SQLite file lives:
- development: ``data_dir / db_filename`` (durable, survives restarts)
- production: ``scratch_dir / db_filename`` (the only writable path on some
  serverless hosts; shared links may not survive a redeploy)
"""

from pathlib import Path
from typing import Literal

from pydantic import AliasChoices, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class SnapEditConfig(BaseSettings):
    """Main configuration for SnapEdit.

    Attributes
    ----------
    Gateway Settings:
        gemini_api_key : SecretStr
            Credential for the Gemini API (empty means not configured)
        model_name : str
            Gemini model used for generation and editing
        aspect_ratio : str
            Fixed aspect ratio requested for every generated image
        system_instruction : str | None
            Optional system instruction sent with every request

    Storage Settings:
        environment : Literal["development", "production"]
            Deployment mode; selects the durable or scratch database path
        data_dir : Path
            Durable directory for the database in development
        scratch_dir : Path
            Ephemeral directory for the database in production
        db_filename : str
            SQLite file name

    Server Settings:
        server_host : str
            Bind address for uvicorn
        server_port : int
            Port for uvicorn (1024-65535)
        public_base_url : str | None
            Origin used when building share links (defaults to the request URL)
        log_level : str
            Root logging level for the CLI entry point
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="SNAPEDIT_",
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",
    )

    # Gateway settings
    gemini_api_key: SecretStr = Field(
        default=SecretStr(""),
        validation_alias=AliasChoices("gemini_api_key", "SNAPEDIT_GEMINI_API_KEY", "GEMINI_API_KEY"),
        description="API key for the Gemini image model",
    )
    model_name: str = Field(
        default="gemini-2.5-flash-image",
        description="Gemini model used for image generation and editing",
    )
    aspect_ratio: str = Field(
        default="1:1",
        pattern=r"^\d+:\d+$",
        description="Aspect ratio requested for every generated image",
    )
    system_instruction: str | None = Field(
        default=None,
        description="Optional system instruction sent with every request",
    )

    # Storage settings
    environment: Literal["development", "production"] = Field(
        default="development",
        description="Deployment mode (production stores the database in scratch_dir)",
    )
    data_dir: Path = Field(
        default=Path("data"),
        description="Durable directory for the image database",
    )
    scratch_dir: Path = Field(
        default=Path("/tmp"),
        description="Writable scratch directory used in production",
    )
    db_filename: str = Field(
        default="images.db",
        description="SQLite database file name",
    )

    # Server settings
    server_host: str = Field(
        default="0.0.0.0",
        description="Server bind address (0.0.0.0 for local network)",
    )
    server_port: int = Field(
        default=3000,
        description="Server port",
        ge=1024,
        le=65535,
    )
    public_base_url: str | None = Field(
        default=None,
        description="Public origin used to build share links",
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level for the server process",
    )

    @property
    def db_path(self) -> Path:
        """Resolve the SQLite path for the current deployment mode."""
        base_dir = self.scratch_dir if self.environment == "production" else self.data_dir
        return base_dir / self.db_filename

    @property
    def has_credentials(self) -> bool:
        """Whether a non-blank Gemini API key is configured."""
        return bool(self.gemini_api_key.get_secret_value().strip())


# Global configuration instance
# Loaded from environment variables (SNAPEDIT_* prefix) and the .env file.
config = SnapEditConfig()
