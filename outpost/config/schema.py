"""Pydantic configuration models for outpost.

Config is loaded from ~/.outpost/config.json and can be overridden
via OUTPOST_ prefixed environment variables.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic_settings.main import JsonConfigSettingsSource


class DispatchConfig(BaseModel):
    """Outbound dispatch settings for one platform account."""

    sending_interval: int = Field(
        default=1800,
        ge=100,
        description="Minimum milliseconds between the start of two sends.",
    )
    is_group: bool = Field(
        default=False,
        description="Community token mode. Sends bypass the queue and are not throttled.",
    )
    self_id: int | str | None = Field(
        default=None,
        description="The bot's own account id, used to recognise its removal from a chat.",
    )

    @property
    def sending_interval_seconds(self) -> float:
        return self.sending_interval / 1000


class LoggingConfig(BaseModel):
    """Console and file logging options."""

    verbose: bool = False
    quiet: bool = False
    log_dir: Path | None = Field(
        default=None,
        description="Directory for rotating log files. Defaults to ~/.outpost/logs.",
    )


class OutpostConfig(BaseSettings):
    """Root configuration.

    Uses JsonConfigSettingsSource so pydantic-settings reads the JSON file
    and merges it with environment variable overrides.
    """

    model_config = SettingsConfigDict(
        env_prefix="OUTPOST_",
        env_nested_delimiter="__",
        json_file=Path("~/.outpost/config.json").expanduser(),
        json_file_encoding="utf-8",
        extra="ignore",
    )

    dispatch: DispatchConfig = Field(default_factory=DispatchConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        """Enable JSON file loading alongside env vars and init kwargs."""
        return (
            init_settings,
            env_settings,
            JsonConfigSettingsSource(settings_cls),
        )
