"""Configuration helpers for the Speaker Role bot."""

from __future__ import annotations

import os
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import AliasChoices, BaseModel, Field, ValidationError, field_validator

DEFAULT_COMMAND_NAME = "Apply Role to Speakers"


class BotSettings(BaseModel):
    """Runtime configuration parsed from environment variables."""

    discord_token: str = Field(..., alias="DISCORD_TOKEN")
    required_role_ids: List[int] = Field(default_factory=list, alias="REQUIRED_ROLE_IDS")
    max_message_fetch: int = Field(default=1000, alias="MAX_MESSAGE_FETCH", ge=1)
    audit_log_channel_id: Optional[int] = Field(
        default=None,
        alias="AUDIT_LOG_CHANNEL_ID",
        validation_alias=AliasChoices("AUDIT_LOG_CHANNEL_ID", "AUDIT_CHANNEL_ID"),
    )
    command_name: str = Field(default=DEFAULT_COMMAND_NAME, alias="COMMAND_NAME")
    guild_id: Optional[int] = Field(default=None, alias="GUILD_ID")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    health_host: str = Field(default="0.0.0.0", alias="HEALTH_HOST")
    health_port: int = Field(default=8080, alias="HEALTH_PORT")

    class Config:
        populate_by_name = True
        frozen = True

    @field_validator("required_role_ids", mode="before")
    @classmethod
    def _split_role_ids(cls, value):
        if isinstance(value, str):
            return [part.strip() for part in value.split(",") if part.strip()]
        return value

    @field_validator("audit_log_channel_id", "guild_id", mode="before")
    @classmethod
    def _blank_as_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("log_level")
    @classmethod
    def _upper_level(cls, value: str) -> str:
        return value.strip().upper() or "INFO"


def load_settings(env_file: str | None = ".env") -> BotSettings:
    """Load and validate configuration, raising a helpful error if missing."""

    if env_file and Path(env_file).exists():
        load_dotenv(env_file)

    try:
        settings = BotSettings.model_validate(os.environ)
    except ValidationError as exc:
        missing = [err["loc"][0] for err in exc.errors() if err["type"] == "missing"]
        if not missing:
            raise RuntimeError(f"Invalid configuration: {exc}") from exc
        raise RuntimeError(
            (
                "Missing required configuration values: "
                f"{', '.join(str(name) for name in missing)}. "
                "Ensure DISCORD_TOKEN is set before running the bot."
            )
        ) from exc

    return settings
