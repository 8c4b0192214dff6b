from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Optional

from pydantic import Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict

from app_logging.logger import logger

# Define the path to the root .env file to ensure consistent loading
_project_root = Path(__file__).resolve().parent.parent
_env_file = _project_root / ".env"


class OBSSettings(BaseSettings):
    OBS_HOST: str = Field(default="", env="OBS_HOST")
    OBS_PORT: int = Field(default=4455, env="OBS_PORT")
    OBS_PASSWORD: str = Field(default="", env="OBS_PASSWORD")
    OBS_TIMEOUT: int = Field(default=3, env="OBS_TIMEOUT")

    model_config = SettingsConfigDict(
        env_file=_env_file, env_file_encoding="utf-8", extra="ignore"
    )


class MediaQueueSettings(BaseSettings):
    """Everything the media queue needs to resolve a trigger into files."""

    OBS_MEDIA_SCENE: str = Field(default="", env="OBS_MEDIA_SCENE")
    OBS_MEDIA_SOURCE: str = Field(default="", env="OBS_MEDIA_SOURCE")

    MAIN_MEDIA_FOLDER: Path | None = Field(default=None, env="MAIN_MEDIA_FOLDER")
    CP_MEDIA_FOLDER: Path | None = Field(default=None, env="CP_MEDIA_FOLDER")
    # Channel point redemptions get their own folder (and duration keys) when on
    SEPARATE_CP_FOLDER: bool = Field(default=False, env="SEPARATE_CP_FOLDER")

    # trigger name -> path relative to the media folder
    FILE_MAPPINGS: dict[str, str] = Field(default_factory=dict, env="FILE_MAPPINGS")
    CP_FILE_MAPPINGS: dict[str, str] = Field(
        default_factory=dict, env="CP_FILE_MAPPINGS"
    )
    RANDOM_TRIGGERS: list[str] = Field(
        default=["dmflPlayRandomXFiles", "ChannalPointRandom"], env="RANDOM_TRIGGERS"
    )
    MAPPINGS_PATH: Optional[Path] = Field(default=None, env="MAPPINGS_PATH")

    USE_CACHED_DURATIONS: bool = Field(default=True, env="USE_CACHED_DURATIONS")
    USE_CACHED_LOCATIONS: bool = Field(default=False, env="USE_CACHED_LOCATIONS")
    HISTORY_LIST_SIZE: int = Field(default=0, env="HISTORY_LIST_SIZE")
    CHAT_DEBUG: bool = Field(default=False, env="CHAT_DEBUG")

    model_config = SettingsConfigDict(
        env_file=_env_file, env_file_encoding="utf-8", extra="ignore"
    )

    def _load_mappings_file(self) -> dict[str, Any]:
        if not self.MAPPINGS_PATH:
            return {}
        try:
            with open(self.MAPPINGS_PATH, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as exc:
            raise ValueError(
                f"Could not read mappings file {self.MAPPINGS_PATH}: {exc}"
            ) from exc
        if not isinstance(data, dict):
            raise ValueError(f"Mappings file {self.MAPPINGS_PATH} must hold an object")
        return data

    @computed_field  # type: ignore[misc]
    @property
    def file_mappings(self) -> dict[str, str]:
        merged = dict(self.FILE_MAPPINGS)
        merged.update(self._load_mappings_file().get("file_mappings", {}))
        return merged

    @computed_field  # type: ignore[misc]
    @property
    def cp_file_mappings(self) -> dict[str, str]:
        merged = dict(self.CP_FILE_MAPPINGS)
        merged.update(self._load_mappings_file().get("cp_file_mappings", {}))
        return merged

    @computed_field  # type: ignore[misc]
    @property
    def random_triggers(self) -> list[str]:
        extra = self._load_mappings_file().get("random_triggers", [])
        return list(dict.fromkeys([*self.RANDOM_TRIGGERS, *extra]))


class PollingSettings(BaseSettings):
    """Retry interval / timeout pairs, all in milliseconds."""

    SCENE_POLL_INTERVAL_MS: int = Field(default=500, env="SCENE_POLL_INTERVAL_MS")
    SCENE_POLL_TIMEOUT_MS: int = Field(default=5000, env="SCENE_POLL_TIMEOUT_MS")
    SOURCE_OFF_INTERVAL_MS: int = Field(default=50, env="SOURCE_OFF_INTERVAL_MS")
    SOURCE_OFF_TIMEOUT_MS: int = Field(default=1000, env="SOURCE_OFF_TIMEOUT_MS")
    FILE_CONFIRM_INTERVAL_MS: int = Field(
        default=100, env="FILE_CONFIRM_INTERVAL_MS"
    )
    FILE_CONFIRM_TIMEOUT_MS: int = Field(default=2000, env="FILE_CONFIRM_TIMEOUT_MS")
    DURATION_POLL_INTERVAL_MS: int = Field(
        default=100, env="DURATION_POLL_INTERVAL_MS"
    )
    DURATION_POLL_TIMEOUT_MS: int = Field(
        default=5000, env="DURATION_POLL_TIMEOUT_MS"
    )

    model_config = SettingsConfigDict(
        env_file=_env_file, env_file_encoding="utf-8", extra="ignore"
    )


class StorageSettings(BaseSettings):
    # Empty means globals only live for the lifetime of the process
    GLOBALS_PATH: Path | None = Field(default=None, env="GLOBALS_PATH")

    model_config = SettingsConfigDict(
        env_file=_env_file, env_file_encoding="utf-8", extra="ignore"
    )


class ChatSettings(BaseSettings):
    CHAT_WEBHOOK_URL: str | None = Field(default=None, env="CHAT_WEBHOOK_URL")
    CHAT_TIMEOUT: int = Field(default=2, env="CHAT_TIMEOUT")

    model_config = SettingsConfigDict(
        env_file=_env_file, env_file_encoding="utf-8", extra="ignore"
    )


class TwitchSettings(BaseSettings):
    TWITCH_CLIENT_ID: str | None = Field(default=None, env="TWITCH_CLIENT_ID")
    TWITCH_ACCESS_TOKEN: str | None = Field(default=None, env="TWITCH_ACCESS_TOKEN")
    TWITCH_BROADCASTER_ID: str | None = Field(
        default=None, env="TWITCH_BROADCASTER_ID"
    )
    TWITCH_API_URL: str = Field(
        default="https://api.twitch.tv/helix", env="TWITCH_API_URL"
    )

    model_config = SettingsConfigDict(
        env_file=_env_file, env_file_encoding="utf-8", extra="ignore"
    )

    @computed_field  # type: ignore[misc]
    @property
    def enabled(self) -> bool:
        return all(
            [self.TWITCH_CLIENT_ID, self.TWITCH_ACCESS_TOKEN, self.TWITCH_BROADCASTER_ID]
        )


class SceneRulesSettings(BaseSettings):
    MIC_INPUT_NAME: str = Field(default="", env="MIC_INPUT_NAME")
    MIC_SCENE_PATTERN: str = Field(default=r"^(00|01).*", env="MIC_SCENE_PATTERN")
    MIC_MUTED_SCENE_PATTERN: str = Field(
        default=r"^(00|01)(?=(_tactical_pause|_starting_soon)).*$",
        env="MIC_MUTED_SCENE_PATTERN",
    )
    REWARD_ENABLED_SCENES: list[str] = Field(
        default_factory=list, env="REWARD_ENABLED_SCENES"
    )
    REWARDS_TO_TOGGLE: list[str] = Field(default_factory=list, env="REWARDS_TO_TOGGLE")

    model_config = SettingsConfigDict(
        env_file=_env_file, env_file_encoding="utf-8", extra="ignore"
    )


class TriggerServiceSettings(BaseSettings):
    """Settings for the trigger service."""

    TRIGGER_HOST: str = Field(default="127.0.0.1", env="TRIGGER_HOST")
    TRIGGER_PORT: int = Field(default=8002, env="TRIGGER_PORT")

    model_config = SettingsConfigDict(
        env_file=_env_file, env_file_encoding="utf-8", extra="ignore"
    )


class Settings(BaseSettings):
    # Nested settings
    obs: OBSSettings = OBSSettings()
    media_queue: MediaQueueSettings = MediaQueueSettings()
    polling: PollingSettings = PollingSettings()
    storage: StorageSettings = StorageSettings()
    chat: ChatSettings = ChatSettings()
    twitch: TwitchSettings = TwitchSettings()
    scene_rules: SceneRulesSettings = SceneRulesSettings()
    trigger_service: TriggerServiceSettings = TriggerServiceSettings()

    model_config = SettingsConfigDict(
        env_file=_env_file, env_file_encoding="utf-8", extra="ignore"
    )


# Global settings instance
settings = Settings()
logger.debug(f"Settings loaded from {_env_file}")
