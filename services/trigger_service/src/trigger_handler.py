"""Routes incoming triggers to the media queue or the scene rules."""

from __future__ import annotations

from typing import Any

from app_logging.logger import logger
from config.config import Settings
from services.obs_media_service.core.errors import ConfigurationError
from services.obs_media_service.core.media_queue import MediaQueue
from services.obs_media_service.core.models import TriggerEvent, TriggerKind
from services.obs_media_service.services.chat_client import ChatClient
from services.obs_media_service.services.global_store import build_store
from services.obs_media_service.services.obs_service import OBSService
from services.obs_media_service.services.scene_rules import SceneRules
from services.obs_media_service.services.twitch_rewards import \
    TwitchRewardsClient


class TriggerHandler:
    """Dispatches trigger events to the component that owns them."""

    def __init__(self, media_queue: MediaQueue, scene_rules: SceneRules):
        self.media_queue = media_queue
        self.scene_rules = scene_rules

    @classmethod
    def from_settings(cls, settings: Settings) -> "TriggerHandler":
        """
        Wire the real OBS, storage, chat and Twitch clients from settings.

        Twitch reward toggling is skipped when its credentials are missing;
        the microphone rule still runs.
        """
        obs_service = OBSService(settings.obs)
        store = build_store(settings.storage.GLOBALS_PATH)
        chat = ChatClient(
            webhook_url=settings.chat.CHAT_WEBHOOK_URL,
            timeout=settings.chat.CHAT_TIMEOUT,
        )

        rewards = None
        try:
            rewards = TwitchRewardsClient(settings.twitch)
        except ConfigurationError as e:
            logger.info(f"Reward toggling disabled: {e.message}")

        media_queue = MediaQueue(
            settings.media_queue, settings.polling, obs_service, store, chat
        )
        scene_rules = SceneRules(settings.scene_rules, obs=obs_service, rewards=rewards)
        return cls(media_queue=media_queue, scene_rules=scene_rules)

    def handle(self, trigger: TriggerEvent) -> dict[str, Any]:
        logger.info(f"Handling {trigger.kind.value} trigger '{trigger.name}'")
        if trigger.kind == TriggerKind.SCENE_CHANGED:
            return self.scene_rules.apply(trigger.name).to_dict()
        return self.media_queue.run(trigger).to_dict()

    def status(self) -> dict[str, Any]:
        return self.media_queue.status()

    def reset(self) -> None:
        self.media_queue.reset_busy_flag()
