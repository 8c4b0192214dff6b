"""Per-scene side effects: microphone mute state and channel-point reward pausing."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any

from app_logging.logger import logger
from config.config import SceneRulesSettings
from services.obs_media_service.core.errors import DMFLError
from services.obs_media_service.services.obs_service import OBSController
from services.obs_media_service.services.twitch_rewards import RewardsGateway


@dataclass
class SceneRuleReport:
    scene_name: str
    mic_muted: bool | None = None
    paused: list[str] = field(default_factory=list)
    unpaused: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def to_dict(self) -> dict[str, Any]:
        return {
            "ok": self.ok,
            "scene": self.scene_name,
            "mic_muted": self.mic_muted,
            "paused": self.paused,
            "unpaused": self.unpaused,
            "errors": self.errors,
        }


class SceneRules:
    def __init__(
        self,
        settings: SceneRulesSettings,
        obs: OBSController | None = None,
        rewards: RewardsGateway | None = None,
    ) -> None:
        self._settings = settings
        self._obs = obs
        self._rewards = rewards
        self._scene_pattern = re.compile(settings.MIC_SCENE_PATTERN)
        self._muted_pattern = re.compile(settings.MIC_MUTED_SCENE_PATTERN)

    def apply(self, scene_name: str) -> SceneRuleReport:
        report = SceneRuleReport(scene_name=scene_name)
        if not scene_name:
            report.errors.append("Scene name is null or empty.")
            logger.warning("Scene change received without a scene name")
            return report

        for rule in (self._apply_mic_rule, self._apply_reward_rule):
            try:
                rule(scene_name, report)
            except DMFLError as e:
                logger.error(f"Scene rule {rule.__name__} failed for {scene_name}: {e}")
                report.errors.append(e.message)
        return report

    # ---------- rules ---------- #
    def _apply_mic_rule(self, scene_name: str, report: SceneRuleReport) -> None:
        mic = self._settings.MIC_INPUT_NAME
        if not mic or self._obs is None:
            return
        if not self._scene_pattern.match(scene_name):
            logger.debug(f"Scene isn't one which needs a mic check: {scene_name}")
            return
        muted = bool(self._muted_pattern.match(scene_name))
        self._obs.set_input_mute(mic, muted)
        report.mic_muted = muted

    def _apply_reward_rule(self, scene_name: str, report: SceneRuleReport) -> None:
        to_toggle = set(self._settings.REWARDS_TO_TOGGLE)
        if not to_toggle or self._rewards is None:
            return
        rewards_enabled_here = scene_name in self._settings.REWARD_ENABLED_SCENES

        for reward in self._rewards.get_rewards():
            if reward.title not in to_toggle:
                continue
            # Only touch rewards we own that are switched on
            if not (reward.is_ours and reward.enabled):
                continue
            if rewards_enabled_here and reward.paused:
                self._rewards.set_paused(reward.id, False)
                report.unpaused.append(reward.title)
            elif not rewards_enabled_here and not reward.paused:
                self._rewards.set_paused(reward.id, True)
                report.paused.append(reward.title)
