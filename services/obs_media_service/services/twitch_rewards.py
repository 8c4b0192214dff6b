"""Twitch Helix channel-point reward access for the scene rules."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol

import requests

from app_logging.logger import logger
from config.config import TwitchSettings
from services.obs_media_service.core.errors import (ConfigurationError,
                                                    ConnectivityError)


@dataclass(frozen=True)
class ChannelReward:
    id: str
    title: str
    enabled: bool
    paused: bool
    # Only rewards created by our client id can be paused through the API
    is_ours: bool = True


class RewardsGateway(Protocol):
    def get_rewards(self) -> list[ChannelReward]: ...

    def set_paused(self, reward_id: str, paused: bool) -> None: ...


class TwitchRewardsClient:
    def __init__(self, settings: TwitchSettings, timeout: int = 5) -> None:
        if not settings.enabled:
            raise ConfigurationError(
                "Twitch rewards need TWITCH_CLIENT_ID, TWITCH_ACCESS_TOKEN and TWITCH_BROADCASTER_ID"
            )
        self._base_url = settings.TWITCH_API_URL.rstrip("/")
        self._broadcaster_id = settings.TWITCH_BROADCASTER_ID
        self._timeout = timeout
        self._session = requests.Session()
        self._session.headers.update(
            {
                "Client-Id": settings.TWITCH_CLIENT_ID or "",
                "Authorization": f"Bearer {settings.TWITCH_ACCESS_TOKEN}",
            }
        )

    @property
    def _rewards_url(self) -> str:
        return f"{self._base_url}/channel_points/custom_rewards"

    def get_rewards(self) -> list[ChannelReward]:
        all_rewards = self._request(
            "GET", params={"broadcaster_id": self._broadcaster_id}
        )
        manageable = self._request(
            "GET",
            params={
                "broadcaster_id": self._broadcaster_id,
                "only_manageable_rewards": "true",
            },
        )
        our_ids = {item["id"] for item in manageable.get("data", [])}
        return [
            ChannelReward(
                id=item["id"],
                title=item.get("title", ""),
                enabled=bool(item.get("is_enabled", False)),
                paused=bool(item.get("is_paused", False)),
                is_ours=item["id"] in our_ids,
            )
            for item in all_rewards.get("data", [])
        ]

    def set_paused(self, reward_id: str, paused: bool) -> None:
        self._request(
            "PATCH",
            params={"broadcaster_id": self._broadcaster_id, "id": reward_id},
            json={"is_paused": paused},
        )
        logger.info(f"{'Paused' if paused else 'Unpaused'} reward {reward_id}")

    def _request(self, method: str, **kwargs: Any) -> dict[str, Any]:
        try:
            response = self._session.request(
                method, self._rewards_url, timeout=self._timeout, **kwargs
            )
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            logger.error(f"Twitch rewards request failed: {e}")
            raise ConnectivityError(f"Twitch rewards request failed: {e}") from e
        return response.json() if response.content else {}
