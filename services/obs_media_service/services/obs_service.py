"""Wrapper over the obs request helpers for uniform access."""

from __future__ import annotations

import threading
from collections.abc import Callable
from typing import Any, Protocol, TypeVar

from app_logging.logger import logger
from config.config import OBSSettings
from services.obs_media_service import obs as obs_requests
from services.obs_media_service.core.errors import (ConfigurationError,
                                                    ConnectivityError)
from services.obs_media_service.obs.ClientManager import OBSClientManager

T = TypeVar("T")


class OBSController(Protocol):
    """The OBS operations the media queue and scene rules rely on."""

    @property
    def is_available(self) -> bool: ...

    def is_connected(self) -> bool: ...

    def get_current_scene(self) -> str | None: ...

    def list_scene_items(self, scene_name: str) -> list[dict[str, Any]] | None: ...

    def is_source_visible(self, scene_name: str, source_name: str) -> bool: ...

    def hide_source(self, scene_name: str, source_name: str) -> bool: ...

    def show_source(self, scene_name: str, source_name: str) -> bool: ...

    def set_media_source_file(
        self, scene_name: str, source_name: str, file_path: str
    ) -> None: ...

    def read_back_input_file(self, source_name: str) -> str | None: ...

    def get_media_duration_ms(self, source_name: str) -> int | None: ...

    def set_input_mute(self, input_name: str, muted: bool) -> None: ...


class OBSService:
    def __init__(
        self,
        settings: OBSSettings,
        client_manager: OBSClientManager | None = None,
    ) -> None:
        self._settings = settings
        self._client_manager = client_manager or OBSClientManager(settings)
        # ReqClient is not safe to share between request threads
        self._request_lock = threading.Lock()

    # ---------- Public API ---------- #
    @property
    def is_available(self) -> bool:
        return self._client_manager.enabled

    def is_connected(self) -> bool:
        try:
            self._client_manager.get_client()
        except (ConfigurationError, ConnectivityError):
            return False
        return self._client_manager.is_connected()

    def get_current_scene(self) -> str | None:
        return self._call("GetCurrentProgramScene", obs_requests.get_current_program_scene)

    def list_scene_items(self, scene_name: str) -> list[dict[str, Any]] | None:
        return self._call(
            "GetSceneItemList", obs_requests.get_scene_item_list, scene_name
        )

    def is_source_visible(self, scene_name: str, source_name: str) -> bool:
        return self._call(
            "GetSceneItemEnabled", obs_requests.is_source_visible, scene_name, source_name
        )

    def hide_source(self, scene_name: str, source_name: str) -> bool:
        return self._call(
            "SetSceneItemEnabled",
            obs_requests.set_source_visibility,
            scene_name,
            source_name,
            False,
        )

    def show_source(self, scene_name: str, source_name: str) -> bool:
        return self._call(
            "SetSceneItemEnabled",
            obs_requests.set_source_visibility,
            scene_name,
            source_name,
            True,
        )

    def set_media_source_file(
        self, scene_name: str, source_name: str, file_path: str
    ) -> None:
        logger.debug("Setting media file for %s in %s", source_name, scene_name)
        self._call(
            "SetInputSettings", obs_requests.set_media_source_file, source_name, file_path
        )

    def read_back_input_file(self, source_name: str) -> str | None:
        return self._call("GetInputSettings", obs_requests.get_input_file, source_name)

    def get_media_duration_ms(self, source_name: str) -> int | None:
        return self._call(
            "GetMediaInputStatus", obs_requests.get_media_duration_ms, source_name
        )

    def set_input_mute(self, input_name: str, muted: bool) -> None:
        self._call("SetInputMute", obs_requests.set_input_mute, input_name, muted)

    # ---------- internals ---------- #
    def _call(self, request_type: str, fn: Callable[..., T], *args: Any) -> T:
        client = self._client_manager.get_client()
        try:
            with self._request_lock:
                return fn(client, *args)
        except Exception as e:
            logger.error("OBS request %s failed: %s", request_type, e)
            raise ConnectivityError(f"OBS request {request_type} failed: {e}") from e
