from __future__ import annotations

import os
import threading
import time
from types import SimpleNamespace

import pytest

from config.config import OBSSettings
from services.obs_media_service.core.errors import (ConfigurationError,
                                                    ConnectivityError)
from services.obs_media_service.obs.ClientManager import OBSClientManager
from services.obs_media_service.services.obs_service import OBSService


class NotFound(Exception):
    code = 600


class FakeReqClient:
    def __init__(self) -> None:
        self.enabled = {7: True}
        self.input_settings: dict = {}
        self.muted: dict[str, bool] = {}
        self.duration: object = 4000
        self.broken = False

    def get_version(self):
        return SimpleNamespace(obs_version="30.1.2")

    def get_current_program_scene(self):
        return SimpleNamespace(current_program_scene_name="00_live", scene_name="00_live")

    def get_scene_item_list(self, scene_name):
        return SimpleNamespace(scene_items=[{"sourceName": "Player", "sceneItemId": 7}])

    def get_scene_item_id(self, scene_name, source_name):
        if source_name != "Player":
            raise NotFound("Request GetSceneItemId returned code 600")
        return SimpleNamespace(scene_item_id=7)

    def get_scene_item_enabled(self, scene_name, item_id):
        return SimpleNamespace(scene_item_enabled=self.enabled[item_id])

    def set_scene_item_enabled(self, scene_name, item_id, enabled):
        self.enabled[item_id] = enabled

    def set_input_settings(self, name, settings, overlay):
        if self.broken:
            raise OSError("socket closed")
        self.input_settings = dict(settings)

    def get_input_settings(self, name):
        return SimpleNamespace(input_settings=self.input_settings)

    def get_media_input_status(self, name):
        return SimpleNamespace(media_duration=self.duration, media_state="OBS_MEDIA_STATE_PLAYING")

    def set_input_mute(self, name, muted):
        self.muted[name] = muted


class FakeClientManager:
    def __init__(self, client: FakeReqClient, enabled: bool = True) -> None:
        self.client = client
        self.enabled = enabled

    def get_client(self) -> FakeReqClient:
        if not self.enabled:
            raise ConfigurationError("OBS is disabled")
        return self.client

    def is_connected(self, client_to_check=None) -> bool:
        return True


@pytest.fixture
def client() -> FakeReqClient:
    return FakeReqClient()


@pytest.fixture
def service(client: FakeReqClient) -> OBSService:
    return OBSService(OBSSettings(), client_manager=FakeClientManager(client))


def test_scene_queries(service: OBSService) -> None:
    assert service.is_connected()
    assert service.get_current_scene() == "00_live"
    assert service.list_scene_items("00_live") == [{"sourceName": "Player", "sceneItemId": 7}]


def test_visibility_round_trip(service: OBSService, client: FakeReqClient) -> None:
    assert service.is_source_visible("Media", "Player") is True
    assert service.hide_source("Media", "Player") is True
    assert client.enabled[7] is False
    assert service.show_source("Media", "Player") is True
    assert client.enabled[7] is True


def test_unknown_source_is_not_visible_and_cannot_be_shown(service: OBSService) -> None:
    assert service.is_source_visible("Media", "Ghost") is False
    assert service.show_source("Media", "Ghost") is False


def test_media_file_is_set_as_absolute_path(service: OBSService, client: FakeReqClient) -> None:
    service.set_media_source_file("Media", "Player", "clips/a.mp4")
    expected = os.path.abspath("clips/a.mp4")
    assert client.input_settings == {"local_file": expected, "is_local_file": True}
    assert service.read_back_input_file("Player") == expected


def test_duration_conversion(service: OBSService, client: FakeReqClient) -> None:
    assert service.get_media_duration_ms("Player") == 4000
    client.duration = None
    assert service.get_media_duration_ms("Player") is None
    client.duration = "n/a"
    assert service.get_media_duration_ms("Player") is None


def test_mute(service: OBSService, client: FakeReqClient) -> None:
    service.set_input_mute("Mic", True)
    assert client.muted == {"Mic": True}


def test_transport_errors_become_connectivity_errors(
    service: OBSService, client: FakeReqClient
) -> None:
    client.broken = True
    with pytest.raises(ConnectivityError) as exc_info:
        service.set_media_source_file("Media", "Player", "/a.mp4")
    assert "SetInputSettings" in exc_info.value.message


class OverlapTrackingClient(FakeReqClient):
    """Counts how many requests are in flight at once."""

    def __init__(self) -> None:
        super().__init__()
        self.in_flight = 0
        self.max_in_flight = 0
        self.guard = threading.Lock()

    def get_current_program_scene(self):
        with self.guard:
            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)
        time.sleep(0.01)
        with self.guard:
            self.in_flight -= 1
        return super().get_current_program_scene()


def test_requests_from_several_threads_do_not_overlap() -> None:
    client = OverlapTrackingClient()
    service = OBSService(OBSSettings(), client_manager=FakeClientManager(client))
    scenes: list[str | None] = []

    threads = [
        threading.Thread(target=lambda: scenes.append(service.get_current_scene()))
        for _ in range(8)
    ]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert scenes == ["00_live"] * 8
    assert client.max_in_flight == 1


def test_disabled_obs_is_unavailable(client: FakeReqClient) -> None:
    service = OBSService(OBSSettings(), client_manager=FakeClientManager(client, enabled=False))
    assert service.is_available is False
    assert service.is_connected() is False
    with pytest.raises(ConfigurationError):
        service.get_current_scene()


def test_client_manager_disabled_by_environment(monkeypatch) -> None:
    monkeypatch.setenv("DMFL_DISABLE_OBS", "1")
    manager = OBSClientManager(OBSSettings(OBS_HOST="localhost", OBS_PASSWORD="secret"))
    assert manager.enabled is False
    with pytest.raises(ConfigurationError):
        manager.get_client()


def test_client_manager_disabled_without_credentials(monkeypatch) -> None:
    monkeypatch.delenv("DMFL_DISABLE_OBS", raising=False)
    manager = OBSClientManager(OBSSettings(OBS_HOST="", OBS_PASSWORD=""))
    assert manager.enabled is False
    assert manager.is_connected() is False
