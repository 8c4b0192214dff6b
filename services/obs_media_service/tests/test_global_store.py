from __future__ import annotations

import json
import threading
from pathlib import Path

import pytest

from services.obs_media_service.core.errors import StorageError
from services.obs_media_service.services.global_store import (
    STATUS_NOW_PLAYING, InMemoryGlobalStore, JsonFileGlobalStore, build_store)


@pytest.fixture(params=["memory", "json"])
def store(request, tmp_path: Path):
    if request.param == "memory":
        return InMemoryGlobalStore()
    return JsonFileGlobalStore(tmp_path / "globals.json")


def test_get_returns_default_for_missing_key(store) -> None:
    assert store.get("missing") is None
    assert store.get("missing", []) == []


def test_set_get_delete(store) -> None:
    store.set("DMFL_CURRENT_QUEUE", [{"displayName": "A", "filePath": "/a.mp4"}])
    assert store.get("DMFL_CURRENT_QUEUE") == [{"displayName": "A", "filePath": "/a.mp4"}]
    store.delete("DMFL_CURRENT_QUEUE")
    assert store.get("DMFL_CURRENT_QUEUE") is None
    # deleting twice is fine
    store.delete("DMFL_CURRENT_QUEUE")


def test_compare_and_set_only_swaps_expected_value(store) -> None:
    assert store.compare_and_set(STATUS_NOW_PLAYING, False, True, default=False)
    assert store.get(STATUS_NOW_PLAYING) is True
    assert not store.compare_and_set(STATUS_NOW_PLAYING, False, True, default=False)
    assert store.compare_and_set(STATUS_NOW_PLAYING, True, False)
    assert store.get(STATUS_NOW_PLAYING) is False


def test_compare_and_set_has_a_single_winner(store) -> None:
    winners = []
    barrier = threading.Barrier(8)

    def contend() -> None:
        barrier.wait()
        if store.compare_and_set(STATUS_NOW_PLAYING, False, True, default=False):
            winners.append(threading.get_ident())

    threads = [threading.Thread(target=contend) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(winners) == 1


def test_in_memory_values_are_copies() -> None:
    store = InMemoryGlobalStore()
    queue = [{"displayName": "A", "filePath": "/a.mp4"}]
    store.set("q", queue)
    queue.append({"displayName": "B", "filePath": "/b.mp4"})
    store.get("q").clear()
    assert store.get("q") == [{"displayName": "A", "filePath": "/a.mp4"}]


def test_json_store_survives_reopen(tmp_path: Path) -> None:
    path = tmp_path / "state" / "globals.json"
    JsonFileGlobalStore(path).set("DMFL_FILE_DURATION_a.mp4", 4000)

    reopened = JsonFileGlobalStore(path)

    assert reopened.get("DMFL_FILE_DURATION_a.mp4") == 4000
    assert json.loads(path.read_text(encoding="utf-8")) == {"DMFL_FILE_DURATION_a.mp4": 4000}
    assert list(path.parent.glob("*.tmp")) == []


def test_json_store_treats_corrupt_file_as_empty(tmp_path: Path) -> None:
    path = tmp_path / "globals.json"
    path.write_text("{not json", encoding="utf-8")
    store = JsonFileGlobalStore(path)

    assert store.get("anything", "fallback") == "fallback"
    store.set("key", 1)
    assert store.get("key") == 1


def test_build_store_picks_backend(tmp_path: Path) -> None:
    assert isinstance(build_store(None), InMemoryGlobalStore)
    json_store = build_store(tmp_path / "g.json")
    assert isinstance(json_store, JsonFileGlobalStore)
    assert json_store.path == tmp_path / "g.json"


def test_json_store_write_failure_raises_storage_error(tmp_path: Path, monkeypatch) -> None:
    store = JsonFileGlobalStore(tmp_path / "globals.json")
    store.set("key", 1)

    def refuse(src, dst):
        raise PermissionError("read-only filesystem")

    monkeypatch.setattr("os.replace", refuse)

    with pytest.raises(StorageError) as exc_info:
        store.set("key", 2)
    assert exc_info.value.kind == "storage"
    assert "read-only filesystem" in exc_info.value.message
    assert store.get("key") == 1
    assert list(tmp_path.iterdir()) == [tmp_path / "globals.json"]
