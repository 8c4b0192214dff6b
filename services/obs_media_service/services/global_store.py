"""Global key-value variables shared by every trigger invocation."""

from __future__ import annotations

import copy
import json
import os
import tempfile
import threading
from pathlib import Path
from typing import Any, Protocol

from app_logging.logger import logger
from services.obs_media_service.core.errors import StorageError

# Key names
STATUS_NOW_PLAYING = "DMFL_STATUS_NOW_PLAYING"
CURRENT_QUEUE = "DMFL_CURRENT_QUEUE"
LASTPLAYED_QUEUE = "DMFL_LASTPLAYED_QUEUE"
FILE_DURATION_PREFIX = "DMFL_FILE_DURATION_"
CP_FILE_DURATION_PREFIX = "DMFL_CP_FILE_DURATION_"
FILE_LOC_PREFIX = "DMFL_FILE_LOC_"
CP_FILE_LOC_PREFIX = "DMFL_CP_FILE_LOC_"


class GlobalStore(Protocol):
    def get(self, key: str, default: Any = None) -> Any: ...

    def set(self, key: str, value: Any) -> None: ...

    def delete(self, key: str) -> None: ...

    def compare_and_set(
        self, key: str, expected: Any, new: Any, default: Any = None
    ) -> bool: ...


class InMemoryGlobalStore:
    """Process-local store. Values are deep-copied in and out."""

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self._data: dict[str, Any] = copy.deepcopy(initial) if initial else {}
        self._lock = threading.Lock()

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            return copy.deepcopy(self._data.get(key, default))

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._data[key] = copy.deepcopy(value)

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def compare_and_set(
        self, key: str, expected: Any, new: Any, default: Any = None
    ) -> bool:
        with self._lock:
            if self._data.get(key, default) != expected:
                return False
            self._data[key] = copy.deepcopy(new)
            return True


class JsonFileGlobalStore:
    """
    Store backed by a single JSON document on disk.

    Every operation re-reads the file and, for writes, replaces it atomically,
    all under one lock, so the document survives restarts and stays consistent
    for every caller inside this process.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._lock = threading.Lock()
        self._path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def path(self) -> Path:
        return self._path

    # ---------- API ---------- #
    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            return self._load().get(key, default)

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            data = self._load()
            data[key] = value
            self._save(data)

    def delete(self, key: str) -> None:
        with self._lock:
            data = self._load()
            if key in data:
                del data[key]
                self._save(data)

    def compare_and_set(
        self, key: str, expected: Any, new: Any, default: Any = None
    ) -> bool:
        with self._lock:
            data = self._load()
            if data.get(key, default) != expected:
                return False
            data[key] = new
            self._save(data)
            return True

    # ---------- internals ---------- #
    def _load(self) -> dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            with open(self._path, encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as exc:
            logger.error("Globals file %s is corrupt, starting empty: %s", self._path, exc)
            return {}
        except OSError as exc:
            raise StorageError(f"Globals store unavailable: {exc}") from exc
        return data if isinstance(data, dict) else {}

    def _save(self, data: dict[str, Any]) -> None:
        try:
            self._write_atomically(data)
        except OSError as exc:
            logger.error("Could not write globals file %s: %s", self._path, exc)
            raise StorageError(f"Globals store unavailable: {exc}") from exc

    def _write_atomically(self, data: dict[str, Any]) -> None:
        fd, tmp_path = tempfile.mkstemp(
            dir=self._path.parent, prefix=f".{self._path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False, indent=2)
            os.replace(tmp_path, self._path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise


def build_store(globals_path: str | Path | None) -> GlobalStore:
    if globals_path:
        logger.info(f"Using JSON globals file: {globals_path}")
        return JsonFileGlobalStore(globals_path)
    logger.info("GLOBALS_PATH not set, globals are kept in memory only")
    return InMemoryGlobalStore()
