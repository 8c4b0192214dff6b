"""Turns a trigger into the media jobs it asks for."""

from __future__ import annotations

import os
import random
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from app_logging.logger import logger
from services.obs_media_service.core.errors import (InvalidRequestError,
                                                    NotFoundError)
from services.obs_media_service.core.models import (MediaJob, TriggerEvent,
                                                    TriggerKind)
from services.obs_media_service.services.global_store import (
    CP_FILE_DURATION_PREFIX, CP_FILE_LOC_PREFIX, FILE_DURATION_PREFIX,
    FILE_LOC_PREFIX, GlobalStore)
from services.obs_media_service.utils.media import enumerate_media_files


class SelectionPolicy(str, Enum):
    MAPPED = "mapped"
    RANDOM = "random"


@dataclass
class ResolvedBatch:
    jobs: list[MediaJob]
    requested: int
    policy: SelectionPolicy
    use_cp_folder: bool


def _lookup(mapping: dict[str, str], name: str) -> str | None:
    wanted = name.casefold()
    for key, value in mapping.items():
        if key.casefold() == wanted:
            return value
    return None


def selection_policy(trigger: TriggerEvent, random_triggers: list[str]) -> SelectionPolicy:
    wanted = trigger.name.casefold()
    if any(name.casefold() == wanted for name in random_triggers):
        return SelectionPolicy.RANDOM
    return SelectionPolicy.MAPPED


def parse_requested_count(trigger: TriggerEvent, files_in_folder: int) -> int:
    """
    How many random files a trigger asks for.

    Reward redemptions always get one. Typed commands may pass a number, which
    must lie between 1 and the number of files available.
    """
    if trigger.kind != TriggerKind.COMMAND:
        return 1
    raw = (trigger.raw_input or "").strip()
    if not raw:
        return 1
    try:
        count = int(raw)
    except ValueError:
        raise InvalidRequestError(
            "Invalid command, please only enter the number of files you want to queue up."
        )
    if count > files_in_folder:
        raise InvalidRequestError(
            f"Maximum files is: {files_in_folder}. Please select a number below this."
        )
    if count <= 0:
        raise InvalidRequestError("Please choose a number above 0.")
    return count


def duration_key(
    job: MediaJob,
    trigger: TriggerEvent,
    policy: SelectionPolicy,
    use_cp_folder: bool,
) -> str:
    """
    Global variable holding the cached duration for ``job``.

    Reward redemptions that map to a file in the main folder are keyed by the
    redemption name, so two rewards sharing one file are measured separately.
    Everything else is keyed by the file name.
    """
    prefix = CP_FILE_DURATION_PREFIX if use_cp_folder else FILE_DURATION_PREFIX
    if (
        trigger.kind == TriggerKind.REWARD_REDEMPTION
        and policy == SelectionPolicy.MAPPED
        and not use_cp_folder
    ):
        return prefix + job.display_name
    return prefix + job.file_name


class JobResolver:
    def __init__(
        self,
        store: GlobalStore,
        *,
        file_mappings: dict[str, str],
        cp_file_mappings: dict[str, str],
        random_triggers: list[str],
        use_cached_locations: bool = False,
        rng: random.Random | None = None,
    ) -> None:
        self._store = store
        self._file_mappings = file_mappings
        self._cp_file_mappings = cp_file_mappings
        self._random_triggers = random_triggers
        self._use_cached_locations = use_cached_locations
        self._random = rng or random.Random()

    def resolve(
        self, trigger: TriggerEvent, folder: Path, use_cp_folder: bool
    ) -> ResolvedBatch:
        policy = selection_policy(trigger, self._random_triggers)
        if policy == SelectionPolicy.RANDOM:
            jobs = self._resolve_random(trigger, folder)
        else:
            jobs = [self._resolve_mapped(trigger, folder, use_cp_folder)]
        logger.info(
            "Resolved %d job(s) for %s '%s' using %s selection",
            len(jobs),
            trigger.kind.value,
            trigger.name,
            policy.value,
        )
        return ResolvedBatch(
            jobs=jobs,
            requested=len(jobs),
            policy=policy,
            use_cp_folder=use_cp_folder,
        )

    def _resolve_mapped(
        self, trigger: TriggerEvent, folder: Path, use_cp_folder: bool
    ) -> MediaJob:
        loc_key = (CP_FILE_LOC_PREFIX if use_cp_folder else FILE_LOC_PREFIX) + trigger.name

        if self._use_cached_locations:
            cached = self._store.get(loc_key)
            if cached and os.path.isfile(cached):
                logger.debug(f"Using stored location for '{trigger.name}': {cached}")
                return MediaJob(display_name=trigger.name, file_path=cached)

        mapping = self._cp_file_mappings if use_cp_folder else self._file_mappings
        relative = _lookup(mapping, trigger.name)
        if not relative:
            raise NotFoundError(
                f"No media file path mapped for the provided redeem/command name: {trigger.name}"
            )

        full_path = os.path.abspath(os.path.join(folder, relative))
        if not os.path.isfile(full_path):
            raise NotFoundError(f"File not found: {full_path}")

        self._store.set(loc_key, full_path)
        return MediaJob(display_name=trigger.name, file_path=full_path)

    def _resolve_random(self, trigger: TriggerEvent, folder: Path) -> list[MediaJob]:
        files = enumerate_media_files(folder)
        if not files:
            raise NotFoundError(f"Folder has no media files: {folder}")

        count = parse_requested_count(trigger, len(files))
        jobs = []
        for _ in range(count):
            path = self._random.choice(files)
            jobs.append(MediaJob(display_name=os.path.basename(path), file_path=path))
        return jobs
