"""
Single-flight media playback queue.

One invocation walks the states below. Only one invocation at a time gets past
``INITIALIZING``: the busy flag in the global store is taken with a
compare-and-set and released exactly once on the way out.

    IDLE -> INITIALIZING -> SOURCE_VALIDATED -> SOURCE_OFF -> ENQUEUING
         -> DRAINING -> IDLE | FAILED
"""

from __future__ import annotations

import os
import random
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable

from app_logging.logger import logger
from config.config import MediaQueueSettings, PollingSettings
from services.obs_media_service.core.errors import (ConfigurationError,
                                                    ConnectivityError,
                                                    DMFLError,
                                                    InternalInvariantError,
                                                    NotFoundError,
                                                    PollTimeoutError,
                                                    StorageError)
from services.obs_media_service.core.job_resolver import (JobResolver,
                                                          ResolvedBatch,
                                                          duration_key)
from services.obs_media_service.core.models import (MediaJob, OutcomeStatus,
                                                    PlaybackOutcome,
                                                    QueueState, TriggerEvent,
                                                    TriggerKind)
from services.obs_media_service.services.chat_client import ChatSink
from services.obs_media_service.services.global_store import (
    CURRENT_QUEUE, LASTPLAYED_QUEUE, STATUS_NOW_PLAYING, GlobalStore)
from services.obs_media_service.services.obs_service import OBSController
from services.obs_media_service.utils.poller import (file_path_equals,
                                                     poll_until_ready,
                                                     positive_duration,
                                                     retry_until_hidden,
                                                     scene_items_contain,
                                                     scene_name_present)

_TRANSITIONS: dict[QueueState, set[QueueState]] = {
    QueueState.IDLE: {QueueState.INITIALIZING},
    # back to IDLE when another invocation wins the busy flag
    QueueState.INITIALIZING: {
        QueueState.SOURCE_VALIDATED,
        QueueState.IDLE,
        QueueState.FAILED,
    },
    QueueState.SOURCE_VALIDATED: {QueueState.SOURCE_OFF, QueueState.FAILED},
    QueueState.SOURCE_OFF: {QueueState.ENQUEUING, QueueState.FAILED},
    QueueState.ENQUEUING: {QueueState.DRAINING, QueueState.FAILED},
    QueueState.DRAINING: {QueueState.IDLE, QueueState.FAILED},
    QueueState.FAILED: set(),
}


@dataclass
class _RunConfig:
    scene: str
    source: str
    folder: Path
    use_cp_folder: bool
    resolver: JobResolver


@dataclass
class _Run:
    trigger: TriggerEvent
    state: QueueState = QueueState.IDLE
    states: list[QueueState] = field(default_factory=lambda: [QueueState.IDLE])
    holds_flag: bool = False
    requested: int = 0

    def move_to(self, new_state: QueueState) -> None:
        if new_state not in _TRANSITIONS[self.state]:
            raise InternalInvariantError(
                f"Illegal queue transition {self.state.value} -> {new_state.value}"
            )
        logger.debug("Media queue: %s -> %s", self.state.value, new_state.value)
        self.state = new_state
        self.states.append(new_state)


class MediaQueue:
    def __init__(
        self,
        settings: MediaQueueSettings,
        polling: PollingSettings,
        obs: OBSController,
        store: GlobalStore,
        chat: ChatSink | None = None,
        *,
        rng: random.Random | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._settings = settings
        self._polling = polling
        self._obs = obs
        self._store = store
        self._chat = chat
        self._random = rng or random.Random()
        self._sleep = sleep

    # ---------- Public API ---------- #
    def run(self, trigger: TriggerEvent) -> PlaybackOutcome:
        """Handle one reward redemption or typed command end to end."""
        run = _Run(trigger=trigger)

        try:
            if self.is_busy():
                logger.info(
                    "Media queue busy, skipping %s '%s'", trigger.kind.value, trigger.name
                )
                return self._outcome(
                    run, OutcomeStatus.BUSY, "A playback is already in progress."
                )

            run.move_to(QueueState.INITIALIZING)
            config = self._initialize(trigger)

            if not self._acquire():
                run.move_to(QueueState.IDLE)
                return self._outcome(
                    run, OutcomeStatus.BUSY, "A playback is already in progress."
                )
            run.holds_flag = True

            run.move_to(QueueState.SOURCE_VALIDATED)
            self._validate_source_in_scene(config)

            run.move_to(QueueState.SOURCE_OFF)
            self._ensure_source_off(config)

            run.move_to(QueueState.ENQUEUING)
            batch = self._enqueue(trigger, config)
            run.requested = batch.requested

            run.move_to(QueueState.DRAINING)
            played = self._drain(trigger, config, batch)
            if not played:
                raise NotFoundError(
                    f"None of the {batch.requested} requested file(s) could be played."
                )

            run.move_to(QueueState.IDLE)
            return self._outcome(
                run,
                OutcomeStatus.SUCCESS,
                f"Played {len(played)} of {batch.requested} file(s).",
                played=played,
            )
        except (DMFLError, OSError) as e:
            error = e if isinstance(e, DMFLError) else StorageError(
                f"Globals store unavailable: {e}"
            )
            self._report_error(error.message, critical=error.critical)
            run.state = QueueState.FAILED
            run.states.append(QueueState.FAILED)
            return self._outcome(
                run, OutcomeStatus.FAILED, error.message, error_kind=error.kind
            )
        finally:
            if run.holds_flag:
                self._release()
                run.holds_flag = False

    def is_busy(self) -> bool:
        return bool(self._store.get(STATUS_NOW_PLAYING, False))

    def reset_busy_flag(self) -> None:
        """Clear a flag left behind by a process that died mid-playback."""
        if self.is_busy():
            logger.warning("Clearing stale %s flag", STATUS_NOW_PLAYING)
        self._store.set(STATUS_NOW_PLAYING, False)

    def queue(self) -> list[MediaJob]:
        return self._load_jobs(CURRENT_QUEUE)

    def history(self) -> list[MediaJob]:
        return self._load_jobs(LASTPLAYED_QUEUE)

    def status(self) -> dict[str, Any]:
        return {
            "busy": self.is_busy(),
            "queue": [job.to_dict() for job in self.queue()],
            "history": [job.to_dict() for job in self.history()],
        }

    # ---------- States ---------- #
    def _initialize(self, trigger: TriggerEvent) -> _RunConfig:
        s = self._settings
        if not self._obs.is_available:
            raise ConfigurationError("OBS connection is not configured.")

        scene = (s.OBS_MEDIA_SCENE or "").strip()
        source = (s.OBS_MEDIA_SOURCE or "").strip()
        if not scene:
            raise ConfigurationError("OBS Media Scene is not set.")
        if not source:
            raise ConfigurationError("OBS Media Source is not set.")
        if trigger.kind not in (TriggerKind.REWARD_REDEMPTION, TriggerKind.COMMAND):
            raise ConfigurationError(
                f"Trigger kind {trigger.kind.value} cannot start a playback."
            )
        if not trigger.name.strip():
            raise ConfigurationError("Redeem or command name is missing or empty.")

        use_cp_folder = (
            trigger.kind == TriggerKind.REWARD_REDEMPTION and s.SEPARATE_CP_FOLDER
        )
        folder = s.CP_MEDIA_FOLDER if use_cp_folder else s.MAIN_MEDIA_FOLDER
        if not folder:
            raise ConfigurationError(
                "Channel point media folder path is not set."
                if use_cp_folder
                else "Media folder path is not set."
            )
        if not Path(folder).is_dir():
            raise ConfigurationError(f"Media folder does not exist: {folder}")

        try:
            resolver = JobResolver(
                self._store,
                file_mappings=s.file_mappings,
                cp_file_mappings=s.cp_file_mappings,
                random_triggers=s.random_triggers,
                use_cached_locations=s.USE_CACHED_LOCATIONS,
                rng=self._random,
            )
        except ValueError as e:
            raise ConfigurationError(str(e)) from e

        return _RunConfig(
            scene=scene,
            source=source,
            folder=Path(folder),
            use_cp_folder=use_cp_folder,
            resolver=resolver,
        )

    def _validate_source_in_scene(self, config: _RunConfig) -> None:
        """A source that is not on screen cannot report its media duration."""
        if not self._obs.is_connected():
            raise ConnectivityError("OBS WebSocket is not connected.")

        p = self._polling
        current_scene = poll_until_ready(
            self._obs.get_current_scene,
            scene_name_present,
            p.SCENE_POLL_INTERVAL_MS,
            p.SCENE_POLL_TIMEOUT_MS,
            description="the current program scene",
            sleep=self._sleep,
        ).raise_for_timeout()

        items = poll_until_ready(
            lambda: self._obs.list_scene_items(current_scene),
            scene_items_contain(config.source),
            p.SCENE_POLL_INTERVAL_MS,
            p.SCENE_POLL_TIMEOUT_MS,
            description=f"source '{config.source}' in scene '{current_scene}'",
            sleep=self._sleep,
        )
        if not items.ok:
            if items.last_response is not None:
                raise NotFoundError(
                    f"Source: {config.source} not found on this scene. Unable to play."
                )
            items.raise_for_timeout()

    def _ensure_source_off(self, config: _RunConfig) -> None:
        hidden = retry_until_hidden(
            lambda: self._obs.is_source_visible(config.scene, config.source),
            lambda: self._obs.hide_source(config.scene, config.source),
            self._polling.SOURCE_OFF_INTERVAL_MS,
            self._polling.SOURCE_OFF_TIMEOUT_MS,
            sleep=self._sleep,
        )
        if not hidden:
            raise PollTimeoutError(
                f"Unable to turn off source to start the process: {config.source}",
                elapsed_ms=self._polling.SOURCE_OFF_TIMEOUT_MS,
            )

    def _enqueue(self, trigger: TriggerEvent, config: _RunConfig) -> ResolvedBatch:
        batch = config.resolver.resolve(trigger, config.folder, config.use_cp_folder)
        if not batch.jobs:
            raise NotFoundError(f"No media files could be resolved for '{trigger.name}'.")
        queue = self.queue()
        queue.extend(batch.jobs)
        self._save_jobs(CURRENT_QUEUE, queue)
        return batch

    def _drain(
        self, trigger: TriggerEvent, config: _RunConfig, batch: ResolvedBatch
    ) -> list[MediaJob]:
        played: list[MediaJob] = []
        queue = self.queue()

        while len(played) < batch.requested and queue:
            job = queue.pop(0)
            self._save_jobs(CURRENT_QUEUE, queue)
            key = duration_key(job, trigger, batch.policy, batch.use_cp_folder)
            try:
                self._play(config, job, key)
            except DMFLError as e:
                # Keep going with whatever is left in the queue
                self._report_error(
                    f"Failed to play '{job.display_name}': {e.message}", critical=False
                )
                self._hide_after_failure(config)
                continue
            self._append_history(job)
            played.append(job)

        if len(played) < batch.requested:
            self._report_error(
                f"Wanted to play {batch.requested} files, but only played {len(played)}. "
                "Queue may not have had enough files.",
                critical=False,
            )
        return played

    # ---------- Playback of a single job ---------- #
    def _play(self, config: _RunConfig, job: MediaJob, key: str) -> None:
        scene, source = config.scene, config.source
        self._ensure_source_off(config)

        expected = os.path.abspath(job.file_path)
        self._obs.set_media_source_file(scene, source, expected)
        poll_until_ready(
            lambda: self._obs.read_back_input_file(source),
            file_path_equals(expected),
            self._polling.FILE_CONFIRM_INTERVAL_MS,
            self._polling.FILE_CONFIRM_TIMEOUT_MS,
            description=f"'{source}' to load {expected}",
            sleep=self._sleep,
        ).raise_for_timeout()

        if not self._obs.show_source(scene, source):
            raise NotFoundError(f"Could not show source '{source}' in scene '{scene}'.")

        duration_ms = self._resolve_duration(source, key)
        logger.info("Playing '%s' for %d ms", job.display_name, duration_ms)
        self._sleep(duration_ms / 1000)
        self._obs.hide_source(scene, source)

    def _resolve_duration(self, source: str, key: str) -> int:
        if self._settings.USE_CACHED_DURATIONS:
            cached = _as_positive_int(self._store.get(key))
            if cached:
                logger.debug("Using cached duration %s = %d ms", key, cached)
                return cached

        duration_ms = poll_until_ready(
            lambda: self._obs.get_media_duration_ms(source),
            positive_duration,
            self._polling.DURATION_POLL_INTERVAL_MS,
            self._polling.DURATION_POLL_TIMEOUT_MS,
            description=f"media duration of '{source}'",
            sleep=self._sleep,
        ).raise_for_timeout()
        self._store.set(key, duration_ms)
        return duration_ms

    def _hide_after_failure(self, config: _RunConfig) -> None:
        try:
            self._obs.hide_source(config.scene, config.source)
        except DMFLError as e:
            logger.warning(f"Could not hide '{config.source}' after a failed play: {e}")

    # ---------- Busy flag ---------- #
    def _acquire(self) -> bool:
        return self._store.compare_and_set(STATUS_NOW_PLAYING, False, True, default=False)

    def _release(self) -> None:
        try:
            self._store.set(STATUS_NOW_PLAYING, False)
        except (DMFLError, OSError) as e:
            logger.error(f"Could not clear {STATUS_NOW_PLAYING}, reset it manually: {e}")

    # ---------- Persistence helpers ---------- #
    def _load_jobs(self, key: str) -> list[MediaJob]:
        jobs = []
        for entry in self._store.get(key) or []:
            try:
                jobs.append(MediaJob.from_dict(entry))
            except (KeyError, TypeError):
                logger.warning(f"Dropping malformed entry in {key}: {entry!r}")
        return jobs

    def _save_jobs(self, key: str, jobs: list[MediaJob]) -> None:
        self._store.set(key, [job.to_dict() for job in jobs])

    def _append_history(self, job: MediaJob) -> None:
        history = self.history()
        history.append(job)
        limit = self._settings.HISTORY_LIST_SIZE
        if limit > 0:
            history = history[-limit:]
        self._save_jobs(LASTPLAYED_QUEUE, history)

    # ---------- Reporting ---------- #
    def _report_error(self, message: str, critical: bool = True) -> None:
        full_message = f"Error: {message}"
        if critical:
            logger.error(full_message)
        else:
            logger.warning(full_message)
        if self._settings.CHAT_DEBUG and self._chat is not None:
            self._chat.send_message(full_message)

    def _outcome(
        self,
        run: _Run,
        status: OutcomeStatus,
        message: str,
        *,
        played: list[MediaJob] | None = None,
        error_kind: str | None = None,
    ) -> PlaybackOutcome:
        return PlaybackOutcome(
            status=status,
            message=message,
            requested=run.requested,
            played=played or [],
            error_kind=error_kind,
            states=list(run.states),
        )


def _as_positive_int(value: Any) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        return 0
    return number if number > 0 else 0
