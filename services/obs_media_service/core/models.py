from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import PurePath
from typing import Any

from pydantic import BaseModel

# Host-side names for the trigger kinds (Streamer.bot ``__source`` values)
HOST_REWARD_SOURCE = "TwitchRewardRedemption"
HOST_COMMAND_SOURCE = "CommandTriggered"
HOST_SCENE_SOURCE = "ObsSceneChanged"


class TriggerKind(str, Enum):
    REWARD_REDEMPTION = "reward_redemption"
    COMMAND = "command"
    SCENE_CHANGED = "scene_changed"


class TriggerEvent(BaseModel):
    """An external event asking the bot to do something."""

    kind: TriggerKind
    name: str
    raw_input: str | None = None

    @classmethod
    def from_host_args(cls, args: dict[str, Any]) -> "TriggerEvent":
        """
        Build a trigger from a Streamer.bot style argument dictionary.

        Recognised keys: ``__source``, ``rewardName``, ``commandName``,
        ``rawInput`` and ``obs.sceneName``.
        """
        source = str(args.get("__source") or "")
        if source == HOST_REWARD_SOURCE:
            return cls(
                kind=TriggerKind.REWARD_REDEMPTION,
                name=str(args.get("rewardName") or ""),
                raw_input=args.get("rawInput"),
            )
        if source == HOST_COMMAND_SOURCE:
            return cls(
                kind=TriggerKind.COMMAND,
                name=str(args.get("commandName") or ""),
                raw_input=args.get("rawInput"),
            )
        if source == HOST_SCENE_SOURCE or "obs.sceneName" in args:
            return cls(
                kind=TriggerKind.SCENE_CHANGED, name=str(args.get("obs.sceneName") or "")
            )
        raise ValueError(f"Unsupported trigger source: {source!r}")


@dataclass(frozen=True)
class MediaJob:
    display_name: str
    file_path: str

    @property
    def file_name(self) -> str:
        return PurePath(self.file_path).name

    def to_dict(self) -> dict[str, str]:
        return {"displayName": self.display_name, "filePath": self.file_path}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "MediaJob":
        return cls(display_name=data["displayName"], file_path=data["filePath"])


class QueueState(str, Enum):
    IDLE = "idle"
    INITIALIZING = "initializing"
    SOURCE_VALIDATED = "source_validated"
    SOURCE_OFF = "source_off"
    ENQUEUING = "enqueuing"
    DRAINING = "draining"
    FAILED = "failed"


class OutcomeStatus(str, Enum):
    SUCCESS = "success"
    BUSY = "busy"
    FAILED = "failed"


@dataclass
class PlaybackOutcome:
    status: OutcomeStatus
    message: str = ""
    requested: int = 0
    played: list[MediaJob] = field(default_factory=list)
    error_kind: str | None = None
    states: list[QueueState] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status == OutcomeStatus.SUCCESS

    def to_dict(self) -> dict[str, Any]:
        return {
            "ok": self.ok,
            "status": self.status.value,
            "message": self.message,
            "requested": self.requested,
            "played": [job.to_dict() for job in self.played],
            "error_kind": self.error_kind,
            "states": [state.value for state in self.states],
        }
