from __future__ import annotations

import json
from pathlib import Path

import pytest

from config.config import MediaQueueSettings, TwitchSettings


def test_mappings_file_is_merged(tmp_path: Path) -> None:
    mappings = tmp_path / "mappings.json"
    mappings.write_text(
        json.dumps(
            {
                "file_mappings": {"Confetti": "confetti.mp4"},
                "cp_file_mappings": {"Airhorn": "cp/airhorn.mp4"},
                "random_triggers": ["dmflPlayRandomXFiles", "surprise"],
            }
        ),
        encoding="utf-8",
    )
    settings = MediaQueueSettings(
        FILE_MAPPINGS={"Airhorn": "airhorn.mp4"},
        CP_FILE_MAPPINGS={},
        RANDOM_TRIGGERS=["dmflPlayRandomXFiles"],
        MAPPINGS_PATH=mappings,
    )

    assert settings.file_mappings == {"Airhorn": "airhorn.mp4", "Confetti": "confetti.mp4"}
    assert settings.cp_file_mappings == {"Airhorn": "cp/airhorn.mp4"}
    assert settings.random_triggers == ["dmflPlayRandomXFiles", "surprise"]


def test_unreadable_mappings_file_raises_value_error(tmp_path: Path) -> None:
    settings = MediaQueueSettings(MAPPINGS_PATH=tmp_path / "missing.json")
    with pytest.raises(ValueError):
        _ = settings.file_mappings


def test_twitch_enabled_needs_every_credential() -> None:
    assert not TwitchSettings(
        TWITCH_CLIENT_ID="c", TWITCH_ACCESS_TOKEN=None, TWITCH_BROADCASTER_ID="b"
    ).enabled
    assert TwitchSettings(
        TWITCH_CLIENT_ID="c", TWITCH_ACCESS_TOKEN="t", TWITCH_BROADCASTER_ID="b"
    ).enabled
