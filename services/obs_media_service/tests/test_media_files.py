from __future__ import annotations

from pathlib import Path

from services.obs_media_service.utils.media import enumerate_media_files


def test_enumerate_media_files_walks_subfolders(tmp_path: Path) -> None:
    (tmp_path / "clips").mkdir()
    for name in ["b.mp4", "A.MOV", "notes.txt", "clips/c.wav", "clips/d.WMV", "clips/e.mkv"]:
        (tmp_path / name).write_bytes(b"")

    files = enumerate_media_files(tmp_path)

    names = sorted(Path(f).name for f in files)
    assert names == ["A.MOV", "b.mp4", "c.wav", "d.WMV"]
    assert files == sorted(files)
    assert all(Path(f).is_absolute() for f in files)


def test_missing_folder_yields_nothing(tmp_path: Path) -> None:
    assert enumerate_media_files(tmp_path / "nope") == []
