from __future__ import annotations

import os
from pathlib import Path

from app_logging.logger import logger

MEDIA_EXTENSIONS = frozenset({".mp4", ".avi", ".mov", ".wmv", ".wav"})


def enumerate_media_files(directory: str | Path) -> list[str]:
    """
    Find every playable media file below ``directory``.
    - Walks sub-folders too.
    - Matches extensions case-insensitively against ``MEDIA_EXTENSIONS``.
    - Returns absolute paths, sorted so the result is stable between calls.
    """
    root = Path(directory)
    if not root.is_dir():
        logger.warning(f"Media directory not found: {root}")
        return []

    files = []
    for dirpath, _dirnames, filenames in os.walk(root):
        for name in filenames:
            if os.path.splitext(name)[1].lower() in MEDIA_EXTENSIONS:
                files.append(os.path.abspath(os.path.join(dirpath, name)))
    return sorted(files)
