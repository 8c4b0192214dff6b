"""
Thin wrappers over ``obsws_python.ReqClient`` requests used by the media bot.

Every function takes an already connected client. Query helpers return ``None``
when OBS answers without the field we need; transport errors propagate so the
caller decides whether to retry.
"""

from __future__ import annotations

import os
from typing import Any

import obsws_python as obs

from app_logging.logger import logger

# OBS WebSocket error code for "resource not found"
OBS_RESOURCE_NOT_FOUND = 600


def _is_not_found(exc: Exception) -> bool:
    code = getattr(exc, "code", None)
    return code == OBS_RESOURCE_NOT_FOUND or "code 600" in str(exc)


def get_current_program_scene(cl: obs.ReqClient) -> str | None:
    resp = cl.get_current_program_scene()
    # obs-websocket 5.x reports both; older servers only the first
    name = getattr(resp, "current_program_scene_name", None) or getattr(
        resp, "scene_name", None
    )
    return str(name) if name else None


def get_scene_item_list(cl: obs.ReqClient, scene_name: str) -> list[dict[str, Any]] | None:
    resp = cl.get_scene_item_list(scene_name)
    items = getattr(resp, "scene_items", None)
    if items is None:
        return None
    return [dict(item) for item in items]


def get_scene_item_id(cl: obs.ReqClient, scene_name: str, source_name: str) -> int | None:
    try:
        resp = cl.get_scene_item_id(scene_name, source_name)
    except Exception as e:
        if _is_not_found(e):
            logger.debug(f"Source '{source_name}' not found in scene '{scene_name}'")
            return None
        raise
    return getattr(resp, "scene_item_id", None)


def is_source_visible(cl: obs.ReqClient, scene_name: str, source_name: str) -> bool:
    item_id = get_scene_item_id(cl, scene_name, source_name)
    if item_id is None:
        return False
    resp = cl.get_scene_item_enabled(scene_name, item_id)
    return bool(getattr(resp, "scene_item_enabled", False))


def set_source_visibility(
    cl: obs.ReqClient, scene_name: str, source_name: str, visible: bool
) -> bool:
    """
    Shows or hides a source in a specific scene without deleting it.

    Returns:
        bool: False when the source is not part of the scene.
    """
    item_id = get_scene_item_id(cl, scene_name, source_name)
    if item_id is None:
        logger.warning(f"Source '{source_name}' not found in scene '{scene_name}'")
        return False
    cl.set_scene_item_enabled(scene_name, item_id, visible)
    logger.debug(
        f"{'Showed' if visible else 'Hid'} source '{source_name}' in scene '{scene_name}'"
    )
    return True


def set_media_source_file(cl: obs.ReqClient, source_name: str, file_path: str) -> None:
    """Points a Media Source at a new local file."""
    logger.info(f"Updating source '{source_name}' with file: {file_path}")
    settings = {"local_file": os.path.abspath(file_path), "is_local_file": True}
    cl.set_input_settings(source_name, settings, True)


def get_input_file(cl: obs.ReqClient, source_name: str) -> str | None:
    resp = cl.get_input_settings(source_name)
    input_settings = getattr(resp, "input_settings", None) or {}
    local_file = input_settings.get("local_file")
    return str(local_file) if local_file else None


def get_media_duration_ms(cl: obs.ReqClient, source_name: str) -> int | None:
    status = cl.get_media_input_status(source_name)
    duration = getattr(status, "media_duration", None)
    if duration is None:
        logger.debug(f"OBS did not include media duration for input '{source_name}'")
        return None
    try:
        return int(duration)
    except (TypeError, ValueError):
        logger.warning(
            f"Failed to convert OBS media duration for '{source_name}': {duration}"
        )
        return None


def set_input_mute(cl: obs.ReqClient, input_name: str, muted: bool) -> None:
    cl.set_input_mute(input_name, muted)
    logger.info(f"{'Muted' if muted else 'Unmuted'} input '{input_name}'")
