"""Bounded polling against request/response APIs that have no push notifications."""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from app_logging.logger import logger
from services.obs_media_service.core.errors import PollTimeoutError

T = TypeVar("T")

Sleep = Callable[[float], None]


@dataclass
class PollResult(Generic[T]):
    ok: bool
    value: T | None
    elapsed_ms: int
    attempts: int
    last_response: Any = None
    description: str = ""

    def raise_for_timeout(self) -> T:
        """Return the ready value, or raise ``PollTimeoutError`` for a failed poll."""
        if not self.ok:
            raise PollTimeoutError(
                f"Timed out after {self.elapsed_ms} ms waiting for {self.description or 'a response'}",
                elapsed_ms=self.elapsed_ms,
                last_response=self.last_response,
            )
        return self.value  # type: ignore[return-value]


def poll_until_ready(
    issue_request: Callable[[], T | None],
    is_ready: Callable[[T], bool],
    interval_ms: int,
    timeout_ms: int,
    *,
    description: str = "",
    sleep: Sleep = time.sleep,
) -> PollResult[T]:
    """
    Call ``issue_request`` every ``interval_ms`` until ``is_ready`` accepts the
    response or ``timeout_ms`` worth of intervals have been spent.

    A successful attempt returns straight away, without sleeping. Exceptions from
    ``issue_request`` count as a non-ready attempt. The ordinary timeout is
    reported through the returned ``PollResult``, never raised.
    """
    if interval_ms <= 0:
        raise ValueError("interval_ms must be positive")

    elapsed = 0
    attempts = 0
    last_response: T | None = None

    while True:
        attempts += 1
        try:
            response = issue_request()
        except Exception as e:
            logger.warning(
                "Poll attempt %d for %s failed: %s", attempts, description or "response", e
            )
            response = None

        if response is not None:
            last_response = response
            try:
                ready = is_ready(response)
            except Exception as e:
                logger.warning("Could not evaluate response for %s: %s", description, e)
                ready = False
            if ready:
                logger.debug(
                    "Poll for %s ready after %d attempt(s), %d ms",
                    description,
                    attempts,
                    elapsed,
                )
                return PollResult(
                    ok=True,
                    value=response,
                    elapsed_ms=elapsed,
                    attempts=attempts,
                    last_response=response,
                    description=description,
                )

        if elapsed >= timeout_ms:
            break
        sleep(interval_ms / 1000)
        elapsed += interval_ms

    logger.warning(
        "Poll for %s timed out after %d attempt(s), %d ms", description, attempts, elapsed
    )
    return PollResult(
        ok=False,
        value=None,
        elapsed_ms=elapsed,
        attempts=attempts,
        last_response=last_response,
        description=description,
    )


def retry_until_hidden(
    is_visible: Callable[[], bool],
    hide: Callable[[], Any],
    interval_ms: int,
    timeout_ms: int,
    *,
    sleep: Sleep = time.sleep,
) -> bool:
    """
    Keep hiding a source until OBS reports it invisible. There is no response
    payload to validate here, only a visibility boolean.
    """
    elapsed = 0
    while is_visible():
        if elapsed >= timeout_ms:
            return False
        hide()
        sleep(interval_ms / 1000)
        elapsed += interval_ms
    return True


# ---------- Readiness predicates ---------- #


def scene_name_present(scene_name: str | None) -> bool:
    return bool(scene_name)


def scene_items_contain(target: str) -> Callable[[list[dict[str, Any]]], bool]:
    wanted = target.casefold()

    def _contains(items: list[dict[str, Any]]) -> bool:
        for item in items:
            name = item.get("sourceName")
            if name and str(name).casefold() == wanted:
                return True
        return False

    return _contains


def positive_duration(duration_ms: int | None) -> bool:
    return duration_ms is not None and duration_ms > 0


def file_path_equals(expected: str) -> Callable[[str | None], bool]:
    def _equals(actual: str | None) -> bool:
        return actual == expected

    return _equals
