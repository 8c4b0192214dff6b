"""Fire-and-forget chat messages through a webhook."""

import threading
from typing import Protocol

import requests

from app_logging.logger import logger


class ChatSink(Protocol):
    def send_message(self, text: str) -> None: ...


class ChatClient:
    """Posts chat lines to a webhook relay (e.g. a bot bridge or Discord webhook)."""

    def __init__(self, webhook_url: str | None = None, timeout: int = 2):
        """
        Args:
            webhook_url: Relay endpoint. When empty, messages are only logged.
            timeout: Request timeout in seconds
        """
        self.webhook_url = (webhook_url or "").strip() or None
        self.timeout = timeout

    def _payload(self, text: str) -> dict[str, str]:
        if self.webhook_url and (
            "discord.com" in self.webhook_url or "discordapp.com" in self.webhook_url
        ):
            return {"content": text}
        return {"message": text}

    def _post(self, text: str) -> None:
        try:
            response = requests.post(
                self.webhook_url, json=self._payload(text), timeout=self.timeout
            )
            response.raise_for_status()
            logger.debug("Chat message delivered")
        except requests.exceptions.Timeout:
            logger.warning("Timeout sending chat message")
        except requests.exceptions.RequestException as e:
            logger.warning(f"Failed to send chat message: {e}")

    def send_message(self, text: str) -> None:
        if not self.webhook_url:
            logger.info(f"[chat] {text}")
            return
        # Send in background thread (fire-and-forget)
        thread = threading.Thread(target=self._post, args=(text,), daemon=True)
        thread.start()
