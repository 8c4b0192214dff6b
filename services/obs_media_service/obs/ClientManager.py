import os
import threading
from typing import Optional

import obsws_python as obs

from app_logging.logger import logger
from config.config import OBSSettings
from services.obs_media_service.core.errors import (ConfigurationError,
                                                    ConnectivityError)

DISABLE_ENV_VAR = "DMFL_DISABLE_OBS"


class OBSClientManager:
    """
    Owns the OBS WebSocket request client for one service.

    The connection is opened lazily on the first request and re-opened when
    OBS stops answering. ``DMFL_DISABLE_OBS=1`` or missing credentials leave
    the manager disabled so the rest of the bot can run without OBS.
    """

    def __init__(self, cfg: OBSSettings) -> None:
        self._address = (cfg.OBS_HOST or "localhost", cfg.OBS_PORT)
        self._password = cfg.OBS_PASSWORD or ""
        self._timeout = cfg.OBS_TIMEOUT
        self._client: Optional[obs.ReqClient] = None
        self._lock = threading.Lock()
        self._disabled_reason = self._check_disabled(cfg)
        if self._disabled_reason:
            logger.warning(f"OBS features disabled: {self._disabled_reason}")

    @staticmethod
    def _check_disabled(cfg: OBSSettings) -> str | None:
        if os.getenv(DISABLE_ENV_VAR) == "1":
            return f"{DISABLE_ENV_VAR}=1"
        if not cfg.OBS_HOST or not cfg.OBS_PASSWORD:
            return "OBS_HOST/OBS_PASSWORD are not set"
        return None

    @property
    def enabled(self) -> bool:
        return self._disabled_reason is None

    @property
    def url(self) -> str:
        host, port = self._address
        return f"ws://{host}:{port}"

    def get_client(self) -> obs.ReqClient:
        """Return a live client, connecting first if needed."""
        with self._lock:
            if not self.enabled:
                raise ConfigurationError(f"OBS is disabled: {self._disabled_reason}")
            if self._client is None or not self.is_connected(self._client):
                self._client = self._connect()
            return self._client

    def _connect(self) -> obs.ReqClient:
        host, port = self._address
        logger.info(f"Connecting to OBS at {self.url}")
        try:
            client = obs.ReqClient(
                host=host, port=port, password=self._password, timeout=self._timeout
            )
        except Exception as e:
            logger.error(f"Failed to connect to OBS at {self.url}: {e}")
            raise ConnectivityError(f"Failed to connect to OBS: {e}") from e
        logger.info("Connected to OBS.")
        return client

    def is_connected(self, client_to_check: Optional[obs.ReqClient] = None) -> bool:
        """A client counts as connected while it answers GetVersion."""
        client = client_to_check or self._client
        if client is None:
            return False
        try:
            client.get_version()
        except Exception:
            return False
        return True
