"""Online/offline detection used before arming voice capture."""

from __future__ import annotations
import logging
import socket
from typing import Optional

from ..config import AdvisorySettings
from ..interfaces import Connectivity

logger = logging.getLogger(__name__)


class StaticConnectivity:
    """Fixed answer; the host flips `online` (e.g. from an offline toggle)."""

    def __init__(self, online: bool = True):
        self.online = online

    def is_online(self) -> bool:
        return self.online


class SocketConnectivity:
    """TCP reachability probe against a well-known resolver."""

    def __init__(self, host: str = "1.1.1.1", port: int = 53, timeout: float = 1.5):
        self.host = host
        self.port = port
        self.timeout = timeout

    def is_online(self) -> bool:
        try:
            with socket.create_connection((self.host, self.port), timeout=self.timeout):
                return True
        except OSError as exc:
            logger.info("Connectivity probe to %s:%s failed: %s", self.host, self.port, exc)
            return False


def connectivity_for(
    settings: Optional[AdvisorySettings] = None, *, offline: bool = False
) -> Connectivity:
    """Forced-offline stub when the user asks for it, otherwise a live probe."""
    if offline:
        return StaticConnectivity(online=False)
    s = settings or AdvisorySettings()
    return SocketConnectivity(s.probe_host, s.probe_port, s.probe_timeout)
