"""
Network connectivity gate consulted by the retry executor.

The gate is a read-only capability: callers ask ``is_connected`` and get a
cached boolean back with no I/O.  A gate that also has a ``refresh()``
method is refreshed by the retry executor in a worker thread before each
read, so the event loop never blocks on a connectivity check.
"""

from __future__ import annotations

import socket
from typing import Protocol, runtime_checkable

from .config import PROBE_HOST, PROBE_PORT, PROBE_TIMEOUT_SECONDS


@runtime_checkable
class NetworkStatusProviding(Protocol):
    """Anything that can report whether the host is currently online."""

    @property
    def is_connected(self) -> bool: ...


class StaticNetworkStatus:
    """Fixed connectivity answer; used for tests and forced-offline mode."""

    def __init__(self, is_connected: bool = True) -> None:
        self._is_connected = is_connected

    @property
    def is_connected(self) -> bool:
        return self._is_connected


class NetworkMonitor:
    """
    Connectivity monitor backed by an explicit TCP reachability probe.

    ``is_connected`` only reads the last observed status.  ``refresh()``
    opens (and immediately closes) a TCP connection to the probe target and
    updates the cached status, printing a line whenever it flips.

    The retry executor calls ``refresh()`` before every attempt, so a
    service using this monitor fails fast when the host is offline.  The
    cached status starts as connected until the first refresh.

    Args:
        host: Probe hostname.
        port: Probe TCP port.
        timeout: Seconds to wait for the probe connection.
    """

    def __init__(
        self,
        host: str = PROBE_HOST,
        port: int = PROBE_PORT,
        timeout: float = PROBE_TIMEOUT_SECONDS,
    ) -> None:
        self.host = host
        self.port = port
        self.timeout = timeout
        self._is_connected = True

    @property
    def is_connected(self) -> bool:
        return self._is_connected

    def refresh(self) -> bool:
        """
        Probe the target once and update the cached status.

        Returns:
            The newly observed connectivity status.
        """
        try:
            with socket.create_connection((self.host, self.port), timeout=self.timeout):
                connected = True
        except OSError:
            connected = False

        if connected != self._is_connected:
            print(f"  Network status changed - Connected: {connected}")
        self._is_connected = connected
        return connected
