"""Connectivity monitor: tracks whether the device can reach the sync server."""

import logging
from enum import Enum
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)


class ConnectivityStatus(Enum):
    """Whether the sync server is reachable."""

    ONLINE = "online"
    OFFLINE = "offline"


StatusCallback = Callable[[ConnectivityStatus, ConnectivityStatus], None]


class ConnectivityMonitor:
    """Holds the current connectivity status and notifies on changes.

    The host platform pushes reachability changes with ``set_status``;
    ``check`` probes actively (normally the sync server's health endpoint).
    """

    def __init__(
        self,
        probe: Optional[Callable[[], bool]] = None,
        initial: ConnectivityStatus = ConnectivityStatus.OFFLINE,
    ):
        # probe returns True when the server is reachable; initial holds
        # until the first push or check
        self.probe = probe
        self.status = initial
        self._status_callbacks: List[StatusCallback] = []

    @property
    def is_online(self) -> bool:
        return self.status is ConnectivityStatus.ONLINE

    def add_status_callback(self, callback: StatusCallback):
        """Register a callback invoked with (old_status, new_status) on change."""
        self._status_callbacks.append(callback)

    def remove_status_callback(self, callback: StatusCallback):
        """Unregister a status callback; unknown callbacks are ignored."""
        if callback in self._status_callbacks:
            self._status_callbacks.remove(callback)

    def set_status(self, status: ConnectivityStatus) -> None:
        old_status = self.status
        self.status = status
        if old_status is not status:
            logger.info("Connectivity changed: %s -> %s", old_status.value, status.value)
            self._notify_status_change(old_status, status)

    def set_online(self, online: bool) -> None:
        self.set_status(
            ConnectivityStatus.ONLINE if online else ConnectivityStatus.OFFLINE
        )

    def check(self) -> ConnectivityStatus:
        """Run the probe, record its answer and return the resulting status."""
        if self.probe is None:
            return self.status

        self.set_online(self.probe())
        return self.status

    def _notify_status_change(
        self, old_status: ConnectivityStatus, new_status: ConnectivityStatus
    ):
        for callback in list(self._status_callbacks):
            callback(old_status, new_status)
