"""Reaction to a transport failure during polling.

Exactly one reconnect attempt per failure, after a fixed delay, to the last
used address. A reconnect never restarts polling; the user starts again.
"""

from __future__ import annotations

from typing import Callable

from loguru import logger

from loadscope.session.connection_manager import CONNECT_RESULT, ConnectionManager
from loadscope.session.scheduler import ScheduledTask
from loadscope.types import (
    STATUS_LEVEL,
    ConcurrentOperation,
    DeviceConnectionError,
    StatusUpdate,
)
from loadscope.util.defaults import RECONNECT_DELAY
from loadscope.util.logging import log_error

DISCONNECTED_TEXT = "Device disconnected, retrying..."


class RecoveryPolicy:
    def __init__(
        self,
        connection: ConnectionManager,
        scheduler,
        stop: Callable[[], None],
        report_status: Callable[[StatusUpdate], None],
        reconnect_delay_s: float = RECONNECT_DELAY,
    ):
        self.connection = connection
        self.scheduler = scheduler
        self.stop = stop
        self.report_status = report_status
        self.reconnect_delay_s = reconnect_delay_s
        self._pending: ScheduledTask | None = None

    @property
    def pending(self) -> bool:
        """True while a reconnect is scheduled but has not started."""
        return self._pending is not None

    def handle(self, exc: Exception):
        log_error("Polling error:", exc)
        self.report_status(StatusUpdate(text=DISCONNECTED_TEXT, level=STATUS_LEVEL.ERROR))
        self.stop()
        self.connection.mark_faulted()
        self.cancel()

        address = self.connection.address
        if not address:
            log_error("No device address to reconnect to.")
            self.report_status(
                StatusUpdate(
                    text="Device lost and no address to reconnect to.",
                    level=STATUS_LEVEL.ERROR,
                )
            )
            return

        logger.info("Reconnecting to {} in {} s.", address, self.reconnect_delay_s)
        self._pending = self.scheduler.call_later(
            self.reconnect_delay_s, lambda: self._reconnect(address), name="reconnect"
        )

    async def _reconnect(self, address: str):
        self._pending = None
        try:
            result = await self.connection.connect(address)
        except (DeviceConnectionError, ConcurrentOperation) as e:
            log_error(f"Reconnect to {address} failed:", e)
            self.report_status(
                StatusUpdate(
                    text="Reconnect failed. Connect manually.", level=STATUS_LEVEL.ERROR
                )
            )
            return

        if result == CONNECT_RESULT.BUSY:
            logger.info("Reconnect skipped, a connect is already in flight.")
            return
        if result == CONNECT_RESULT.CANCELLED:
            logger.info("Reconnect to {} cancelled.", address)
            return
        self.report_status(
            StatusUpdate(
                text=f"Reconnected to {address}. Press start to resume.",
                level=STATUS_LEVEL.SUCCESS,
            )
        )

    def cancel(self):
        """Drop a scheduled reconnect that has not started yet."""
        if self._pending is not None:
            if self._pending.cancel():
                logger.debug("Pending reconnect cancelled.")
            self._pending = None
