"""Owner of the single transport connection to the load cell.

Connection states
-----------------
DISCONNECTED -> CONNECTING -> CONNECTED, and back to DISCONNECTED on
`disconnect()` or `mark_faulted()`.

At most one connect is in flight at a time: a `connect` issued while another
is running returns `CONNECT_RESULT.BUSY` without touching the transport.
`disconnect()` starts a new epoch; a connect that was in flight when it ran
closes whatever it opened and returns `CONNECT_RESULT.CANCELLED`.
"""

from __future__ import annotations

import types
from typing import Callable

from loguru import logger

from loadscope.device import Device, create_device
from loadscope.device.loadcell import LOAD_REGISTER_ADDRESS, LOAD_REGISTER_COUNT
from loadscope.session.state import SessionState
from loadscope.types import ConcurrentOperation, DeviceConnectionError

CONN_STATE = types.SimpleNamespace()
CONN_STATE.DISCONNECTED = "disconnected"
CONN_STATE.CONNECTING = "connecting"
CONN_STATE.CONNECTED = "connected"

CONNECT_RESULT = types.SimpleNamespace()
CONNECT_RESULT.CONNECTED = "connected"
CONNECT_RESULT.ALREADY_CONNECTED = "already_connected"
CONNECT_RESULT.BUSY = "busy"
CONNECT_RESULT.CANCELLED = "cancelled"


class ConnectionManager:
    """Opens, probes and closes the device connection.

    Parameters
    ----------
    state : SessionState
        Shared session state; `is_connected` and `connect_in_progress` are
        written here.
    address : str, optional
        Initial device address, used when `connect()` is called without one.
    device_factory : callable
        `device_factory(address, **device_kwargs) -> Device`.
    **device_kwargs
        Passed through to the factory (unit_id, baudrate, timeout_s).
    """

    def __init__(
        self,
        state: SessionState,
        address: str | None = None,
        device_factory: Callable[..., Device] = create_device,
        **device_kwargs,
    ):
        self.state = state
        self.address = address or None
        self.conn_state = CONN_STATE.DISCONNECTED
        self.device: Device | None = None
        self._device_factory = device_factory
        self._device_kwargs = device_kwargs
        self.epoch = 0

    @property
    def is_connected(self) -> bool:
        return self.conn_state == CONN_STATE.CONNECTED and self.device is not None

    async def connect(self, address: str | None = None) -> str:
        """Make sure a live connection to `address` (or the last one) exists.

        Returns
        -------
        str
            One of `CONNECT_RESULT`.
            CANCELLED if `disconnect()` ran while the connect was in flight.

        Raises
        ------
        DeviceConnectionError
            No address is known, or the transport could not be opened.
        ConcurrentOperation
            Asked to switch device while polling.
        """
        if self.state.connect_in_progress:
            logger.info("Connect requested while another is in flight.")
            return CONNECT_RESULT.BUSY

        target = address or self.address
        if not target:
            raise DeviceConnectionError("No device address selected.")

        if self.state.is_polling:
            # the poll loop is already probing the link every cycle
            if target == self.address and self.is_connected:
                return CONNECT_RESULT.ALREADY_CONNECTED
            raise ConcurrentOperation(
                f"Cannot connect to {target} while polling {self.address}."
            )

        epoch = self.epoch
        self.state.connect_in_progress = True
        try:
            if self.is_connected and target == self.address:
                alive = await self._probe()
                if epoch != self.epoch:
                    logger.info("Connect to {} cancelled during probe.", target)
                    return CONNECT_RESULT.CANCELLED
                if alive:
                    logger.debug("Connection to {} is alive.", target)
                    return CONNECT_RESULT.ALREADY_CONNECTED
                logger.warning("Liveness probe on {} failed, reopening.", target)
            self._close_device()

            self.address = target
            self.conn_state = CONN_STATE.CONNECTING
            logger.info("Connecting to {}.", target)
            try:
                device = self._device_factory(target, **self._device_kwargs)
                ok, msg = await device.open()
            except (DeviceConnectionError, OSError, ValueError) as e:
                if epoch != self.epoch:
                    logger.info("Connect to {} cancelled: {}", target, e)
                    return CONNECT_RESULT.CANCELLED
                self._set_disconnected()
                if isinstance(e, DeviceConnectionError):
                    raise
                raise DeviceConnectionError(f"Could not open {target}: {e}") from e
            if epoch != self.epoch:
                logger.info("Connect to {} cancelled, closing the new transport.", target)
                self._close_quietly(device)
                return CONNECT_RESULT.CANCELLED
            if not ok:
                self._set_disconnected()
                raise DeviceConnectionError(msg)

            self.device = device
            self.conn_state = CONN_STATE.CONNECTED
            self.state.is_connected = True
            logger.info("Connected to {}: {}", target, msg)
            return CONNECT_RESULT.CONNECTED
        finally:
            self.state.connect_in_progress = False

    async def _probe(self) -> bool:
        try:
            await self.read_registers()
        except DeviceConnectionError as e:
            logger.debug("Probe failed: {}", e)
            return False
        return True

    async def read_registers(self) -> tuple[int, int]:
        """Read the (high, low) load register pair."""
        device = self.device
        if device is None or self.conn_state != CONN_STATE.CONNECTED:
            raise DeviceConnectionError("Device is not connected.")
        try:
            words = await device.read_registers(LOAD_REGISTER_ADDRESS, LOAD_REGISTER_COUNT)
        except DeviceConnectionError:
            raise
        except OSError as e:
            raise DeviceConnectionError(f"Read failed on {self.address}: {e}") from e
        if len(words) != LOAD_REGISTER_COUNT:
            raise DeviceConnectionError(
                f"Expected {LOAD_REGISTER_COUNT} registers, got {len(words)}."
            )
        return words[0], words[1]

    def disconnect(self):
        """Close the connection and cancel any connect in flight. Idempotent."""
        self.epoch += 1
        if self.device is None and self.conn_state == CONN_STATE.DISCONNECTED:
            logger.debug("Disconnect: already disconnected.")
        self._close_device()
        if self.state.is_connected:
            self.state.is_connected = False

    def mark_faulted(self):
        """Force-close after a transport failure. The address is kept for reconnects."""
        logger.warning("Marking connection to {} as faulted.", self.address)
        self._close_device()
        if self.state.is_connected:
            self.state.is_connected = False

    def _set_disconnected(self):
        self.conn_state = CONN_STATE.DISCONNECTED
        if self.state.is_connected and not self.state.is_polling:
            self.state.is_connected = False

    def _close_device(self):
        device, self.device = self.device, None
        self.conn_state = CONN_STATE.DISCONNECTED
        if device is not None:
            self._close_quietly(device)

    def _close_quietly(self, device: Device):
        try:
            device.close()
        except Exception:
            logger.exception("Error closing {}.", device)
