"""Session controller: the public face of the polling core.

Session states
------------
IDLE -> CONNECTING -> CONNECTED -> POLLING -> CONNECTED (stop)
POLLING -> FAULTED (transport failure, reconnect pending) -> CONNECTED | IDLE
Reset and clear go back to IDLE from anywhere.

Rejected operations change nothing, report an error status, are written to
the error log and raise. Every rejection leaves the connect and start
controls enabled so the user can try again.
"""

from __future__ import annotations

import time
import types
from datetime import datetime
from typing import Callable, Iterable

from loguru import logger

from loadscope.session.connection_manager import CONNECT_RESULT, ConnectionManager
from loadscope.session.consumers import ChartRenderer, RenderRetry, SessionObserver
from loadscope.session.conversion import LoadReading
from loadscope.session.poll_loop import PollLoop
from loadscope.session.recovery import RecoveryPolicy
from loadscope.session.sampling import SamplingPolicy
from loadscope.session.scheduler import AsyncioScheduler
from loadscope.session.state import Sample, SessionState, StateChange
from loadscope.system.base_config import MonitorConfig
from loadscope.types import (
    STATUS_LEVEL,
    ConcurrentOperation,
    ConfigurationIncomplete,
    ConnectionRequired,
    ControlsState,
    DeviceConnectionError,
    StatusUpdate,
    today_string,
)
from loadscope.util.logging import log_error

SESSION_STATE = types.SimpleNamespace()
SESSION_STATE.IDLE = "idle"
SESSION_STATE.CONNECTING = "connecting"
SESSION_STATE.CONNECTED = "connected"
SESSION_STATE.POLLING = "polling"
SESSION_STATE.FAULTED = "faulted"

RESET_PROMPT = "Reset the session? All readings and equipment data will be cleared."
CLEAR_PROMPT = "Clear all readings? Calibration data is kept."

_CONTROL_FIELDS = {"is_connected", "is_polling", "connect_in_progress", "samples"}


def _deny(message: str) -> bool:
    return False


class SessionController:
    """Orchestrates connection, polling, recovery and consumers of one session.

    Parameters
    ----------
    config : MonitorConfig, optional
        Timing, sampling and device settings. Defaults to `MonitorConfig()`.
    state : SessionState, optional
        Shared state. Defaults to the connection's state, or a fresh one.
    connection : ConnectionManager, optional
        Built from `config` if not given.
    scheduler : optional
        Anything with `call_later(delay, callback, name)`. Defaults to an
        `AsyncioScheduler`.
    renderer : ChartRenderer, optional
        Chart surface, wrapped in a bounded `RenderRetry`.
    observers : iterable of SessionObserver
        Receive samples, status, controls and metadata notifications.
    is_configuration_complete : callable, optional
        Precondition for `start()`. Defaults to checking the session metadata.
    confirm : callable, optional
        `confirm(message) -> bool` for destructive operations. Denies by
        default.
    clock : callable
        Monotonic seconds, for the sampling policy.
    now : callable
        Wall clock, for sample timestamps and default test dates.
    """

    def __init__(
        self,
        config: MonitorConfig | None = None,
        *,
        state: SessionState | None = None,
        connection: ConnectionManager | None = None,
        scheduler=None,
        renderer: ChartRenderer | None = None,
        observers: Iterable[SessionObserver] = (),
        is_configuration_complete: Callable[[], bool] | None = None,
        confirm: Callable[[str], bool] | None = None,
        clock: Callable[[], float] = time.monotonic,
        now: Callable[[], datetime] = datetime.now,
    ):
        self.config = config if config is not None else MonitorConfig()
        if state is None:
            state = connection.state if connection is not None else SessionState()
        self.state = state
        if connection is None:
            connection = ConnectionManager(
                self.state, address=self.config.address, **self.config.device_kwargs()
            )
        self.connection = connection
        self.scheduler = scheduler if scheduler is not None else AsyncioScheduler()
        self.observers = list(observers)
        self._configuration_check = is_configuration_complete
        self._confirm = confirm or _deny
        self._now = now
        self._start_lock = False
        self._controls: ControlsState | None = None

        self.renderer = None
        if renderer is not None:
            self.renderer = RenderRetry(
                renderer,
                self.scheduler,
                max_attempts=self.config.render_max_attempts,
                retry_delay_s=self.config.render_retry_delay_s,
            )
        self.recovery = RecoveryPolicy(
            self.connection,
            self.scheduler,
            stop=self.stop,
            report_status=self._report,
            reconnect_delay_s=self.config.reconnect_delay_s,
        )
        self.poll_loop = PollLoop(
            self.state,
            self.connection,
            self.scheduler,
            policy=SamplingPolicy(self.config.change_threshold_t, self.config.stale_after_s),
            on_retained=self._on_retained,
            on_failure=self.recovery.handle,
            poll_interval_s=self.config.poll_interval_s,
            clock=clock,
            now=now,
        )
        self._unsubscribe = self.state.subscribe(self._on_state_change)
        self._push_controls()

    # ----------------------------------------------------------------------
    #                           Observers & status
    # ----------------------------------------------------------------------

    def add_observer(self, observer: SessionObserver):
        self.observers.append(observer)
        if self._controls is not None:
            self._call(observer, "on_controls", self._controls)

    def remove_observer(self, observer: SessionObserver):
        if observer in self.observers:
            self.observers.remove(observer)

    def _call(self, observer, hook: str, *args):
        try:
            getattr(observer, hook)(*args)
        except Exception:
            logger.exception("Observer {} failed in {}.", observer, hook)

    def _notify(self, hook: str, *args):
        for observer in list(self.observers):
            self._call(observer, hook, *args)

    def _report(self, status: StatusUpdate):
        logger.info("Status ({}): {}", status.level, status.text)
        self._notify("on_status", status)

    def _on_state_change(self, change: StateChange):
        if change.name in _CONTROL_FIELDS:
            self._push_controls()

    def _on_retained(self, sample: Sample, reading: LoadReading):
        peak = self.state.peak_value
        self._notify("on_sample_retained", sample, peak)
        if self.renderer is not None:
            self.renderer.request(self.state.samples, peak)

    @property
    def controls(self) -> ControlsState:
        polling = self.state.is_polling
        busy = self.state.connect_in_progress or self._start_lock
        return ControlsState(
            connect=not polling and not busy,
            start=not polling and not busy,
            stop=polling,
            download=bool(self.state.samples) and not polling,
        )

    def _push_controls(self):
        controls = self.controls
        if controls != self._controls:
            self._controls = controls
            self._notify("on_controls", controls)

    @property
    def session_state(self) -> str:
        if self.state.is_polling:
            return SESSION_STATE.POLLING
        if self.state.connect_in_progress:
            return SESSION_STATE.CONNECTING
        if self.recovery.pending:
            return SESSION_STATE.FAULTED
        if self.state.is_connected:
            return SESSION_STATE.CONNECTED
        return SESSION_STATE.IDLE

    # ----------------------------------------------------------------------
    #                               Connection
    # ----------------------------------------------------------------------

    async def connect(self, address: str | None = None) -> str:
        """Connect to `address` (or the last used one).

        Returns
        -------
        str
            One of `CONNECT_RESULT`. BUSY means try again later, CANCELLED that
            the session was reset or disconnected while connecting.
        """
        self.recovery.cancel()
        self._report(StatusUpdate(text="Connecting...", level=STATUS_LEVEL.INFO))
        try:
            result = await self.connection.connect(address)
        except ConcurrentOperation as e:
            log_error("Connect rejected:", e)
            self._report(
                StatusUpdate(
                    text="Stop polling before changing device.", level=STATUS_LEVEL.ERROR
                )
            )
            raise
        except DeviceConnectionError as e:
            log_error("Connection failed:", e)
            self._report(StatusUpdate(text="Connection failed", level=STATUS_LEVEL.ERROR))
            self._push_controls()
            raise

        if result == CONNECT_RESULT.BUSY:
            self._report(
                StatusUpdate(
                    text="A connection attempt is already in progress.",
                    level=STATUS_LEVEL.WARNING,
                )
            )
        elif result == CONNECT_RESULT.CANCELLED:
            self._report(
                StatusUpdate(text="Connection cancelled.", level=STATUS_LEVEL.WARNING)
            )
        else:
            self._report(
                StatusUpdate(
                    text=f"Connected to {self.connection.address}",
                    level=STATUS_LEVEL.SUCCESS,
                )
            )
        return result

    def disconnect(self):
        """Stop polling (if running) and close the connection. Idempotent."""
        self.recovery.cancel()
        self.stop()
        self.poll_loop.reset()
        was_connected = self.state.is_connected
        self.connection.disconnect()
        if was_connected:
            self._report(StatusUpdate(text="Disconnected", level=STATUS_LEVEL.INFO))

    # ----------------------------------------------------------------------
    #                               Polling
    # ----------------------------------------------------------------------

    def _reject(self, exc: Exception, text: str) -> Exception:
        log_error("Start rejected:", exc)
        self._report(StatusUpdate(text=text, level=STATUS_LEVEL.ERROR))
        self._push_controls()
        return exc

    async def start(self):
        """Start polling.

        Does nothing if the session is reset, cleared or disconnected while the
        connection is being re-checked.

        Raises
        ------
        ConcurrentOperation
            Already polling, or another start is in progress.
        ConnectionRequired
            No device connected.
        ConfigurationIncomplete
            Calibration or equipment data incomplete.
        DeviceConnectionError
            The connection could not be re-established.
        """
        if self.state.is_polling or self._start_lock:
            raise self._reject(
                ConcurrentOperation("Polling is already running or starting."),
                "Already running.",
            )
        if not self.state.is_connected:
            raise self._reject(
                ConnectionRequired("Connect to a device before starting."),
                "Not connected.",
            )
        if not self.is_configuration_complete():
            raise self._reject(
                ConfigurationIncomplete(
                    "Calibration or equipment data incomplete.",
                    self.state.metadata.missing_fields(),
                ),
                "Data incomplete.",
            )

        self._start_lock = True
        self._push_controls()
        try:
            self.recovery.cancel()
            epoch = self.connection.epoch
            result = await self.connection.connect()
            if result == CONNECT_RESULT.CANCELLED or epoch != self.connection.epoch:
                logger.info("Start abandoned, the session was torn down while connecting.")
                return
            if result == CONNECT_RESULT.BUSY:
                raise self._reject(
                    ConcurrentOperation("A connection attempt is in progress."),
                    "Connection busy, try again.",
                )
            self.state.is_polling = True
            self.poll_loop.start()
            self._report(
                StatusUpdate(text="Connected. Polling...", level=STATUS_LEVEL.SUCCESS)
            )
        except DeviceConnectionError as e:
            log_error("Start failed:", e)
            self._report(StatusUpdate(text="Connection failed", level=STATUS_LEVEL.ERROR))
            raise
        finally:
            self._start_lock = False
            self._push_controls()

    def stop(self):
        """Stop polling. Safe to call whether or not polling is active."""
        was_polling = self.state.is_polling
        if was_polling:
            self.state.is_polling = False
        self.poll_loop.stop()
        self._push_controls()
        if self.renderer is not None:
            self.renderer.request(self.state.samples, self.state.peak_value)
        if was_polling:
            self._report(StatusUpdate(text="Stopped", level=STATUS_LEVEL.WARNING))

    # ----------------------------------------------------------------------
    #                             Reset & clear
    # ----------------------------------------------------------------------

    def _teardown(self):
        self.recovery.cancel()
        self.stop()
        self.poll_loop.reset()
        self.connection.disconnect()
        if self.renderer is not None:
            self.renderer.clear()
        self.state.clear_telemetry()

    def reset(self) -> bool:
        """Full reset after confirmation. Calibration data is kept.

        Returns True if the reset was performed.
        """
        if not self._confirm(RESET_PROMPT):
            logger.info("Reset cancelled.")
            return False
        self._teardown()
        self.state.reset_connection_flags()
        self._start_lock = False
        self.state.metadata.reset_equipment(
            test_date=today_string(self._now().date()),
            location=self.config.default_location,
        )
        self._notify("on_clear")
        self._notify("on_metadata_changed", self.state.metadata)
        self._push_controls()
        self._report(StatusUpdate(text="Ready", level=STATUS_LEVEL.INFO))
        return True

    def request_full_reset(self) -> bool:
        return self.reset()

    def clear(self) -> bool:
        """Clear readings and equipment data after confirmation.

        Returns True if the data was cleared.
        """
        if not self.state.samples:
            self._report(StatusUpdate(text="No data to clear.", level=STATUS_LEVEL.WARNING))
            return False
        if not self._confirm(CLEAR_PROMPT):
            logger.info("Clear cancelled.")
            return False
        self._teardown()
        self.state.metadata.clear_equipment()
        self._notify("on_clear")
        self._notify("on_metadata_changed", self.state.metadata)
        self._push_controls()
        self._report(StatusUpdate(text="Data cleared", level=STATUS_LEVEL.INFO))
        return True

    def request_clear(self) -> bool:
        return self.clear()

    def shutdown(self):
        """Stop everything and release the device, e.g. on exit."""
        self.disconnect()
        if hasattr(self.scheduler, "shutdown"):
            self.scheduler.shutdown()
        self._unsubscribe()

    async def aclose(self):
        """Stop polling, let a cycle already reading finish, then `shutdown()`."""
        self.recovery.cancel()
        self.stop()
        wait_running = getattr(self.scheduler, "wait_running", None)
        if wait_running is not None:
            await wait_running()
        self.shutdown()

    # ----------------------------------------------------------------------
    #                             Pull accessors
    # ----------------------------------------------------------------------

    def get_current_buffer(self) -> list[Sample]:
        return list(self.state.samples)

    def get_peak(self) -> float:
        return self.state.peak_value

    def is_configuration_complete(self) -> bool:
        if self._configuration_check is not None:
            return bool(self._configuration_check())
        return self.state.metadata.is_complete()

    def table_rows(self) -> list[list[str]]:
        """Rows of [timestamp, tons, kN] for tables and reports."""
        return [
            [s.timestamp, f"{s.load_tons:.3f} t", f"{s.load_kn:.2f} kN"]
            for s in self.state.samples
        ]
