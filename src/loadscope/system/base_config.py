"""Monitor configuration dataclass."""

from __future__ import annotations

from dataclasses import dataclass

from mashumaro import DataClassDictMixin

from loadscope.util.defaults import (
    CHANGE_THRESHOLD_T,
    DEFAULT_ADDRESS,
    DEFAULT_BAUDRATE,
    DEFAULT_TIMEOUT,
    DEFAULT_UNIT_ID,
    POLL_INTERVAL,
    RECONNECT_DELAY,
    RENDER_MAX_ATTEMPTS,
    RENDER_RETRY_DELAY,
    STALE_AFTER,
)


@dataclass
class MonitorConfig(DataClassDictMixin):
    """Settings of one load monitor, loaded from an INI section.

    Attributes
    ----------
    name : str
        Name of the configuration (INI section)
    address : str
        Device address: `host:port`, `tcp://host:port`, a serial port, or
        `mock[:seed]`
    unit_id : int
        Modbus unit id of the load cell
    baudrate : int
        Serial baud rate (RTU only)
    timeout_s : float
        Per-read transport timeout
    poll_interval_s : float
        Delay between the end of one poll cycle and the start of the next
    reconnect_delay_s : float
        Delay before the single reconnect attempt after a fault
    change_threshold_t : float
        Sampling policy change threshold, tons
    stale_after_s : float
        Sampling policy maximum gap between retained readings
    render_max_attempts : int
        Attempts made when the chart is not ready
    render_retry_delay_s : float
        Delay between those attempts
    default_location : str
        Location pre-filled into fresh equipment records
    save_dir : str
        Root directory for saved sessions
    """

    name: str = "default"
    address: str = DEFAULT_ADDRESS
    unit_id: int = DEFAULT_UNIT_ID
    baudrate: int = DEFAULT_BAUDRATE
    timeout_s: float = DEFAULT_TIMEOUT
    poll_interval_s: float = POLL_INTERVAL
    reconnect_delay_s: float = RECONNECT_DELAY
    change_threshold_t: float = CHANGE_THRESHOLD_T
    stale_after_s: float = STALE_AFTER
    render_max_attempts: int = RENDER_MAX_ATTEMPTS
    render_retry_delay_s: float = RENDER_RETRY_DELAY
    default_location: str = ""
    save_dir: str = "~/loadscope_data"

    def device_kwargs(self) -> dict:
        return {
            "unit_id": self.unit_id,
            "baudrate": self.baudrate,
            "timeout_s": self.timeout_s,
        }
