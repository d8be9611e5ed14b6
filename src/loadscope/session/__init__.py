# -*- coding: utf-8 -*-
"""
Device polling and connection lifecycle core.

Telemetry flows connection -> poll loop -> conversion -> sampling policy ->
state -> observers. Control flows from the `SessionController` to the poll
loop and the connection manager.

See Also
--------
loadscope.session.controller : Public start/stop/reset operations
loadscope.session.poll_loop : Finish-then-wait polling
loadscope.session.connection_manager : The single device connection
"""

from .connection_manager import CONN_STATE, CONNECT_RESULT, ConnectionManager
from .consumers import ChartRenderer, RenderRetry, SessionObserver
from .controller import SESSION_STATE, SessionController
from .conversion import (
    DEVICE_SCALE_KG,
    STANDARD_GRAVITY,
    LoadReading,
    combine_registers,
    convert_raw,
)
from .poll_loop import PollLoop
from .recovery import RecoveryPolicy
from .sampling import SamplingPolicy
from .scheduler import AsyncioScheduler, ScheduledTask
from .state import Sample, SessionState, StateChange

__all__ = [
    "CONN_STATE",
    "CONNECT_RESULT",
    "ConnectionManager",
    "ChartRenderer",
    "RenderRetry",
    "SessionObserver",
    "SESSION_STATE",
    "SessionController",
    "DEVICE_SCALE_KG",
    "STANDARD_GRAVITY",
    "LoadReading",
    "combine_registers",
    "convert_raw",
    "PollLoop",
    "RecoveryPolicy",
    "SamplingPolicy",
    "AsyncioScheduler",
    "ScheduledTask",
    "Sample",
    "SessionState",
    "StateChange",
]
