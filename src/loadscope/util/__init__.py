# -*- coding: utf-8 -*-
"""
Utility functions and constants for loadscope.

- Logging configuration, including the append-only error log
- Saving session data
- Serial port detection

See Also
--------
loadscope.util.logging : Logging configuration
loadscope.util.save : Data saving functions
"""

from .check_hw import get_hw_ports
from .defaults import (
    CHANGE_THRESHOLD_T,
    CONFIG_DIR,
    DEFAULT_ADDRESS,
    DEFAULT_BAUDRATE,
    DEFAULT_LOGLEVEL,
    DEFAULT_TIMEOUT,
    DEFAULT_UNIT_ID,
    POLL_INTERVAL,
    RECONNECT_DELAY,
    RENDER_MAX_ATTEMPTS,
    RENDER_RETRY_DELAY,
    SINGLE_LINE_ERR_LOG,
    STALE_AFTER,
    TEST_LOGLEVEL,
)
from .logging import (
    clear_log,
    error_log_default_path,
    format_error_response,
    get_error_log_filename,
    get_log_filename,
    log_default_dir,
    log_default_path,
    log_error,
    shutdown_log,
    start_error_log,
    start_log,
)
from .save import save_session

__all__ = [
    "CHANGE_THRESHOLD_T",
    "CONFIG_DIR",
    "DEFAULT_ADDRESS",
    "DEFAULT_BAUDRATE",
    "DEFAULT_LOGLEVEL",
    "DEFAULT_TIMEOUT",
    "DEFAULT_UNIT_ID",
    "POLL_INTERVAL",
    "RECONNECT_DELAY",
    "RENDER_MAX_ATTEMPTS",
    "RENDER_RETRY_DELAY",
    "SINGLE_LINE_ERR_LOG",
    "STALE_AFTER",
    "TEST_LOGLEVEL",
    "clear_log",
    "error_log_default_path",
    "format_error_response",
    "get_error_log_filename",
    "get_hw_ports",
    "get_log_filename",
    "log_default_dir",
    "log_default_path",
    "log_error",
    "save_session",
    "shutdown_log",
    "start_error_log",
    "start_log",
]
