# -*- coding: utf-8 -*-

import pathlib
import tempfile

DEFAULT_ADDRESS = "127.0.0.1:8502"
DEFAULT_UNIT_ID = 0
DEFAULT_BAUDRATE = 9600
DEFAULT_TIMEOUT = 1.0  # seconds, per register read
DEFAULT_LOGLEVEL = "INFO"
TEST_LOGLEVEL = "TRACE"
TEMP_DIR = tempfile.gettempdir()
CONFIG_DIR = pathlib.Path.home() / ".loadscope"
SINGLE_LINE_ERR_LOG = False  # reformat tracebacks into a single line for err comms

POLL_INTERVAL = 1.0  # seconds, from end of one cycle to start of the next
RECONNECT_DELAY = 3.0  # seconds
CHANGE_THRESHOLD_T = 0.05  # tons (50 kg)
STALE_AFTER = 5.0  # seconds
RENDER_MAX_ATTEMPTS = 10
RENDER_RETRY_DELAY = 0.15  # seconds
