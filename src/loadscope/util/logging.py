# -*- coding: utf-8 -*-
"""
Logging setup for loadscope.

Everything logs through loguru. `start_log` installs the general sinks and an
append-only error log: every record at ERROR or above is persisted there with
its timestamp, so failures can be diagnosed after the fact. loguru catches
exceptions raised by its own sinks, so a broken error log never reaches the
caller.
"""

import os
import pathlib
import sys
import traceback

from loguru import logger

from .defaults import CONFIG_DIR, DEFAULT_LOGLEVEL, SINGLE_LINE_ERR_LOG, TEMP_DIR

ERROR_LOG_FORMAT = "{time:YYYY-MM-DDTHH:mm:ss.SSSZZ} - {message}"

_error_log_handler = None


def format_error_response():
    err_str = traceback.format_exc()
    if SINGLE_LINE_ERR_LOG:
        return "\t".join(line.strip() for line in err_str.splitlines())
    else:
        return err_str


def start_log(
    log_to_file=True,
    log_to_stdout=False,
    log_path=None,
    clear_prev=True,
    log_level=DEFAULT_LOGLEVEL,
    error_log_path=None,
    enqueue=True,
):
    if log_path is None or log_path == "":
        log_path = log_default_path()
    else:
        log_path = os.path.abspath(log_path)

    if clear_prev and log_to_file:
        clear_log(log_path)

    # first remove (default) stderr output
    logger.remove()

    if log_to_file:
        pathlib.Path(log_path).parent.mkdir(parents=True, exist_ok=True)
        logger.add(log_path, level=log_level, enqueue=enqueue, colorize=False)
        logger.our_naughty_log_path_attr = log_path
    if log_to_stdout:
        logger.add(sys.stderr, level=log_level, enqueue=enqueue, colorize=True)

    # never cleared: the error log is append-only
    start_error_log(error_log_path, enqueue=enqueue)

    if log_to_file:
        logger.info("Log started at {}", log_path)
    else:
        logger.info("Log started.")


def start_error_log(error_log_path=None, enqueue=True) -> str:
    """Add the append-only error log sink, replacing any previous one.

    Arguments
    ---------
    error_log_path : str
        Where to append error records. Defaults to `error_log_default_path()`.
    enqueue : bool
        Hand records to a background writer so logging an error never blocks
        the event loop.

    Returns
    -------
    str
        The path the error log is written to.
    """
    global _error_log_handler

    if error_log_path is None or error_log_path == "":
        error_log_path = error_log_default_path()
    else:
        error_log_path = os.path.abspath(error_log_path)

    if _error_log_handler is not None:
        try:
            logger.remove(_error_log_handler)
        except ValueError:
            pass  # already removed by a logger.remove() elsewhere
        _error_log_handler = None

    try:
        pathlib.Path(error_log_path).parent.mkdir(parents=True, exist_ok=True)
    except OSError:
        logger.warning("Could not create error log directory for {}", error_log_path)
        return error_log_path

    _error_log_handler = logger.add(
        error_log_path,
        level="ERROR",
        format=ERROR_LOG_FORMAT,
        mode="a",
        enqueue=enqueue,
        colorize=False,
        backtrace=False,
        catch=True,
    )
    logger.our_naughty_error_log_path_attr = error_log_path
    return error_log_path


def log_error(message: str, exc: BaseException | None = None) -> None:
    """Log an error (and so append it to the error log)."""
    if exc is None:
        logger.error(message)
    else:
        logger.error("{} {}: {}", message, type(exc).__name__, exc)


def log_default_path() -> str:
    return str(CONFIG_DIR.joinpath("loadscope.log"))


def error_log_default_path() -> str:
    return str(CONFIG_DIR.joinpath("error.log"))


def log_default_dir():
    return TEMP_DIR


def clear_log(log_path: str):
    """
    Clear the logger file at the given path.

    Arguments
    ---------
    log_path : str
        The path to the logger file. Can get logger default path with
        log_default_path().
    """

    # delete file
    if os.path.exists(log_path):
        try:
            os.remove(log_path)
        except PermissionError:
            logger.error(
                f"Could not clear log file {log_path}. Permission denied. Continuing."
            )


def shutdown_log():
    global _error_log_handler
    try:
        logger.info("Closing down log.")
        logger.remove()
    except Exception:
        logger.exception("Error shutting down log - skipping.")
    _error_log_handler = None


def get_log_filename() -> str:
    """Finds the logger filename."""
    if hasattr(logger, "our_naughty_log_path_attr"):
        return logger.our_naughty_log_path_attr
    else:
        return ""


def get_error_log_filename() -> str:
    if hasattr(logger, "our_naughty_error_log_path_attr"):
        return logger.our_naughty_error_log_path_attr
    else:
        return ""
