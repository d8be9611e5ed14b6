# -*- coding: utf-8 -*-
# doit task file, see https://pydoit.org/
# `doit list` shows the tasks, e.g. `doit test_logic -k poll_loop -s fast`

from doit.action import CmdAction

SPEED_MARKERS = {
    "": "",
    "all": "",
    "slow": "slow",
    "fast": "not slow",
}


def pytest_cmd(path, keyword="", speed="", last_failed=False, verbose_logs=False):
    """Command line for running pytest on `path` with loadscope's usual flags."""
    if speed not in SPEED_MARKERS:
        raise ValueError(f"speed must be one of {sorted(SPEED_MARKERS)}, got '{speed}'")
    args = ["pytest", "--color=yes", "-vv"]
    if verbose_logs:
        args.append("--capture=no")
    if last_failed:
        args.append("--lf")
    if keyword:
        args += ["-k", f'"{keyword}"']
    if SPEED_MARKERS[speed]:
        args += ["-m", f'"{SPEED_MARKERS[speed]}"']
    args.append(path)
    return " ".join(args)


def task_install():
    """Editable install of loadscope with the test extra."""
    return {
        "actions": ["pip install -e .[test]"],
        "verbosity": 2,
    }


def task_test_logic():
    """Run test/logic/ (no hardware needed)."""

    def cmd(keyword, speed, last_failed, verbose_logs):
        try:
            return pytest_cmd("test/logic/", keyword, speed, last_failed, verbose_logs)
        except ValueError as e:
            return f"echo '{e}' && exit 1"

    return {
        "actions": [CmdAction(cmd)],
        "params": [
            {"name": "keyword", "short": "k", "default": "", "help": "pytest -k expression"},
            {
                "name": "speed",
                "short": "s",
                "default": "",
                "help": "fast (skip slow tests), slow or all",
            },
            {
                "name": "last_failed",
                "short": "r",
                "type": bool,
                "default": False,
                "help": "rerun only the tests that failed last time",
            },
            {
                "name": "verbose_logs",
                "short": "p",
                "type": bool,
                "default": False,
                "help": "show log output instead of capturing it",
            },
        ],
        "verbosity": 2,
    }


def task_test_hardware():
    """Run test/hardware/ against $LOADSCOPE_TEST_ADDRESS (e.g. COM4)."""
    return {
        "actions": [pytest_cmd("test/hardware/", verbose_logs=True)],
        "verbosity": 2,
    }


def task_simulate():
    """Serve a simulated load cell on 127.0.0.1:8502 (Ctrl-C to stop)."""
    return {
        "actions": ["loadscope simulate"],
        "verbosity": 2,
    }
