"""Monitor configuration handling.

Monitor configurations live in an INI file (default
`~/.loadscope/monitors.ini`), one section per named monitor:

[default]
address = 127.0.0.1:8502
unit_id = 0
timeout_s = 1.0
default_location = Workshop 2

[bench]
address = COM4
baudrate = 9600

Keys left out take the `MonitorConfig` defaults.

See Also
--------
loadscope.system.base_config : MonitorConfig
"""

from __future__ import annotations

from configparser import ConfigParser
from dataclasses import fields
from pathlib import Path

from loguru import logger

from loadscope.system.base_config import MonitorConfig
from loadscope.util.defaults import CONFIG_DIR

_FIELD_TYPES = {f.name: f.type for f in fields(MonitorConfig) if f.name != "name"}
_POSITIVE = {
    "timeout_s",
    "poll_interval_s",
    "reconnect_delay_s",
    "stale_after_s",
    "render_max_attempts",
    "baudrate",
}


def default_config_path() -> Path:
    return CONFIG_DIR / "monitors.ini"


def _parse_value(parser: ConfigParser, section: str, key: str):
    kind = _FIELD_TYPES[key]
    if kind == "int":
        return parser.getint(section, key)
    if kind == "float":
        return parser.getfloat(section, key)
    return parser.get(section, key)


def validate_monitor_config(parser: ConfigParser, section: str) -> tuple[bool, str]:
    """Validate monitor configuration section.

    Parameters
    ----------
    parser : ConfigParser
        ConfigParser instance containing the configuration
    section : str
        Name of the section to validate

    Returns
    -------
    tuple[bool, str]
        (is_valid, error_message)
    """
    if not parser.has_section(section):
        return False, f"No such section: {section}"

    for key in parser[section]:
        if key not in _FIELD_TYPES:
            return False, f"Unknown key: {key}"
        try:
            value = _parse_value(parser, section, key)
        except ValueError:
            return False, f"Invalid value for {key}: {parser[section][key]!r}"
        if key in _POSITIVE and value <= 0:
            return False, f"{key} must be positive"
        if key == "change_threshold_t" and value < 0:
            return False, "change_threshold_t must not be negative"
        if key == "unit_id" and not 0 <= value <= 247:
            return False, f"unit_id out of range: {value}"
        if key == "address" and not value.strip():
            return False, "address must not be empty"

    return True, ""


def _create_monitor_config(parser: ConfigParser, section: str) -> MonitorConfig:
    valid, msg = validate_monitor_config(parser, section)
    if not valid:
        raise ValueError(f"Invalid configuration '{section}': {msg}")
    values = {key: _parse_value(parser, section, key) for key in parser[section]}
    return MonitorConfig(name=section, **values)


def load_monitor_config(name: str = "default", path: Path | None = None) -> MonitorConfig:
    """Load a monitor configuration by name.

    The lookup is case-insensitive. If the file or the section is missing,
    `default` falls back to built-in defaults; any other name is an error.

    Raises
    ------
    ValueError
        Unknown name, or an invalid section.
    """
    path = Path(path) if path is not None else default_config_path()
    parser = ConfigParser()
    if path.exists():
        parser.read(path)
        for section in parser.sections():
            if section.lower() == name.lower():
                logger.debug("Loaded monitor config '{}' from {}", section, path)
                return _create_monitor_config(parser, section)

    if name.lower() == "default":
        logger.debug("No 'default' section in {}, using built-in defaults.", path)
        return MonitorConfig()

    raise ValueError(f"Monitor config '{name}' not found in {path}")


def create_default_config_file(path: Path | None = None) -> Path:
    """Write a monitors.ini holding the default configuration and a mock one."""
    path = Path(path) if path is not None else default_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    logger.debug(f"Creating default monitors file at {path}")

    defaults = MonitorConfig().to_dict()
    defaults.pop("name")
    parser = ConfigParser()
    parser.read_dict(
        {
            "default": {key: str(value) for key, value in defaults.items()},
            "mock": {"address": "mock", "poll_interval_s": "1.0"},
        }
    )
    with open(path, "w") as f:
        parser.write(f)
    return path


def list_available_configs(path: Path | None = None) -> list[str]:
    path = Path(path) if path is not None else default_config_path()
    if not path.exists():
        return []
    parser = ConfigParser()
    parser.read(path)
    return parser.sections()
